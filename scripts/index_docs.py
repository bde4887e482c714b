#!/usr/bin/env python3
"""
Documentation Indexing Script

Chunks the documentation (code-aware) and rebuilds the Chroma collection.
Run this after the documentation source changes.

Usage:
    python scripts/index_docs.py [--docs PATH] [--collection NAME] [--dry-run] [--save-config]
"""

import asyncio
import logging
import sys
import argparse
from collections import Counter
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Chunk documentation and rebuild the vector collection")
    parser.add_argument("--docs", type=str, default=None, help="JSON file or markdown directory (default: config)")
    parser.add_argument("--collection", type=str, default=None, help="Chroma collection name (default: config)")
    parser.add_argument("--dry-run", action="store_true", help="Chunk and report without writing to Chroma")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Remember --docs and --collection in the config file for the server",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    from docqa.common.config import load_config, save_config
    from docqa.common.documents import DocumentStore
    from docqa.common.embedding_service import get_embedding_service
    from docqa.common.errors import DocQAError
    from docqa.common.vector_store import ChromaVectorStore
    from docqa.retriever.chunker import chunk_documents

    config = load_config()
    if args.collection:
        config.vector_store.collection = args.collection

    docs_path = args.docs or config.docs.path or None
    print(f"[Index] Loading documentation from {docs_path or 'packaged sample docs'}...")
    try:
        store = DocumentStore.load(docs_path)
    except DocQAError as e:
        print(f"[Index] ERROR: {e.message}")
        return 1

    chunks = chunk_documents(store.list_documents())
    kinds = Counter(c.kind.value for c in chunks)
    print(f"[Index] {len(store)} documents -> {len(chunks)} chunks "
          f"({kinds.get('text', 0)} text, {kinds.get('code', 0)} code)")

    if args.dry_run:
        print("[Index] DRY RUN - no changes will be made")
        print(f"[Index] Would rebuild collection '{config.vector_store.collection}'")
        return 0

    embedding = get_embedding_service(config.vector_store, api_key=config.llm.openai_api_key)
    if not embedding.is_available:
        print(f"[Index] ERROR: Embedding service not available ({embedding.mode} mode)")
        return 1

    vector_store = ChromaVectorStore(config.vector_store, embedding)
    print(f"[Index] Rebuilding collection '{vector_store.collection_name}'...")
    try:
        written = asyncio.run(vector_store.index(chunks))
        total = vector_store.count()
    except DocQAError as e:
        print(f"[Index] ERROR: {e.message}")
        return 1

    print(f"[Index] Complete: {written} chunks indexed ({total} in collection)")

    if args.save_config:
        if args.docs:
            config.docs.path = str(Path(args.docs).expanduser().resolve())
        save_config(config)
        print("[Index] Saved docs path and collection to the config file")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
RAG Index

Holds the in-memory documentation and chunk collections for the process.
The collections are read-only while queries run and are only ever replaced
wholesale: a rebuild assembles new collections first and then swaps a single
reference, so concurrent queries always see a complete snapshot.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from ..common.documents import DocumentStore
from ..common.errors import BackendUnavailable
from ..common.schemas import Chunk
from ..common.vector_store import ChromaVectorStore
from .chunker import chunk_documents
from .query_processor import extract_terms, normalize_query

logger = logging.getLogger("docqa.retriever.index")


@dataclass(frozen=True)
class IndexSnapshot:
    """One complete generation of the index"""
    documents: DocumentStore
    chunks: Tuple[Chunk, ...] = field(default_factory=tuple)
    generation: int = 0


class RagIndex:
    """
    Explicit lifecycle around the chunk collection.

    initialize() builds the index once (lazily on first use is fine);
    reinitialize() rebuilds it. Concurrent reinitialize() calls share one
    in-flight rebuild instead of racing each other.
    """

    def __init__(
        self,
        loader: Callable[[], DocumentStore],
        vector_store: Optional[ChromaVectorStore] = None,
    ):
        """
        Args:
            loader: Returns the documentation source to chunk
            vector_store: Optional vector backend. The first build fills it
                when the collection is empty; every reinitialize() rewrites it.
        """
        self._loader = loader
        self._vector_store = vector_store
        self._snapshot: Optional[IndexSnapshot] = None
        self._rebuild_task: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def chunks(self) -> Tuple[Chunk, ...]:
        return self._snapshot.chunks if self._snapshot else ()

    @property
    def documents(self) -> Optional[DocumentStore]:
        return self._snapshot.documents if self._snapshot else None

    @property
    def generation(self) -> int:
        return self._snapshot.generation if self._snapshot else 0

    async def initialize(self) -> int:
        """Build the index if it has not been built yet. Returns chunk count."""
        if self._snapshot is not None:
            return len(self._snapshot.chunks)
        return await self._start_rebuild(force_vector_sync=False)

    async def reinitialize(self) -> int:
        """
        Rebuild the index from the documentation source.

        Single-flight: callers arriving while a rebuild runs await that
        rebuild's result rather than starting another.

        Returns:
            Number of chunks in the new generation
        """
        return await self._start_rebuild(force_vector_sync=True)

    async def _start_rebuild(self, force_vector_sync: bool) -> int:
        if self._rebuild_task is None or self._rebuild_task.done():
            self._rebuild_task = asyncio.ensure_future(self._rebuild(force_vector_sync))
        return await asyncio.shield(self._rebuild_task)

    async def _rebuild(self, force_vector_sync: bool) -> int:
        documents = await asyncio.to_thread(self._loader)
        chunks = tuple(chunk_documents(documents.list_documents()))

        if self._vector_store is not None:
            await self._sync_vector_store(list(chunks), force_vector_sync)

        self._snapshot = IndexSnapshot(
            documents=documents,
            chunks=chunks,
            generation=self.generation + 1,
        )
        logger.info(
            "Index generation %d ready: %d documents, %d chunks",
            self._snapshot.generation, len(documents), len(chunks),
        )
        return len(chunks)

    async def _sync_vector_store(self, chunks: List[Chunk], force: bool) -> None:
        """Populate the vector collection; on failure keyword search stays in charge."""
        try:
            if not force:
                existing = await asyncio.to_thread(self._vector_store.count)
                if existing:
                    logger.info(
                        "Vector collection %s already holds %d entries",
                        self._vector_store.collection_name, existing,
                    )
                    return
            written = await self._vector_store.index(chunks)
            logger.info(
                "Populated vector collection %s with %d chunks",
                self._vector_store.collection_name, written,
            )
        except BackendUnavailable as e:
            logger.warning("Vector store sync failed, keeping in-memory index only: %s", e)

    def keyword_search(self, query: str, k: int) -> List[Chunk]:
        """
        Degraded retrieval: linear scan of chunk content.

        A chunk matches when it contains the whole query or any query term
        (whole word). Matches are ordered by match count, then index order.
        """
        snapshot = self._snapshot
        if snapshot is None or k <= 0:
            return []

        normalized = normalize_query(query)
        patterns = [
            re.compile(r"\b" + re.escape(term) + r"\b", re.IGNORECASE)
            for term in dict.fromkeys(extract_terms(normalized))
        ]

        scored = []
        for chunk in snapshot.chunks:
            content = chunk.content.lower()
            hits = sum(len(p.findall(content)) for p in patterns)
            if normalized and normalized in content:
                hits += 1
            if hits:
                scored.append((hits, chunk))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [chunk for _, chunk in scored[:k]]

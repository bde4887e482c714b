"""
Vector Store Client

Wraps a Chroma collection for documentation chunk search.
Chroma's client is synchronous; calls are moved off the event loop with
asyncio.to_thread so a slow backend never blocks other requests.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .config import VectorStoreConfig
from .embedding_service import EmbeddingService
from .errors import BackendUnavailable
from .schemas import Chunk

logger = logging.getLogger("docqa.common.vector_store")

INSERT_BATCH_SIZE = 100
STAGING_SUFFIX = "__staging"


class ChromaVectorStore:
    """
    Direct client to a Chroma collection.

    Uses an HTTP client when a host is configured, a persistent on-disk
    client otherwise. The collection uses cosine distance, so similarity
    is ``1 - distance``.
    """

    def __init__(self, config: VectorStoreConfig, embedding_service: EmbeddingService):
        self._config = config
        self._embedding = embedding_service
        self._client = None
        self._collection = None

    @property
    def collection_name(self) -> str:
        return self._config.collection

    def _ensure_initialized(self) -> None:
        """Lazily connect and open the collection"""
        if self._collection is not None:
            return

        import chromadb

        if self._config.host:
            self._client = chromadb.HttpClient(host=self._config.host, port=self._config.port)
            location = f"{self._config.host}:{self._config.port}"
        else:
            self._client = chromadb.PersistentClient(path=self._config.path)
            location = self._config.path

        self._collection = self._open_collection()
        logger.info("Connected to Chroma at %s (collection=%s)", location, self.collection_name)

    def _open_collection(self, name: Optional[str] = None):
        return self._client.get_or_create_collection(
            name or self.collection_name,
            embedding_function=self._embedding.get_function(),
            metadata={"hnsw:space": "cosine"},
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        k: int,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search the collection.

        Args:
            query: Query text (embedded by the collection's embedding function)
            k: Maximum number of results
            filter: Optional Chroma ``where`` clause on chunk metadata

        Returns:
            List of ``{"content", "metadata", "score"}`` dicts, best first

        Raises:
            BackendUnavailable: Chroma is unreachable or the query failed
        """
        try:
            raw = await asyncio.to_thread(self._query, query, k, filter)
        except BackendUnavailable:
            raise
        except Exception as e:
            raise BackendUnavailable(f"Vector search failed: {e}", backend="chroma") from e
        return self.parse_query_results(raw)

    def _query(self, query: str, k: int, filter: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        self._ensure_initialized()
        kwargs: Dict[str, Any] = {
            "query_texts": [query],
            "n_results": k,
            "include": ["documents", "metadatas", "distances"],
        }
        if filter:
            kwargs["where"] = filter
        return self._collection.query(**kwargs)

    @staticmethod
    def parse_query_results(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Flatten a Chroma query response for a single query text."""
        documents = (raw.get("documents") or [[]])[0] or []
        metadatas = (raw.get("metadatas") or [[]])[0] or []
        distances = (raw.get("distances") or [[]])[0] or []

        results = []
        for i, content in enumerate(documents):
            metadata = metadatas[i] if i < len(metadatas) and metadatas[i] else {}
            result = {"content": content or "", "metadata": dict(metadata)}
            if i < len(distances) and distances[i] is not None:
                result["score"] = max(0.0, min(1.0, 1.0 - float(distances[i])))
            results.append(result)
        return results

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index(self, chunks: List[Chunk]) -> int:
        """
        Replace the collection's contents with ``chunks``.

        Returns:
            Number of chunks written

        Raises:
            BackendUnavailable: Chroma is unreachable or a write failed
        """
        try:
            return await asyncio.to_thread(self._rebuild, chunks)
        except BackendUnavailable:
            raise
        except Exception as e:
            raise BackendUnavailable(f"Vector indexing failed: {e}", backend="chroma") from e

    def _rebuild(self, chunks: List[Chunk]) -> int:
        """
        Fill a staging collection, then swap it in.

        Searches keep hitting the old collection until the staging one is
        complete; it then takes over the configured name.
        """
        self._ensure_initialized()
        staging_name = self.collection_name + STAGING_SUFFIX

        if staging_name in self._collection_names():
            self._client.delete_collection(staging_name)
        staging = self._open_collection(staging_name)

        for start in range(0, len(chunks), INSERT_BATCH_SIZE):
            batch = chunks[start:start + INSERT_BATCH_SIZE]
            staging.add(
                ids=[c.id for c in batch],
                documents=[c.content for c in batch],
                metadatas=[c.to_metadata() for c in batch],
            )

        self._collection = staging
        if self.collection_name in self._collection_names():
            self._client.delete_collection(self.collection_name)
        staging.modify(name=self.collection_name)

        logger.info("Indexed %d chunks into %s", len(chunks), self.collection_name)
        return len(chunks)

    def _collection_names(self) -> List[str]:
        # Chroma >= 0.6 lists names, older releases list Collection objects
        return [getattr(c, "name", c) for c in self._client.list_collections()]

    def count(self) -> int:
        """Number of entries in the collection"""
        try:
            self._ensure_initialized()
            return self._collection.count()
        except Exception as e:
            raise BackendUnavailable(f"Vector count failed: {e}", backend="chroma") from e

"""
Searcher

Retrieves candidate chunks for a query from the vector backend.
Backend failures are reported as an explicit outcome instead of raised, so
the caller can switch to the degraded keyword scan over the in-memory index.
Nothing is retried here; retry policy belongs to the backend client.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..common.errors import BackendUnavailable, ConfigurationError
from ..common.schemas import Chunk
from ..common.vector_store import ChromaVectorStore
from .index import RagIndex

logger = logging.getLogger("docqa.retriever.searcher")

SUGGESTION_LIMIT = 5


@dataclass
class Candidate:
    """A retrieved chunk with its position in the backend's ordering"""
    chunk: Chunk
    rank: int
    similarity: Optional[float] = None  # backend similarity, 0..1, when reported

    @property
    def content(self) -> str:
        return self.chunk.content

    @property
    def metadata(self) -> Dict[str, str]:
        return self.chunk.to_metadata()


@dataclass
class RetrievalOutcome:
    """Result of one backend retrieval: candidates, or an explicit failure"""
    ok: bool
    candidates: List[Candidate] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "RetrievalOutcome":
        return cls(ok=False, error=error)


class Retriever:
    """
    Thin adapter over the vector store.

    Features:
    - Vector retrieval with an explicit failure outcome
    - Keyword-only degraded retrieval over the RagIndex
    - Documentation suggestions with document-search fallback
    """

    def __init__(
        self,
        index: RagIndex,
        vector_store: Optional[ChromaVectorStore] = None,
        topk: int = 10,
    ):
        """
        Initialize retriever.

        Args:
            index: In-memory chunk index (keyword fallback and document search)
            vector_store: Vector backend, or None to run keyword-only
            topk: Default number of candidates to request
        """
        self._index = index
        self._vector_store = vector_store
        self._topk = topk

    @property
    def has_vector_store(self) -> bool:
        return self._vector_store is not None

    async def retrieve(
        self,
        query: str,
        k: Optional[int] = None,
        filter: Optional[Dict[str, Any]] = None,
    ) -> RetrievalOutcome:
        """
        Retrieve candidates from the vector backend, best first.

        Args:
            query: Query text
            k: Number of candidates (default: configured topk)
            filter: Optional metadata filter

        Returns:
            RetrievalOutcome; ok=False when the backend is missing or failed
        """
        k = k or self._topk
        if self._vector_store is None:
            return RetrievalOutcome.failure("No vector store configured")

        try:
            raw_results = await self._vector_store.search(query, k, filter=filter)
        except (BackendUnavailable, ConfigurationError) as e:
            logger.warning("Vector retrieval failed: %s", e.message)
            return RetrievalOutcome.failure(e.message)

        candidates = [
            Candidate(
                chunk=Chunk.from_metadata(raw.get("content", ""), raw.get("metadata", {})),
                rank=i,
                similarity=raw.get("score"),
            )
            for i, raw in enumerate(raw_results[:k])
        ]
        return RetrievalOutcome(ok=True, candidates=candidates)

    async def keyword_retrieve(self, query: str, k: Optional[int] = None) -> List[Candidate]:
        """Degraded path: keyword scan of the in-memory index."""
        k = k or self._topk
        await self._index.initialize()
        return [
            Candidate(chunk=chunk, rank=i)
            for i, chunk in enumerate(self._index.keyword_search(query, k))
        ]

    async def search(self, query: str, k: Optional[int] = None) -> List[Candidate]:
        """Vector retrieval, falling back to keyword retrieval on failure."""
        outcome = await self.retrieve(query, k)
        if outcome.ok:
            return outcome.candidates
        logger.info("Using keyword retrieval (%s)", outcome.error)
        return await self.keyword_retrieve(query, k)

    async def suggest(self, query: str, k: int = SUGGESTION_LIMIT) -> List[Dict[str, Any]]:
        """
        Suggest documentation pages related to a query.

        One suggestion per documentation item, scored ``1 - i * 0.1`` by
        position. Falls back to document substring search when the vector
        backend fails or finds nothing.
        """
        outcome = await self.retrieve(query, k * 2)
        suggestions: List[Dict[str, Any]] = []
        seen = set()

        if outcome.ok:
            for candidate in outcome.candidates:
                chunk = candidate.chunk
                if chunk.source_item_id in seen:
                    continue
                seen.add(chunk.source_item_id)
                suggestions.append({
                    "id": chunk.source_item_id,
                    "title": chunk.title,
                    "category": chunk.category,
                    "url": chunk.url,
                    "type": chunk.kind.value,
                })
                if len(suggestions) >= k:
                    break

        if not suggestions:
            await self._index.initialize()
            for item in self._index.documents.search_documents(query)[:k]:
                suggestions.append({
                    "id": item.id,
                    "title": item.title,
                    "category": item.category,
                    "url": item.url,
                    "type": "text",
                })

        for i, suggestion in enumerate(suggestions):
            suggestion["score"] = round(1 - i * 0.1, 2)
        return suggestions

"""
Orchestrator

Wires the pipeline for one query and normalizes every outcome into either a
complete AnswerResult or a single AnswerError:

- retrieval:  Retriever -> ReRanker -> grounded synthesis
- generative: ProviderRouter -> completion -> generated synthesis
- augmented:  retrieval context + ProviderRouter -> completion
- auto:       augmented when a provider has credentials, retrieval otherwise
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..common.config import ANSWER_MODES
from ..common.errors import (
    AnswerError,
    BackendUnavailable,
    ConfigurationError,
    DocQAError,
    QueryValidationError,
)
from ..common.schemas import AnswerResult, Chunk, QueryRequest
from .index import RagIndex
from .query_processor import validate_request
from .reranker import RankedChunk, RerankOptions, rerank
from .router import ProviderRouter
from .searcher import Retriever
from .synthesizer import AnswerSynthesizer

logger = logging.getLogger("docqa.retriever.orchestrator")


class Orchestrator:
    """
    Entry point of the question-answering pipeline.

    Requests are independent; the only shared state is the RagIndex, which
    is read-only during queries and rebuilt through reinitialize().
    """

    def __init__(
        self,
        index: RagIndex,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        router: Optional[ProviderRouter] = None,
        rerank_options: Optional[RerankOptions] = None,
        answer_mode: str = "auto",
        topk: int = 10,
    ):
        if answer_mode not in ANSWER_MODES:
            raise ConfigurationError(f"Unknown answer mode: {answer_mode!r}")
        self._index = index
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._router = router
        self._rerank_options = rerank_options or RerankOptions()
        self._answer_mode = answer_mode
        self._topk = topk

    @property
    def index(self) -> RagIndex:
        return self._index

    @property
    def retriever(self) -> Retriever:
        return self._retriever

    @property
    def router(self) -> Optional[ProviderRouter]:
        return self._router

    def with_router(self, router: ProviderRouter) -> "Orchestrator":
        """Same pipeline with a different router (e.g. request-scoped keys)."""
        return Orchestrator(
            index=self._index,
            retriever=self._retriever,
            synthesizer=self._synthesizer,
            router=router,
            rerank_options=self._rerank_options,
            answer_mode=self._answer_mode,
            topk=self._topk,
        )

    def resolve_mode(self, requested: Optional[str] = None) -> str:
        mode = requested or self._answer_mode
        if mode != "auto":
            return mode
        if self._router is not None and self._router.available_providers:
            return "augmented"
        return "retrieval"

    async def reinitialize(self) -> int:
        """Rebuild the chunk index (single-flight). Returns chunk count."""
        return await self._index.reinitialize()

    async def answer(
        self,
        request: Union[QueryRequest, Dict[str, Any]],
        mode: Optional[str] = None,
    ) -> AnswerResult:
        """
        Answer one query.

        Raises:
            QueryValidationError: bad input, rejected before any I/O
            ConfigurationError: a generative mode without provider credentials
            AnswerError: any failure that survived fallback
        """
        query = validate_request(request)
        resolved = self.resolve_mode(mode)
        logger.info("Answering query in %s mode", resolved)

        try:
            if resolved == "retrieval":
                return await self._answer_from_retrieval(query)
            return await self._answer_from_provider(query, with_context=resolved == "augmented")
        except (QueryValidationError, ConfigurationError):
            raise
        except BackendUnavailable as e:
            logger.error("Answer failed after fallback: %s", e.message)
            raise AnswerError() from e
        except Exception as e:
            logger.error("Unexpected error answering query: %s", e, exc_info=True)
            raise AnswerError() from e

    async def _retrieve_ranked(self, query: str) -> List[RankedChunk]:
        await self._index.initialize()
        candidates = await self._retriever.search(query, self._topk)
        return rerank(query, candidates, self._rerank_options, self._synthesizer.vocabulary)

    async def _answer_from_retrieval(self, query: QueryRequest) -> AnswerResult:
        ranked = await self._retrieve_ranked(query.query)
        if not ranked:
            return self._synthesizer.no_results(query.query)
        return self._synthesizer.synthesize_grounded(query.query, ranked)

    async def _answer_from_provider(self, query: QueryRequest, with_context: bool) -> AnswerResult:
        if self._router is None:
            raise ConfigurationError("No completion provider configured")

        context: Sequence[Chunk] = ()
        if with_context:
            try:
                ranked = await self._retrieve_ranked(query.query)
                context = [r.chunk for r in ranked]
            except DocQAError as e:
                logger.warning("Retrieval for context failed, answering without it: %s", e)

        selection = self._router.select_provider(query.query, query.preferred_provider)
        messages = [{"role": m.role, "content": m.content} for m in query.chat_history]
        messages.append({"role": "user", "content": query.query})

        completion = await self._router.complete_with_fallback(
            selection,
            self._synthesizer.build_system_prompt(context),
            messages,
        )
        return self._synthesizer.synthesize_generated(query.query, completion, context)

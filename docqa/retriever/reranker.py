"""
Hybrid Re-Ranker

Reorders retrieved candidates by combining the vector-similarity ordering
with keyword overlap and structural boosts:

    final = (vector_score * vector_weight + keyword_score * keyword_weight) * boost

- vector_score: backend similarity when every candidate has one and
  prefer_backend_scores is set, otherwise the rank proxy ``1 - i / N``
- keyword_score: whole-word query-term hits per 100 characters, capped at 1
- boost: code_boost for code chunks on code-related queries, title_boost
  when the title contains the whole normalized query

Deterministic: identical inputs always give the identical order.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..common.config import RerankerConfig
from ..common.schemas import Chunk
from ..common.vocabulary import IntentVocabulary, contains_any, get_default_vocabulary
from .query_processor import extract_terms, normalize_query
from .searcher import Candidate

logger = logging.getLogger("docqa.retriever.reranker")


@dataclass(frozen=True)
class RerankOptions:
    """Weights and boosts, overridable per call"""
    vector_weight: float = 0.7
    keyword_weight: float = 0.3
    title_boost: float = 1.5
    code_boost: float = 1.2
    prefer_backend_scores: bool = True

    @classmethod
    def from_config(cls, config: RerankerConfig) -> "RerankOptions":
        return cls(
            vector_weight=config.vector_weight,
            keyword_weight=config.keyword_weight,
            title_boost=config.title_boost,
            code_boost=config.code_boost,
            prefer_backend_scores=config.prefer_backend_scores,
        )


@dataclass
class RankedChunk:
    """Transient per-query scoring of one candidate"""
    chunk: Chunk
    vector_score: float
    keyword_score: float
    boost: float
    final_score: float

    @property
    def is_code(self) -> bool:
        return self.chunk.is_code


def keyword_score(content: str, terms: Sequence[str]) -> float:
    """
    Whole-word, case-insensitive term hits normalized by content length.

    Returns ``hits / (len(content) / 100)`` clamped to [0, 1].
    """
    if not content or not terms:
        return 0.0

    text = content.lower()
    hits = 0
    for term in terms:
        hits += len(re.findall(r"\b" + re.escape(term.lower()) + r"\b", text))

    score = hits / (len(text) / 100)
    return max(0.0, min(score, 1.0))


def is_code_related_query(query: str, vocabulary: Optional[IntentVocabulary] = None) -> bool:
    """Membership test against the programming/trading/platform vocabulary"""
    vocab = vocabulary or get_default_vocabulary()
    return contains_any(normalize_query(query), vocab.code_related)


def _use_backend_scores(candidates: Sequence[Candidate], options: RerankOptions) -> bool:
    return options.prefer_backend_scores and all(
        c.similarity is not None for c in candidates
    )


def rerank(
    query: str,
    candidates: Sequence[Candidate],
    options: Optional[RerankOptions] = None,
    vocabulary: Optional[IntentVocabulary] = None,
) -> List[RankedChunk]:
    """
    Re-rank candidates, highest final score first.

    Args:
        query: User query
        candidates: Candidates in vector-similarity order (best first)
        options: Weights and boosts (defaults when omitted)
        vocabulary: Intent vocabulary for the code-related test

    Returns:
        RankedChunk list; ties keep their input order
    """
    if not candidates:
        return []

    options = options or RerankOptions()
    normalized = normalize_query(query)
    terms = extract_terms(normalized)
    code_query = is_code_related_query(normalized, vocabulary)
    backend_scores = _use_backend_scores(candidates, options)
    n = len(candidates)

    ranked = []
    for i, candidate in enumerate(candidates):
        chunk = candidate.chunk
        if backend_scores:
            vector_score = max(0.0, min(1.0, float(candidate.similarity)))
        else:
            vector_score = 1 - i / n

        kw_score = keyword_score(chunk.content, terms)

        boost = 1.0
        if chunk.is_code and code_query:
            boost *= options.code_boost
        if normalized and normalized in chunk.title.lower():
            boost *= options.title_boost

        final = (vector_score * options.vector_weight + kw_score * options.keyword_weight) * boost
        ranked.append(
            RankedChunk(
                chunk=chunk,
                vector_score=vector_score,
                keyword_score=kw_score,
                boost=boost,
                final_score=final,
            )
        )

    # sorted() is stable
    ranked = sorted(ranked, key=lambda r: r.final_score, reverse=True)
    logger.debug(
        "Re-ranked %d candidates (backend_scores=%s, code_query=%s)", n, backend_scores, code_query
    )
    return ranked

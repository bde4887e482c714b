"""
Retriever - Documentation Question Answering

Answers questions about the product documentation, optionally emitting an
editor action.

Key Components:
- Chunker: Splits documentation into text and code chunks
- RagIndex: In-memory chunk collection with an explicit rebuild lifecycle
- Retriever: Vector retrieval with keyword fallback
- ReRanker: Hybrid vector + keyword scoring with structural boosts
- ProviderRouter: Intent-based provider/model selection with one fallback
- AnswerSynthesizer: Grounded or generated answers, plus the editor action
- Orchestrator: Runs the pipeline and normalizes errors

Pipeline:
1. Validate the query
2. Retrieve candidates (vector store, or keyword scan when it is down)
3. Re-rank and synthesize, or route to a completion provider
4. Attach exactly one editor action
"""

from .actions import ActionExtractor
from .chunker import chunk_document, chunk_documents
from .index import RagIndex
from .orchestrator import Orchestrator
from .query_processor import ParsedQuery, QueryIntent, QueryProcessor
from .reranker import RankedChunk, RerankOptions, rerank
from .router import ProviderRouter, ProviderSelection
from .searcher import Candidate, Retriever, RetrievalOutcome
from .synthesizer import AnswerSynthesizer

__all__ = [
    "ActionExtractor",
    "chunk_document",
    "chunk_documents",
    "RagIndex",
    "Orchestrator",
    "ParsedQuery",
    "QueryIntent",
    "QueryProcessor",
    "RankedChunk",
    "RerankOptions",
    "rerank",
    "ProviderRouter",
    "ProviderSelection",
    "Candidate",
    "Retriever",
    "RetrievalOutcome",
    "AnswerSynthesizer",
]

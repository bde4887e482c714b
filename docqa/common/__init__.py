"""
DocQA Common Module

Shared infrastructure for the question-answering pipeline: configuration,
errors, completion providers, the vector store and the documentation source.
"""

from .config import DocQAConfig, load_config
from .documents import DocumentStore
from .embedding_service import EmbeddingService
from .errors import (
    AnswerError,
    BackendUnavailable,
    ConfigurationError,
    DocQAError,
    QueryValidationError,
)
from .llm_client import CompletionProvider, build_providers
from .vector_store import ChromaVectorStore

__all__ = [
    "DocQAConfig",
    "load_config",
    "DocumentStore",
    "EmbeddingService",
    "DocQAError",
    "ConfigurationError",
    "BackendUnavailable",
    "QueryValidationError",
    "AnswerError",
    "CompletionProvider",
    "build_providers",
    "ChromaVectorStore",
]

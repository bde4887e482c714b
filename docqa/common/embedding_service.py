"""
Embedding Service

Builds the embedding function the Chroma collection uses to embed both
documentation chunks and queries.

Two modes:
- openai: OpenAI embeddings API (text-embedding-3-small by default)
- local: Chroma's bundled on-device model (all-MiniLM-L6-v2, ONNX runtime)
"""

import logging
from typing import Dict, Tuple

from .config import VectorStoreConfig
from .errors import ConfigurationError

logger = logging.getLogger("docqa.common.embedding_service")

EMBEDDING_MODES = ("openai", "local")


class EmbeddingService:
    """
    Holder for the Chroma embedding function.

    The function is created lazily on first use so that importing the
    package never requires an API key or model download.
    """

    def __init__(self, mode: str = "openai", model: str = "text-embedding-3-small", api_key: str = ""):
        self._mode = mode
        self._model = model
        self._api_key = api_key
        self._function = None

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def is_available(self) -> bool:
        """Check whether an embedding function can be built"""
        if self._mode == "openai":
            return bool(self._api_key)
        return self._mode == "local"

    def get_function(self):
        """
        Return the Chroma embedding function, building it on first call.

        Raises:
            ConfigurationError: unknown mode, or openai mode without a key
        """
        if self._function is not None:
            return self._function

        if self._mode not in EMBEDDING_MODES:
            raise ConfigurationError(f"Unknown embedding mode: {self._mode!r}")

        from chromadb.utils import embedding_functions

        if self._mode == "openai":
            if not self._api_key:
                raise ConfigurationError("OpenAI API key is required for openai embeddings")
            self._function = embedding_functions.OpenAIEmbeddingFunction(
                api_key=self._api_key,
                model_name=self._model,
            )
        else:
            self._function = embedding_functions.DefaultEmbeddingFunction()

        logger.info("Embedding function ready (mode=%s, model=%s)", self._mode, self._model)
        return self._function


_services: Dict[Tuple[str, str, str], EmbeddingService] = {}


def get_embedding_service(config: VectorStoreConfig, api_key: str = "") -> EmbeddingService:
    """
    Get the EmbeddingService for these settings.

    Identical settings share one instance (and its embedding function);
    different settings get their own.

    Args:
        config: Vector store section (embedding_mode, embedding_model)
        api_key: OpenAI key, needed only in openai mode

    Returns:
        EmbeddingService instance
    """
    key = (config.embedding_mode, config.embedding_model, api_key)
    if key not in _services:
        _services[key] = EmbeddingService(
            mode=config.embedding_mode,
            model=config.embedding_model,
            api_key=api_key,
        )
    return _services[key]


def reset_embedding_services() -> None:
    """Drop cached services (used when configuration changes)."""
    _services.clear()

"""
Configuration Management for DocQA

Loads configuration from ~/.docqa/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("docqa.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".docqa"
CONFIG_PATH = CONFIG_DIR / "config.json"
CHROMA_DIR = CONFIG_DIR / "chroma"

# Project paths (relative to this file)
DATA_DIR = Path(__file__).parent / "data"
DEFAULT_VOCABULARY_PATH = DATA_DIR / "intent_vocabulary.json"
DEFAULT_DOCS_PATH = DATA_DIR / "sample_docs.json"

ANSWER_MODES = ("auto", "retrieval", "generative", "augmented")


@dataclass
class LLMConfig:
    """Completion provider configuration"""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_code_model: str = "claude-sonnet-4-5-20250929"
    anthropic_reasoning_model: str = "claude-opus-4-1-20250805"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    max_tokens: int = 1024
    temperature: float = 0.7
    timeout: float = 30.0


@dataclass
class VectorStoreConfig:
    """Chroma vector store configuration"""
    mode: str = "chroma"  # "chroma" or "none"
    path: str = str(CHROMA_DIR)
    host: str = ""  # HTTP client when set, persistent client otherwise
    port: int = 8000
    collection: str = "wl8_documentation"
    embedding_mode: str = "openai"  # "openai" or "local"
    embedding_model: str = "text-embedding-3-small"


@dataclass
class RetrieverConfig:
    """Retriever configuration"""
    topk: int = 10
    max_sources: int = 5
    answer_mode: str = "auto"


@dataclass
class RerankerConfig:
    """Hybrid re-ranking weights"""
    vector_weight: float = 0.7
    keyword_weight: float = 0.3
    title_boost: float = 1.5
    code_boost: float = 1.2
    prefer_backend_scores: bool = True


@dataclass
class DocsConfig:
    """Documentation source configuration"""
    path: str = ""
    product_name: str = "WL8"


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class DocQAConfig:
    """Main DocQA configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    reranker: RerankerConfig = field(default_factory=RerankerConfig)
    docs: DocsConfig = field(default_factory=DocsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    vocabulary_path: str = ""
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        anthropic_code_model=llm_data.get("anthropic_code_model", defaults.anthropic_code_model),
        anthropic_reasoning_model=llm_data.get(
            "anthropic_reasoning_model", defaults.anthropic_reasoning_model
        ),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        max_tokens=llm_data.get("max_tokens", defaults.max_tokens),
        temperature=llm_data.get("temperature", defaults.temperature),
        timeout=llm_data.get("timeout", defaults.timeout),
    )


def _parse_vector_store_config(data: dict) -> VectorStoreConfig:
    """Parse vector_store section from config dict"""
    store_data = data.get("vector_store", {})
    defaults = VectorStoreConfig()
    return VectorStoreConfig(
        mode=store_data.get("mode", defaults.mode),
        path=store_data.get("path", defaults.path),
        host=store_data.get("host", ""),
        port=store_data.get("port", defaults.port),
        collection=store_data.get("collection", defaults.collection),
        embedding_mode=store_data.get("embedding_mode", defaults.embedding_mode),
        embedding_model=store_data.get("embedding_model", defaults.embedding_model),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    return RetrieverConfig(
        topk=retriever_data.get("topk", 10),
        max_sources=retriever_data.get("max_sources", 5),
        answer_mode=retriever_data.get("answer_mode", "auto"),
    )


def _parse_reranker_config(data: dict) -> RerankerConfig:
    """Parse reranker section from config dict"""
    reranker_data = data.get("reranker", {})
    return RerankerConfig(
        vector_weight=reranker_data.get("vector_weight", 0.7),
        keyword_weight=reranker_data.get("keyword_weight", 0.3),
        title_boost=reranker_data.get("title_boost", 1.5),
        code_boost=reranker_data.get("code_boost", 1.2),
        prefer_backend_scores=reranker_data.get("prefer_backend_scores", True),
    )


def _parse_docs_config(data: dict) -> DocsConfig:
    """Parse docs section from config dict"""
    docs_data = data.get("docs", {})
    return DocsConfig(
        path=docs_data.get("path", ""),
        product_name=docs_data.get("product_name", "WL8"),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=server_data.get("port", 8080),
    )


def load_config(path: Optional[Path] = None) -> DocQAConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.docqa/config.json)
    3. Default values
    """
    config = DocQAConfig()
    config_path = Path(path) if path else CONFIG_PATH

    # Load from config file if exists
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.vector_store = _parse_vector_store_config(data)
            config.retriever = _parse_retriever_config(data)
            config.reranker = _parse_reranker_config(data)
            config.docs = _parse_docs_config(data)
            config.server = _parse_server_config(data)
            config.vocabulary_path = data.get("vocabulary_path", "")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", config_path, e)

    # LLM env var overrides (track env-sourced keys)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val.strip())
            config._env_sourced_keys.add(attr)

    if os.getenv("DOCQA_DOCS_PATH"):
        config.docs.path = os.getenv("DOCQA_DOCS_PATH")
    if os.getenv("DOCQA_ANSWER_MODE"):
        config.retriever.answer_mode = os.getenv("DOCQA_ANSWER_MODE")
    if os.getenv("DOCQA_TOPK"):
        config.retriever.topk = int(os.getenv("DOCQA_TOPK"))

    if os.getenv("DOCQA_VECTOR_MODE"):
        config.vector_store.mode = os.getenv("DOCQA_VECTOR_MODE")
    if os.getenv("DOCQA_CHROMA_PATH"):
        config.vector_store.path = os.getenv("DOCQA_CHROMA_PATH")
    if os.getenv("DOCQA_CHROMA_HOST"):
        config.vector_store.host = os.getenv("DOCQA_CHROMA_HOST")
    if os.getenv("DOCQA_CHROMA_PORT"):
        config.vector_store.port = int(os.getenv("DOCQA_CHROMA_PORT"))
    if os.getenv("DOCQA_EMBEDDING_MODE"):
        config.vector_store.embedding_mode = os.getenv("DOCQA_EMBEDDING_MODE")

    if os.getenv("DOCQA_PORT"):
        config.server.port = int(os.getenv("DOCQA_PORT"))
    if os.getenv("DOCQA_VOCABULARY_PATH"):
        config.vocabulary_path = os.getenv("DOCQA_VOCABULARY_PATH")

    if config.retriever.answer_mode not in ANSWER_MODES:
        logger.warning(
            "Unknown answer_mode %r, using 'auto'", config.retriever.answer_mode
        )
        config.retriever.answer_mode = "auto"

    return config


def save_config(config: DocQAConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "anthropic_code_model": config.llm.anthropic_code_model,
        "anthropic_reasoning_model": config.llm.anthropic_reasoning_model,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "max_tokens": config.llm.max_tokens,
        "temperature": config.llm.temperature,
        "timeout": config.llm.timeout,
    }
    for key in ("anthropic_api_key", "openai_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "llm": llm_section,
        "vector_store": {
            "mode": config.vector_store.mode,
            "path": config.vector_store.path,
            "host": config.vector_store.host,
            "port": config.vector_store.port,
            "collection": config.vector_store.collection,
            "embedding_mode": config.vector_store.embedding_mode,
            "embedding_model": config.vector_store.embedding_model,
        },
        "retriever": {
            "topk": config.retriever.topk,
            "max_sources": config.retriever.max_sources,
            "answer_mode": config.retriever.answer_mode,
        },
        "reranker": {
            "vector_weight": config.reranker.vector_weight,
            "keyword_weight": config.reranker.keyword_weight,
            "title_boost": config.reranker.title_boost,
            "code_boost": config.reranker.code_boost,
            "prefer_backend_scores": config.reranker.prefer_backend_scores,
        },
        "docs": {
            "path": config.docs.path,
            "product_name": config.docs.product_name,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
        "vocabulary_path": config.vocabulary_path,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CHROMA_DIR.mkdir(parents=True, exist_ok=True)

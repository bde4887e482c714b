"""
DocQA Server

FastAPI server answering questions about the product documentation.

Endpoints:
- GET /health: Health check and configured backends
- POST /rag: Answer a question (optionally with request-scoped API keys)
- GET /suggestions: Documentation pages related to a query
- POST /init-rag: Rebuild the chunk index
- GET /documentation: Categories with their items
- GET /documentation/search: Substring search over documentation items
- GET /documentation/item/{item_id}: One documentation item
- GET /documentation/{category_id}: One category

Pipeline:
1. Validate the query
2. Retrieve and re-rank documentation chunks
3. Route to a completion provider (with one fallback) or compose a grounded answer
4. Attach exactly one editor action
"""

import functools
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .common.config import DocQAConfig, ensure_directories, load_config
from .common.documents import DocumentStore
from .common.embedding_service import get_embedding_service
from .common.errors import (
    APOLOGY_MESSAGE,
    AnswerError,
    ConfigurationError,
    DocQAError,
    QueryValidationError,
)
from .common.llm_client import build_providers
from .common.vector_store import ChromaVectorStore
from .common.vocabulary import resolve_vocabulary
from .retriever import (
    ActionExtractor,
    AnswerSynthesizer,
    Orchestrator,
    ProviderRouter,
    QueryProcessor,
    RagIndex,
    RerankOptions,
    Retriever,
)

logger = logging.getLogger("docqa.server")

load_dotenv()

# Global state
config: Optional[DocQAConfig] = None
orchestrator: Optional[Orchestrator] = None
query_processor: Optional[QueryProcessor] = None


def build_vector_store(cfg: DocQAConfig) -> Optional[ChromaVectorStore]:
    """Chroma client per config, or None when vector search is disabled."""
    if cfg.vector_store.mode != "chroma":
        return None
    embedding = get_embedding_service(cfg.vector_store, api_key=cfg.llm.openai_api_key)
    if not embedding.is_available:
        logger.info("Embeddings unavailable (%s mode), using keyword retrieval", embedding.mode)
        return None
    return ChromaVectorStore(cfg.vector_store, embedding)


def build_orchestrator(cfg: DocQAConfig, processor: Optional[QueryProcessor] = None) -> Orchestrator:
    """Wire every pipeline component from configuration."""
    vocabulary = resolve_vocabulary(cfg.vocabulary_path or None)
    processor = processor or QueryProcessor(vocabulary)
    vector_store = build_vector_store(cfg)

    index = RagIndex(
        loader=functools.partial(DocumentStore.load, cfg.docs.path or None),
        vector_store=vector_store,
    )
    retriever = Retriever(index, vector_store, topk=cfg.retriever.topk)
    synthesizer = AnswerSynthesizer(
        product_name=cfg.docs.product_name,
        max_sources=cfg.retriever.max_sources,
        vocabulary=vocabulary,
        action_extractor=ActionExtractor(vocabulary, processor),
    )
    router = ProviderRouter(cfg.llm, build_providers(cfg.llm), processor)

    return Orchestrator(
        index=index,
        retriever=retriever,
        synthesizer=synthesizer,
        router=router,
        rerank_options=RerankOptions.from_config(cfg.reranker),
        answer_mode=cfg.retriever.answer_mode,
        topk=cfg.retriever.topk,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, orchestrator, query_processor

    logger.info("Starting up...")
    ensure_directories()

    config = load_config()
    query_processor = QueryProcessor(resolve_vocabulary(config.vocabulary_path or None))
    orchestrator = build_orchestrator(config, query_processor)

    try:
        count = await orchestrator.index.initialize()
        logger.info("Index ready (%d chunks, answer_mode=%s)", count, config.retriever.answer_mode)
    except DocQAError as e:
        logger.warning("Index not initialized at startup: %s", e.message)

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="DocQA",
    description="Documentation question answering with editor actions",
    version="0.1.0",
    lifespan=lifespan,
)


def _require_orchestrator() -> Orchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return orchestrator


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    providers = []
    if orchestrator is not None and orchestrator.router is not None:
        providers = orchestrator.router.available_providers

    return {
        "status": "healthy",
        "service": "docqa",
        "initialized": orchestrator is not None and orchestrator.index.is_initialized,
        "chunks": len(orchestrator.index.chunks) if orchestrator else 0,
        "providers": providers,
        "vector_store": config.vector_store.mode if config else "none",
        "vector_store_connected": bool(orchestrator and orchestrator.retriever.has_vector_store),
        "answer_mode": orchestrator.resolve_mode() if orchestrator else None,
    }


@app.post("/rag")
async def rag(request: Request):
    """
    Answer a question about the documentation.

    Body: {query, chatHistory?, preferredProvider?, openaiKey?, anthropicKey?}
    """
    pipeline = _require_orchestrator()

    try:
        body = await request.json()
    except ValueError:
        return _error(400, "Invalid JSON in request body")
    if not isinstance(body, dict):
        return _error(400, "Request body must be an object")

    openai_key = body.pop("openaiKey", None)
    anthropic_key = body.pop("anthropicKey", None)
    if openai_key or anthropic_key:
        # Request-scoped providers; process configuration is never mutated
        providers = build_providers(
            config.llm, anthropic_api_key=anthropic_key, openai_api_key=openai_key
        )
        pipeline = pipeline.with_router(ProviderRouter(config.llm, providers, query_processor))

    try:
        result = await pipeline.answer(body)
    except (QueryValidationError, ConfigurationError) as e:
        logger.info("Rejected query: %s", e.message)
        return _error(400, e.message)
    except AnswerError as e:
        return _error(500, e.message, answer=APOLOGY_MESSAGE, sources=[], action={"type": "none"})

    logger.info(
        "Answered with %s/%s, %d sources, action=%s",
        result.provider or "-", result.model or "-", len(result.sources), result.action.type.value,
    )
    return result.to_response()


@app.get("/suggestions")
async def suggestions(q: Optional[str] = Query(None)):
    """Documentation pages related to a query"""
    pipeline = _require_orchestrator()
    if not q:
        return _error(400, "Query parameter is required")

    try:
        items = await pipeline.retriever.suggest(q)
    except DocQAError as e:
        logger.error("Suggestions failed: %s", e.message)
        return _error(500, e.message)
    return {"suggestions": items}


@app.post("/init-rag")
async def init_rag():
    """Rebuild the chunk index (concurrent calls share one rebuild)"""
    pipeline = _require_orchestrator()
    try:
        count = await pipeline.reinitialize()
    except DocQAError as e:
        logger.error("Index rebuild failed: %s", e.message)
        return _error(500, e.message, success=False)
    return {"success": True, "chunks": count, "generation": pipeline.index.generation}


def _item_summary(item) -> Dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "category": item.category,
        "description": item.description,
        "url": item.url,
    }


async def _documents(pipeline: Orchestrator):
    await pipeline.index.initialize()
    return pipeline.index.documents


@app.get("/documentation")
async def documentation_categories():
    """Documentation categories with their items"""
    pipeline = _require_orchestrator()
    try:
        documents = await _documents(pipeline)
    except DocQAError as e:
        return _error(500, e.message)

    return {
        "categories": [
            {**category, "items": [_item_summary(i) for i in category["items"]]}
            for category in documents.list_categories()
        ]
    }


@app.get("/documentation/search")
async def documentation_search(q: Optional[str] = Query(None)):
    """Case-insensitive substring search over documentation items"""
    pipeline = _require_orchestrator()
    try:
        documents = await _documents(pipeline)
    except DocQAError as e:
        return _error(500, e.message)

    return {
        "query": q or "",
        "results": [_item_summary(item) for item in documents.search_documents(q or "")],
    }


@app.get("/documentation/item/{item_id}")
async def documentation_item(item_id: str):
    """One documentation item, including its markdown content"""
    pipeline = _require_orchestrator()
    try:
        documents = await _documents(pipeline)
    except DocQAError as e:
        return _error(500, e.message)

    item = documents.get_document(item_id)
    if item is None:
        return _error(404, "Documentation item not found")
    return {"item": {**_item_summary(item), "content": item.content, "tags": item.tags}}


@app.get("/documentation/{category_id}")
async def documentation_category(category_id: str):
    """One documentation category with its items"""
    pipeline = _require_orchestrator()
    try:
        documents = await _documents(pipeline)
    except DocQAError as e:
        return _error(500, e.message)

    category = documents.get_category(category_id)
    if category is None:
        return _error(404, "Category not found")
    return {"category": {**category, "items": [_item_summary(i) for i in category["items"]]}}


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the DocQA server"""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config()

    logger.info("Starting server on %s:%d", cfg.server.host, cfg.server.port)
    uvicorn.run(
        "docqa.server:app",
        host=cfg.server.host,
        port=cfg.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()

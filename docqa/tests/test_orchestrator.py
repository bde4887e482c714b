"""
Tests for the Orchestrator

Covers mode resolution, retrieval and provider answers, and error
normalization.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.common.config import LLMConfig
from docqa.common.errors import (
    APOLOGY_MESSAGE,
    AnswerError,
    BackendUnavailable,
    ConfigurationError,
    QueryValidationError,
)
from docqa.common.llm_client import Completion
from docqa.retriever import AnswerSynthesizer, Orchestrator, ProviderRouter, RagIndex, Retriever


def _provider(name, available=True, text="generated answer", error=None):
    provider = MagicMock()
    provider.is_available = available
    if error is not None:
        provider.complete = AsyncMock(side_effect=error)
    else:
        provider.complete = AsyncMock(
            return_value=Completion(text=text, model=f"{name}-model", provider=name)
        )
    return provider


def _router(anthropic=None, openai=None):
    return ProviderRouter(
        LLMConfig(),
        {
            "anthropic": anthropic or _provider("anthropic"),
            "openai": openai or _provider("openai"),
        },
    )


def _orchestrator(index, router=None, answer_mode="auto", retriever=None):
    return Orchestrator(
        index=index,
        retriever=retriever or Retriever(index),
        synthesizer=AnswerSynthesizer(),
        router=router,
        answer_mode=answer_mode,
    )


class TestModeResolution:
    def test_auto_without_router_is_retrieval(self, rag_index):
        assert _orchestrator(rag_index).resolve_mode() == "retrieval"

    def test_auto_with_provider_is_augmented(self, rag_index):
        assert _orchestrator(rag_index, _router()).resolve_mode() == "augmented"

    def test_auto_with_no_credentials_is_retrieval(self, rag_index):
        router = _router(_provider("anthropic", available=False), _provider("openai", available=False))
        assert _orchestrator(rag_index, router).resolve_mode() == "retrieval"

    def test_explicit_mode_wins(self, rag_index):
        assert _orchestrator(rag_index, _router()).resolve_mode("retrieval") == "retrieval"

    def test_unknown_mode_rejected(self, rag_index):
        with pytest.raises(ConfigurationError):
            _orchestrator(rag_index, answer_mode="creative")


class TestRetrievalMode:
    @pytest.mark.asyncio
    async def test_grounded_answer(self, rag_index):
        result = await _orchestrator(rag_index).answer({"query": "rsi period"})

        assert result.answer.startswith("Based on the WL8 documentation")
        assert result.sources
        assert result.sources[0].source_item_id == "rsi"
        assert result.provider is None
        assert result.action.to_dict() == {"type": "none"}

    @pytest.mark.asyncio
    async def test_no_results(self, rag_index):
        result = await _orchestrator(rag_index).answer({"query": "xyzzy unrelated gibberish"})

        assert result.answer.startswith("I couldn't find specific information")
        assert result.sources == []
        assert result.action.to_dict() == {"type": "none"}

    @pytest.mark.asyncio
    async def test_builds_index_lazily(self, rag_index):
        assert not rag_index.is_initialized

        await _orchestrator(rag_index).answer({"query": "moving average"})

        assert rag_index.is_initialized

    @pytest.mark.asyncio
    async def test_validation_error_before_io(self, rag_index):
        retriever = MagicMock()
        retriever.search = AsyncMock()

        with pytest.raises(QueryValidationError):
            await _orchestrator(rag_index, retriever=retriever).answer({"query": "  "})

        retriever.search.assert_not_awaited()
        assert not rag_index.is_initialized

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_answer_error(self, rag_index):
        retriever = MagicMock()
        retriever.search = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(AnswerError) as exc_info:
            await _orchestrator(rag_index, retriever=retriever).answer({"query": "rsi"})

        assert exc_info.value.message == APOLOGY_MESSAGE
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestProviderModes:
    @pytest.mark.asyncio
    async def test_augmented_passes_context(self, rag_index):
        anthropic = _provider("anthropic", text="RSI is a momentum oscillator.")
        orchestrator = _orchestrator(rag_index, _router(anthropic=anthropic))

        result = await orchestrator.answer({"query": "What is an RSI?"})

        assert result.answer == "RSI is a momentum oscillator."
        assert result.provider == "anthropic"
        assert result.model == "anthropic-model"
        assert result.sources
        system_prompt = anthropic.complete.await_args.args[1]
        assert "Relative Strength Index" in system_prompt

    @pytest.mark.asyncio
    async def test_generative_skips_retrieval(self, rag_index):
        retriever = MagicMock()
        retriever.search = AsyncMock()
        orchestrator = _orchestrator(rag_index, _router(), answer_mode="generative", retriever=retriever)

        result = await orchestrator.answer({"query": "bars close series"})

        assert result.provider == "openai"
        assert result.sources == []
        retriever.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chat_history_forwarded(self, rag_index):
        openai = _provider("openai")
        orchestrator = _orchestrator(rag_index, _router(openai=openai), answer_mode="generative")

        await orchestrator.answer({
            "query": "and the slow one?",
            "chatHistory": [
                {"role": "user", "content": "fast period?"},
                {"role": "assistant", "content": "10"},
            ],
            "preferredProvider": "openai",
        })

        messages = openai.complete.await_args.args[2]
        assert messages == [
            {"role": "user", "content": "fast period?"},
            {"role": "assistant", "content": "10"},
            {"role": "user", "content": "and the slow one?"},
        ]

    @pytest.mark.asyncio
    async def test_augmented_survives_retrieval_failure(self, rag_index):
        retriever = MagicMock()
        retriever.search = AsyncMock(side_effect=BackendUnavailable("down", backend="chroma"))
        orchestrator = _orchestrator(rag_index, _router(), retriever=retriever)

        result = await orchestrator.answer({"query": "What is an RSI?"})

        assert result.answer == "generated answer"
        assert result.sources == []

    @pytest.mark.asyncio
    async def test_fallback_result_reported(self, rag_index):
        anthropic = _provider("anthropic", error=BackendUnavailable("timeout", backend="anthropic"))
        openai = _provider("openai", text="fallback answer")
        orchestrator = _orchestrator(rag_index, _router(anthropic, openai), answer_mode="generative")

        result = await orchestrator.answer({"query": "Explain MACD"})

        assert result.answer == "fallback answer"
        assert result.provider == "openai"

    @pytest.mark.asyncio
    async def test_total_failure_is_answer_error(self, rag_index):
        anthropic = _provider("anthropic", error=BackendUnavailable("down", backend="anthropic"))
        openai = _provider("openai", error=BackendUnavailable("down", backend="openai"))
        orchestrator = _orchestrator(rag_index, _router(anthropic, openai), answer_mode="generative")

        with pytest.raises(AnswerError) as exc_info:
            await orchestrator.answer({"query": "Explain MACD"})

        assert exc_info.value.message == APOLOGY_MESSAGE
        assert isinstance(exc_info.value.__cause__, BackendUnavailable)

    @pytest.mark.asyncio
    async def test_generative_without_router(self, rag_index):
        orchestrator = _orchestrator(rag_index, answer_mode="generative")

        with pytest.raises(ConfigurationError):
            await orchestrator.answer({"query": "Explain MACD"})

    @pytest.mark.asyncio
    async def test_build_query_gets_replace_action(self, rag_index):
        orchestrator = _orchestrator(rag_index, _router(), answer_mode="generative")

        result = await orchestrator.answer(
            {"query": "Clear the editor and build an RSI indicator with period 21"}
        )

        action = result.action.to_dict()
        assert action["type"] == "replace"
        assert action["template"] == "rsi"
        assert action["params"] == {"period": 21}

    @pytest.mark.asyncio
    async def test_with_router_keeps_pipeline(self, rag_index):
        base = _orchestrator(rag_index)
        scoped = base.with_router(_router())

        assert scoped.index is base.index
        assert scoped.retriever is base.retriever
        assert base.router is None
        assert scoped.resolve_mode() == "augmented"


class TestReinitialize:
    @pytest.mark.asyncio
    async def test_concurrent_rebuilds_share_one_load(self, doc_store):
        calls = []

        def loader():
            calls.append(1)
            return doc_store

        index = RagIndex(loader=loader)
        orchestrator = _orchestrator(index)

        counts = await asyncio.gather(*(orchestrator.reinitialize() for _ in range(3)))

        assert len(calls) == 1
        assert len(set(counts)) == 1
        assert index.generation == 1

        await orchestrator.reinitialize()

        assert len(calls) == 2
        assert index.generation == 2

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, rag_index):
        first = await rag_index.initialize()
        second = await rag_index.initialize()

        assert first == second
        assert rag_index.generation == 1


def _memory_vector_store(entries=0):
    """Vector store double that only returns what was indexed into it."""
    store = MagicMock()
    store.collection_name = "docs"
    written = [None] * entries

    async def index(chunks):
        written[:] = chunks
        return len(chunks)

    async def search(query, k, filter=None):
        terms = query.lower().split()
        return [
            {"content": c.content, "metadata": c.to_metadata(), "score": 0.9}
            for c in written
            if c is not None and any(t in c.content.lower() for t in terms)
        ][:k]

    store.count.side_effect = lambda: len(written)
    store.index = AsyncMock(side_effect=index)
    store.search = AsyncMock(side_effect=search)
    return store


class TestVectorSync:
    @pytest.mark.asyncio
    async def test_first_build_fills_empty_collection(self, doc_store):
        store = _memory_vector_store()
        index = RagIndex(loader=lambda: doc_store, vector_store=store)
        orchestrator = _orchestrator(index, retriever=Retriever(index, store))

        result = await orchestrator.answer({"query": "RSI momentum"})

        store.index.assert_awaited_once()
        assert len(store.index.await_args.args[0]) == 3
        assert result.sources
        assert result.sources[0].source_item_id == "rsi"

    @pytest.mark.asyncio
    async def test_populated_collection_left_alone(self, doc_store):
        store = _memory_vector_store(entries=7)
        index = RagIndex(loader=lambda: doc_store, vector_store=store)

        await index.initialize()

        store.index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reinitialize_rewrites_collection(self, doc_store):
        store = _memory_vector_store(entries=7)
        index = RagIndex(loader=lambda: doc_store, vector_store=store)

        await index.initialize()
        await index.reinitialize()

        store.index.assert_awaited_once()
        store.count.assert_called_once()

    @pytest.mark.asyncio
    async def test_sync_failure_keeps_keyword_index(self, doc_store, caplog):
        store = _memory_vector_store()
        store.index.side_effect = BackendUnavailable("down", backend="chroma")
        index = RagIndex(loader=lambda: doc_store, vector_store=store)

        count = await index.initialize()

        assert count == 3
        assert index.keyword_search("rsi", 5)
        assert "Vector store sync failed" in caplog.text

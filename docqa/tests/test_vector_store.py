"""Tests for the Chroma vector store wrapper and the embedding service."""

from unittest.mock import MagicMock

import pytest

from docqa.common.config import VectorStoreConfig
from docqa.common.embedding_service import get_embedding_service, reset_embedding_services
from docqa.common.errors import BackendUnavailable, ConfigurationError
from docqa.common.schemas import Chunk, ChunkKind
from docqa.common.vector_store import ChromaVectorStore


@pytest.fixture(autouse=True)
def _reset_embedding_services():
    reset_embedding_services()
    yield
    reset_embedding_services()


def _chunk(i):
    return Chunk(
        id=f"doc-text-{i}",
        source_item_id="doc",
        title="Doc",
        category="guides",
        kind=ChunkKind.TEXT,
        content=f"text {i}",
        url="/documentation/guides/doc",
    )


def _store_with_mock_collection():
    service = get_embedding_service(VectorStoreConfig(embedding_mode="local"))
    store = ChromaVectorStore(VectorStoreConfig(collection="docs"), service)
    store._embedding = MagicMock()
    store._client = MagicMock()
    store._collection = MagicMock()
    return store


class TestParseQueryResults:
    def test_flattens_single_query(self):
        raw = {
            "documents": [["first", "second"]],
            "metadatas": [[{"id": "a"}, None]],
            "distances": [[0.25, 1.4]],
        }

        results = ChromaVectorStore.parse_query_results(raw)

        assert results[0] == {"content": "first", "metadata": {"id": "a"}, "score": 0.75}
        assert results[1]["metadata"] == {}
        assert results[1]["score"] == 0.0

    def test_empty_response(self):
        assert ChromaVectorStore.parse_query_results({}) == []
        assert ChromaVectorStore.parse_query_results({"documents": [[]]}) == []

    def test_missing_distances_leave_score_out(self):
        results = ChromaVectorStore.parse_query_results({"documents": [["x"]]})
        assert "score" not in results[0]


class TestSearch:
    @pytest.mark.asyncio
    async def test_query_arguments(self):
        store = _store_with_mock_collection()
        store._collection.query.return_value = {
            "documents": [["body"]],
            "metadatas": [[{"id": "c1"}]],
            "distances": [[0.1]],
        }

        results = await store.search("rsi", 3, filter={"type": "code"})

        assert results[0]["score"] == pytest.approx(0.9)
        store._collection.query.assert_called_once_with(
            query_texts=["rsi"],
            n_results=3,
            include=["documents", "metadatas", "distances"],
            where={"type": "code"},
        )

    @pytest.mark.asyncio
    async def test_backend_error_wrapped(self):
        store = _store_with_mock_collection()
        store._collection.query.side_effect = ConnectionError("refused")

        with pytest.raises(BackendUnavailable) as exc_info:
            await store.search("rsi", 3)

        assert exc_info.value.backend == "chroma"


class TestIndex:
    @pytest.mark.asyncio
    async def test_rebuilds_collection_in_batches(self):
        store = _store_with_mock_collection()
        store._client.list_collections.return_value = ["docs"]
        new_collection = MagicMock()
        store._client.get_or_create_collection.return_value = new_collection
        chunks = [_chunk(i) for i in range(150)]

        written = await store.index(chunks)

        assert written == 150
        assert store._client.get_or_create_collection.call_args.args == ("docs__staging",)
        assert new_collection.add.call_count == 2
        first_batch = new_collection.add.call_args_list[0].kwargs
        assert len(first_batch["ids"]) == 100
        assert first_batch["metadatas"][0]["type"] == "text"

    @pytest.mark.asyncio
    async def test_old_collection_serves_until_staging_is_full(self):
        store = _store_with_mock_collection()
        old_collection = store._collection
        store._client.list_collections.return_value = ["docs", "docs__staging"]
        staging = MagicMock()
        store._client.get_or_create_collection.return_value = staging
        seen_during_add = []
        staging.add.side_effect = lambda **kwargs: seen_during_add.append(store._collection)

        await store.index([_chunk(i) for i in range(3)])

        assert seen_during_add == [old_collection]
        assert store._collection is staging
        assert [c.args[0] for c in store._client.delete_collection.call_args_list] == [
            "docs__staging",
            "docs",
        ]
        staging.modify.assert_called_once_with(name="docs")

    @pytest.mark.asyncio
    async def test_write_failure_keeps_old_collection(self):
        store = _store_with_mock_collection()
        old_collection = store._collection
        store._client.list_collections.return_value = ["docs"]
        staging = MagicMock()
        staging.add.side_effect = ConnectionError("refused")
        store._client.get_or_create_collection.return_value = staging

        with pytest.raises(BackendUnavailable):
            await store.index([_chunk(0)])

        assert store._collection is old_collection
        store._client.delete_collection.assert_not_called()


class TestEmbeddingService:
    def test_same_settings_share_instance(self):
        first = get_embedding_service(VectorStoreConfig(embedding_mode="local"))
        second = get_embedding_service(VectorStoreConfig(embedding_mode="local"))

        assert first is second

    def test_changed_settings_get_new_instance(self):
        local = get_embedding_service(VectorStoreConfig(embedding_mode="local"))
        remote = get_embedding_service(VectorStoreConfig(embedding_mode="openai"), api_key="sk-1")
        rotated = get_embedding_service(VectorStoreConfig(embedding_mode="openai"), api_key="sk-2")

        assert local.mode == "local"
        assert remote.mode == "openai"
        assert remote.is_available
        assert rotated is not remote

    def test_openai_requires_key(self):
        service = get_embedding_service(VectorStoreConfig(embedding_mode="openai"))

        assert not service.is_available
        with pytest.raises(ConfigurationError):
            service.get_function()

    def test_unknown_mode(self):
        service = get_embedding_service(VectorStoreConfig(embedding_mode="magic"))

        assert not service.is_available
        with pytest.raises(ConfigurationError, match="Unknown embedding mode"):
            service.get_function()

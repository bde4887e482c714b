"""Tests for query validation and intent classification."""

import pytest

from docqa.common.errors import QueryValidationError
from docqa.common.schemas import QueryRequest
from docqa.common.vocabulary import parse_vocabulary
from docqa.retriever.query_processor import (
    QueryIntent,
    QueryProcessor,
    extract_terms,
    normalize_query,
    validate_request,
)


@pytest.fixture
def processor():
    return QueryProcessor()


class TestNormalization:
    def test_normalize_lowercases_and_trims(self):
        assert normalize_query("  What Is RSI?  ") == "what is rsi?"

    def test_extract_terms_drops_short_words(self):
        assert extract_terms("What is an RSI of 14?") == ["what", "rsi"]

    def test_extract_terms_keeps_order_and_duplicates(self):
        assert extract_terms("sma crossover sma") == ["sma", "crossover", "sma"]


class TestValidateRequest:
    def test_accepts_minimal_payload(self):
        request = validate_request({"query": "What is an RSI?"})

        assert isinstance(request, QueryRequest)
        assert request.query == "What is an RSI?"
        assert request.chat_history == []
        assert request.preferred_provider == "auto"

    def test_accepts_camel_case_keys(self):
        request = validate_request({
            "query": "hi",
            "chatHistory": [{"role": "user", "content": "earlier"}],
            "preferredProvider": "openai",
        })

        assert request.chat_history[0].content == "earlier"
        assert request.preferred_provider == "openai"

    def test_passes_through_query_request(self):
        request = QueryRequest(query="hello")
        assert validate_request(request) is request

    @pytest.mark.parametrize("payload", [
        {},
        {"query": ""},
        {"query": "   "},
        {"query": None},
        {"query": 42},
    ])
    def test_rejects_missing_or_blank_query(self, payload):
        with pytest.raises(QueryValidationError) as exc_info:
            validate_request(payload)
        assert exc_info.value.message == "Query parameter is required and must be a non-empty string"

    def test_rejects_bad_chat_history(self):
        with pytest.raises(QueryValidationError) as exc_info:
            validate_request({"query": "hi", "chatHistory": [{"role": "system", "content": "x"}]})
        assert "chatHistory" in exc_info.value.message

    def test_rejects_unknown_provider(self):
        with pytest.raises(QueryValidationError):
            validate_request({"query": "hi", "preferredProvider": "gemini"})

    def test_rejects_non_object(self):
        with pytest.raises(QueryValidationError):
            validate_request(["query"])


class TestDetectIntent:
    def test_conceptual_question(self, processor):
        parsed = processor.parse("What is an RSI?")

        assert parsed.intent == QueryIntent.CONCEPTUAL_REQUEST
        assert not parsed.wants_deletion
        assert not parsed.wants_build

    @pytest.mark.parametrize("query,expected", [
        ("Write code for a moving average", QueryIntent.CODE_REQUEST),
        ("Suggest an indicator for trending markets", QueryIntent.VAGUE_INDICATOR_REQUEST),
        ("Explain the stochastic oscillator", QueryIntent.CONCEPTUAL_REQUEST),
        ("Can you help me with my account?", QueryIntent.CONVERSATIONAL_REQUEST),
        ("bars close series", QueryIntent.DEFAULT),
    ])
    def test_intents(self, processor, query, expected):
        assert processor.detect_intent(normalize_query(query)) == expected

    def test_code_beats_conceptual(self, processor):
        # Matches both "write" and "what is"
        assert processor.detect_intent("what is the way to write this") == QueryIntent.CODE_REQUEST

    def test_vague_beats_conversational(self, processor):
        assert (
            processor.detect_intent("can you help me, what indicator fits?")
            == QueryIntent.VAGUE_INDICATOR_REQUEST
        )

    @pytest.mark.parametrize("query,expected", [
        ("Describe the concepts behind MACD", QueryIntent.CONCEPTUAL_REQUEST),
        ("Explaining RSI please", QueryIntent.CONCEPTUAL_REQUEST),
        ("I am not understanding bands", QueryIntent.CONCEPTUAL_REQUEST),
        ("implementing a crossover", QueryIntent.CODE_REQUEST),
        ("chatting about stops", QueryIntent.CONVERSATIONAL_REQUEST),
    ])
    def test_keywords_match_inside_words(self, processor, query, expected):
        assert processor.detect_intent(normalize_query(query)) == expected


class TestActionSignals:
    def test_deletion_and_build_independent(self, processor):
        parsed = processor.parse("Clear the editor and build an RSI indicator with period 21")

        assert parsed.wants_deletion
        assert parsed.wants_build

    def test_deletion_only(self, processor):
        parsed = processor.parse("delete everything")

        assert parsed.wants_deletion
        assert not parsed.wants_build

    def test_inflected_action_words(self, processor):
        parsed = processor.parse("Clearing the editor, then developing a strategy")

        assert parsed.wants_deletion
        assert parsed.wants_build
        assert parsed.normalized == "clearing the editor, then developing a strategy"

    def test_custom_vocabulary(self):
        vocab = parse_vocabulary({
            "version": 1,
            "provider_intents": {"conceptual_request": ["tell me about"]},
            "action_intents": {"deletion": ["wipe"], "build": ["make"]},
        })
        processor = QueryProcessor(vocab)

        parsed = processor.parse("Tell me about bands then wipe and make one")

        assert parsed.intent == QueryIntent.CONCEPTUAL_REQUEST
        assert parsed.wants_deletion
        assert parsed.wants_build
        assert processor.vocabulary is vocab

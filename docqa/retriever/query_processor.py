"""
Query Processor

Parses user queries: validation, normalization, intent classification for
provider routing, and the deletion/build signals used for action extraction.
Keyword lists come from the versioned intent vocabulary, not from literals.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..common.errors import QueryValidationError
from ..common.schemas import QueryRequest
from ..common.vocabulary import IntentVocabulary, contains_any, get_default_vocabulary

logger = logging.getLogger("docqa.retriever.query_processor")

_TERM_PATTERN = re.compile(r"\w+")
MIN_TERM_LENGTH = 3


class QueryIntent(str, Enum):
    """Provider-routing intent, in precedence order"""
    CODE_REQUEST = "code_request"  # "write code for ..."
    VAGUE_INDICATOR_REQUEST = "vague_indicator_request"  # "suggest an indicator"
    CONCEPTUAL_REQUEST = "conceptual_request"  # "what is an RSI?"
    CONVERSATIONAL_REQUEST = "conversational_request"  # "can you help me ..."
    DEFAULT = "default"  # Catch-all


@dataclass
class ParsedQuery:
    """Parsed representation of a user query"""
    original: str
    normalized: str
    intent: QueryIntent
    wants_deletion: bool = False
    wants_build: bool = False


def normalize_query(query: str) -> str:
    """Lower-case and trim (the form used for title matching)."""
    return query.lower().strip()


def extract_terms(query: str) -> List[str]:
    """Word tokens longer than two characters, lower-cased, in query order."""
    return [t for t in _TERM_PATTERN.findall(query.lower()) if len(t) >= MIN_TERM_LENGTH]


def validate_request(payload: Union[QueryRequest, Dict[str, Any]]) -> QueryRequest:
    """
    Validate caller input before any I/O.

    Raises:
        QueryValidationError: empty query or malformed chat history
    """
    if isinstance(payload, QueryRequest):
        return payload
    if not isinstance(payload, dict):
        raise QueryValidationError("Request body must be an object")
    try:
        return QueryRequest.model_validate(payload)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        message = first.get("msg", str(e))
        if location == "query":
            message = "Query parameter is required and must be a non-empty string"
        elif location:
            message = f"Invalid {location}: {message}"
        raise QueryValidationError(message) from e


class QueryProcessor:
    """
    Classifies queries with keyword membership tests.

    Intent precedence when several lists match:
    code > vague indicator > conceptual > conversational > default.
    """

    def __init__(self, vocabulary: Optional[IntentVocabulary] = None):
        self._vocab = vocabulary or get_default_vocabulary()
        self._intent_order = [
            (QueryIntent.CODE_REQUEST, self._vocab.code_request),
            (QueryIntent.VAGUE_INDICATOR_REQUEST, self._vocab.vague_indicator_request),
            (QueryIntent.CONCEPTUAL_REQUEST, self._vocab.conceptual_request),
            (QueryIntent.CONVERSATIONAL_REQUEST, self._vocab.conversational_request),
        ]

    @property
    def vocabulary(self) -> IntentVocabulary:
        return self._vocab

    def parse(self, query: str) -> ParsedQuery:
        """
        Parse a user query into structured form.

        Args:
            query: Raw user query string

        Returns:
            ParsedQuery with intent and action signals
        """
        normalized = normalize_query(query)
        return ParsedQuery(
            original=query,
            normalized=normalized,
            intent=self.detect_intent(normalized),
            wants_deletion=self.detect_deletion(normalized),
            wants_build=self.detect_build(normalized),
        )

    def detect_intent(self, query: str) -> QueryIntent:
        """Detect the routing intent of the query"""
        for intent, phrases in self._intent_order:
            if contains_any(query, phrases, whole_word=False):
                return intent
        return QueryIntent.DEFAULT

    def detect_deletion(self, query: str) -> bool:
        return contains_any(query, self._vocab.deletion, whole_word=False)

    def detect_build(self, query: str) -> bool:
        return contains_any(query, self._vocab.build, whole_word=False)

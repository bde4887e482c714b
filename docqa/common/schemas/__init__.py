"""
DocQA Schemas

Documentation items, chunks, queries, answers and editor actions.
"""

from .models import (
    MAX_SOURCES,
    DocumentItem,
    Chunk,
    ChunkKind,
    ChatMessage,
    QueryRequest,
    Action,
    ActionType,
    IndicatorSuggestion,
    AnswerResult,
    ProviderName,
    ProviderPreference,
)
from .templates import (
    INDICATOR_TEMPLATES,
    NO_RESULTS_TEMPLATE,
    SYSTEM_PROMPT,
    render_indicator_template,
)

__all__ = [
    "MAX_SOURCES",
    "DocumentItem",
    "Chunk",
    "ChunkKind",
    "ChatMessage",
    "QueryRequest",
    "Action",
    "ActionType",
    "IndicatorSuggestion",
    "AnswerResult",
    "ProviderName",
    "ProviderPreference",
    "INDICATOR_TEMPLATES",
    "NO_RESULTS_TEMPLATE",
    "SYSTEM_PROMPT",
    "render_indicator_template",
]

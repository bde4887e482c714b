"""
Documentation QA Schemas

Core principle: every answer is returned as one AnswerResult carrying
exactly one editor Action. Chunks are derived from DocumentItems and are
never edited individually.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Upper bound on sources attached to one answer
MAX_SOURCES = 5


# ============================================================================
# Enums
# ============================================================================

class ChunkKind(str, Enum):
    """Kind of retrievable chunk"""
    TEXT = "text"
    CODE = "code"


class ActionType(str, Enum):
    """Editor action emitted with an answer"""
    NONE = "none"
    CLEAR = "clear"
    REPLACE = "replace"


ProviderName = Literal["openai", "anthropic"]
ProviderPreference = Literal["auto", "openai", "anthropic"]


# ============================================================================
# Documentation
# ============================================================================

class DocumentItem(BaseModel):
    """A documentation page, immutable once loaded"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    category: str
    content: str = Field(..., description="Markdown content")
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @property
    def url(self) -> str:
        return f"/documentation/{self.category}/{self.id}"


class Chunk(BaseModel):
    """A retrievable unit of text or code derived from a DocumentItem"""
    model_config = ConfigDict(frozen=True)

    id: str
    source_item_id: str
    title: str
    category: str
    kind: ChunkKind
    content: str
    language: Optional[str] = None
    context: Optional[str] = None
    url: str

    @property
    def is_code(self) -> bool:
        return self.kind == ChunkKind.CODE

    def to_metadata(self) -> Dict[str, str]:
        """Flat metadata for vector stores (no None values)."""
        metadata = {
            "id": self.id,
            "source_item_id": self.source_item_id,
            "title": self.title,
            "category": self.category,
            "type": self.kind.value,
            "url": self.url,
        }
        if self.language:
            metadata["language"] = self.language
        if self.context:
            metadata["context"] = self.context
        return metadata

    @classmethod
    def from_metadata(cls, content: str, metadata: Dict[str, Any]) -> "Chunk":
        """Rebuild a chunk from vector-store content + metadata."""
        is_code = (
            metadata.get("type") == "code"
            or metadata.get("contentType") == "code"
            or bool(metadata.get("language"))
        )
        chunk_id = str(metadata.get("id", "unknown"))
        return cls(
            id=chunk_id,
            source_item_id=str(metadata.get("source_item_id", chunk_id)),
            title=str(metadata.get("title", "Untitled")),
            category=str(metadata.get("category", "general")),
            kind=ChunkKind.CODE if is_code else ChunkKind.TEXT,
            content=content or "",
            language=metadata.get("language") or None,
            context=metadata.get("context") or None,
            url=str(metadata.get("url", "")),
        )

    def to_source(self) -> Dict[str, Any]:
        """Source reference as returned to callers."""
        source = {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "url": self.url,
            "type": self.kind.value,
        }
        if self.language:
            source["language"] = self.language
        return source


# ============================================================================
# Query
# ============================================================================

class ChatMessage(BaseModel):
    """One prior turn of the conversation"""
    role: Literal["user", "assistant"]
    content: str


class QueryRequest(BaseModel):
    """Caller input at the pipeline boundary"""
    model_config = ConfigDict(populate_by_name=True)

    query: str
    chat_history: List[ChatMessage] = Field(default_factory=list, alias="chatHistory")
    preferred_provider: ProviderPreference = Field(default="auto", alias="preferredProvider")

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Query parameter is required and must be a non-empty string")
        return value


# ============================================================================
# Answer
# ============================================================================

class Action(BaseModel):
    """Editor action: none, clear, or replace with rendered code"""
    type: ActionType = ActionType.NONE
    code: Optional[str] = None
    template: Optional[str] = None
    params: Optional[Dict[str, Any]] = None

    @classmethod
    def none(cls) -> "Action":
        return cls(type=ActionType.NONE)

    @classmethod
    def clear(cls) -> "Action":
        return cls(type=ActionType.CLEAR)

    @classmethod
    def replace(
        cls,
        code: str,
        template: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> "Action":
        return cls(type=ActionType.REPLACE, code=code, template=template, params=params)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class IndicatorSuggestion(BaseModel):
    """Indicator mentioned in a generated answer"""
    name: str
    type: str
    description: str


class AnswerResult(BaseModel):
    """The single response contract of the pipeline"""
    answer: str
    sources: List[Chunk] = Field(default_factory=list, max_length=MAX_SOURCES)
    action: Action = Field(default_factory=Action.none)
    model: Optional[str] = None
    provider: Optional[str] = None
    suggested_indicators: List[IndicatorSuggestion] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        """Response payload for the HTTP surface."""
        return {
            "answer": self.answer,
            "sources": [s.to_source() for s in self.sources],
            "suggestedIndicators": [s.model_dump() for s in self.suggested_indicators],
            "action": self.action.to_dict(),
            "model": self.model,
            "provider": self.provider,
        }

"""Shared fixtures: a small documentation set and an index over it."""

import pytest

from docqa.common.documents import DocumentStore
from docqa.common.schemas import DocumentItem
from docqa.retriever.index import RagIndex


RSI_CONTENT = (
    "# RSI\n\n"
    "The Relative Strength Index measures momentum over a period.\n\n"
    "```csharp\nvar rsi = RSI.Series(bars.Close, 14);\n```\n"
)

SMA_CONTENT = "# SMA\n\nThe simple moving average smooths price over a period."


@pytest.fixture
def doc_items():
    return [
        DocumentItem(
            id="rsi",
            title="RSI",
            category="indicators",
            content=RSI_CONTENT,
            description="Relative Strength Index",
            tags=["momentum"],
        ),
        DocumentItem(
            id="sma",
            title="SMA",
            category="indicators",
            content=SMA_CONTENT,
            description="Simple Moving Average",
            tags=["trend"],
        ),
    ]


@pytest.fixture
def doc_store(doc_items):
    return DocumentStore(doc_items)


@pytest.fixture
def rag_index(doc_store):
    return RagIndex(loader=lambda: doc_store)

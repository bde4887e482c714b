"""Tests for the code-aware chunker."""

import pytest

from docqa.common.schemas import ChunkKind, DocumentItem
from docqa.retriever.chunker import CONTEXT_CHARS, chunk_document, chunk_documents


def _item(content: str, item_id: str = "sma-guide") -> DocumentItem:
    return DocumentItem(id=item_id, title="SMA Guide", category="indicators", content=content)


class TestChunkDocument:
    def test_no_code_blocks_yields_single_text_chunk(self):
        chunks = chunk_document(_item("# SMA\n\nThe simple moving average smooths price."))

        assert len(chunks) == 1
        assert chunks[0].kind == ChunkKind.TEXT
        assert chunks[0].id == "sma-guide-text-0"
        assert chunks[0].content == "# SMA\n\nThe simple moving average smooths price."

    def test_text_and_code_split_in_document_order(self):
        content = (
            "Intro text.\n\n"
            "```csharp\nvar sma = SMA.Series(bars.Close, 20);\n```\n"
            "Between blocks.\n"
            "```\nplain block\n```\n"
            "Closing text."
        )
        chunks = chunk_document(_item(content))

        assert [c.kind for c in chunks] == [
            ChunkKind.TEXT, ChunkKind.CODE, ChunkKind.TEXT, ChunkKind.CODE, ChunkKind.TEXT,
        ]
        assert [c.id for c in chunks] == [
            "sma-guide-text-0",
            "sma-guide-code-0",
            "sma-guide-text-1",
            "sma-guide-code-1",
            "sma-guide-text-2",
        ]
        assert chunks[1].content == "var sma = SMA.Series(bars.Close, 20);\n"
        assert chunks[1].language == "csharp"

    def test_code_block_without_language_defaults_to_text(self):
        chunks = chunk_document(_item("```\nfoo\n```"))

        assert len(chunks) == 1
        assert chunks[0].is_code
        assert chunks[0].language == "text"

    def test_code_context_is_trailing_500_chars(self):
        preamble = "x" * 700 + "END"
        chunks = chunk_document(_item(preamble + "```cs\ncode\n```"))

        code = [c for c in chunks if c.is_code][0]
        assert len(code.context) == CONTEXT_CHARS
        assert code.context.endswith("END")
        assert code.context == preamble[-CONTEXT_CHARS:]

    def test_short_preamble_context_is_whole_preamble(self):
        chunks = chunk_document(_item("Short intro\n```cs\ncode\n```"))

        code = [c for c in chunks if c.is_code][0]
        assert code.context == "Short intro\n"

    def test_whitespace_segments_dropped_but_numbered(self):
        content = "```cs\na\n```\n   \n```cs\nb\n```\nTail"
        chunks = chunk_document(_item(content))

        text_ids = [c.id for c in chunks if c.kind == ChunkKind.TEXT]
        # the whitespace segment between the blocks consumed index 0
        assert text_ids == ["sma-guide-text-1"]

    def test_chunk_carries_source_fields(self):
        chunks = chunk_document(_item("text\n```cs\ncode\n```"))

        for chunk in chunks:
            assert chunk.source_item_id == "sma-guide"
            assert chunk.title == "SMA Guide"
            assert chunk.category == "indicators"
            assert chunk.url == "/documentation/indicators/sma-guide"

    def test_empty_content_yields_no_chunks(self):
        assert chunk_document(_item("")) == []

    @pytest.mark.parametrize("content,expected", [
        ("Plain prose only.", "Plainproseonly."),
        ("Lead\n```csharp\nint x = 1;\n```\nTrail", "Leadintx=1;Trail"),
        ("```py\nprint(1)\n```", "print(1)"),
        ("A\n```\nB\n```\nC\n```js\nD\n```\nE", "ABCDE"),
    ])
    def test_chunks_cover_document_without_fences(self, content, expected):
        chunks = chunk_document(_item(content))

        rebuilt = "".join(c.content for c in chunks)
        assert "".join(rebuilt.split()) == expected


class TestChunkDocuments:
    def test_preserves_item_order(self):
        items = [_item("First", "a"), _item("Second", "b")]

        chunks = chunk_documents(items)

        assert [c.source_item_id for c in chunks] == ["a", "b"]

"""
Code-Aware Chunker

Splits a documentation item into text chunks and code-block chunks.
No chunk crosses a code-block boundary; each code chunk carries up to
500 characters of the markdown immediately preceding its fence as context.
"""

from typing import Iterable, List

from ..common.llm_utils import find_code_blocks
from ..common.schemas import Chunk, ChunkKind, DocumentItem

CONTEXT_CHARS = 500


def chunk_document(item: DocumentItem) -> List[Chunk]:
    """
    Chunk one documentation item, in document order.

    Text chunks are numbered by their position among the text segments
    (whitespace-only segments are dropped but still consume a number);
    code chunks are numbered by fence order.

    Args:
        item: Documentation item

    Returns:
        List of Chunk objects (empty if the item has no content at all)
    """
    content = item.content
    chunks: List[Chunk] = []
    text_index = 0

    def _emit_text(segment: str) -> None:
        nonlocal text_index
        if segment.strip():
            chunks.append(
                Chunk(
                    id=f"{item.id}-text-{text_index}",
                    source_item_id=item.id,
                    title=item.title,
                    category=item.category,
                    kind=ChunkKind.TEXT,
                    content=segment,
                    url=item.url,
                )
            )
        text_index += 1

    last_index = 0
    for code_index, block in enumerate(find_code_blocks(content)):
        if block.start > last_index:
            _emit_text(content[last_index:block.start])

        context_start = max(0, block.start - CONTEXT_CHARS)
        chunks.append(
            Chunk(
                id=f"{item.id}-code-{code_index}",
                source_item_id=item.id,
                title=item.title,
                category=item.category,
                kind=ChunkKind.CODE,
                content=block.code,
                language=block.language,
                context=content[context_start:block.start],
                url=item.url,
            )
        )
        last_index = block.end

    if last_index < len(content):
        _emit_text(content[last_index:])

    return chunks


def chunk_documents(items: Iterable[DocumentItem]) -> List[Chunk]:
    """Chunk every item, preserving item order."""
    chunks: List[Chunk] = []
    for item in items:
        chunks.extend(chunk_document(item))
    return chunks

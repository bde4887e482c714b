"""Shared utilities for parsing LLM responses and markdown content."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

# Triple-backtick fence, optional language tag, body
CODE_BLOCK_PATTERN = re.compile(r"```(\w*)\n([\s\S]*?)```")

DEFAULT_CODE_LANGUAGE = "text"


@dataclass
class CodeBlock:
    """A fenced code block found in markdown or an LLM answer."""
    language: str
    code: str
    start: int
    end: int


def find_code_blocks(text: str) -> List[CodeBlock]:
    """Return every fenced code block in ``text``, in document order.

    Blocks without a language tag get ``"text"``.
    """
    if not text:
        return []
    return [
        CodeBlock(
            language=match.group(1) or DEFAULT_CODE_LANGUAGE,
            code=match.group(2),
            start=match.start(),
            end=match.end(),
        )
        for match in CODE_BLOCK_PATTERN.finditer(text)
    ]


def first_code_block(text: str, languages: Optional[Iterable[str]] = None) -> Optional[CodeBlock]:
    """First code block, optionally restricted to the given language tags."""
    wanted = {lang.lower() for lang in languages} if languages else None
    for block in find_code_blocks(text):
        if wanted is None or block.language.lower() in wanted:
            return block
    return None

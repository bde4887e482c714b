"""
Answer Synthesizer

Builds the final AnswerResult in one of two modes:

- grounded: deterministic composition from the top re-ranked chunks
  (primary text excerpt, best code example, attribution, see-also)
- generated: the provider completion is the answer; indicator names and
  bracketed phrases in it become suggested indicators

Every result carries exactly one editor action from the ActionExtractor.
"""

import logging
import re
from typing import List, Optional, Sequence

from ..common.llm_client import Completion
from ..common.schemas import (
    MAX_SOURCES,
    NO_RESULTS_TEMPLATE,
    SYSTEM_PROMPT,
    AnswerResult,
    Chunk,
    IndicatorSuggestion,
)
from ..common.schemas.templates import (
    DOCUMENTATION_CONTEXT_TEMPLATE,
    GROUNDED_ATTRIBUTION_TEMPLATE,
    GROUNDED_CODE_TEMPLATE,
    GROUNDED_INTRO_TEMPLATE,
    GROUNDED_SEE_ALSO_TEMPLATE,
)
from ..common.vocabulary import IntentVocabulary, contains_phrase, get_default_vocabulary
from .actions import ActionExtractor
from .reranker import RankedChunk

logger = logging.getLogger("docqa.retriever.synthesizer")

EXCERPT_CHARS = 400
CONTEXT_EXCERPT_CHARS = 1200

_BRACKET_PATTERN = re.compile(r"\[(.*?)\]")
_PAREN_PATTERN = re.compile(r"\((.*?)\)")


class AnswerSynthesizer:
    """
    Synthesizes answers from ranked chunks or provider completions.

    Deterministic in grounded mode: the same ranked chunks always produce
    the same text.
    """

    def __init__(
        self,
        product_name: str = "WL8",
        max_sources: int = 5,
        vocabulary: Optional[IntentVocabulary] = None,
        action_extractor: Optional[ActionExtractor] = None,
    ):
        self._product = product_name
        if not 1 <= max_sources <= MAX_SOURCES:
            logger.warning(
                "max_sources=%d outside 1..%d, clamping", max_sources, MAX_SOURCES
            )
        self._max_sources = max(1, min(max_sources, MAX_SOURCES))
        self._vocab = vocabulary or get_default_vocabulary()
        self._actions = action_extractor or ActionExtractor(self._vocab)

    @property
    def vocabulary(self) -> IntentVocabulary:
        return self._vocab

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT.format(product=self._product)

    # ------------------------------------------------------------------
    # Grounded mode
    # ------------------------------------------------------------------

    def no_results(self, query: str) -> AnswerResult:
        """The graceful answer for an empty candidate set."""
        return AnswerResult(answer=NO_RESULTS_TEMPLATE.format(product=self._product))

    def synthesize_grounded(self, query: str, ranked: Sequence[RankedChunk]) -> AnswerResult:
        """
        Compose an answer from the top ranked chunks.

        Args:
            query: User query
            ranked: Re-ranked chunks, best first

        Returns:
            AnswerResult with up to max_sources sources
        """
        top = list(ranked[:self._max_sources])
        if not top:
            return self.no_results(query)

        # Highest-scoring text chunk, else highest-scoring chunk of any kind
        primary = next((r.chunk for r in top if not r.is_code), top[0].chunk)
        code = next((r.chunk for r in top if r.is_code), None)
        see_also = next(
            (r.chunk for r in top if r.chunk.source_item_id != primary.source_item_id),
            None,
        )

        excerpt = primary.content.strip()
        if len(excerpt) > EXCERPT_CHARS:
            excerpt = excerpt[:EXCERPT_CHARS] + "..."

        parts = [
            GROUNDED_INTRO_TEMPLATE.format(product=self._product, query=query),
            excerpt + "\n\n",
        ]
        if code is not None:
            parts.append(
                GROUNDED_CODE_TEMPLATE.format(
                    language=code.language or "csharp", code=code.content.rstrip("\n")
                )
            )
        parts.append(GROUNDED_ATTRIBUTION_TEMPLATE.format(title=primary.title))
        if see_also is not None:
            parts.append(GROUNDED_SEE_ALSO_TEMPLATE.format(title=see_also.title))

        return AnswerResult(
            answer="".join(parts).rstrip(),
            sources=[r.chunk for r in top],
            action=self._actions.extract(query),
        )

    # ------------------------------------------------------------------
    # Generated mode
    # ------------------------------------------------------------------

    def build_system_prompt(self, context: Sequence[Chunk] = ()) -> str:
        """System prompt, with documentation excerpts appended when given."""
        prompt = self.system_prompt
        if not context:
            return prompt

        excerpts = []
        for i, chunk in enumerate(context[:self._max_sources], 1):
            body = chunk.content.strip()[:CONTEXT_EXCERPT_CHARS]
            if chunk.is_code:
                body = f"```{chunk.language or 'csharp'}\n{body}\n```"
            excerpts.append(f"[{i}] {chunk.title} ({chunk.url})\n{body}")

        return prompt + DOCUMENTATION_CONTEXT_TEMPLATE.format(
            product=self._product, excerpts="\n\n".join(excerpts)
        )

    def synthesize_generated(
        self,
        query: str,
        completion: Completion,
        sources: Sequence[Chunk] = (),
    ) -> AnswerResult:
        """
        Wrap a provider completion as the answer.

        Args:
            query: User query (drives action extraction)
            completion: Provider output
            sources: Documentation chunks supplied as context, if any
        """
        return AnswerResult(
            answer=completion.text,
            sources=list(sources[:self._max_sources]),
            action=self._actions.extract(query, completion.text),
            model=completion.model,
            provider=completion.provider,
            suggested_indicators=self.extract_indicator_suggestions(completion.text),
        )

    def extract_indicator_suggestions(self, text: str) -> List[IndicatorSuggestion]:
        """
        Indicators mentioned in generated text.

        Catalog names match as whole words; bracketed phrases like
        ``[Keltner Channel (volatility envelope)]`` become suggestions with a
        type inferred from keywords. Names are de-duplicated case-insensitively,
        catalog entries first.
        """
        if not text:
            return []

        mentioned = [
            IndicatorSuggestion(**entry)
            for entry in self._vocab.indicator_catalog
            if contains_phrase(text, entry["name"])
        ]

        extracted = []
        for match in _BRACKET_PATTERN.finditer(text):
            phrase = match.group(1).strip()
            if not phrase:
                continue
            lowered = phrase.lower()
            if any(s.name.lower() in lowered for s in mentioned):
                continue

            name = phrase.split("(", 1)[0].strip() or phrase
            paren = _PAREN_PATTERN.search(phrase)
            description = paren.group(1).strip() if paren else ""
            extracted.append(
                IndicatorSuggestion(
                    name=name,
                    type=self._infer_indicator_type(lowered),
                    description=description or f"{name} indicator for technical analysis",
                )
            )

        unique: List[IndicatorSuggestion] = []
        seen = set()
        for suggestion in mentioned + extracted:
            key = suggestion.name.lower()
            if key not in seen:
                seen.add(key)
                unique.append(suggestion)
        return unique

    def _infer_indicator_type(self, phrase: str) -> str:
        for type_name, keywords in self._vocab.indicator_type_keywords:
            if any(k in phrase for k in keywords):
                return type_name
        return "custom"

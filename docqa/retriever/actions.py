"""
Action Extraction

Turns a query (and optionally the generated answer) into exactly one editor
action:

- deletion and build intent  -> replace (render an indicator template)
- build intent only          -> replace
- deletion intent only       -> clear
- neither                    -> none
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..common.llm_utils import first_code_block
from ..common.schemas import INDICATOR_TEMPLATES, Action, render_indicator_template
from ..common.vocabulary import IntentVocabulary, get_default_vocabulary
from .query_processor import QueryProcessor

logger = logging.getLogger("docqa.retriever.actions")

CUSTOM_TEMPLATE_ID = "custom"
CODE_LANGUAGES = ("csharp", "cs", "c#")

_NUMBER = r"(\d+(?:\.\d+)?)"

# (parameter, pattern), first match per parameter wins
PARAM_PATTERNS = [
    ("period", re.compile(r"\bperiod\s*(?:of|=|:)?\s*" + _NUMBER)),
    ("period", re.compile(_NUMBER + r"[\s-]*(?:day\s+|bar\s+)?period\b")),
    ("signal", re.compile(r"\bsignal\s*(?:period|line)?\s*(?:of|=|:)?\s*" + _NUMBER)),
    ("overbought", re.compile(r"\boverbought\s*(?:level|threshold)?\s*(?:of|at|=|:)?\s*" + _NUMBER)),
    ("oversold", re.compile(r"\boversold\s*(?:level|threshold)?\s*(?:of|at|=|:)?\s*" + _NUMBER)),
    ("std_dev", re.compile(
        r"\b(?:std\.?\s*dev|standard\s+deviations?|deviations?)\s*(?:of|=|:)?\s*" + _NUMBER
    )),
    ("std_dev", re.compile(_NUMBER + r"\s*(?:std\.?\s*dev|standard\s+deviations?|deviations?)\b")),
]

_SMA_PATTERN = re.compile(r"\bsma\s*-?\s*(\d+)")
_PAIR_PATTERN = re.compile(r"\b(\d+)\s*(?:/|,|and|to|vs\.?|-)\s*(\d+)\b")


def _to_number(text: str):
    value = float(text)
    return int(value) if value.is_integer() else value


class ActionExtractor:
    """
    Resolves the editor action for a query.

    Deletion and build intent are detected independently; the precedence
    above guarantees one action per query.
    """

    def __init__(
        self,
        vocabulary: Optional[IntentVocabulary] = None,
        processor: Optional[QueryProcessor] = None,
    ):
        self._vocab = vocabulary or get_default_vocabulary()
        self._processor = processor or QueryProcessor(self._vocab)

    def extract(self, query: str, completion_text: Optional[str] = None) -> Action:
        """
        Resolve the action for a query.

        Args:
            query: User query
            completion_text: Generated answer; when the query matches no
                named template and the answer contains a C# block, that
                block replaces the editor content instead of the blank
                custom template

        Returns:
            Exactly one Action
        """
        parsed = self._processor.parse(query)

        if parsed.wants_build:
            action = self._build_action(parsed.normalized, completion_text)
        elif parsed.wants_deletion:
            action = Action.clear()
        else:
            action = Action.none()

        logger.debug(
            "Action %s (deletion=%s, build=%s)",
            action.type.value, parsed.wants_deletion, parsed.wants_build,
        )
        return action

    def _build_action(self, query: str, completion_text: Optional[str]) -> Action:
        template = self.select_template(query)
        params = self.extract_params(query, template)

        if template == CUSTOM_TEMPLATE_ID and completion_text:
            block = first_code_block(completion_text, CODE_LANGUAGES)
            if block is not None:
                return Action.replace(code=block.code.rstrip("\n"), template=template, params=params)

        code = render_indicator_template(template, params)
        return Action.replace(code=code, template=template, params=params)

    def select_template(self, query: str) -> str:
        """First indicator-name match in vocabulary order, else custom."""
        lowered = query.lower()
        for phrase, template in self._vocab.indicator_templates:
            if phrase in lowered:
                return template
        return CUSTOM_TEMPLATE_ID

    def extract_params(self, query: str, template: str) -> Dict[str, Any]:
        """
        Numeric parameters mentioned in the query, restricted to the ones
        the template accepts.
        """
        lowered = query.lower()
        found: Dict[str, Any] = {}

        for name, pattern in PARAM_PATTERNS:
            if name in found:
                continue
            match = pattern.search(lowered)
            if match:
                found[name] = _to_number(match.group(1))

        sma_values = _SMA_PATTERN.findall(lowered)
        if len(sma_values) == 1:
            found.setdefault("period", _to_number(sma_values[0]))

        fast_slow = self._fast_slow(lowered)
        if fast_slow:
            found.setdefault("fast", fast_slow[0])
            found.setdefault("slow", fast_slow[1])

        accepted = INDICATOR_TEMPLATES.get(template, INDICATOR_TEMPLATES[CUSTOM_TEMPLATE_ID])[1]
        return {k: v for k, v in found.items() if k in accepted}

    @staticmethod
    def _fast_slow(query: str) -> Optional[List[int]]:
        """Fast/slow pair from "sma 10 ... sma 30" or a generic "10/30" pair."""
        sma_values = [int(v) for v in _SMA_PATTERN.findall(query)]
        if len(sma_values) >= 2:
            return sorted(sma_values[:2])

        pair = _PAIR_PATTERN.search(query)
        if pair:
            return sorted([int(pair.group(1)), int(pair.group(2))])
        return None

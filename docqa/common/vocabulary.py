"""
Intent Vocabulary

Loads the keyword lists used for intent classification, re-ranking and
action extraction from a versioned JSON file (data/intent_vocabulary.json).
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from .config import DEFAULT_VOCABULARY_PATH
from .errors import ConfigurationError

logger = logging.getLogger("docqa.common.vocabulary")

SUPPORTED_VERSIONS = {1}


@dataclass(frozen=True)
class IntentVocabulary:
    """Keyword lists, one field per classifier"""
    version: int
    code_request: Tuple[str, ...]
    vague_indicator_request: Tuple[str, ...]
    conceptual_request: Tuple[str, ...]
    conversational_request: Tuple[str, ...]
    deletion: Tuple[str, ...]
    build: Tuple[str, ...]
    code_related: Tuple[str, ...]
    # (substring, template id), first match wins
    indicator_templates: Tuple[Tuple[str, str], ...]
    indicator_catalog: Tuple[Dict[str, str], ...] = field(default_factory=tuple)
    # (indicator type, keywords), first match wins
    indicator_type_keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = field(default_factory=tuple)


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word, case-insensitive phrase test."""
    pattern = r"(?<!\w)" + re.escape(phrase.lower()) + r"(?!\w)"
    return re.search(pattern, text.lower()) is not None


def contains_any(text: str, phrases: Tuple[str, ...], whole_word: bool = True) -> bool:
    """
    Whether any phrase occurs in the text.

    With ``whole_word=False`` this is a plain substring test, so
    "explaining" matches "explain" and "clearing" matches "clear".
    """
    if whole_word:
        return any(contains_phrase(text, p) for p in phrases)
    lowered = text.lower()
    return any(p.lower() in lowered for p in phrases)


def parse_vocabulary(data: dict) -> IntentVocabulary:
    """Build an IntentVocabulary from the decoded JSON document."""
    version = data.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise ConfigurationError(f"Unsupported intent vocabulary version: {version!r}")

    provider_intents = data.get("provider_intents", {})
    action_intents = data.get("action_intents", {})

    def _words(section: dict, key: str) -> Tuple[str, ...]:
        return tuple(w.lower() for w in section.get(key, []))

    return IntentVocabulary(
        version=version,
        code_request=_words(provider_intents, "code_request"),
        vague_indicator_request=_words(provider_intents, "vague_indicator_request"),
        conceptual_request=_words(provider_intents, "conceptual_request"),
        conversational_request=_words(provider_intents, "conversational_request"),
        deletion=_words(action_intents, "deletion"),
        build=_words(action_intents, "build"),
        code_related=tuple(w.lower() for w in data.get("code_related", [])),
        indicator_templates=tuple(
            (phrase.lower(), template) for phrase, template in data.get("indicator_templates", [])
        ),
        indicator_catalog=tuple(dict(entry) for entry in data.get("indicator_catalog", [])),
        indicator_type_keywords=tuple(
            (type_name, tuple(k.lower() for k in keywords))
            for type_name, keywords in data.get("indicator_type_keywords", [])
        ),
    )


def load_vocabulary(path: Optional[str] = None) -> IntentVocabulary:
    """
    Load an intent vocabulary file.

    Args:
        path: JSON file to load (default: the packaged vocabulary)

    Returns:
        IntentVocabulary

    Raises:
        ConfigurationError: if the file is missing, malformed or of an
            unsupported version
    """
    vocab_path = Path(path) if path else DEFAULT_VOCABULARY_PATH
    try:
        with open(vocab_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot load intent vocabulary {vocab_path}: {e}") from e

    vocabulary = parse_vocabulary(data)
    logger.debug("Loaded intent vocabulary v%s from %s", vocabulary.version, vocab_path)
    return vocabulary


@lru_cache(maxsize=1)
def get_default_vocabulary() -> IntentVocabulary:
    """The packaged vocabulary, loaded once."""
    return load_vocabulary()


def resolve_vocabulary(path: Optional[str] = None) -> IntentVocabulary:
    """Configured vocabulary when a path is given, packaged one otherwise."""
    if path:
        return load_vocabulary(path)
    return get_default_vocabulary()

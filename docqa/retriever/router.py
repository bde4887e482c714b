"""
Provider Router

Selects a completion provider and model from query intent using a static
policy table, and runs the completion with exactly one fallback attempt
against the other provider.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..common.config import LLMConfig
from ..common.errors import BackendUnavailable, ConfigurationError
from ..common.llm_client import Completion, CompletionProvider
from .query_processor import QueryIntent, QueryProcessor

logger = logging.getLogger("docqa.retriever.router")


# intent -> (provider, LLMConfig attribute holding the model id)
ROUTING_POLICY = {
    QueryIntent.CODE_REQUEST: ("anthropic", "anthropic_code_model"),
    QueryIntent.VAGUE_INDICATOR_REQUEST: ("anthropic", "anthropic_reasoning_model"),
    QueryIntent.CONCEPTUAL_REQUEST: ("anthropic", "anthropic_model"),
    QueryIntent.CONVERSATIONAL_REQUEST: ("anthropic", "anthropic_model"),
    QueryIntent.DEFAULT: ("openai", "openai_model"),
}

# provider -> LLMConfig attribute holding its default model id
DEFAULT_MODELS = {
    "anthropic": "anthropic_model",
    "openai": "openai_model",
}


@dataclass(frozen=True)
class ProviderSelection:
    """Provider and model for one request, resolved once"""
    provider: str
    model: str
    intent: Optional[QueryIntent] = None


class ProviderRouter:
    """
    Routes queries to completion providers.

    Selection is reproducible: the same text, preference and configured
    credentials always give the same provider and model.
    """

    def __init__(
        self,
        config: LLMConfig,
        providers: Dict[str, CompletionProvider],
        processor: Optional[QueryProcessor] = None,
    ):
        self._config = config
        self._providers = providers
        self._processor = processor or QueryProcessor()

    @property
    def available_providers(self) -> List[str]:
        return [name for name, p in self._providers.items() if p.is_available]

    def default_model(self, provider: str) -> str:
        return getattr(self._config, DEFAULT_MODELS[provider])

    def select_provider(self, query: str, preferred: str = "auto") -> ProviderSelection:
        """
        Pick provider and model for a query.

        An explicit preference returns that provider's default model without
        inspecting the query. Under "auto", the intent picks an entry in the
        policy table; if that provider has no credentials but another does,
        the other provider's default model is used instead.
        """
        if preferred != "auto":
            if preferred not in DEFAULT_MODELS:
                raise ConfigurationError(f"Unknown provider: {preferred!r}")
            return ProviderSelection(provider=preferred, model=self.default_model(preferred))

        intent = self._processor.parse(query).intent
        provider, model_attr = ROUTING_POLICY[intent]
        selection = ProviderSelection(
            provider=provider,
            model=getattr(self._config, model_attr),
            intent=intent,
        )

        available = self.available_providers
        if provider not in available and available:
            substitute = available[0]
            logger.info(
                "%s has no credentials, routing %s query to %s", provider, intent.value, substitute
            )
            selection = ProviderSelection(
                provider=substitute,
                model=self.default_model(substitute),
                intent=intent,
            )

        logger.info(
            "Selected %s/%s (intent=%s)", selection.provider, selection.model, intent.value
        )
        return selection

    def _fallback_for(self, provider: str) -> Optional[str]:
        for name in self._providers:
            if name != provider:
                return name
        return None

    async def complete_with_fallback(
        self,
        selection: ProviderSelection,
        system_prompt: str,
        messages: List[Dict[str, str]],
    ) -> Completion:
        """
        Run the completion, with one fallback on backend failure.

        Raises:
            ConfigurationError: the selected provider has no credentials
            BackendUnavailable: the primary failed and the fallback failed
                or is not configured
        """
        primary = self._providers.get(selection.provider)
        if primary is None:
            raise ConfigurationError(f"Provider not configured: {selection.provider}")

        try:
            return await primary.complete(selection.model, system_prompt, messages)
        except BackendUnavailable as e:
            fallback_name = self._fallback_for(selection.provider)
            fallback = self._providers.get(fallback_name) if fallback_name else None
            if fallback is None or not fallback.is_available:
                logger.warning("%s failed and no fallback provider is configured", selection.provider)
                raise
            logger.warning(
                "%s failed (%s), falling back to %s", selection.provider, e.message, fallback_name
            )

        return await fallback.complete(self.default_model(fallback_name), system_prompt, messages)

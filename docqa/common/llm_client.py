"""
Completion providers for DocQA.

One implementation per provider (Anthropic, OpenAI), all satisfying the same
``complete(model, system_prompt, messages)`` shape. Providers are selected
through a lookup table, never by branching on provider names at call sites.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import LLMConfig
from .errors import BackendUnavailable, ConfigurationError

logger = logging.getLogger("docqa.common.llm_client")


@dataclass
class Completion:
    """Text returned by a provider, with the model it reports."""
    text: str
    model: str
    provider: str


class CompletionProvider(ABC):
    """Shared interface across completion providers."""

    name: str = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout: float = 30.0,
    ) -> None:
        self.default_model = default_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._client = None

        if not api_key:
            logger.info("%s API key not provided, provider unavailable", self.name)
            return
        self._client = self._create_client(api_key.strip())

    @property
    def is_available(self) -> bool:
        return self._client is not None

    @abstractmethod
    def _create_client(self, api_key: str):
        """Build the SDK client, or return None when it cannot be built."""

    @abstractmethod
    async def _request(self, model: str, system_prompt: str, messages: List[Dict[str, str]]) -> Completion:
        """Issue the SDK call."""

    async def complete(
        self,
        model: Optional[str],
        system_prompt: str,
        messages: List[Dict[str, str]],
    ) -> Completion:
        """
        Generate a completion.

        Args:
            model: Model id (provider default when empty)
            system_prompt: System instructions
            messages: Ordered ``{"role", "content"}`` dicts, last one is the user turn

        Raises:
            ConfigurationError: provider has no credentials
            BackendUnavailable: the API call failed or timed out
        """
        if not self.is_available:
            raise ConfigurationError(f"{self.name} API key is not configured")

        try:
            return await self._request(model or self.default_model, system_prompt, messages)
        except BackendUnavailable:
            raise
        except Exception as e:
            raise BackendUnavailable(f"{self.name} API error: {e}", backend=self.name) from e


class AnthropicProvider(CompletionProvider):
    """Claude via the Anthropic Messages API."""

    name = "anthropic"

    def _create_client(self, api_key: str):
        try:
            import anthropic

            return anthropic.AsyncAnthropic(api_key=api_key)
        except ImportError:
            logger.warning("anthropic package not installed")
        except Exception as e:
            logger.warning("Failed to initialize Anthropic client: %s", e)
        return None

    async def _request(self, model: str, system_prompt: str, messages: List[Dict[str, str]]) -> Completion:
        response = await self._client.messages.create(
            model=model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system_prompt,
            messages=[
                {"role": "assistant" if m["role"] == "assistant" else "user", "content": m["content"]}
                for m in messages
            ],
            timeout=self.timeout,
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        return Completion(text=text.strip(), model=response.model or model, provider=self.name)


class OpenAIProvider(CompletionProvider):
    """GPT models via the OpenAI Chat Completions API."""

    name = "openai"

    def _create_client(self, api_key: str):
        try:
            from openai import AsyncOpenAI

            return AsyncOpenAI(api_key=api_key)
        except ImportError:
            logger.warning("openai package not installed")
        except Exception as e:
            logger.warning("Failed to initialize OpenAI client: %s", e)
        return None

    async def _request(self, model: str, system_prompt: str, messages: List[Dict[str, str]]) -> Completion:
        chat = [{"role": "system", "content": system_prompt}]
        chat.extend({"role": m["role"], "content": m["content"]} for m in messages)
        response = await self._client.chat.completions.create(
            model=model,
            messages=chat,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.timeout,
        )
        text = response.choices[0].message.content or ""
        return Completion(text=text.strip(), model=response.model or model, provider=self.name)


PROVIDER_CLASSES = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def build_providers(
    config: LLMConfig,
    anthropic_api_key: Optional[str] = None,
    openai_api_key: Optional[str] = None,
) -> Dict[str, CompletionProvider]:
    """
    Build one provider per supported name.

    Explicit keys (e.g. supplied with a single request) take precedence over
    the configured ones.
    """
    common = {
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
        "timeout": config.timeout,
    }
    settings = {
        "anthropic": (anthropic_api_key or config.anthropic_api_key, config.anthropic_model),
        "openai": (openai_api_key or config.openai_api_key, config.openai_model),
    }
    return {
        name: cls(api_key=settings[name][0], default_model=settings[name][1], **common)
        for name, cls in PROVIDER_CLASSES.items()
    }

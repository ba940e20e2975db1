"""
Text-Generation Client
=======================

Sends one prompt string to an external text-generation backend and
returns the raw reply text. Callers own all parsing; this layer only
enforces that the backend is configured and normalizes failures.

Backends:
    - OpenAITextGenerator: any OpenAI-compatible endpoint (OpenAI,
      Azure-style gateways, Groq, local servers) via the Chat
      Completions or Responses API
    - GeminiTextGenerator: Google Gemini (see gemini_client.py)

Error Taxonomy:
    - LLMConfigurationError: no credential / endpoint. Raised before
      any network activity.
    - LLMCallError: transport failure, timeout, HTTP error or empty
      reply. Wraps the SDK exception.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from annexfacts.config import AnnexConfig, APIStyle, LLMConfig, LLMProvider

logger = logging.getLogger("annexfacts.llm.client")


class LLMConfigurationError(RuntimeError):
    """The text-generation backend is not configured."""


class LLMCallError(RuntimeError):
    """A configured backend failed to produce a reply."""


class TextGenerator(ABC):
    """
    Abstract base class for text-generation backends.

    All backends implement the same interface:
        call(prompt, json_mode=False) → str

    ``is_configured`` must be cheap and side-effect free; the rewriter
    consults it before every signal.
    """

    def __init__(self, model_name: str = "base"):
        self.model_name = model_name

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    def call(self, prompt: str, json_mode: bool = False) -> str:
        """
        Send a prompt and return the reply text.

        Args:
            prompt: Complete prompt text.
            json_mode: Ask the backend for a JSON object reply.

        Raises:
            LLMConfigurationError: If the backend is not configured.
            LLMCallError: If the call fails.
        """
        ...

    def describe(self) -> dict[str, str]:
        """Provider/model summary for audit records (no secrets)."""
        return {"provider": type(self).__name__, "model": self.model_name}


class OpenAITextGenerator(TextGenerator):
    """
    Text generation through the OpenAI SDK.

    The SDK client is created lazily and reused; ``endpoint`` becomes
    its ``base_url``, so any OpenAI-compatible gateway works.

    Usage:
        generator = OpenAITextGenerator(config.llm)
        reply = generator.call("Return JSON only: {...}", json_mode=True)

    Args:
        config: Backend settings (credential, endpoint, model, timeouts).
    """

    def __init__(self, config: LLMConfig):
        super().__init__(model_name=config.model)
        self.config = config
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.endpoint)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise LLMConfigurationError(
                "Text-generation backend is not configured. "
                "Set ANNEX_LLM__API_KEY and ANNEX_LLM__ENDPOINT."
            )

    def _get_client(self):
        """Lazy-initialize the OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.endpoint,
                timeout=self.config.timeout_s,
                max_retries=self.config.max_retries,
            )
        return self._client

    def call(self, prompt: str, json_mode: bool = False) -> str:
        self._require_configured()
        client = self._get_client()
        logger.debug(
            f"LLM call endpoint={self.config.endpoint} model={self.config.model} "
            f"style={self.config.api_style.value} json={json_mode}"
        )

        try:
            if self.config.api_style == APIStyle.RESPONSES:
                text = self._call_responses(client, prompt, json_mode)
            else:
                text = self._call_chat(client, prompt, json_mode)
        except Exception as e:
            logger.error(f"LLM call failed: {type(e).__name__}: {e}")
            raise LLMCallError(f"LLM call failed: {e}") from e

        if not text or not text.strip():
            raise LLMCallError("LLM returned an empty reply")
        return text

    def _call_chat(self, client, prompt: str, json_mode: bool) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = client.chat.completions.create(
            model=self.config.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    def _call_responses(self, client, prompt: str, json_mode: bool) -> str:
        kwargs = {}
        if json_mode:
            kwargs["text"] = {"format": {"type": "json_object"}}
        response = client.responses.create(
            model=self.config.model,
            input=prompt,
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            **kwargs,
        )
        return response.output_text or ""

    def describe(self) -> dict[str, str]:
        return {
            "provider": LLMProvider.OPENAI.value,
            "model": self.config.model,
            "api_style": self.config.api_style.value,
        }


def build_text_generator(config: AnnexConfig) -> TextGenerator:
    """Construct the backend selected by ``config.llm.provider``."""
    if config.llm.provider == LLMProvider.GEMINI:
        from annexfacts.llm.gemini_client import GeminiTextGenerator
        return GeminiTextGenerator(config.llm)
    return OpenAITextGenerator(config.llm)

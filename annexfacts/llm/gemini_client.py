"""
Gemini Text Generator
=====================

Uses the Google Gemini API as the text-generation backend.

Drop-in alternative to the OpenAI-compatible client, following the
same TextGenerator interface and error taxonomy. The endpoint setting
is not used; the SDK targets Google's API directly.
"""

from __future__ import annotations

import logging

from annexfacts.config import LLMConfig, LLMProvider
from annexfacts.llm.client import LLMCallError, LLMConfigurationError, TextGenerator

logger = logging.getLogger("annexfacts.llm.gemini_client")


class GeminiTextGenerator(TextGenerator):
    """
    Text generation using Google Gemini.

    Usage:
        generator = GeminiTextGenerator(config.llm)
        reply = generator.call(prompt)

    Args:
        config: Backend settings (uses api_key, model, temperature).
    """

    def __init__(self, config: LLMConfig):
        super().__init__(model_name=config.model)
        self.config = config
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def _get_client(self):
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def call(self, prompt: str, json_mode: bool = False) -> str:
        if not self.is_configured:
            raise LLMConfigurationError(
                "Gemini API key required. Set ANNEX_LLM__API_KEY."
            )
        client = self._get_client()

        generation_config = {
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_output_tokens,
        }
        if json_mode:
            generation_config["response_mime_type"] = "application/json"

        try:
            response = client.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=generation_config,
            )
        except Exception as e:
            logger.error(f"Gemini call failed: {type(e).__name__}: {e}")
            raise LLMCallError(f"Gemini call failed: {e}") from e

        text = response.text or ""
        if not text.strip():
            raise LLMCallError("Gemini returned an empty reply")
        return text

    def describe(self) -> dict[str, str]:
        return {"provider": LLMProvider.GEMINI.value, "model": self.config.model}

"""Text-generation backends."""

from annexfacts.llm.client import (
    LLMCallError,
    LLMConfigurationError,
    OpenAITextGenerator,
    TextGenerator,
    build_text_generator,
)

__all__ = [
    "LLMCallError",
    "LLMConfigurationError",
    "OpenAITextGenerator",
    "TextGenerator",
    "build_text_generator",
]

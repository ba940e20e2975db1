"""
annexfacts Test Configuration
==============================

Shared fixtures, factories, and a scripted text-generation stub for
the entire test suite. No test talks to a real backend.
"""

from __future__ import annotations

import json
import threading
from typing import Callable, Optional

import pytest

from annexfacts.config import AnnexConfig, ExtractionConfig
from annexfacts.llm.client import LLMCallError, LLMConfigurationError, TextGenerator
from annexfacts.schemas.files import UploadedFile
from annexfacts.schemas.signals import Evidence, EvidenceMap, SignalKey, SignalMap


# ── Markers ─────────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: multi-component tests")
    config.addinivalue_line("markers", "adversarial: hallucination and drift tests")


# ── Stub backend ────────────────────────────────────────────────

Responder = Callable[[str, bool], str]


class ScriptedGenerator(TextGenerator):
    """
    Deterministic TextGenerator for tests.

    ``responder(prompt, json_mode)`` produces each reply; it may raise
    to simulate transport failures. Calls are recorded in order.
    """

    def __init__(self, responder: Optional[Responder] = None, configured: bool = True):
        super().__init__(model_name="scripted")
        self.responder = responder or (lambda prompt, json_mode: "")
        self.configured = configured
        self.calls: list[tuple[str, bool]] = []
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return self.configured

    def call(self, prompt: str, json_mode: bool = False) -> str:
        if not self.configured:
            raise LLMConfigurationError("scripted backend not configured")
        with self._lock:
            self.calls.append((prompt, json_mode))
        return self.responder(prompt, json_mode)

    @property
    def rewrite_prompts(self) -> list[str]:
        return [p for p, json_mode in self.calls if not json_mode]

    @property
    def extraction_prompts(self) -> list[str]:
        return [p for p, json_mode in self.calls if json_mode]


def excerpt_of(prompt: str) -> str:
    """Pull the excerpt out of a rewrite prompt."""
    return prompt.split('Excerpt:\n"""\n', 1)[1].split('\n"""', 1)[0]


def labeled(rewritten: str, analysis: str = "ok") -> str:
    return f"ANALYSIS: {analysis}\nREWRITTEN: {rewritten}"


def echo_rewriter(prompt: str, json_mode: bool) -> str:
    """Rewrite by restating the excerpt; extraction replies are empty objects."""
    if json_mode:
        return "{}"
    return labeled(f"The documentation states: {excerpt_of(prompt)}")


def failing(prompt: str, json_mode: bool) -> str:
    raise LLMCallError("simulated timeout")


def extraction_reply(**fields: dict) -> str:
    """Build an extractor JSON reply with the given per-key entries."""
    return json.dumps({k: v for k, v in fields.items()})


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def config() -> AnnexConfig:
    """Offline config: no credential, extraction on, lenient mode."""
    return AnnexConfig(_env_file=None, llm={"api_key": None})


@pytest.fixture
def strict_config() -> AnnexConfig:
    return AnnexConfig(_env_file=None, llm={"api_key": None}, require_llm=True)


@pytest.fixture
def echo_generator() -> ScriptedGenerator:
    return ScriptedGenerator(echo_rewriter)


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig(max_files=20, max_chars_per_file=4500, concurrency=3)


@pytest.fixture
def sample_files() -> list[UploadedFile]:
    """Small project upload covering every scanner path."""
    return [
        make_file(
            "arch.md",
            "# System architecture\n"
            "The system uses a frontend, API Gateway, and Lambdas. Docker on AWS.\n",
        ),
        make_file(
            "data.json",
            json.dumps(
                {"datasets": ["s3://bucket/train.csv"], "preprocessing": {"steps": ["clean", "normalize"]}},
                indent=2,
            ),
        ),
        make_file(
            "model.txt",
            "Model type: transformer (BERT-like)\nEvaluation metrics: accuracy, f1",
        ),
    ]


# ── Factories ───────────────────────────────────────────────────

def make_file(
    filename: str,
    content: str,
    relative_path: str | None = None,
) -> UploadedFile:
    """Factory for uploaded files."""
    return UploadedFile(filename=filename, relative_path=relative_path, content=content)


def make_signals(**texts: str) -> SignalMap:
    """Factory for signal maps keyed by SignalKey value."""
    return SignalMap(texts={SignalKey(k): v for k, v in texts.items()})


def make_evidence(**quotes: list[tuple[str, str]]) -> EvidenceMap:
    """Factory for evidence maps: key=[(filename, quote), ...]."""
    evidence = EvidenceMap()
    for k, pairs in quotes.items():
        evidence = evidence.with_evidence(
            SignalKey(k), [Evidence(filename=f, quote=q) for f, q in pairs]
        )
    return evidence

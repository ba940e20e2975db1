"""
annexfacts Configuration System
================================

Central configuration using Pydantic Settings. Supports:
- Environment variables (ANNEX_ prefix, ``__`` for nested fields)
- .env file loading
- YAML config file overrides

Configuration is read once at process start and frozen. Components
receive it (or the sub-config they need) at construction time; nothing
reads ambient global state afterwards.

The config produces a deterministic hash for reproducibility tracking.
Every audit record is stamped with this hash.

Usage:
    from annexfacts.config import get_config
    cfg = get_config()                       # loads from env / .env
    cfg = get_config("configs/strict.yaml")  # loads with YAML overrides
"""

from __future__ import annotations

import hashlib
import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from annexfacts.schemas.signals import SignalKey


# ── Default policy tables ──────────────────────────────────────────

# Keywords the heuristic scanner looks for in keys, labels and blocks.
DEFAULT_SCANNER_KEYWORDS: dict[SignalKey, tuple[str, ...]] = {
    SignalKey.SYSTEM_ARCHITECTURE: (
        "system architecture", "architecture", "system-architecture", "system design",
    ),
    SignalKey.DATA_SOURCES: (
        "data sources", "data source", "datasets", "dataset", "input data", "data inputs",
    ),
    SignalKey.PREPROCESSING_STEPS: (
        "preprocessing", "pre-processing", "data cleaning", "feature engineering",
        "preprocessing steps",
    ),
    SignalKey.MODEL_TYPE: (
        "model type", "model", "architecture", "neural network", "transformer",
        "xgboost", "random forest", "logistic regression",
    ),
    SignalKey.EVALUATION_METRICS: (
        "evaluation", "metrics", "evaluation metrics", "performance metrics",
        "accuracy", "f1", "auc", "precision", "recall",
    ),
    SignalKey.RUNTIME_ENVIRONMENT: (
        "runtime", "environment", "docker", "kubernetes", "python version",
        "node version", "runtime environment",
    ),
}

# Keywords the gate requires before a candidate may be rewritten.
# Matched as substrings of normalized text, so stems like "tokeniz" work.
DEFAULT_GATE_KEYWORDS: dict[SignalKey, tuple[str, ...]] = {
    SignalKey.SYSTEM_ARCHITECTURE: (
        "architecture", "microservice", "docker", "kubernetes", "cluster", "vm",
        "server", "instance", "load balancer", "service mesh",
    ),
    SignalKey.DATA_SOURCES: (
        "dataset", "datasets", "csv", "s3", "bucket", "database", "db",
        "data source", "data sources", "input data", "table",
    ),
    SignalKey.PREPROCESSING_STEPS: (
        "preprocess", "pre processing", "preprocessing", "data cleaning",
        "feature engineering", "tokeniz", "normaliz", "scal", "imput",
    ),
    SignalKey.MODEL_TYPE: (
        "transformer", "bert", "gpt", "xgboost", "random forest",
        "logistic regression", "cnn", "rnn", "lstm", "model type",
        "model architecture",
    ),
    SignalKey.EVALUATION_METRICS: (
        "accuracy", "precision", "recall", "f1", "auc", "roc", "mse",
        "mean squared", "rmse", "evaluation", "metrics", "performance",
    ),
    SignalKey.RUNTIME_ENVIRONMENT: (
        "docker", "kubernetes", "k8s", "python", "node", "runtime", "gpu",
        "cuda", "cpu", "ubuntu", "centos",
    ),
}

# Hedging / non-committal phrases. Matched on token boundaries, so
# inflected forms are listed explicitly.
DEFAULT_NEGATIVE_INDICATORS: tuple[str, ...] = (
    "may", "maybe", "might", "could", "possible", "possibly",
    "plan to", "plans to", "planned", "planning",
    "future", "to be decided", "tbd", "under development",
    "prototype", "prototypes", "prototyping", "prototyped",
)


# ── Enums ──────────────────────────────────────────────────────────
class LLMProvider(str, Enum):
    """Which text-generation backend family to talk to."""
    OPENAI = "openai"
    GEMINI = "gemini"


class APIStyle(str, Enum):
    """
    Request shape for OpenAI-compatible endpoints.

    - CHAT:      /v1/chat/completions
    - RESPONSES: /v1/responses
    """
    CHAT = "chat"
    RESPONSES = "responses"


# ── Sub-configs ────────────────────────────────────────────────────
class LLMConfig(BaseModel):
    """Text-generation backend endpoint, credential and request settings."""
    model_config = ConfigDict(frozen=True)

    provider: LLMProvider = Field(default=LLMProvider.OPENAI)
    api_key: Optional[str] = Field(default=None, description="Backend credential")
    endpoint: Optional[str] = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible endpoint"
    )
    model: str = Field(default="gpt-4o-mini", description="Backend model identifier")
    api_style: APIStyle = Field(default=APIStyle.CHAT)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=900, gt=0)
    timeout_s: float = Field(default=60.0, gt=0, description="Per-request timeout")
    max_retries: int = Field(default=2, ge=0, description="SDK-level transport retries")


class ScannerConfig(BaseModel):
    """Configuration for the heuristic signal scanner."""
    model_config = ConfigDict(frozen=True)

    excerpt_max_chars: int = Field(default=1200, gt=0, description="Clamp per excerpt")
    signal_keywords: dict[SignalKey, tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_SCANNER_KEYWORDS)
    )


class ExtractionConfig(BaseModel):
    """Configuration for the schema-constrained per-file extractor."""
    model_config = ConfigDict(frozen=True)

    max_files: int = Field(default=20, gt=0, description="Files sent to the backend")
    max_chars_per_file: int = Field(default=4500, gt=0, description="Prompt budget per file")
    concurrency: int = Field(default=3, ge=1, description="Max outstanding backend calls")


class GateConfig(BaseModel):
    """Admissibility and drift-check policy for the rewriter."""
    model_config = ConfigDict(frozen=True)

    field_keywords: dict[SignalKey, tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_GATE_KEYWORDS)
    )
    negative_indicators: tuple[str, ...] = Field(default=DEFAULT_NEGATIVE_INDICATORS)
    overlap_threshold: float = Field(
        default=0.2,
        ge=0.0, le=1.0,
        description="Min share of the shorter side's tokens shared by source and rewrite"
    )


# ── Main Config ────────────────────────────────────────────────────
class AnnexConfig(BaseSettings):
    """
    Root configuration for annexfacts.

    Loads from environment variables (ANNEX_ prefix) and .env file.
    Can be extended with YAML overrides via `get_config(yaml_path)`.

    Example:
        export ANNEX_LLM__API_KEY=sk-...
        export ANNEX_REQUIRE_LLM=true
    """
    model_config = SettingsConfigDict(
        env_prefix="ANNEX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Top-level settings ─────────────────────────────────────────
    require_llm: bool = Field(
        default=False,
        description="Fail the whole run on any backend error (smoke/test mode)"
    )
    enable_extraction: bool = Field(
        default=True,
        description="Run the model-based per-file extractor"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")

    # ── Sub-configs ────────────────────────────────────────────────
    llm: LLMConfig = Field(default_factory=LLMConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    gate: GateConfig = Field(default_factory=GateConfig)

    def config_hash(self) -> str:
        """
        Produce a deterministic SHA-256 hash of the configuration.

        The credential is excluded so the hash can be published in
        audit records.
        """
        config_dict = self.model_dump(mode="json", exclude={"llm": {"api_key"}})
        canonical = json.dumps(config_dict, sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


# ── Config Loading ─────────────────────────────────────────────────
def get_config(yaml_path: Optional[str] = None, **overrides) -> AnnexConfig:
    """
    Load annexfacts configuration.

    Priority (highest to lowest):
        1. Keyword overrides
        2. YAML config file (if provided)
        3. Environment variables (ANNEX_ prefix)
        4. .env file
        5. Default values

    Args:
        yaml_path: Optional path to a YAML config file for overrides.
        **overrides: Top-level field overrides (e.g. require_llm=True).

    Returns:
        Fully resolved, frozen AnnexConfig instance.
    """
    values: dict = {}
    if yaml_path:
        import yaml
        with open(yaml_path) as f:
            values = yaml.safe_load(f) or {}
    values.update(overrides)
    return AnnexConfig(**values)

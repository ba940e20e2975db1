"""
Signal & Evidence Schema
=========================

Defines the six fixed signal keys and the two maps that flow between
the scanner, the extractor, the merge step and the rewriter:

- SignalMap:   SignalKey → aggregated excerpt text
- EvidenceMap: SignalKey → ordered, deduplicated verbatim quotes

Design Decisions:
    - Aggregated text joins per-source excerpts with EXCERPT_SEPARATOR
      so the rewriter can split it back into excerpts losslessly
    - Both maps are frozen; every update returns a new map, so folds
      over per-file results never share mutable state
    - Evidence identity is (filename, quote)

Data Flow:
    Scanner ─┐
             ├→ merge → SignalMap ─┐
    Extractor┘                     ├→ Rewriter → Facts
    Extractor → EvidenceMap ───────┘
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


EXCERPT_SEPARATOR = "\n\n---\n\n"

# A line holding only "---" inside an excerpt would read back as a separator.
SEPARATOR_LINE_RE = re.compile(r"^[ \t]*---[ \t]*$", re.MULTILINE)


def escape_excerpt(text: str) -> str:
    """Rewrite Markdown "---" rules to "***" so joined text splits losslessly."""
    return SEPARATOR_LINE_RE.sub("***", text)


class SignalKey(str, Enum):
    """
    The closed set of compliance signals tracked by the pipeline.

    Declaration order is the fixed output order of the fact list.
    """
    SYSTEM_ARCHITECTURE = "system_architecture"
    DATA_SOURCES = "data_sources"
    PREPROCESSING_STEPS = "preprocessing_steps"
    MODEL_TYPE = "model_type"
    EVALUATION_METRICS = "evaluation_metrics"
    RUNTIME_ENVIRONMENT = "runtime_environment"


SIGNAL_KEYS: tuple[SignalKey, ...] = tuple(SignalKey)


class Evidence(BaseModel):
    """
    A claimed verbatim quote from a specific uploaded file.

    Strict string types: an extractor reply carrying numbers or
    nested objects here is rejected, not coerced.
    """
    model_config = ConfigDict(frozen=True)

    filename: StrictStr = Field(description="File the quote was taken from")
    quote: StrictStr = Field(description="Verbatim substring of that file")


class SignalMap(BaseModel):
    """
    Aggregated excerpt text per signal.

    Only signals with at least one excerpt are present in ``texts``.
    """
    model_config = ConfigDict(frozen=True)

    texts: dict[SignalKey, str] = Field(default_factory=dict)

    def get(self, key: SignalKey) -> Optional[str]:
        return self.texts.get(key)

    def excerpts(self, key: SignalKey) -> list[str]:
        """Split a signal's aggregated text back into its excerpts."""
        text = self.texts.get(key)
        if not text:
            return []
        parts = (p.strip() for p in text.split(EXCERPT_SEPARATOR))
        return [p for p in parts if p]

    def with_text(self, key: SignalKey, text: str) -> "SignalMap":
        """Return a copy with ``key`` set to ``text``."""
        return SignalMap(texts={**self.texts, key: text})

    def with_excerpt(self, key: SignalKey, excerpt: str) -> "SignalMap":
        """Return a copy with ``excerpt`` appended, unless already listed."""
        excerpt = escape_excerpt(excerpt)
        current = self.excerpts(key)
        if excerpt in current:
            return self
        return self.with_text(key, EXCERPT_SEPARATOR.join([*current, excerpt]))

    def keys(self) -> list[SignalKey]:
        """Present keys, in fixed signal order."""
        return [k for k in SIGNAL_KEYS if k in self.texts]

    def __len__(self) -> int:
        return len(self.texts)


class EvidenceMap(BaseModel):
    """Ordered evidence quotes per signal (insertion = file order)."""
    model_config = ConfigDict(frozen=True)

    quotes: dict[SignalKey, tuple[Evidence, ...]] = Field(default_factory=dict)

    def get(self, key: SignalKey) -> list[Evidence]:
        return list(self.quotes.get(key, ()))

    def with_evidence(
        self, key: SignalKey, items: Iterable[Evidence]
    ) -> "EvidenceMap":
        """Return a copy with ``items`` appended, deduplicated by identity."""
        merged = list(self.quotes.get(key, ()))
        seen = {(e.filename, e.quote) for e in merged}
        for item in items:
            ident = (item.filename, item.quote)
            if ident not in seen:
                seen.add(ident)
                merged.append(item)
        if not merged:
            return self
        return EvidenceMap(quotes={**self.quotes, key: tuple(merged)})

    def __len__(self) -> int:
        return len(self.quotes)

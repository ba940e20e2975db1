"""
Gate Policy
============

Deterministic checks that decide whether an excerpt may be rewritten
and whether a rewrite stays faithful to it. No model calls.

Checks:
    1. Negative indicators: hedging or non-committal phrases
       ("may", "planned", "tbd", "prototype", ...) block an excerpt
       outright. Matched on token boundaries of normalized text.
    2. Keyword admissibility: the excerpt, or an attached evidence
       quote free of negative indicators, must contain at least one of
       the signal's keywords (substring of normalized text, so stems
       like "tokeniz" match "tokenization").
    3. Overlap: a rewrite must share at least ``overlap_threshold`` of
       the shorter side's tokens with its source excerpt.

All three fail closed: no keyword, no rewrite; no overlap, no fact.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from annexfacts.config import GateConfig
from annexfacts.schemas.signals import Evidence, SignalKey

logger = logging.getLogger("annexfacts.gate.policy")

NON_WORD_RE = re.compile(r"[\W_]+")


def normalize_text(text: str) -> str:
    """Lowercase alphanumeric tokens joined by single spaces."""
    return " ".join(NON_WORD_RE.sub(" ", text).lower().split())


def tokenize(text: str) -> list[str]:
    normalized = normalize_text(text)
    return normalized.split(" ") if normalized else []


def overlap_ratio(source: str, rewritten: str) -> float:
    """
    Share of rewrite tokens found in the source, relative to the shorter side.

    ratio = |{t in rewrite tokens : t in source token set}| / min(|source|, |rewrite|)

    Returns 0.0 when either side has no tokens.
    """
    src = tokenize(source)
    rw = tokenize(rewritten)
    if not src or not rw:
        return 0.0
    src_set = set(src)
    common = sum(1 for t in rw if t in src_set)
    return common / min(len(src), len(rw))


class GatePolicy:
    """
    Admissibility gate and drift check for the rewriter.

    Usage:
        policy = GatePolicy(config.gate)
        if policy.admits(SignalKey.MODEL_TYPE, excerpt):
            ...
        policy.has_sufficient_overlap(excerpt, rewritten)

    Args:
        config: Keyword table, negative indicators, overlap threshold.
    """

    def __init__(self, config: GateConfig | None = None):
        self.config = config or GateConfig()
        self.field_keywords = {
            key: tuple(normalize_text(kw) for kw in kws if normalize_text(kw))
            for key, kws in self.config.field_keywords.items()
        }
        self.negative_indicators = tuple(
            normalize_text(ni) for ni in self.config.negative_indicators if normalize_text(ni)
        )

    def contains_any_keyword(self, text: str, key: SignalKey) -> bool:
        normalized = normalize_text(text)
        return any(kw in normalized for kw in self.field_keywords.get(key, ()))

    def contains_negative_indicator(self, text: str) -> bool:
        padded = f" {normalize_text(text)} "
        return any(f" {ni} " in padded for ni in self.negative_indicators)

    def has_sufficient_overlap(self, source: str, rewritten: str) -> bool:
        return overlap_ratio(source, rewritten) >= self.config.overlap_threshold

    def admits(
        self,
        key: SignalKey,
        text: Optional[str],
        evidence: Optional[list[Evidence]] = None,
    ) -> bool:
        """
        Legal semantic gate for one candidate excerpt.

        Rejects blank text and any text with a negative indicator.
        Accepts if the text, or a clean evidence quote, names one of
        the signal's keywords. Everything else is rejected.
        """
        if not text or not text.strip():
            return False

        if self.contains_negative_indicator(text):
            logger.debug(f"{key.value}: negative indicator in candidate")
            return False

        if self.contains_any_keyword(text, key):
            return True

        for ev in evidence or []:
            quote = ev.quote or ""
            if self.contains_any_keyword(quote, key) and not self.contains_negative_indicator(quote):
                return True

        return False

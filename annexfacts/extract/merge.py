"""
Signal Merge
=============

Combines scanner output with extractor output. The scanner is grounded
directly in formatting markers, so it wins wherever it found anything;
extractor values only fill genuine gaps.
"""

from __future__ import annotations

import logging
from typing import Optional

from annexfacts.extract.extractor import ExtractionResult
from annexfacts.schemas.signals import SIGNAL_KEYS, SignalMap

logger = logging.getLogger("annexfacts.extract.merge")


def merge_signals(
    heuristic: SignalMap, extracted: Optional[ExtractionResult]
) -> SignalMap:
    """
    Fill empty heuristic slots with non-empty extracted values.

    Args:
        heuristic: Scanner output.
        extracted: Extractor output, or None if extraction did not run.

    Returns:
        A new SignalMap; ``heuristic`` is left untouched.
    """
    if extracted is None:
        return heuristic

    merged = heuristic
    filled = []
    for key in SIGNAL_KEYS:
        current = heuristic.get(key)
        candidate = extracted.signals.get(key)
        if (not current or not current.strip()) and candidate and candidate.strip():
            merged = merged.with_text(key, candidate.strip())
            filled.append(key.value)

    if filled:
        logger.info(f"Merge filled {len(filled)} signals from extraction: {', '.join(filled)}")
    return merged

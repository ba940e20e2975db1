"""
Fact Schema
============

The final output unit of a pipeline run: exactly one Fact per
SignalKey, in fixed key order.

Design Decisions:
    - value=None with source="missing" is a valid terminal state,
      meaning no admissible candidate was found. It is not an error.
    - raw_value keeps the source excerpt the statement was derived
      from, so reviewers can compare the two side by side
    - evidence is attached verbatim for downstream audit display

Schema:
    {
      "key": "data_sources",
      "value": "Training data is sourced from an S3 bucket.",
      "raw_value": "From data.json: datasets: [...]",
      "source": "ai",
      "evidence": [{"filename": "data.json", "quote": "s3://bucket/train.csv"}],
      "analysis": "Explicit S3 location. Confidence: high."
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from annexfacts.schemas.signals import Evidence, SignalKey


class FactSource(str, Enum):
    """
    Where a fact's value came from.

    - AI:       Rewritten by the backend from an admitted excerpt
    - ORIGINAL: Supplied verbatim by a human editor downstream
    - MISSING:  No admissible candidate; value is None
    """
    AI = "ai"
    ORIGINAL = "original"
    MISSING = "missing"


class Fact(BaseModel):
    """One regulator-facing statement (or its explicit absence)."""
    key: SignalKey = Field(description="Signal this fact describes")
    value: Optional[str] = Field(default=None, description="Final statement text")
    raw_value: Optional[str] = Field(
        default=None,
        description="Source excerpt (or aggregated text when missing)",
    )
    source: FactSource = Field(default=FactSource.MISSING)
    evidence: Optional[list[Evidence]] = Field(
        default=None,
        description="Verbatim quotes justifying the statement",
    )
    analysis: Optional[str] = Field(
        default=None,
        description="Backend's short analysis of the excerpt",
    )

    @model_validator(mode="after")
    def validate_missing_has_no_value(self) -> "Fact":
        """A missing fact never carries a statement."""
        if self.source == FactSource.MISSING and self.value is not None:
            raise ValueError(f"Fact {self.key.value} is missing but has a value")
        return self

    @property
    def is_accepted(self) -> bool:
        return self.source == FactSource.AI

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with unset optional fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)

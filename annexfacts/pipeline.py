"""
annexfacts End-to-End Pipeline
===============================

Orchestrates the full pipeline for one request:
    Files → Scan → Extract → Merge → Gate & Rewrite → Facts (→ Audit record)

This is the single entry point the surrounding request handler calls.
It manages component construction, stage ordering, timing, and the
error policy for the extraction stage.

Usage:
    from annexfacts.pipeline import FactPipeline

    pipeline = FactPipeline(config)
    result = pipeline.process(files)
    result.to_response()   # {"facts": [...]}
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from annexfacts.config import AnnexConfig, get_config
from annexfacts.extract.extractor import ExtractionResult, SignalExtractor
from annexfacts.extract.merge import merge_signals
from annexfacts.gate.policy import GatePolicy
from annexfacts.gate.rewriter import EvidenceGatedRewriter
from annexfacts.llm.client import LLMConfigurationError, TextGenerator, build_text_generator
from annexfacts.scan.scanner import SignalScanner
from annexfacts.schemas.facts import Fact, FactSource
from annexfacts.schemas.files import UploadedFile
from annexfacts.schemas.signals import EvidenceMap, SignalMap

logger = logging.getLogger("annexfacts.pipeline")


@dataclass
class PipelineResult:
    """
    Complete output of a pipeline run.

    ``facts`` is the caller-facing output; the intermediate maps are
    kept for debugging and audit records.
    """
    facts: list[Fact]
    signals: SignalMap
    evidence: Optional[EvidenceMap] = None
    timings: dict[str, float] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        """JSON-serializable response body: {"facts": [...]}."""
        return {"facts": [f.to_dict() for f in self.facts]}

    @property
    def stats(self) -> dict[str, int]:
        return {
            "num_facts": len(self.facts),
            "num_ai": sum(1 for f in self.facts if f.source == FactSource.AI),
            "num_missing": sum(1 for f in self.facts if f.source == FactSource.MISSING),
            "num_signals": len(self.signals),
        }


class FactPipeline:
    """
    End-to-end orchestrator.

    Manages the complete flow from uploaded files to facts:
        1. Scan files heuristically
        2. Extract signals + evidence per file (if enabled)
        3. Merge (scanner wins, extraction fills gaps)
        4. Gate and rewrite per signal
        5. Attach extraction evidence for audit display

    Args:
        config: annexfacts configuration.
        generator: Text-generation backend. Built from ``config.llm``
            when omitted; tests inject a stub here.
    """

    def __init__(
        self,
        config: Optional[AnnexConfig] = None,
        generator: Optional[TextGenerator] = None,
    ):
        self.config = config or get_config()
        self.generator = generator or build_text_generator(self.config)

        self.scanner = SignalScanner(self.config.scanner)
        self.extractor = SignalExtractor(
            self.generator,
            self.config.extraction,
            require_llm=self.config.require_llm,
        )
        self.rewriter = EvidenceGatedRewriter(
            self.generator,
            GatePolicy(self.config.gate),
            require_llm=self.config.require_llm,
        )

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "FactPipeline":
        """Create pipeline from config file or environment."""
        return cls(get_config(config_path))

    def process(self, files: list[UploadedFile]) -> PipelineResult:
        """
        Run the full pipeline on a set of uploaded files.

        Args:
            files: Non-empty list of uploaded files.

        Returns:
            PipelineResult with exactly six facts in fixed key order.

        Raises:
            ValueError: If ``files`` is empty.
            LLMConfigurationError / LLMCallError: Only when require_llm
                is set and the backend is unusable.
        """
        if not files:
            raise ValueError("No files provided")

        timings: dict[str, float] = {}
        total_start = time.time()

        # ── Step 1: Scan ───────────────────────────────────────────
        t0 = time.time()
        heuristic = self.scanner.scan(files)
        timings["scan_ms"] = (time.time() - t0) * 1000

        # ── Step 2: Extract ────────────────────────────────────────
        t0 = time.time()
        extracted = self._extract(files)
        timings["extract_ms"] = (time.time() - t0) * 1000

        # ── Step 3: Merge ──────────────────────────────────────────
        signals = merge_signals(heuristic, extracted)
        evidence = extracted.evidence if extracted else None

        # ── Step 4: Gate & Rewrite ─────────────────────────────────
        t0 = time.time()
        rewritten = self.rewriter.rewrite(signals, evidence)
        timings["rewrite_ms"] = (time.time() - t0) * 1000

        # ── Step 5: Attach evidence ────────────────────────────────
        facts = [self._attach_evidence(f, evidence) for f in rewritten.facts]
        timings["total_ms"] = (time.time() - total_start) * 1000

        result = PipelineResult(
            facts=facts,
            signals=signals,
            evidence=evidence,
            timings=timings,
        )
        logger.info(
            f"Pipeline complete: {result.stats} | Total: {timings['total_ms']:.0f}ms"
        )
        return result

    def _extract(self, files: list[UploadedFile]) -> Optional[ExtractionResult]:
        """Run extraction if enabled; degrade to scanner-only when unconfigured."""
        if not self.config.enable_extraction:
            logger.info("Model-based extraction disabled")
            return None
        try:
            return self.extractor.extract(files)
        except LLMConfigurationError:
            if self.config.require_llm:
                raise
            logger.warning("Backend not configured, skipping model-based extraction")
            return None

    @staticmethod
    def _attach_evidence(fact: Fact, evidence: Optional[EvidenceMap]) -> Fact:
        """Expose every extraction quote for the fact's signal, when there are any."""
        if evidence is None:
            return fact
        quotes = evidence.get(fact.key)
        if not quotes:
            return fact
        return fact.model_copy(update={"evidence": quotes})

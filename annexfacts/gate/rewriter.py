"""
Evidence-Gated Rewriter
========================

Turns the merged signal map into exactly six facts. For each signal,
candidate excerpts are tried in a fixed order; the first one that
passes the gate, gets a usable rewrite from the backend, and survives
the overlap check becomes the fact. Otherwise the fact is "missing".

Per-signal loop:
    candidates = evidence quotes, then scanner/extractor excerpts
    for each candidate:
        skip if its normalized text was already used by another signal
        skip unless GatePolicy.admits(...)
        stop if the backend is not configured
        ask for ANALYSIS + REWRITTEN
        skip if REWRITTEN is empty/NULL or drifts from the excerpt
        accept → mark excerpt used → emit Fact(source="ai")
    nothing accepted → Fact(value=None, source="missing")

Design Decisions:
    - Signals are processed one at a time in fixed key order; the
      used-excerpt set is only updated after an acceptance, so results
      are deterministic given deterministic backend replies
    - With require_llm unset, a backend failure only fails the current
      candidate; with it set, the failure propagates
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

from annexfacts.gate.policy import GatePolicy, normalize_text
from annexfacts.llm.client import TextGenerator
from annexfacts.schemas.facts import Fact, FactSource
from annexfacts.schemas.signals import (
    SIGNAL_KEYS,
    Evidence,
    EvidenceMap,
    SignalKey,
    SignalMap,
)
from annexfacts.utils import extract_json_object

logger = logging.getLogger("annexfacts.gate.rewriter")


# ── Prompt Templates ───────────────────────────────────────────────

REWRITE_PROMPT = """You are a regulatory writing assistant for the EU AI Act.

Task: Read the provided excerpt and produce TWO labeled parts exactly as shown:
ANALYSIS: (1-3 short sentences: list explicit facts found, any missing details, and confidence high/medium/low).
REWRITTEN: (a single concise paragraph, regulator-facing EU AI Act tone, preserving only facts explicitly stated in the excerpt; do NOT infer or invent).

If you cannot confidently produce a rewritten EU-AI-Act-style sentence that is strictly supported by the excerpt, output "REWRITTEN: NULL".

Excerpt:
\"\"\"
{excerpt}
\"\"\"
{evidence_block}"""

LABELED_REPLY_RE = re.compile(
    r"(?:ANALYSIS:\s*(.*?)\n)?\s*REWRITTEN:\s*(.*)$", re.IGNORECASE | re.DOTALL
)
SOURCE_PREFIX_RE = re.compile(r"^From (.+?):\s+(.*)$", re.DOTALL)


@dataclass
class Candidate:
    """One excerpt considered for a signal."""
    text: str
    raw_value: str
    evidence: Optional[list[Evidence]] = None


@dataclass
class RewriteReply:
    rewritten: str
    analysis: Optional[str] = None


@dataclass
class RewriteResult:
    """Rewriter output: one fact per signal, in fixed key order."""
    facts: list[Fact]
    used_excerpts: set[str] = field(default_factory=set)

    @property
    def num_accepted(self) -> int:
        return sum(1 for f in self.facts if f.source == FactSource.AI)


def strip_source_prefix(part: str) -> str:
    """Drop a leading 'From <file>: ' attribution, if present."""
    m = SOURCE_PREFIX_RE.match(part)
    return m.group(2).strip() if m else part


def build_candidates(
    key: SignalKey, signals: SignalMap, evidence: Optional[EvidenceMap]
) -> list[Candidate]:
    """Evidence quotes first, then excerpts of the aggregated text."""
    candidates: list[Candidate] = []

    if evidence is not None:
        for ev in evidence.get(key):
            text = (ev.quote or "").strip()
            if text:
                candidates.append(Candidate(text=text, raw_value=text, evidence=[ev]))

    for part in signals.excerpts(key):
        text = strip_source_prefix(part)
        if text:
            candidates.append(Candidate(text=text, raw_value=part))

    return candidates


def parse_rewrite_reply(reply: str) -> RewriteReply:
    """
    Parse a rewrite reply.

    Accepts the labeled "ANALYSIS: ... / REWRITTEN: ..." format, or a
    JSON object {"analysis", "rewritten"}. Any other reply is taken as
    the rewritten text itself (it still has to pass the overlap check).
    """
    text = (reply or "").strip()

    m = LABELED_REPLY_RE.search(text)
    if m:
        analysis = (m.group(1) or "").strip()
        return RewriteReply(rewritten=m.group(2).strip(), analysis=analysis or None)

    payload = extract_json_object(text)
    if isinstance(payload, dict) and ("rewritten" in payload or "analysis" in payload):
        analysis = payload.get("analysis")
        rewritten = payload.get("rewritten")
        return RewriteReply(
            rewritten=str(rewritten).strip() if rewritten else "",
            analysis=str(analysis) if analysis else None,
        )

    return RewriteReply(rewritten=text)


class EvidenceGatedRewriter:
    """
    Gate, rewrite and drift-check candidate excerpts per signal.

    Usage:
        rewriter = EvidenceGatedRewriter(generator, GatePolicy(config.gate))
        result = rewriter.rewrite(signals, evidence)
        for fact in result.facts: ...

    Args:
        generator: Text-generation backend.
        policy: Gate policy (keywords, negatives, overlap threshold).
        require_llm: Propagate backend failures instead of skipping
            the candidate.
    """

    def __init__(
        self,
        generator: TextGenerator,
        policy: GatePolicy | None = None,
        require_llm: bool = False,
    ):
        self.generator = generator
        self.policy = policy or GatePolicy()
        self.require_llm = require_llm

    def build_prompt(self, candidate: Candidate) -> str:
        evidence_block = ""
        if candidate.evidence:
            lines = "\n".join(f"- {e.filename}: {e.quote}" for e in candidate.evidence)
            evidence_block = f"\nEvidence quotes:\n{lines}\n"
        return REWRITE_PROMPT.format(excerpt=candidate.text, evidence_block=evidence_block)

    # ── Public interface ───────────────────────────────────────

    def rewrite(
        self, signals: SignalMap, evidence: Optional[EvidenceMap] = None
    ) -> RewriteResult:
        """
        Produce one fact per signal key.

        Returns:
            RewriteResult with six facts in fixed key order.

        Raises:
            LLMCallError: On a backend failure when require_llm is set.
        """
        start_time = time.time()
        used_excerpts: set[str] = set()
        facts = [self._rewrite_signal(key, signals, evidence, used_excerpts) for key in SIGNAL_KEYS]

        result = RewriteResult(facts=facts, used_excerpts=used_excerpts)
        logger.info(
            f"Rewrite completed in {time.time() - start_time:.2f}s: "
            f"{result.num_accepted}/{len(facts)} facts accepted"
        )
        return result

    def _rewrite_signal(
        self,
        key: SignalKey,
        signals: SignalMap,
        evidence: Optional[EvidenceMap],
        used_excerpts: set[str],
    ) -> Fact:
        for candidate in build_candidates(key, signals, evidence):
            norm = normalize_text(candidate.text)
            if norm in used_excerpts:
                continue

            if not self.policy.admits(key, candidate.text, candidate.evidence):
                continue

            if not self.generator.is_configured:
                logger.info(f"{key.value}: backend not configured, not rewriting")
                break

            reply = self._request_rewrite(key, candidate)
            if reply is None:
                continue

            if not reply.rewritten or reply.rewritten.upper() == "NULL":
                logger.info(f"{key.value}: backend declined to rewrite candidate")
                continue

            if not self.policy.has_sufficient_overlap(candidate.text, reply.rewritten):
                logger.warning(f"{key.value}: rewrite drifted from its excerpt, rejected")
                continue

            used_excerpts.add(norm)
            return Fact(
                key=key,
                value=reply.rewritten,
                raw_value=candidate.raw_value,
                source=FactSource.AI,
                evidence=candidate.evidence,
                analysis=reply.analysis,
            )

        raw_combined = signals.get(key)
        field_evidence = evidence.get(key) if evidence is not None else []
        return Fact(
            key=key,
            value=None,
            raw_value=raw_combined if raw_combined and raw_combined.strip() else None,
            source=FactSource.MISSING,
            evidence=field_evidence or None,
        )

    def _request_rewrite(self, key: SignalKey, candidate: Candidate) -> Optional[RewriteReply]:
        """Call the backend; None means this candidate failed."""
        try:
            reply = self.generator.call(self.build_prompt(candidate))
        except Exception as e:
            if self.require_llm:
                raise
            logger.warning(f"{key.value}: rewrite call failed, trying next candidate: {e}")
            return None
        return parse_rewrite_reply(reply)

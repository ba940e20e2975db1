"""Admissibility gate and evidence-gated rewriting."""

from annexfacts.gate.policy import GatePolicy, normalize_text, overlap_ratio, tokenize
from annexfacts.gate.rewriter import (
    Candidate,
    EvidenceGatedRewriter,
    RewriteResult,
    build_candidates,
    parse_rewrite_reply,
)

__all__ = [
    "Candidate",
    "EvidenceGatedRewriter",
    "GatePolicy",
    "RewriteResult",
    "build_candidates",
    "normalize_text",
    "overlap_ratio",
    "parse_rewrite_reply",
    "tokenize",
]

"""
annexfacts — Evidence-Gated Technical Documentation Facts
===========================================================

annexfacts reads uploaded project files (docs, configs, logs, code) and
produces six regulator-facing statements about the system they describe.
No statement is emitted unless it is backed by text that actually appears
in the uploaded files and survives a lexical drift check.

Architecture Overview:
    Files → Scan + Extract → Merge → Gate & Rewrite → Facts

Modules:
    - schemas:  Uploaded files, signal/evidence maps, facts
    - llm:      Text-generation clients (OpenAI-compatible, Gemini)
    - scan:     Heuristic, format-aware signal scanner
    - extract:  Schema-constrained per-file extraction + merge
    - gate:     Admissibility policy + evidence-gated rewriter
    - audit:    Sealed audit records for a pipeline run
    - pipeline: End-to-end orchestrator
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

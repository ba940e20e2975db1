"""
annexfacts Data Schemas
========================

Pydantic v2 models for the data contracts that flow through
the pipeline:

1. UploadedFile — one submitted artifact with decoded text
2. SignalMap / EvidenceMap — per-signal excerpts and quotes
3. Fact — the final per-signal statement
4. AuditRecord — sealed record of one pipeline run

All schemas support:
- Runtime validation with Pydantic
- JSON Schema export for interoperability
- Serialization for audit trails
"""

from annexfacts.schemas.files import UploadedFile
from annexfacts.schemas.signals import (
    EXCERPT_SEPARATOR,
    SIGNAL_KEYS,
    Evidence,
    EvidenceMap,
    SignalKey,
    SignalMap,
    escape_excerpt,
)
from annexfacts.schemas.facts import Fact, FactSource
from annexfacts.schemas.audit import AuditRecord, FileManifestEntry


def export_all_schemas() -> dict[str, dict]:
    """JSON Schemas for every data contract, keyed by file stem."""
    return {
        "uploaded_file": UploadedFile.model_json_schema(by_alias=True),
        "signal_map": SignalMap.model_json_schema(),
        "evidence_map": EvidenceMap.model_json_schema(),
        "fact": Fact.model_json_schema(),
        "audit_record": AuditRecord.model_json_schema(),
    }


__all__ = [
    "export_all_schemas",
    # Files
    "UploadedFile",
    # Signals
    "EXCERPT_SEPARATOR",
    "SIGNAL_KEYS",
    "Evidence",
    "EvidenceMap",
    "SignalKey",
    "SignalMap",
    "escape_excerpt",
    # Facts
    "Fact",
    "FactSource",
    # Audit
    "AuditRecord",
    "FileManifestEntry",
]

"""
Audit Record Schema
====================

The AuditRecord is the complete, tamper-evident trail of one pipeline
run: which files went in, which configuration was active, and which
facts came out (with their evidence).

Design Philosophy:
    Every accepted statement must be traceable back to uploaded text.
    The record makes that trace portable: a reviewer holding the record
    and the original files can recompute each file hash, re-read each
    quoted excerpt, and check the integrity hash.

    Persisting the record (object storage, key-value index) is the
    caller's concern; this module only defines and seals it.

Data Flow:
    UploadedFiles + Facts + Config → AuditRecordBuilder → AuditRecord
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field

from annexfacts.utils import compute_content_hash


class FileManifestEntry(BaseModel):
    """Fingerprint of one uploaded file."""
    label: str = Field(description="relativePath or filename")
    size_chars: int = Field(ge=0, description="Length of the decoded content")
    sha256: str = Field(description="SHA-256 of the UTF-8 content")


class AuditRecord(BaseModel):
    """
    Sealed audit trail for a single pipeline run.

    The integrity hash is computed over all content except the
    integrity_hash field itself, enabling tamper detection.
    """
    # ── Run ────────────────────────────────────────────────────────
    run_id: str = Field(description="Unique run identifier")
    timestamp: str = Field(
        default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        description="ISO 8601 timestamp"
    )

    # ── Inputs ─────────────────────────────────────────────────────
    files: list[FileManifestEntry] = Field(default_factory=list)

    # ── Outputs ────────────────────────────────────────────────────
    facts: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Serialized Facts, in fixed key order"
    )

    # ── Provenance ─────────────────────────────────────────────────
    config_hash: str = Field(default="", description="Hash of the active configuration")
    backend: dict[str, str] = Field(
        default_factory=dict,
        description="Text-generation backend provider/model"
    )

    # ── Summary Statistics ─────────────────────────────────────────
    stats: dict[str, Any] = Field(default_factory=dict)

    # ── Integrity ──────────────────────────────────────────────────
    integrity_hash: str = Field(default="", description="SHA-256 of record content")

    def compute_integrity_hash(self) -> str:
        content = self.model_dump(exclude={"integrity_hash"})
        return compute_content_hash(content)

    def seal(self) -> "AuditRecord":
        """Compute and store the integrity hash. Call after all fields are set."""
        self.integrity_hash = self.compute_integrity_hash()
        return self

    def verify_integrity(self) -> bool:
        """True if the stored hash matches the current content."""
        if not self.integrity_hash:
            return False
        return self.integrity_hash == self.compute_integrity_hash()

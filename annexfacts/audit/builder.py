"""
Audit Record Builder
=====================

Creates AuditRecords — the sealed trail of one pipeline run.

A record contains:
    - Run id and timestamp
    - A manifest of the uploaded files (label, size, SHA-256)
    - All facts with their evidence
    - Configuration hash and backend identity
    - Summary statistics and stage timings
    - Integrity hash for tamper detection

Usage:
    builder = AuditRecordBuilder(config)
    record = builder.build(files, result, backend=generator.describe())
    builder.export_json(record, "output/audit.json")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from annexfacts.config import AnnexConfig
from annexfacts.pipeline import PipelineResult
from annexfacts.schemas.audit import AuditRecord, FileManifestEntry
from annexfacts.schemas.files import UploadedFile
from annexfacts.utils import compute_hash, generate_run_id, save_json

logger = logging.getLogger("annexfacts.audit.builder")


class AuditRecordBuilder:
    """
    Builds sealed AuditRecords from pipeline outputs.

    Args:
        config: annexfacts configuration (for the config hash).
    """

    def __init__(self, config: AnnexConfig):
        self.config = config

    def build(
        self,
        files: list[UploadedFile],
        result: PipelineResult,
        backend: Optional[dict[str, str]] = None,
        run_id: Optional[str] = None,
    ) -> AuditRecord:
        """
        Build a sealed AuditRecord.

        Args:
            files: The files the run was given.
            result: The pipeline output.
            backend: Provider/model description of the backend.
            run_id: Run identifier; generated when omitted.

        Returns:
            AuditRecord with integrity hash populated.
        """
        manifest = [
            FileManifestEntry(
                label=f.label,
                size_chars=len(f.content),
                sha256=compute_hash(f.content, length=64),
            )
            for f in files
        ]

        stats = {
            **result.stats,
            "num_files": len(files),
            "timings_ms": {k: round(v, 2) for k, v in result.timings.items()},
        }

        record = AuditRecord(
            run_id=run_id or generate_run_id(),
            files=manifest,
            facts=[f.to_dict() for f in result.facts],
            config_hash=self.config.config_hash(),
            backend=backend or {},
            stats=stats,
        ).seal()

        logger.info(f"Audit record {record.run_id} sealed ({len(manifest)} files)")
        return record

    @staticmethod
    def export_json(record: AuditRecord, path: str | Path) -> Path:
        """Write a record as formatted JSON."""
        return save_json(record.model_dump(mode="json"), path)

"""
Schema-Constrained Extractor
=============================

Asks the text-generation backend to extract all six signals from each
uploaded file, together with verbatim evidence quotes, under a strict
JSON schema.

Architecture:
    files[:max_files] → worker pool (≤ concurrency in flight)
                      → one prompt per file → JSON reply
                      → strict per-field validation
                      → ordered fold → SignalMap + EvidenceMap

Key Requirements:
    - Only explicitly stated facts; unstated fields are null with
      empty evidence
    - A malformed reply, or a failed call, drops that one file only
    - Fields with the wrong shape are skipped, not coerced
    - Results are folded in input order, so the output does not depend
      on which call finishes first
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictStr, ValidationError

from annexfacts.config import ExtractionConfig
from annexfacts.llm.client import LLMConfigurationError, TextGenerator
from annexfacts.schemas.files import UploadedFile
from annexfacts.schemas.signals import (
    SIGNAL_KEYS,
    Evidence,
    EvidenceMap,
    SignalKey,
    SignalMap,
    EXCERPT_SEPARATOR,
    escape_excerpt,
)
from annexfacts.utils import clip_text, extract_json_object

logger = logging.getLogger("annexfacts.extract.extractor")


# ── Prompt Templates ───────────────────────────────────────────────

SCHEMA_HINT = "Return JSON only, matching this schema exactly (no extra keys):\n\n{\n" + ",\n".join(
    f'  "{key.value}": {{"value": string|null, "evidence": [{{"filename": string, "quote": string}}]}}'
    for key in SIGNAL_KEYS
) + "\n}"

EXTRACTION_PROMPT = """You are an information extraction system.

Task:
- Extract ONLY information explicitly stated in the provided file.
- Do NOT add, infer, guess, or improve any information.
- If a field is not explicitly stated, set its value to null and evidence to an empty array.
- Evidence quotes MUST be verbatim snippets from the provided file.
- Keep values concise. Preserve numbers, versions, regions, and names exactly.

{schema_hint}

FILE: {label}
\"\"\"
{file_text}
\"\"\""""


class ExtractedField(BaseModel):
    """
    One signal entry of an extractor reply, validated strictly.

    Both keys are required; ``value`` may be null.
    """
    value: Optional[StrictStr] = Field(description="Extracted text or null")
    evidence: list[Evidence] = Field(description="Verbatim quotes")


@dataclass
class ExtractionResult:
    """Merged extractor output across all processed files."""
    signals: SignalMap
    evidence: EvidenceMap


@dataclass
class _FileReply:
    label: str
    payload: Any


class SignalExtractor:
    """
    Per-file, schema-constrained signal extraction.

    Usage:
        extractor = SignalExtractor(generator, config.extraction)
        result = extractor.extract(files)
        result.signals.get(SignalKey.MODEL_TYPE)
        result.evidence.get(SignalKey.MODEL_TYPE)

    Args:
        generator: Text-generation backend.
        config: File cap, per-file character budget, pool size.
        require_llm: Propagate per-file backend failures instead of
            dropping the file.
    """

    def __init__(
        self,
        generator: TextGenerator,
        config: ExtractionConfig | None = None,
        require_llm: bool = False,
    ):
        self.generator = generator
        self.config = config or ExtractionConfig()
        self.require_llm = require_llm

    def build_prompt(self, file: UploadedFile) -> str:
        return EXTRACTION_PROMPT.format(
            schema_hint=SCHEMA_HINT,
            label=file.label,
            file_text=clip_text(file.content, self.config.max_chars_per_file),
        )

    # ── Public interface ───────────────────────────────────────

    def extract(self, files: list[UploadedFile]) -> Optional[ExtractionResult]:
        """
        Extract signals and evidence from up to ``max_files`` files.

        Returns:
            ExtractionResult, or None if ``files`` is empty.

        Raises:
            LLMConfigurationError: If the backend is not configured.
            LLMCallError: On a backend failure when require_llm is set.
        """
        if not files:
            return None

        used = files[:self.config.max_files]
        if len(files) > len(used):
            logger.warning(
                f"File cap: extracting from {len(used)} of {len(files)} files"
            )

        start_time = time.time()
        replies = self._run_pool(used)
        result = self.fold(replies)
        elapsed = time.time() - start_time

        parsed = sum(1 for r in replies if r is not None)
        logger.info(
            f"Extraction completed in {elapsed:.2f}s: {parsed}/{len(used)} files parsed, "
            f"{len(result.signals)} signals, {len(result.evidence)} with evidence"
        )
        return result

    # ── Worker pool ────────────────────────────────────────────

    def _run_pool(self, files: list[UploadedFile]) -> list[Optional[_FileReply]]:
        """
        Process files with at most ``concurrency`` calls in flight.

        Each worker pulls the next unclaimed index from a shared cursor
        until the list is exhausted, so one slow file never holds back
        the others.
        """
        replies: list[Optional[_FileReply]] = [None] * len(files)
        cursor = 0
        cursor_lock = threading.Lock()
        abort = threading.Event()

        def claim_next() -> int:
            nonlocal cursor
            with cursor_lock:
                index = cursor
                cursor += 1
                return index

        def worker() -> None:
            while not abort.is_set():
                index = claim_next()
                if index >= len(files):
                    return
                try:
                    replies[index] = self._process_file(files[index])
                except Exception:
                    abort.set()
                    raise

        workers = min(self.config.concurrency, len(files))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
            futures = [pool.submit(worker) for _ in range(workers)]
        for future in futures:
            future.result()
        return replies

    def _process_file(self, file: UploadedFile) -> Optional[_FileReply]:
        """One backend call for one file; None when the file is dropped."""
        label = file.label
        try:
            out = self.generator.call(self.build_prompt(file), json_mode=True)
        except LLMConfigurationError:
            raise
        except Exception as e:
            if self.require_llm:
                raise
            logger.warning(f"Extraction call failed for {label}, dropping file: {e}")
            return None

        payload = extract_json_object(out)
        if not isinstance(payload, dict):
            logger.warning(f"Unparsable extraction reply for {label}, dropping file")
            return None
        return _FileReply(label=label, payload=payload)

    # ── Reply validation + fold ────────────────────────────────

    @staticmethod
    def parse_field(entry: Any) -> Optional[ExtractedField]:
        """Validate one signal entry; None if it violates the schema."""
        if not isinstance(entry, dict):
            return None
        try:
            return ExtractedField.model_validate(entry)
        except ValidationError:
            return None

    def fold(self, replies: list[Optional[_FileReply]]) -> ExtractionResult:
        """Merge per-file replies, in input order, into new frozen maps."""
        signals = SignalMap()
        evidence = EvidenceMap()

        for reply in replies:
            if reply is None:
                continue
            for key in SIGNAL_KEYS:
                field = self.parse_field(reply.payload.get(key.value))
                if field is None:
                    if key.value in reply.payload:
                        logger.debug(f"{reply.label}: skipping malformed field {key.value}")
                    continue
                signals = _append_value(signals, key, reply.label, field.value)
                evidence = evidence.with_evidence(
                    key,
                    (
                        Evidence(filename=e.filename or reply.label, quote=e.quote)
                        for e in field.evidence
                    ),
                )

        return ExtractionResult(signals=signals, evidence=evidence)


def _append_value(
    signals: SignalMap, key: SignalKey, label: str, value: Optional[str]
) -> SignalMap:
    """Append 'From <label>: value' unless it is already contained."""
    v = (value or "").strip()
    if not v:
        return signals
    note = f"From {label}: {escape_excerpt(v)}"
    current = signals.get(key)
    if not current:
        return signals.with_text(key, note)
    if note in current:
        return signals
    return signals.with_text(key, f"{current}{EXCERPT_SEPARATOR}{note}")

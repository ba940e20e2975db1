"""
annexfacts Utilities
=====================

Shared helper functions for logging, hashing, run ids,
and excerpt text handling used across all modules.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sys
import time
import uuid
from pathlib import Path
from typing import Any


TRUNCATION_MARKER = " …[truncated]"


def generate_run_id() -> str:
    """
    Generate a unique run ID for audit records.

    Format: annexfacts-{timestamp}-{short_uuid}
    Example: annexfacts-20250209-143022-a1b2c3d4
    """
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    short_id = uuid.uuid4().hex[:8]
    return f"annexfacts-{timestamp}-{short_id}"


# ── Hashing ────────────────────────────────────────────────────────

def compute_hash(data: str | bytes | dict, length: int = 16) -> str:
    """
    Compute a truncated SHA-256 hash.

    Args:
        data: String, bytes, or dict to hash.
        length: Number of hex characters to return (max 64).

    Returns:
        Hex digest string of specified length.
    """
    if isinstance(data, dict):
        data = json.dumps(data, sort_keys=True, default=str)
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()[:length]


def compute_content_hash(obj: Any) -> str:
    """
    Compute a content-addressable hash for any JSON-serializable object.

    Used for audit record integrity: the hash of the record content
    (excluding the hash field) is stored in the record.
    """
    canonical = json.dumps(obj, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ── Logging ────────────────────────────────────────────────────────

def setup_logging(
    level: str = "INFO",
    format_style: str = "text",
    run_id: str | None = None
) -> logging.Logger:
    """
    Configure structured logging for annexfacts.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format_style: "json" for structured logs, "text" for human-readable.
        run_id: Optional run ID to include in all log entries.

    Returns:
        Configured Logger instance.
    """
    logger = logging.getLogger("annexfacts")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)

    if format_style == "json":
        class JsonFormatter(logging.Formatter):
            def format(self, record):
                log_entry = {
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "module": record.module,
                    "message": record.getMessage(),
                }
                if run_id:
                    log_entry["run_id"] = run_id
                if record.exc_info:
                    log_entry["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_entry)

        handler.setFormatter(JsonFormatter())
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        if run_id:
            fmt = f"%(asctime)s | %(levelname)-8s | {run_id} | %(name)s | %(message)s"
        handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    logger.addHandler(handler)
    return logger


# ── Text Processing Helpers ────────────────────────────────────────

def normalize_excerpt(text: str, max_chars: int = 1200) -> str:
    """
    Normalize an excerpt for aggregation.

    Unifies line endings, strips, collapses runs of blank lines and
    clamps the result to ``max_chars`` with a truncation marker.
    """
    t = text.replace("\r\n", "\n").strip()
    t = re.sub(r"\n{3,}", "\n\n", t)
    if len(t) > max_chars:
        t = t[:max_chars] + TRUNCATION_MARKER
    return t


def clip_text(text: str, max_chars: int) -> str:
    """Clamp raw file content before it goes into a prompt."""
    t = (text or "").replace("\r\n", "\n")
    if len(t) <= max_chars:
        return t
    return t[:max_chars] + "\n...TRUNCATED..."


def extract_json_object(text: str) -> Any | None:
    """
    Parse the JSON object embedded in a model reply.

    Takes the substring between the first '{' and the last '}' so that
    leading/trailing prose or markdown fences are tolerated.

    Returns:
        The parsed value, or None if nothing parseable was found.
    """
    first = text.find("{")
    last = text.rfind("}")
    if first < 0 or last <= first:
        return None
    try:
        return json.loads(text[first:last + 1])
    except json.JSONDecodeError:
        return None


# ── File I/O Helpers ───────────────────────────────────────────────

def save_json(data: Any, path: str | Path, indent: int = 2) -> Path:
    """Save data as formatted JSON file with UTF-8 encoding."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)
    return path

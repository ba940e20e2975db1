"""
Heuristic Signal Scanner
=========================

Locates candidate excerpts for each signal directly in raw file
content, without calling any model. Its output is grounded in formatting
markers, so it takes precedence over model-extracted values in the
merge step.

Format-aware passes (chosen by file extension):
    - json:      walk keys recursively; a key matching a signal keyword
                 yields "<key>: <value>"
    - csv:       the header row becomes a data_sources column list
    - yaml/yml:  "<keyword>: value" lines
    - free text: Markdown sections (or paragraphs) containing a keyword;
                 "label: value" / "label - value" lines as a fallback

A JSON file that parses is fully handled by the JSON pass. Malformed
JSON, CSV and YAML files additionally go through the free-text pass.

Every excerpt is normalized, clamped, prefixed with "From <file>: "
and deduplicated per signal before aggregation.

Data Flow:
    UploadedFiles → SignalScanner → SignalMap
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Iterator, Union

from annexfacts.config import ScannerConfig
from annexfacts.schemas.files import UploadedFile
from annexfacts.schemas.signals import SIGNAL_KEYS, SignalKey, SignalMap
from annexfacts.utils import normalize_excerpt

logger = logging.getLogger("annexfacts.scan.scanner")


# Closed union of values json.loads can produce.
JsonValue = Union[dict, list, str, int, float, bool, None]

HEADING_RE = re.compile(r"^#{1,6} .*$", re.MULTILINE)
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


class FileKind(str, Enum):
    """Scanning strategy selected from the file extension."""
    JSON = "json"
    CSV = "csv"
    YAML = "yaml"
    TEXT = "text"

    @classmethod
    def from_extension(cls, ext: str) -> "FileKind":
        if ext == "json":
            return cls.JSON
        if ext == "csv":
            return cls.CSV
        if ext in ("yaml", "yml"):
            return cls.YAML
        return cls.TEXT


def split_blocks(content: str) -> list[str]:
    """
    Split free text into blocks.

    Markdown headings win: each heading plus its body is one block, and
    any text before the first heading is its own block. Without
    headings, blank-line-delimited paragraphs are used.
    """
    headings = list(HEADING_RE.finditer(content))
    if not headings:
        return [p.strip() for p in PARAGRAPH_SPLIT_RE.split(content) if p.strip()]

    blocks: list[str] = []
    preamble = content[:headings[0].start()].strip()
    if preamble:
        blocks.append(preamble)
    for i, match in enumerate(headings):
        end = headings[i + 1].start() if i + 1 < len(headings) else len(content)
        body = content[match.end():end].strip()
        blocks.append(f"{match.group(0).strip()}\n{body}" if body else match.group(0).strip())
    return blocks


class SignalScanner:
    """
    Format-aware heuristic extraction of signal excerpts.

    Usage:
        scanner = SignalScanner(config.scanner)
        signals = scanner.scan(files)
        signals.get(SignalKey.DATA_SOURCES)

    Args:
        config: Scanner settings (keyword table, excerpt clamp).
    """

    def __init__(self, config: ScannerConfig | None = None):
        self.config = config or ScannerConfig()
        self.keywords = self.config.signal_keywords
        self._yaml_patterns = {
            key: [
                re.compile(rf"^\s*{re.escape(kw)}\s*:\s*(.+)$", re.IGNORECASE)
                for kw in self.keywords.get(key, ())
            ]
            for key in SIGNAL_KEYS
        }
        self._label_patterns = {
            key: [
                re.compile(rf"(?:^|\n)\s*{re.escape(kw)}\s*[:\-]\s*(.+)", re.IGNORECASE)
                for kw in self.keywords.get(key, ())
            ]
            for key in SIGNAL_KEYS
        }

    def _normalize(self, text: str) -> str:
        return normalize_excerpt(text, self.config.excerpt_max_chars)

    # ── Public interface ───────────────────────────────────────

    def scan(self, files: list[UploadedFile]) -> SignalMap:
        """
        Scan every file and aggregate excerpts per signal.

        Returns:
            SignalMap containing only signals with at least one excerpt.
        """
        signals = SignalMap()
        for file in files:
            for key, excerpt in self.scan_file(file):
                note = f"From {file.display_name}: {excerpt}"
                signals = signals.with_excerpt(key, note)

        logger.info(
            f"Scanned {len(files)} files → {len(signals)} signals "
            f"({', '.join(k.value for k in signals.keys()) or 'none'})"
        )
        return signals

    def scan_file(self, file: UploadedFile) -> list[tuple[SignalKey, str]]:
        """All (signal, excerpt) hits for one file, in discovery order."""
        content = file.content or ""
        kind = FileKind.from_extension(file.extension)
        hits: list[tuple[SignalKey, str]] = []

        if kind == FileKind.JSON:
            try:
                obj = json.loads(content)
            except json.JSONDecodeError:
                logger.debug(f"{file.display_name}: malformed JSON, scanning as text")
            else:
                for key in SIGNAL_KEYS:
                    for excerpt in self._search_json(obj, self.keywords.get(key, ())):
                        hits.append((key, excerpt))
                return [h for h in hits if h[1]]

        if kind == FileKind.CSV:
            hits.extend(self._scan_csv_header(content))

        if kind == FileKind.YAML:
            hits.extend(self._scan_yaml_lines(content))

        hits.extend(self._scan_text(content))
        return [h for h in hits if h[1]]

    # ── Format passes ──────────────────────────────────────────

    def _search_json(self, value: JsonValue, patterns: tuple[str, ...]) -> Iterator[str]:
        """Depth-first walk yielding '<key>: <value>' for matching keys."""
        if isinstance(value, dict):
            for k, v in value.items():
                lowered = str(k).lower()
                for p in patterns:
                    if p.lower() in lowered:
                        yield self._normalize(f"{k}: {self._stringify(v)}")
                yield from self._search_json(v, patterns)
        elif isinstance(value, list):
            for item in value:
                yield from self._search_json(item, patterns)
        # str, int, float, bool and None are leaves without keys

    @staticmethod
    def _stringify(value: JsonValue) -> str:
        if isinstance(value, str):
            return value
        return json.dumps(value, indent=2, ensure_ascii=False)

    def _scan_csv_header(self, content: str) -> list[tuple[SignalKey, str]]:
        first_line = content.splitlines()[0] if content else ""
        cols = [c.strip() for c in first_line.split(",") if c.strip()]
        if not cols:
            return []
        return [(SignalKey.DATA_SOURCES, self._normalize(f"columns: {', '.join(cols)}"))]

    def _scan_yaml_lines(self, content: str) -> list[tuple[SignalKey, str]]:
        lines = content.splitlines()
        hits = []
        for key in SIGNAL_KEYS:
            for pattern in self._yaml_patterns[key]:
                for line in lines:
                    m = pattern.match(line)
                    if m:
                        hits.append((key, self._normalize(m.group(1))))
        return hits

    def _scan_text(self, content: str) -> list[tuple[SignalKey, str]]:
        blocks = split_blocks(content)
        lowered_blocks = [b.lower() for b in blocks]
        hits = []

        for key in SIGNAL_KEYS:
            patterns = [p.lower() for p in self.keywords.get(key, ())]

            block = next(
                (b for b, low in zip(blocks, lowered_blocks) if any(p in low for p in patterns)),
                None,
            )
            if block is not None:
                hits.append((key, self._normalize(block)))
                continue

            for pattern in self._label_patterns[key]:
                m = pattern.search(content)
                if m and m.group(1).strip():
                    hits.append((key, self._normalize(m.group(1))))
                    break

        return hits

"""Heuristic, format-aware signal scanning."""

from annexfacts.scan.scanner import FileKind, SignalScanner, split_blocks

__all__ = ["FileKind", "SignalScanner", "split_blocks"]

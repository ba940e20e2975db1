"""
File Ingestion
===============

Turns local files and folders into UploadedFile objects, keeping only
formats the pipeline can read as text: docs, data/config files and
common source files, plus extension-less files such as README or
Dockerfile.

Files that do not decode as UTF-8 are skipped with a warning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from annexfacts.schemas.files import UploadedFile

logger = logging.getLogger("annexfacts.ingest")


ALLOWED_EXTENSIONS = frozenset({
    # Plain text + docs
    "txt", "md", "markdown", "rst", "rtf", "log",
    # Data/config
    "json", "jsonl", "ndjson", "yaml", "yml", "toml", "ini", "cfg", "conf",
    "properties", "env", "xml", "csv", "tsv",
    # Source files
    "sql", "py", "js", "jsx", "ts", "tsx", "java", "cs", "go", "rb", "php",
    "sh", "ps1", "bat", "yarnrc", "npmrc",
})

ALLOWED_BASENAMES = frozenset({
    "readme", "license", "changelog", "makefile", "dockerfile",
    ".env", ".gitignore", ".dockerignore",
})

SKIPPED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv"})


def is_supported_text_file(path: Path) -> bool:
    """Whether a file's name marks it as readable text."""
    name = path.name.lower()
    if name in ALLOWED_BASENAMES:
        return True
    if "." not in name:
        return True
    return name.rsplit(".", 1)[1] in ALLOWED_EXTENSIONS


def _iter_folder(root: Path) -> Iterable[Path]:
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if any(part in SKIPPED_DIRS for part in path.relative_to(root).parts):
            continue
        yield path


def load_uploaded_files(paths: Iterable[str | Path]) -> list[UploadedFile]:
    """
    Load files and folder contents as UploadedFiles.

    Folder entries get a ``relative_path`` rooted at the folder name,
    mirroring a browser folder upload.

    Args:
        paths: Files and/or directories.

    Returns:
        UploadedFiles in deterministic (sorted) order per argument.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    files: list[UploadedFile] = []

    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"{path} not found")

        if path.is_file():
            entries = [(path, None)]
        else:
            entries = [
                (p, f"{path.resolve().name}/{p.relative_to(path).as_posix()}")
                for p in _iter_folder(path)
            ]

        for file_path, relative in entries:
            if not is_supported_text_file(file_path):
                logger.debug(f"Skipping unsupported file {file_path}")
                continue
            try:
                content = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                logger.warning(f"Skipping non-UTF-8 file {file_path}")
                continue
            files.append(UploadedFile(
                filename=file_path.name,
                relative_path=relative,
                content=content,
            ))

    logger.info(f"Loaded {len(files)} files")
    return files

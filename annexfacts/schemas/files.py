"""
Uploaded File Schema
=====================

The raw input of a pipeline run: one submitted artifact with its
decoded text content. Transport-level decoding (base64, multipart)
happens before a file reaches this model.

Schema:
    {"filename": "arch.md", "relativePath": "docs/arch.md", "content": "..."}
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    """
    One uploaded project file.

    Frozen once constructed: the pipeline never rewrites caller input.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    filename: str = Field(default="", description="Base file name as uploaded")
    relative_path: Optional[str] = Field(
        default=None,
        alias="relativePath",
        description="Path relative to the uploaded folder root, if any",
    )
    content: str = Field(default="", description="Decoded plain-text content")

    @property
    def display_name(self) -> str:
        """Name used by the scanner's 'From <name>:' prefix."""
        return self.filename or self.relative_path or "unknown"

    @property
    def label(self) -> str:
        """Name used by the extractor's 'From <label>:' prefix."""
        return self.relative_path or self.filename or "unknown"

    @property
    def extension(self) -> str:
        """Lower-cased extension of the display name, without the dot."""
        name = self.display_name
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[1].lower()

"""
app/multipart/base.py

Shared vocabulary between the extractor, the file sink and the
submission pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class StagedFile:
    """
    An uploaded file part written to scratch storage.

    Attributes:
        filename     : Name the client sent in Content-Disposition.
        path         : Where the bytes were staged. Valid until cleanup.
        field_name   : Form field the part arrived under.
        content_type : MIME type the client declared, if any.
        size         : Bytes written — set once the sink has flushed.
    """

    filename: str
    path: Path
    field_name: str
    content_type: Optional[str] = None
    size: int = 0


@dataclass
class ParsedForm:
    """Result of a completed multipart parse: text fields plus staged files in arrival order."""

    fields: Dict[str, str] = field(default_factory=dict)
    files: List[StagedFile] = field(default_factory=list)

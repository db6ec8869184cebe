"""app/multipart/__init__.py — public API of the multipart package."""

from app.multipart.base import ParsedForm, StagedFile
from app.multipart.extractor import FormExtractor
from app.multipart.file_sink import FileSink, StagingArea

__all__ = [
    "FormExtractor",
    "FileSink",
    "StagingArea",
    "ParsedForm",
    "StagedFile",
]

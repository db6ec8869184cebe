"""
app/multipart/extractor.py

Streaming multipart/form-data extraction over an already-buffered body.

The body is fed to python-multipart's callback parser in fixed-size
chunks. Text parts are collected in memory; every file part gets its own
staging path and a FileSink task fed through a queue, so a slow write
never holds up discovery of the next part.

``FormExtractor.extract`` returns only when both
  (a) the parser has seen the closing boundary, and
  (b) every sink task has flushed its file.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from app.core.config import settings
from app.core.constants import MULTIPART_CONTENT_TYPE
from app.core.exceptions import ParseError, StagingError
from app.core.logger import get_logger
from app.multipart.base import ParsedForm, StagedFile
from app.multipart.file_sink import FileSink, StagingArea

logger = get_logger(__name__)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def boundary_from_content_type(content_type: Optional[str]) -> bytes:
    """
    Return the multipart boundary carried by a Content-Type header.

    Raises:
        ParseError: If the header is absent, not multipart/form-data, or has
                    no boundary parameter.
    """
    if not content_type:
        raise ParseError("missing content-type header")

    ctype, params = parse_options_header(content_type)
    if ctype.decode("latin-1").lower() != MULTIPART_CONTENT_TYPE:
        raise ParseError(f"expected {MULTIPART_CONTENT_TYPE}, got '{ctype.decode('latin-1')}'")

    boundary = params.get(b"boundary")
    if not boundary:
        raise ParseError("multipart boundary missing from content-type")
    return boundary


class _PartCollector:
    """
    Receives python-multipart callbacks for a single body.

    Each part is routed to one of three modes once its headers are known:
    ``field`` (buffered text), ``file`` (queued to a sink task) or
    ``skip`` (no name, or a file input left empty by the browser).
    """

    def __init__(self, staging: StagingArea, sink: FileSink) -> None:
        self._staging = staging
        self._sink = sink
        self._loop = asyncio.get_running_loop()

        self.fields: Dict[str, str] = {}
        self.files: List[StagedFile] = []
        self.tasks: List[asyncio.Task] = []
        self.finished = False

        self._headers: Dict[str, bytes] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._mode = "skip"
        self._name = ""
        self._buffer = bytearray()
        self._queue: Optional[asyncio.Queue] = None

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self._on_part_begin,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_end": self._on_end,
        }

    # ── Parser callbacks ───────────────────────────────────────────────────────

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._header_field.clear()
        self._header_value.clear()
        self._mode = "skip"
        self._name = ""
        self._buffer = bytearray()
        self._queue = None

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.decode("latin-1").lower()] = bytes(self._header_value)
        self._header_field.clear()
        self._header_value.clear()

    def _on_headers_finished(self) -> None:
        disposition, params = parse_options_header(self._headers.get("content-disposition", b""))
        name = params.get(b"name")
        if disposition.lower() != b"form-data" or name is None:
            logger.debug("Skipping part without a form-data name.")
            return

        self._name = _decode(name)

        if b"filename" not in params:
            self._mode = "field"
            return

        filename = _decode(params[b"filename"])
        if not filename:
            # <input type="file"> submitted with nothing selected.
            return

        content_type = self._headers.get("content-type")
        staged = StagedFile(
            filename=filename,
            path=self._staging.allocate(filename),
            field_name=self._name,
            content_type=content_type.decode("latin-1") if content_type else None,
        )
        self._queue = asyncio.Queue()
        self.files.append(staged)
        self.tasks.append(self._loop.create_task(self._stage(staged, self._queue)))
        self._mode = "file"
        logger.info("File part received: '%s' → %s", filename, staged.path.name)

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._mode == "file":
            self._queue.put_nowait(bytes(data[start:end]))
        elif self._mode == "field":
            self._buffer += data[start:end]

    def _on_part_end(self) -> None:
        if self._mode == "file":
            self._queue.put_nowait(None)
        elif self._mode == "field":
            self.fields[self._name] = _decode(bytes(self._buffer))
            logger.debug("Field received: %s", self._name)
        self._mode = "skip"

    def _on_end(self) -> None:
        self.finished = True

    # ── Sink coordination ──────────────────────────────────────────────────────

    async def _stage(self, staged: StagedFile, queue: asyncio.Queue) -> None:
        try:
            staged.size = await self._sink.write(staged.path, queue)
        except OSError as exc:
            raise StagingError(f"failed to stage '{staged.filename}': {exc}") from exc

    def raise_if_sink_failed(self) -> None:
        """Surface the first sink failure without waiting for the rest of the body."""
        for task in self.tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def join(self) -> None:
        """Barrier: wait for every sink task to confirm its write."""
        await asyncio.gather(*self.tasks)

    async def abort(self) -> None:
        """Cancel unfinished sink tasks and wait for them to unwind."""
        for task in self.tasks:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)


class FormExtractor:
    """
    Turns a buffered multipart body into a ParsedForm.

    The FileSink is constructor-injected so tests can substitute a slow or
    failing sink.
    """

    def __init__(self, sink: FileSink | None = None, chunk_size: int | None = None) -> None:
        self._sink: FileSink = sink or FileSink()
        self._chunk_size: int = chunk_size or settings.parse_chunk_size

    async def extract(
        self,
        body: bytes,
        content_type: Optional[str],
        staging: StagingArea,
    ) -> ParsedForm:
        """
        Parse ``body`` and stage its file parts under ``staging``.

        Args:
            body         : The complete request body.
            content_type : The request's Content-Type header (carries the boundary).
            staging      : Where file parts are written; the caller owns cleanup.

        Returns:
            ParsedForm with text fields and the staged files, all flushed.

        Raises:
            ParseError:   Empty body, bad content-type, malformed or truncated body.
            StagingError: A file part could not be written to ``staging``.
        """
        # A parser fed zero bytes never reaches its end state, so reject up front.
        if not body:
            raise ParseError("empty body")

        boundary = boundary_from_content_type(content_type)
        collector = _PartCollector(staging, self._sink)
        parser = MultipartParser(boundary, callbacks=collector.callbacks())

        try:
            try:
                for offset in range(0, len(body), self._chunk_size):
                    parser.write(body[offset:offset + self._chunk_size])
                    collector.raise_if_sink_failed()
                    await asyncio.sleep(0)
                parser.finalize()
            except (MultipartParseError, ValueError) as exc:
                # ValueError covers undecodable part headers.
                raise ParseError(f"malformed multipart body: {exc}") from exc
            except OSError as exc:
                raise StagingError(f"could not reserve staging space: {exc}") from exc

            if not collector.finished:
                raise ParseError("multipart body ended before the closing boundary")

            await collector.join()
        except BaseException:
            await collector.abort()
            raise

        logger.info(
            "Multipart parsed — %d field(s), %d file(s).",
            len(collector.fields),
            len(collector.files),
        )
        return ParsedForm(fields=collector.fields, files=collector.files)

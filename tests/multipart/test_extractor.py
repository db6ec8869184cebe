"""
tests/multipart/test_extractor.py

Unit tests for FormExtractor.

Bodies are built by hand (see conftest.multipart_body) and staged into a
tmp_path StagingArea, so every test sees exactly what reached the disk.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from app.core.exceptions import ParseError, StagingError
from app.multipart import extractor as extractor_module
from app.multipart.extractor import FormExtractor, boundary_from_content_type
from app.multipart.file_sink import FileSink, StagingArea


# ── Helpers ────────────────────────────────────────────────────────────────────

class _GatedSink(FileSink):
    """Holds the first file's write open until the second file's write has started."""

    def __init__(self) -> None:
        super().__init__(durable=False)
        self.second_started = asyncio.Event()
        self.calls = 0

    async def write(self, path, chunks):
        self.calls += 1
        if self.calls == 1:
            await self.second_started.wait()
        else:
            self.second_started.set()
        return await super().write(path, chunks)


class _SlowSink(FileSink):
    """Finishes well after the parser has reached the closing boundary."""

    async def write(self, path, chunks):
        written = await super().write(path, chunks)
        await asyncio.sleep(0.05)
        return written


class _FailingSink(FileSink):
    async def write(self, path, chunks):
        raise OSError("disk full")


def _extractor(**kwargs) -> FormExtractor:
    kwargs.setdefault("sink", FileSink(durable=False))
    kwargs.setdefault("chunk_size", 64)
    return FormExtractor(**kwargs)


# ── boundary_from_content_type ─────────────────────────────────────────────────

class TestBoundary:

    def test_extracts_boundary(self) -> None:
        assert boundary_from_content_type("multipart/form-data; boundary=abc123") == b"abc123"

    def test_quoted_boundary(self) -> None:
        assert boundary_from_content_type('multipart/form-data; boundary="a b"') == b"a b"

    def test_missing_header_raises(self) -> None:
        with pytest.raises(ParseError, match="content-type"):
            boundary_from_content_type(None)

    def test_non_multipart_raises(self) -> None:
        with pytest.raises(ParseError, match="expected multipart/form-data"):
            boundary_from_content_type("application/json")

    def test_missing_boundary_raises(self) -> None:
        with pytest.raises(ParseError, match="boundary"):
            boundary_from_content_type("multipart/form-data")


# ── extract ────────────────────────────────────────────────────────────────────

class TestExtract:

    @pytest.mark.asyncio
    async def test_fields_only(self, tmp_path, quote_fields, multipart_body, multipart_content_type) -> None:
        staging = StagingArea(tmp_path)

        form = await _extractor().extract(multipart_body(quote_fields), multipart_content_type, staging)

        assert form.fields == quote_fields
        assert form.files == []
        assert staging.paths == []

    @pytest.mark.asyncio
    async def test_files_are_staged_in_arrival_order(
        self, tmp_path, quote_fields, multipart_body, multipart_content_type
    ) -> None:
        big = bytes(range(256)) * 20   # spans many parser chunks
        body = multipart_body(quote_fields, [
            ("files", "drawing.pdf", "application/pdf", big),
            ("files", "notes.txt", "text/plain", b"hello"),
        ])
        staging = StagingArea(tmp_path)

        form = await _extractor().extract(body, multipart_content_type, staging)

        assert [f.filename for f in form.files] == ["drawing.pdf", "notes.txt"]
        assert form.files[0].path.read_bytes() == big
        assert form.files[0].size == len(big)
        assert form.files[0].content_type == "application/pdf"
        assert form.files[1].path.read_bytes() == b"hello"
        assert form.files[1].field_name == "files"
        assert staging.paths == [f.path for f in form.files]

    @pytest.mark.asyncio
    async def test_last_duplicate_field_wins(self, tmp_path, multipart_content_type) -> None:
        boundary = multipart_content_type.split("boundary=")[1]
        body = (
            f"--{boundary}\r\nContent-Disposition: form-data; name=\"qty\"\r\n\r\n1\r\n"
            f"--{boundary}\r\nContent-Disposition: form-data; name=\"qty\"\r\n\r\n2\r\n"
            f"--{boundary}--\r\n"
        ).encode()

        form = await _extractor().extract(body, multipart_content_type, StagingArea(tmp_path))

        assert form.fields == {"qty": "2"}

    @pytest.mark.asyncio
    async def test_utf8_field_values(self, tmp_path, multipart_body, multipart_content_type) -> None:
        form = await _extractor().extract(
            multipart_body({"company": "Société Générale"}), multipart_content_type, StagingArea(tmp_path)
        )
        assert form.fields["company"] == "Société Générale"

    @pytest.mark.asyncio
    async def test_empty_file_input_is_skipped(self, tmp_path, multipart_body, multipart_content_type) -> None:
        body = multipart_body({"company": "Acme"}, [("files", "", "application/octet-stream", b"")])
        staging = StagingArea(tmp_path)

        form = await _extractor().extract(body, multipart_content_type, staging)

        assert form.files == []
        assert staging.paths == []

    @pytest.mark.asyncio
    async def test_filename_directories_are_not_used_in_path(
        self, tmp_path, multipart_body, multipart_content_type
    ) -> None:
        body = multipart_body({}, [("files", "../../etc/passwd", None, b"x")])
        staging = StagingArea(tmp_path)

        form = await _extractor().extract(body, multipart_content_type, staging)

        assert form.files[0].path.parent == tmp_path
        assert form.files[0].filename == "../../etc/passwd"


# ── Failure modes ──────────────────────────────────────────────────────────────

class TestExtractErrors:

    @pytest.mark.asyncio
    async def test_empty_body_fails_before_parsing(self, tmp_path, multipart_content_type) -> None:
        with patch.object(extractor_module, "MultipartParser") as parser_cls:
            with pytest.raises(ParseError, match="empty body"):
                await _extractor().extract(b"", multipart_content_type, StagingArea(tmp_path))
        parser_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_garbage_body(self, tmp_path, multipart_content_type) -> None:
        with pytest.raises(ParseError, match="malformed"):
            await _extractor().extract(b"this is not multipart", multipart_content_type, StagingArea(tmp_path))

    @pytest.mark.asyncio
    async def test_truncated_body(self, tmp_path, quote_fields, multipart_body, multipart_content_type) -> None:
        body = multipart_body(quote_fields, [("files", "a.pdf", None, b"abc")], close=False)
        staging = StagingArea(tmp_path)

        with pytest.raises(ParseError, match="closing boundary"):
            await _extractor().extract(body, multipart_content_type, staging)

        # The partially received file was registered and can be cleaned.
        assert len(staging.paths) == 1
        await staging.cleanup()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_sink_failure_becomes_staging_error(self, multipart_body, multipart_content_type, tmp_path) -> None:
        body = multipart_body({}, [("files", "a.pdf", None, b"abc")])

        with pytest.raises(StagingError, match="failed to stage 'a.pdf'"):
            await _extractor(sink=_FailingSink()).extract(body, multipart_content_type, StagingArea(tmp_path))

    @pytest.mark.asyncio
    async def test_unwritable_upload_dir_becomes_staging_error(
        self, multipart_body, multipart_content_type, tmp_path
    ) -> None:
        blocker = tmp_path / "notadir"
        blocker.write_bytes(b"")
        body = multipart_body({"company": "Acme"}, [("files", "a.pdf", None, b"abc")])

        with pytest.raises(StagingError, match="could not reserve staging space"):
            await _extractor().extract(body, multipart_content_type, StagingArea(blocker / "sub"))

    @pytest.mark.asyncio
    async def test_client_errors_are_not_staging_errors(self, multipart_content_type, tmp_path) -> None:
        with pytest.raises(ParseError) as info:
            await _extractor().extract(b"not multipart at all", multipart_content_type, StagingArea(tmp_path))

        assert not isinstance(info.value, StagingError)

    @pytest.mark.asyncio
    async def test_cancellation_cancels_pending_sinks(self, tmp_path, multipart_body, multipart_content_type) -> None:
        class _HangingSink(FileSink):
            cancelled = False

            async def write(self, path, chunks):
                try:
                    await asyncio.sleep(3600)
                except asyncio.CancelledError:
                    _HangingSink.cancelled = True
                    raise

        body = multipart_body({}, [("files", "a.pdf", None, b"abc")])

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                _extractor(sink=_HangingSink()).extract(body, multipart_content_type, StagingArea(tmp_path)),
                timeout=0.1,
            )
        assert _HangingSink.cancelled


# ── Concurrency ────────────────────────────────────────────────────────────────

class TestExtractConcurrency:

    @pytest.mark.asyncio
    async def test_slow_part_does_not_block_next_part(
        self, tmp_path, multipart_body, multipart_content_type
    ) -> None:
        """The first write only completes once the second has begun; serial handling would hang."""
        body = multipart_body({}, [
            ("files", "a.bin", None, b"a" * 500),
            ("files", "b.bin", None, b"b" * 500),
        ])

        form = await asyncio.wait_for(
            _extractor(sink=_GatedSink()).extract(body, multipart_content_type, StagingArea(tmp_path)),
            timeout=2,
        )

        assert [f.size for f in form.files] == [500, 500]

    @pytest.mark.asyncio
    async def test_returns_only_after_every_sink_finished(
        self, tmp_path, multipart_body, multipart_content_type
    ) -> None:
        payloads = [b"x" * 300, b"y" * 700]
        body = multipart_body({}, [
            ("files", "x.bin", None, payloads[0]),
            ("files", "y.bin", None, payloads[1]),
        ])

        form = await _extractor(sink=_SlowSink(durable=False)).extract(
            body, multipart_content_type, StagingArea(tmp_path)
        )

        for staged, payload in zip(form.files, payloads):
            assert staged.size == len(payload)
            assert Path(staged.path).read_bytes() == payload

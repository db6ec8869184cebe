"""
app/multipart/file_sink.py

Scratch storage for uploaded file parts.

  StagingArea — per-request registry of staged paths. A path is recorded
                the moment it is allocated, before any byte is written,
                so a cancelled or failed write is still cleaned up.
  FileSink    — drains one part's byte queue into one path and returns
                only after the data has been fsync'ed.
"""

from __future__ import annotations

import asyncio
import os
import re
import time
from pathlib import Path
from typing import List, Optional, Union
from uuid import uuid4

import aiofiles
import aiofiles.os

from app.core.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w\-.]")
_MAX_NAME_LENGTH = 120


def safe_filename(filename: str) -> str:
    """
    Reduce a client-supplied filename to something safe to embed in a path.

    Directory components (including Windows-style ones) are dropped and
    anything outside ``[A-Za-z0-9_.-]`` becomes ``_``.
    """
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
    return cleaned[-_MAX_NAME_LENGTH:] or "upload"


async def delete_staged(path: Union[str, Path]) -> bool:
    """
    Remove a staged file.

    Returns True when a file was removed and False when it was already
    absent. Any other OSError propagates.
    """
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        return False
    return True


class StagingArea:
    """Allocates collision-resistant scratch paths for one request and deletes them afterwards."""

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root)
        self._paths: List[Path] = []

    @property
    def paths(self) -> List[Path]:
        """Paths allocated and not yet cleaned up."""
        return list(self._paths)

    def allocate(self, filename: str) -> Path:
        """
        Reserve a unique path for ``filename`` (``<ns timestamp>-<hex>-<name>``).

        The file is created empty and exclusively here; sinks only ever open
        it for writing without O_CREAT, so a write that lands after cleanup
        cannot bring it back.
        """
        self._root.mkdir(parents=True, exist_ok=True)
        path = self._root / f"{time.time_ns()}-{uuid4().hex[:8]}-{safe_filename(filename)}"
        path.touch(exist_ok=False)
        self._paths.append(path)
        return path

    async def cleanup(self) -> int:
        """
        Delete every allocated path.

        Already-absent files count as cleaned. A path whose deletion fails
        for another reason is logged and kept so a later call can retry it.

        Returns:
            Number of files actually removed from disk.
        """
        removed = 0
        remaining: List[Path] = []

        for path in self._paths:
            try:
                if await delete_staged(path):
                    removed += 1
            except OSError as exc:
                logger.error("Could not delete staged file '%s': %s", path, exc)
                remaining.append(path)

        self._paths = remaining
        return removed


class FileSink:
    """
    Writes a stream of byte chunks to a single file.

    The producer puts ``bytes`` on the queue and a final ``None`` once the
    part has ended. ``write`` returns only after that sentinel has been
    consumed and the file flushed and fsync'ed, so the caller's completion
    signal (the task finishing) never precedes the data reaching the
    filesystem.

    ``path`` must already exist (see StagingArea.allocate).
    """

    def __init__(self, durable: bool = True) -> None:
        self._durable = durable

    async def write(self, path: Path, chunks: "asyncio.Queue[Optional[bytes]]") -> int:
        written = 0
        async with aiofiles.open(path, "r+b") as out:
            while True:
                chunk = await chunks.get()
                if chunk is None:
                    break
                await out.write(chunk)
                written += len(chunk)

            await out.flush()
            if self._durable:
                await asyncio.to_thread(os.fsync, out.fileno())

        logger.debug("Staged %d byte(s) to '%s'.", written, path)
        return written

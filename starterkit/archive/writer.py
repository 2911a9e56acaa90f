"""Streaming ZIP writer.

``zipfile`` writes into a small in-memory spool that is flushed to the sink
whenever it reaches ``chunk_size`` bytes.  The spool has no ``seek()``, so
``zipfile`` emits data descriptors after each entry instead of rewinding to
patch local headers, and nothing already handed to the sink is revisited.
Peak memory is therefore about one chunk of input plus one chunk of
compressed output, independent of the archive's total size.
"""

from __future__ import annotations

import asyncio
import logging
import stat
import time
import zipfile
from pathlib import Path
from typing import Optional, Union

from starterkit.errors import ArchiveStreamError

from .sinks import ByteSink

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
DEFAULT_DIR_MODE = 0o755


class _Spool:
    """Append-only buffer that reports its absolute offset but cannot seek."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._offset = 0

    def write(self, data: bytes) -> int:
        self._buffer += data
        self._offset += len(data)
        return len(data)

    def tell(self) -> int:
        return self._offset

    def flush(self) -> None:
        pass

    def __bool__(self) -> bool:
        # zipfile treats a falsy fp as a closed archive.
        return True

    @property
    def size(self) -> int:
        return len(self._buffer)

    def take(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


class StreamingZipWriter:
    """Writes ZIP entries to a ``ByteSink`` incrementally.

    Args:
        sink: Destination; each ``write`` is awaited before more data is
            produced.
        compression_level: zlib level (0-9) for deflated entries.
        chunk_size: Bytes read from disk per step and spool size that
            triggers a flush to the sink.
        date_time: Timestamp for entries without a source file; defaults to
            the current local time.
    """

    def __init__(
        self,
        sink: ByteSink,
        compression_level: int = 9,
        chunk_size: int = 64 * 1024,
        date_time: Optional[tuple[int, int, int, int, int, int]] = None,
    ) -> None:
        self.sink = sink
        self.compression_level = compression_level
        self.chunk_size = chunk_size
        self.date_time = date_time or time.localtime()[:6]
        self.entries = 0
        self.bytes_written = 0
        self._spool = _Spool()
        self._zip = zipfile.ZipFile(
            self._spool,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
        )
        self._finished = False

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def add_directory(self, arcname: str) -> None:
        """Add an explicit directory entry (``arcname`` gets a trailing ``/``)."""
        if not arcname.endswith("/"):
            arcname += "/"
        zinfo = zipfile.ZipInfo(arcname, date_time=self.date_time)
        zinfo.external_attr = ((stat.S_IFDIR | DEFAULT_DIR_MODE) << 16) | 0x10
        zinfo.file_size = 0
        zinfo.compress_size = 0
        zinfo.CRC = 0
        self._zip.mkdir(zinfo)
        await self._flush()

    async def add_bytes(
        self, arcname: str, data: Union[bytes, str], mode: int = DEFAULT_FILE_MODE
    ) -> None:
        """Add an in-memory file."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        zinfo = self._file_info(arcname)
        zinfo.external_attr = (stat.S_IFREG | mode) << 16
        zinfo.file_size = len(data)

        with self._zip.open(zinfo, "w") as entry:
            for start in range(0, len(data), self.chunk_size):
                entry.write(data[start:start + self.chunk_size])
                await self._flush()
        self.entries += 1
        await self._flush()

    async def add_file(self, arcname: str, path: Path) -> None:
        """Add a file from disk, reading it in ``chunk_size`` pieces.

        The file's permission bits and modification time are preserved.

        Raises:
            ArchiveStreamError: If the file cannot be read.
        """
        try:
            st = await asyncio.to_thread(path.stat)
            handle = await asyncio.to_thread(open, path, "rb")
        except OSError as exc:
            raise ArchiveStreamError(f"Cannot read {path} for {arcname}: {exc}") from exc

        zinfo = self._file_info(arcname, mtime=st.st_mtime)
        zinfo.external_attr = (stat.S_IFREG | stat.S_IMODE(st.st_mode)) << 16
        zinfo.file_size = st.st_size

        try:
            with self._zip.open(zinfo, "w") as entry:
                while True:
                    try:
                        chunk = await asyncio.to_thread(handle.read, self.chunk_size)
                    except OSError as exc:
                        raise ArchiveStreamError(
                            f"Cannot read {path} for {arcname}: {exc}"
                        ) from exc
                    if not chunk:
                        break
                    entry.write(chunk)
                    await self._flush()
        finally:
            handle.close()
        self.entries += 1
        await self._flush()

    async def finish(self) -> int:
        """Write the central directory, flush everything and close the sink.

        Returns:
            Total bytes delivered to the sink.
        """
        if self._finished:
            return self.bytes_written
        self._zip.close()
        self._finished = True
        await self._flush(force=True)
        try:
            await self.sink.close()
        except OSError as exc:
            raise ArchiveStreamError(f"Failed to close archive sink: {exc}") from exc
        logger.debug("Archive complete: %d entries, %d bytes", self.entries, self.bytes_written)
        return self.bytes_written

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _file_info(self, arcname: str, mtime: Optional[float] = None) -> zipfile.ZipInfo:
        date_time = self.date_time if mtime is None else time.localtime(mtime)[:6]
        if date_time[0] < 1980:
            date_time = (1980, 1, 1, 0, 0, 0)
        zinfo = zipfile.ZipInfo(arcname, date_time=date_time)
        zinfo.compress_type = zipfile.ZIP_DEFLATED
        # Read by ZipFile.open(); public as compress_level from Python 3.13.
        zinfo._compresslevel = self.compression_level
        return zinfo

    async def _flush(self, force: bool = False) -> None:
        if not self._spool.size or (not force and self._spool.size < self.chunk_size):
            return
        data = self._spool.take()
        try:
            await self.sink.write(data)
        except OSError as exc:
            raise ArchiveStreamError(f"Failed to write archive data: {exc}") from exc
        self.bytes_written += len(data)

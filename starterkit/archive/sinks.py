"""Output sinks for the streaming archive writer.

A sink is anything with three coroutines: ``write(data)`` which returns
once the sink is ready for more (this is the backpressure signal),
``close()`` after the last byte, and ``abort(exc)`` when generation fails
and whatever was written must be discarded.
"""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Optional, Protocol, Union, runtime_checkable

from starterkit.errors import ArchiveStreamError, SinkClosedError

logger = logging.getLogger(__name__)


@runtime_checkable
class ByteSink(Protocol):
    """Writable byte stream consumed by ``StreamingZipWriter``."""

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...

    async def abort(self, exc: BaseException) -> None: ...


# ---------------------------------------------------------------------------
# asyncio streams
# ---------------------------------------------------------------------------


class StreamWriterSink:
    """Adapts an ``asyncio.StreamWriter`` (socket, pipe) to ``ByteSink``.

    Each write awaits ``drain()``, which blocks while the transport's write
    buffer is above its high-water mark.
    """

    def __init__(self, writer: asyncio.StreamWriter, close_writer: bool = True) -> None:
        self.writer = writer
        self.close_writer = close_writer

    async def write(self, data: bytes) -> None:
        if self.writer.is_closing():
            raise SinkClosedError("stream writer is closed")
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        if self.close_writer:
            self.writer.close()
            await self.writer.wait_closed()

    async def abort(self, exc: BaseException) -> None:
        logger.debug("Aborting stream writer: %s", exc)
        if self.close_writer:
            self.writer.transport.abort()


# ---------------------------------------------------------------------------
# Bounded queue (HTTP streaming responses)
# ---------------------------------------------------------------------------

_EOF = object()


class QueueSink:
    """Bounded hand-off between the archive producer and an async consumer.

    ``write`` blocks once *maxsize* chunks are waiting, so the producer can
    never run more than *maxsize* chunks ahead of the consumer.  Iterate the
    sink to receive chunks; iteration raises ``ArchiveStreamError`` if the
    producer aborts.  A consumer that stops early calls ``cancel()`` so the
    producer's next write fails instead of blocking forever.
    """

    def __init__(self, maxsize: int = 8) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._error: Optional[BaseException] = None
        self._finished = False
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def write(self, data: bytes) -> None:
        if self._cancelled:
            raise SinkClosedError("consumer stopped reading the archive")
        if self._finished:
            raise SinkClosedError("write after close")
        await self._queue.put(bytes(data))
        if self._cancelled:
            raise SinkClosedError("consumer stopped reading the archive")

    async def close(self) -> None:
        if self._finished:
            return
        self._finished = True
        if not self._cancelled:
            await self._queue.put(_EOF)

    async def abort(self, exc: BaseException) -> None:
        if self._finished:
            return
        self._error = exc
        self._finished = True
        if not self._cancelled:
            await self._queue.put(_EOF)

    def cancel(self) -> None:
        """Consumer side: stop accepting data and unblock a waiting producer."""
        self._cancelled = True
        while not self._queue.empty():
            self._queue.get_nowait()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        while True:
            item = await self._queue.get()
            if item is _EOF:
                if self._error is not None:
                    raise ArchiveStreamError(
                        f"Archive generation aborted: {self._error}"
                    ) from self._error
                return
            yield item


# ---------------------------------------------------------------------------
# Files and memory
# ---------------------------------------------------------------------------


class FileSink:
    """Writes the archive to *path*, removing the partial file on abort.

    The file is only created on the first write, so a generation that fails
    before streaming leaves nothing behind.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._handle: Optional[BinaryIO] = None

    async def write(self, data: bytes) -> None:
        if self._handle is None:
            await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
            self._handle = await asyncio.to_thread(open, self.path, "wb")
        await asyncio.to_thread(self._handle.write, data)

    async def close(self) -> None:
        if self._handle is None:
            # Empty archives still produce a file.
            self._handle = await asyncio.to_thread(open, self.path, "wb")
        await asyncio.to_thread(self._handle.close)

    async def abort(self, exc: BaseException) -> None:
        if self._handle is None:
            return
        await asyncio.to_thread(self._handle.close)
        self._handle = None
        await asyncio.to_thread(self.path.unlink, True)
        logger.debug("Removed partial archive %s after: %s", self.path, exc)


class BufferSink:
    """Collects the archive in memory.  Intended for tests and small archives."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self.writes = 0
        self.closed = False
        self.error: Optional[BaseException] = None

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise SinkClosedError("write after close")
        self._buffer.write(data)
        self.writes += 1

    async def close(self) -> None:
        self.closed = True

    async def abort(self, exc: BaseException) -> None:
        self.error = exc
        self.closed = True

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()

"""Buffered write sink committed by a single remote put."""

from __future__ import annotations

import enum
import io
import threading
from typing import Callable, Iterable


class SinkState(str, enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    ABORTED = "aborted"


class PendingWrite:
    """File-like sink that buffers everything in memory until :meth:`close`.

    ``close()`` hands the whole buffer to ``commit`` exactly once; any later
    ``close()`` is a no-op, including one racing from another thread. A sink
    that is never closed (or is aborted) never calls ``commit``. Leaving a
    ``with`` block because of an exception aborts the sink instead of
    committing a partial payload.
    """

    def __init__(self, commit: Callable[[bytes], None], *, name: str = "") -> None:
        self._commit = commit
        self._buffer: io.BytesIO | None = io.BytesIO()
        self._state = SinkState.OPEN
        self._lock = threading.Lock()
        self.name = name

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not SinkState.OPEN

    def writable(self) -> bool:
        return True

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def write(self, data: bytes | bytearray | memoryview) -> int:
        with self._lock:
            if self._state is not SinkState.OPEN or self._buffer is None:
                raise ValueError(f"I/O operation on closed sink: {self.name}")
            return self._buffer.write(data)

    def writelines(self, lines: Iterable[bytes]) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        # Nothing leaves the process before close().
        if self.closed:
            raise ValueError(f"I/O operation on closed sink: {self.name}")

    def tell(self) -> int:
        with self._lock:
            if self._buffer is None:
                raise ValueError(f"I/O operation on closed sink: {self.name}")
            return self._buffer.tell()

    def close(self) -> None:
        with self._lock:
            if self._state is not SinkState.OPEN:
                return
            self._state = SinkState.CLOSING
            buffer, self._buffer = self._buffer, None

        payload = buffer.getvalue() if buffer is not None else b""
        if buffer is not None:
            buffer.close()
        try:
            self._commit(payload)
        finally:
            self._state = SinkState.CLOSED

    def abort(self) -> None:
        """Discard the buffered content without committing it."""
        with self._lock:
            if self._state is not SinkState.OPEN:
                return
            self._state = SinkState.ABORTED
            buffer, self._buffer = self._buffer, None
        if buffer is not None:
            buffer.close()

    def __enter__(self) -> "PendingWrite":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def __repr__(self) -> str:
        return f"<PendingWrite name={self.name!r} state={self._state.value}>"

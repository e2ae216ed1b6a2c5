"""Coroutine-friendly wrapper around a blocking :class:`ObjectIO`.

Every call that touches the network runs in the worker thread pool so the
event loop is never blocked.
"""

from __future__ import annotations

from typing import BinaryIO, Iterable

from starlette.concurrency import run_in_threadpool

from catalog_files.infra.storage.client import LocationLike, ObjectIO, WritableSink


class AsyncObjectIO:
    def __init__(self, object_io: ObjectIO) -> None:
        self._object_io = object_io

    @property
    def delegate(self) -> ObjectIO:
        return self._object_io

    async def ping(self, location: LocationLike) -> None:
        await run_in_threadpool(self._object_io.ping, location)

    async def read_object(self, location: LocationLike) -> BinaryIO:
        return await run_in_threadpool(self._object_io.read_object, location)

    async def read_bytes(self, location: LocationLike) -> bytes:
        """Read the whole object and release the stream."""

        def _read() -> bytes:
            stream = self._object_io.read_object(location)
            try:
                return stream.read()
            finally:
                stream.close()

        return await run_in_threadpool(_read)

    def write_object(self, location: LocationLike) -> WritableSink:
        # Validation only; no I/O happens until the sink is closed.
        return self._object_io.write_object(location)

    async def close_sink(self, sink: WritableSink) -> None:
        await run_in_threadpool(sink.close)

    async def write_bytes(self, location: LocationLike, payload: bytes) -> None:
        sink = self.write_object(location)
        sink.write(payload)
        await self.close_sink(sink)

    async def delete_objects(self, locations: Iterable[LocationLike]) -> None:
        # Materialize before leaving the loop thread.
        await run_in_threadpool(self._object_io.delete_objects, list(locations))

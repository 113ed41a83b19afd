"""
Single-producer, single-consumer channel carrying import progress snapshots.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator

from app.domain.member_import import ImportProgress
from app.services.errors import ChannelClosedError

_CLOSED = object()


class ProgressChannel:
    """
    Ordered stream of ``ImportProgress`` snapshots.

    The producer calls ``put`` for each snapshot and ``close`` exactly when it
    is done; closure is the only completion signal. Iterating yields snapshots
    in emission order and stops at closure. A bounded ``maxsize`` makes the
    producer wait for a slow consumer.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._drained = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, snapshot: ImportProgress) -> None:
        if self._closed.is_set():
            raise ChannelClosedError("Progress channel is closed.")
        self._queue.put(snapshot)

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[ImportProgress]:
        if self._drained.is_set():
            return
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._drained.set()
                return
            yield item  # type: ignore[misc]

    def drain(self) -> ImportProgress | None:
        """Consume every remaining snapshot and return the last one."""

        last: ImportProgress | None = None
        for snapshot in self:
            last = snapshot
        return last


def closed_channel() -> ProgressChannel:
    channel = ProgressChannel()
    channel.close()
    return channel

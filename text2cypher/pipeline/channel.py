from __future__ import annotations

import queue
import threading
from typing import Callable, Iterator, Optional

from .config import DEFAULT_CHANNEL_CAPACITY
from .events import ProgressEvent

_POLL_SECONDS = 0.05
_END = object()


class ChannelClosed(Exception):
    """Raised to the producer once the consumer has stopped listening."""


class ProgressChannel:
    """
    Bounded single-producer/single-consumer pipe for progress events.

    `send` blocks while the buffer is full and raises ChannelClosed as soon as
    the consumer closes its end, so an abandoned request stops doing work.
    """

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max(1, capacity))
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def _put(self, item: object) -> None:
        while True:
            if self._closed.is_set():
                raise ChannelClosed()
            try:
                self._queue.put(item, timeout=_POLL_SECONDS)
            except queue.Full:
                continue
            # close() may have drained the slot this put was waiting for.
            if self._closed.is_set():
                raise ChannelClosed()
            return

    def send(self, event: ProgressEvent) -> None:
        self._put(event)

    def finish(self) -> None:
        """Producer side: mark the end of the stream."""
        try:
            self._put(_END)
        except ChannelClosed:
            pass

    def close(self) -> None:
        """Consumer side: stop listening, drop anything buffered and wake a blocked receive."""
        self._closed.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        try:
            self._queue.put_nowait(_END)
        except queue.Full:
            # A racing put refilled the slot; receive() still wakes and sees the flag.
            pass

    def receive(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """Next event, or None once the producer has finished."""
        if self._closed.is_set():
            return None
        item = self._queue.get(timeout=timeout)
        if item is _END or self._closed.is_set():
            return None
        return item  # type: ignore[return-value]


class ProgressStream:
    """Iterable consumer handle returned by the streaming pipeline entry point."""

    def __init__(self, channel: ProgressChannel, worker: Optional[threading.Thread] = None) -> None:
        self.channel = channel
        self.worker = worker

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            event = self.channel.receive()
            if event is None:
                return
            yield event

    def close(self) -> None:
        self.channel.close()

    def join(self, timeout: Optional[float] = None) -> None:
        if self.worker is not None:
            self.worker.join(timeout)

    def __enter__(self) -> "ProgressStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def start_producer(
    work: Callable[[Callable[[ProgressEvent], None]], None],
    capacity: int = DEFAULT_CHANNEL_CAPACITY,
    name: str = "text2cypher-producer",
) -> ProgressStream:
    """Run `work(emit)` on a daemon thread and hand back the consuming stream."""
    channel = ProgressChannel(capacity)

    def _run() -> None:
        try:
            work(channel.send)
        except ChannelClosed:
            pass
        finally:
            channel.finish()

    worker = threading.Thread(target=_run, name=name, daemon=True)
    stream = ProgressStream(channel, worker)
    worker.start()
    return stream


__all__ = ["ChannelClosed", "ProgressChannel", "ProgressStream", "start_producer"]

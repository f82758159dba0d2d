from __future__ import annotations

from typing import Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class SnapshotStream(Generic[T]):
    """Single-writer, many-reader broadcast of the latest snapshot.

    New subscribers get the current snapshot right away, like a behaviour
    subject. A subscriber that raises is logged and the others still run.
    """

    def __init__(self, initial: T | None = None):
        self._subscribers: list[Callable[[T], None]] = []
        self._latest: T | None = initial

    @property
    def latest(self) -> T | None:
        return self._latest

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        if self._latest is not None:
            self._deliver(callback, self._latest)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        self._latest = snapshot
        for callback in list(self._subscribers):
            self._deliver(callback, snapshot)

    def _deliver(self, callback: Callable[[T], None], snapshot: T) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception(f"Snapshot subscriber {callback!r} failed; continuing without it for this frame")

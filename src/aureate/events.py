import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Union


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    percent: int


@dataclass(frozen=True)
class StageEvent:
    stage: str
    status: StageStatus
    error: Optional[str] = None
    warning: Optional[str] = None


Event = Union[ProgressEvent, StageEvent]

_CLOSED = object()


class EventStream:
    """
    Carries progress and stage events from the installer to whoever displays them.
    Iterating blocks until the next event and ends once the stream is closed.
    Every emitted event is also kept in ``history``.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self.history: list[Event] = []

    def emit(self, event: Event) -> None:
        with self._lock:
            if self._closed:
                return
            self.history.append(event)
        self._queue.put(event)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self._queue.get()
            if event is _CLOSED:
                # Let other readers see the end too
                self._queue.put(_CLOSED)
                return
            yield event

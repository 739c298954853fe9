"""Transfer and Approval notifications."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Union


@dataclass(frozen=True)
class Transfer:
    """Value moved from *sender* to *receiver*.

    Mints carry the null address as *sender*, burns carry it as *receiver*.
    """

    sender: str
    receiver: str
    value: int


@dataclass(frozen=True)
class Approval:
    owner: str
    spender: str
    value: int


Event = Union[Transfer, Approval]


class EventLog:
    """Append-only record of emitted events with optional subscribers.

    Events emitted inside :meth:`transaction` are held back and only logged
    (and delivered to subscribers) when the outermost block exits cleanly.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._subscribers: list[Callable[[Event], None]] = []
        self._pending: list[Event] | None = None

    def subscribe(self, callback: Callable[[Event], None]) -> None:
        self._subscribers.append(callback)

    def emit(self, event: Event) -> None:
        if self._pending is not None:
            self._pending.append(event)
        else:
            self._publish(event)

    @contextmanager
    def transaction(self) -> Iterator[EventLog]:
        """Hold events until the block exits; drop them if it raises.

        A subscriber that raises while the held events are published also
        aborts the block, and the log is cut back to where it stood on entry.
        """
        if self._pending is not None:
            # nested: join the enclosing block
            mark = len(self._pending)
            try:
                yield self
            except BaseException:
                del self._pending[mark:]
                raise
            return

        mark = len(self._events)
        self._pending = []
        try:
            yield self
            held, self._pending = self._pending, None
            for event in held:
                self._publish(event)
        except BaseException:
            del self._events[mark:]
            raise
        finally:
            self._pending = None

    def of_type(self, kind: type) -> list[Event]:
        return [e for e in self._events if isinstance(e, kind)]

    def _publish(self, event: Event) -> None:
        self._events.append(event)
        for callback in self._subscribers:
            callback(event)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> Event:
        return self._events[index]

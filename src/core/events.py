"""
Observable log events.

The exchange emits `Log(category, value)` records the way a contract emits
events: they are append-only and become visible only when the emitting call
commits (the ledger journal truncates the log on rollback).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional


LIQUIDITY = "Liquidity"
SWAP = "Swap"
TRANSFER = "Transfer"
APPROVAL = "Approval"
AGENT = "Agent"


@dataclass(frozen=True)
class LogEvent:
    category: str
    value: Any
    emitter: str = ""


class EventLog:
    """Append-only event list with truncate-on-rollback support."""

    def __init__(self) -> None:
        self._events: List[LogEvent] = []

    def emit(self, category: str, value: Any, *, emitter: str = "") -> LogEvent:
        if not isinstance(category, str) or not category:
            raise ValueError("event category must be a non-empty string")
        event = LogEvent(category=category, value=value, emitter=emitter)
        self._events.append(event)
        return event

    def filter(self, category: str) -> List[LogEvent]:
        return [e for e in self._events if e.category == category]

    def last(self, category: Optional[str] = None) -> Optional[LogEvent]:
        for event in reversed(self._events):
            if category is None or event.category == category:
                return event
        return None

    def snapshot(self) -> int:
        return len(self._events)

    def restore(self, mark: int) -> None:
        if mark < 0 or mark > len(self._events):
            raise ValueError(f"invalid event log mark: {mark}")
        del self._events[mark:]

    def __iter__(self) -> Iterator[LogEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

# plant/events.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Tuple


@dataclass
class Event:
    type: str                 # "telemetry" | "order"
    ts: str                   # ISO time
    source: str               # "scheduler"
    data: Dict[str, Any]
    seq: int = 0


class EventBus:
    """
    In-process pub/sub between the scheduler and its readers (recorder,
    report exporter, tests). Each subscriber gets its own bounded queue and
    may ask for a subset of event types. A full queue loses the event for
    that subscriber only; the publisher never waits.
    """

    def __init__(self, max_queue: int = 20000):
        self._subs: List[Tuple[asyncio.Queue, FrozenSet[str]]] = []
        self._seq = 0
        self._max_queue = max_queue
        self._lock = asyncio.Lock()
        self.dropped: int = 0

    async def subscribe(self, *types: str) -> asyncio.Queue:
        """No types means every event."""
        q: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue)
        async with self._lock:
            self._subs.append((q, frozenset(types)))
        return q

    async def unsubscribe(self, q: asyncio.Queue) -> None:
        async with self._lock:
            self._subs = [(sq, t) for sq, t in self._subs if sq is not q]

    async def publish(self, ev: Event) -> None:
        self._seq += 1
        ev.seq = self._seq
        async with self._lock:
            for q, types in self._subs:
                if types and ev.type not in types:
                    continue
                try:
                    q.put_nowait(ev)
                except asyncio.QueueFull:
                    self.dropped += 1

from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator, List, Optional

from .model import DoneEvent, InstallerEvent, LogEvent

logger = logging.getLogger(__name__)


class EventChannel:
    """One-way, unbounded event queue from the installer to a UI.

    Sends never block. Events are dropped only once the receiver has been
    closed; there is no replay for a late consumer.
    """

    def __init__(self) -> None:
        self._q: "queue.SimpleQueue[InstallerEvent]" = queue.SimpleQueue()
        self._receiver_closed = threading.Event()
        self._producer_closed = threading.Event()
        self._lock = threading.Lock()
        self._dropped = 0

    def sender(self) -> "EventSender":
        return EventSender(self)

    def receiver(self) -> "EventReceiver":
        return EventReceiver(self)

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    def _put(self, event: InstallerEvent) -> bool:
        with self._lock:
            if self._receiver_closed.is_set():
                self._dropped += 1
                return False
            self._q.put_nowait(event)
            return True

    def _close_receiver(self) -> None:
        with self._lock:
            self._receiver_closed.set()


class EventSender:
    """Producer handle. Safe to share between the pipeline and helper threads."""

    def __init__(self, channel: EventChannel) -> None:
        self._channel = channel

    def send(self, event: InstallerEvent) -> bool:
        return self._channel._put(event)

    def log(self, text: str) -> bool:
        return self.send(LogEvent(text))

    def close(self) -> None:
        self._channel._producer_closed.set()

    @property
    def closed(self) -> bool:
        return self._channel._producer_closed.is_set()


class EventReceiver:
    def __init__(self, channel: EventChannel) -> None:
        self._channel = channel

    def try_recv(self) -> Optional[InstallerEvent]:
        try:
            return self._channel._q.get_nowait()
        except queue.Empty:
            return None

    def recv(self, timeout: Optional[float] = None) -> Optional[InstallerEvent]:
        try:
            return self._channel._q.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[InstallerEvent]:
        """Return every event queued right now without waiting."""

        events: List[InstallerEvent] = []
        while True:
            evt = self.try_recv()
            if evt is None:
                return events
            events.append(evt)

    def __iter__(self) -> Iterator[InstallerEvent]:
        # Ends after DoneEvent, or once the producer closed and the queue is empty.
        while True:
            evt = self.recv(timeout=0.1)
            if evt is None:
                if self._channel._producer_closed.is_set() and self._channel._q.empty():
                    return
                continue
            yield evt
            if isinstance(evt, DoneEvent):
                return

    def close(self) -> None:
        """Detach the consumer; later sends are dropped."""

        self._channel._close_receiver()
        discarded = len(self.drain())
        if discarded:
            logger.debug("Receiver closed with %s undelivered events", discarded)

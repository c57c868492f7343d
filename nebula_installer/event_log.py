from __future__ import annotations

import logging
from typing import Optional, Sequence

from .model import DoneEvent, InstallerEvent, LogEvent, StepEvent, StepStatus

logger = logging.getLogger(__name__)


def format_event(event: InstallerEvent, step_names: Sequence[str]) -> list[str]:
    """Plain-text lines for one event; progress events produce none."""

    if isinstance(event, LogEvent):
        return [event.text]
    if isinstance(event, StepEvent):
        if 0 <= event.index < len(step_names):
            name = step_names[event.index]
        else:
            name = f"#{event.index}"
        lines = [f"STEP {name}: {event.status.label}"]
        if event.status == StepStatus.FAILED and event.error:
            lines.append(f"ERROR: {event.error}")
        return lines
    if isinstance(event, DoneEvent):
        return [f"DONE: {event.error or 'ok'}"]
    return []


class EventLogWriter:
    """Mirror the event stream into an append-only text log."""

    def __init__(self, path: str, step_names: Sequence[str]) -> None:
        self.path = path
        self.step_names = list(step_names)
        self._failed: Optional[str] = None

    def handle(self, event: InstallerEvent) -> None:
        lines = format_event(event, self.step_names)
        if not lines:
            return
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line + "\n")
        except OSError as e:
            # Report once; the installer keeps going without the mirror.
            if self._failed is None:
                logger.warning("Unable to write installer log %s: %s", self.path, e)
            self._failed = str(e)

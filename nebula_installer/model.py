from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class StepStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in {StepStatus.DONE, StepStatus.SKIPPED, StepStatus.FAILED}

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    StepStatus.PENDING: "PENDING",
    StepStatus.RUNNING: "RUNNING",
    StepStatus.DONE: "OK",
    StepStatus.SKIPPED: "SKIP",
    StepStatus.FAILED: "FAIL",
}

_ALLOWED = {
    StepStatus.PENDING: {StepStatus.RUNNING, StepStatus.SKIPPED},
    StepStatus.RUNNING: {StepStatus.DONE, StepStatus.FAILED},
}


@dataclass
class Step:
    """One pipeline stage as seen by the UI."""

    name: str
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None

    def transition(self, status: StepStatus, error: Optional[str] = None) -> None:
        if status not in _ALLOWED.get(self.status, set()):
            raise ValueError(f"Illegal step transition for {self.name!r}: {self.status.name} -> {status.name}")
        self.status = status
        self.error = error


@dataclass(frozen=True)
class LogEvent:
    text: str


@dataclass(frozen=True)
class ProgressEvent:
    fraction: float


@dataclass(frozen=True)
class StepEvent:
    index: int
    status: StepStatus
    error: Optional[str] = None


@dataclass(frozen=True)
class DoneEvent:
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


InstallerEvent = Union[LogEvent, ProgressEvent, StepEvent, DoneEvent]

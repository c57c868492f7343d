from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..errors import BestEffortExhausted, CleanupWarning, RetryExhausted
from ..events import EventSender

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY_S = 0.25


@dataclass
class FailureReport:
    """Items that still failed after a best-effort retry."""

    items: List[str] = field(default_factory=list)
    header: str = "Failed optional packages:"

    @property
    def ok(self) -> bool:
        return not self.items

    def render(self) -> str:
        return "".join([self.header + "\n", *[f"{i}\n" for i in self.items]])


def _note(sender: Optional[EventSender], level: int, msg: str) -> None:
    logger.log(level, msg)
    if sender is not None:
        sender.log(msg)


def best_effort(
    items: Sequence[str],
    operation: Callable[[List[str]], None],
    *,
    fatal: bool,
    sender: Optional[EventSender] = None,
    description: str = "Optional package",
) -> FailureReport:
    """Run operation on the whole batch, then item by item if the batch fails.

    Items that fail on their own are collected in the returned report. With
    fatal=True the call raises only when every item failed.
    """

    batch = list(items)
    report = FailureReport()
    if not batch:
        return report

    try:
        operation(batch)
        return report
    except Exception as e:
        logger.info("%s batch failed: %s", description, e)

    _note(sender, logging.WARNING, f"{description} batch failed. Retrying individually...")
    for item in batch:
        try:
            operation([item])
        except Exception as e:
            _note(sender, logging.WARNING, f"{description} failed: {item} ({e})")
            report.items.append(item)

    if fatal and len(report.items) == len(batch):
        raise BestEffortExhausted(description, report.items)
    return report


def bounded_retry(
    operation: Callable[[], None],
    *,
    fatal: bool,
    description: str,
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY_S,
    diagnostics: Optional[Callable[[], None]] = None,
    sender: Optional[EventSender] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Retry operation a fixed number of times.

    Diagnostics run after every failed attempt. When attempts run out a
    fatal policy raises RetryExhausted, a non-fatal one logs a warning and
    returns False.
    """

    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            operation()
            return True
        except Exception as e:
            last_error = e
            _note(sender, logging.WARNING, f"{description} failed (attempt {attempt}/{attempts}): {e}")

        if diagnostics is not None:
            try:
                diagnostics()
            except Exception as e:
                logger.info("Diagnostics for %s failed: %s", description, e)

        if attempt < attempts:
            sleep(delay)

    if fatal:
        raise RetryExhausted(description, attempts, last_error)

    warning = CleanupWarning(f"{description} still failing after {attempts} attempts; continuing")
    _note(sender, logging.WARNING, f"Warning: {warning}")
    return False

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .config import InstallConfig
from .errors import StepFailed
from .events import EventSender
from .lib.env import PATHS, Paths
from .lib.runner import CommandRunner
from .model import DoneEvent, ProgressEvent, Step, StepEvent, StepStatus

logger = logging.getLogger(__name__)

STEP_NAMES = (
    "Partitioning Disk",
    "Encrypting Disk",
    "Creating File System",
    "Mounting File System",
    "Configuring Zram Swap",
    "Installing Base System",
    "Generating Fstab",
    "Configuring Base System",
    "Installing Packages",
    "Installing Bootloader",
    "Finalizing",
)


@dataclass(frozen=True)
class InstallCtx:
    config: InstallConfig
    runner: CommandRunner
    paths: Paths = PATHS
    # Values discovered mid-run (e.g. offline repo mounted) for later steps.
    facts: Dict[str, Any] = field(default_factory=dict)

    @property
    def sender(self) -> EventSender:
        return self.runner.sender

    def log(self, text: str) -> None:
        logger.info("%s", text)
        self.sender.log(text)

    def target(self, rel: str) -> Path:
        return self.paths.target(rel)

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    def offline_repo_available(self) -> bool:
        # Probed once; later steps must agree with the base install.
        if "offline_repo_available" not in self.facts:
            self.facts["offline_repo_available"] = Path(self.paths.offline_repo).exists()
        return bool(self.facts["offline_repo_available"])


class InstallStep(Protocol):
    """A single install stage.

    Steps may also define should_skip(ctx) -> bool.
    """

    step_id: str
    name: str

    def run(self, ctx: InstallCtx) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    steps: List[Step]
    error: Optional[StepFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def ran_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.status in {StepStatus.DONE, StepStatus.FAILED}]

    @property
    def skipped_steps(self) -> List[str]:
        return [s.name for s in self.steps if s.status == StepStatus.SKIPPED]


def _describe(e: BaseException) -> str:
    return str(e) or e.__class__.__name__


def _should_skip(step: InstallStep, ctx: InstallCtx) -> bool:
    check = getattr(step, "should_skip", None)
    return bool(check(ctx)) if check is not None else False


def run_pipeline(
    *,
    ctx: InstallCtx,
    steps: Sequence[InstallStep],
    raise_on_failure: bool = True,
) -> PipelineResult:
    """Run steps strictly in order; the first failure aborts the rest.

    Exactly one DoneEvent is sent, after every step event.
    """

    sender = ctx.sender
    total = len(steps)
    records = [Step(name=s.name) for s in steps]
    failure: Optional[StepFailed] = None
    done_error: Optional[str] = None

    try:
        for index, step in enumerate(steps):
            record = records[index]

            try:
                if _should_skip(step, ctx):
                    logger.info("Skipping step %s", step.step_id)
                    record.transition(StepStatus.SKIPPED)
                    sender.send(StepEvent(index, StepStatus.SKIPPED))
                    sender.send(ProgressEvent((index + 1) / total))
                    continue

                logger.info("Running step %s", step.step_id)
                record.transition(StepStatus.RUNNING)
                sender.send(StepEvent(index, StepStatus.RUNNING))
                step.run(ctx)
            except Exception as e:
                logger.exception("Step %s failed", step.step_id)
                msg = _describe(e)
                # A raising skip check fails the step before it ever ran.
                if record.status == StepStatus.PENDING:
                    record.transition(StepStatus.RUNNING)
                    sender.send(StepEvent(index, StepStatus.RUNNING))
                record.transition(StepStatus.FAILED, msg)
                sender.send(StepEvent(index, StepStatus.FAILED, msg))
                failure = StepFailed(index, step.name, e)
                failure.__cause__ = e
                done_error = msg
                break

            record.transition(StepStatus.DONE)
            sender.send(StepEvent(index, StepStatus.DONE))
            sender.send(ProgressEvent((index + 1) / total))
    except BaseException as e:
        done_error = _describe(e)
        raise
    finally:
        sender.send(DoneEvent(done_error))

    result = PipelineResult(steps=records, error=failure)
    if failure is not None:
        logger.error("Installation halted at step %s (%s): %s", failure.index, failure.name, failure)
        if raise_on_failure:
            raise failure
    else:
        logger.info("Installation finished (%s steps)", total)
    return result

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..events import EventSender
from .chroot import chroot_cmd
from .command import (
    HEARTBEAT_INTERVAL_S,
    CommandSpec,
    run_command,
    run_command_capture,
    run_command_status,
)
from .env import PATHS


class CommandRunner:
    """The process runner as seen by step bodies.

    Binds the event sender, the dry-run flag and the target root so steps
    only say what to run.
    """

    def __init__(
        self,
        sender: EventSender,
        *,
        target_root: str = PATHS.target_root,
        dry_run: bool = False,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_S,
    ) -> None:
        self.sender = sender
        self.target_root = target_root
        self.dry_run = dry_run
        self.heartbeat_interval = heartbeat_interval

    def run(
        self,
        argv: Sequence[str],
        *,
        input_text: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        heartbeat: Optional[str] = None,
    ) -> None:
        spec = CommandSpec.of(argv, input_text=input_text, env=env, heartbeat=heartbeat)
        run_command(
            self.sender,
            spec,
            dry_run=self.dry_run,
            heartbeat_interval=self.heartbeat_interval,
        )

    def capture(self, argv: Sequence[str], *, input_text: Optional[str] = None) -> str:
        return run_command_capture(
            self.sender,
            CommandSpec.of(argv, input_text=input_text),
            dry_run=self.dry_run,
        )

    def status(self, argv: Sequence[str]) -> int:
        return run_command_status(argv, dry_run=self.dry_run)

    def chroot(
        self,
        argv: Sequence[str],
        *,
        input_text: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        heartbeat: Optional[str] = None,
    ) -> None:
        chroot_cmd(
            self.sender,
            self.target_root,
            argv,
            input_text=input_text,
            env=env,
            heartbeat=heartbeat,
            dry_run=self.dry_run,
            heartbeat_interval=self.heartbeat_interval,
        )

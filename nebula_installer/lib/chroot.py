from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from ..events import EventSender
from .command import HEARTBEAT_INTERVAL_S, CommandSpec, run_command
from .env import CHROOT_PROGRAM

logger = logging.getLogger(__name__)


def chroot_argv(target_root: str, argv: Sequence[str]) -> list[str]:
    """Prefix argv so it runs inside the target root."""

    return [CHROOT_PROGRAM, target_root, *argv]


def chroot_cmd(
    sender: EventSender,
    target_root: str,
    argv: Sequence[str],
    *,
    input_text: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    heartbeat: Optional[str] = None,
    dry_run: bool = False,
    heartbeat_interval: float = HEARTBEAT_INTERVAL_S,
) -> None:
    """Run a command inside target root."""

    spec = CommandSpec.of(
        chroot_argv(target_root, argv),
        input_text=input_text,
        env=env,
        heartbeat=heartbeat,
    )
    run_command(sender, spec, dry_run=dry_run, heartbeat_interval=heartbeat_interval)

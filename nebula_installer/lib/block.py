from __future__ import annotations

import logging

from ..errors import PreconditionError
from .runner import CommandRunner

logger = logging.getLogger(__name__)


def get_uuid(runner: CommandRunner, dev: str) -> str:
    """Return filesystem UUID for a block device."""

    uuid = runner.capture(["blkid", "-s", "UUID", "-o", "value", dev]).strip()
    if not uuid and not runner.dry_run:
        raise PreconditionError(f"Unable to determine UUID for {dev}")
    return uuid

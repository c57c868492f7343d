from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

from .. import __version__
from ..errors import CommandError
from ..events import EventSender
from .env import MAPPER_DEVICE, MAPPER_NAME, Paths
from .policies import bounded_retry
from .runner import CommandRunner

logger = logging.getLogger(__name__)

MICROCODE_BY_VENDOR = {
    "GenuineIntel": "intel-ucode",
    "AuthenticAMD": "amd-ucode",
}


def write_file(path: Path | str, contents: str, *, dry_run: bool = False) -> None:
    p = Path(path)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")


def append_temp_installer_log(path: str, line: str) -> None:
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        logger.warning("Unable to append to %s: %s", path, e)


def detect_microcode_package(cpuinfo_path: str) -> Optional[str]:
    """Pick the CPU microcode package from the first vendor_id line."""

    text = Path(cpuinfo_path).read_text(encoding="utf-8", errors="replace")
    for line in text.splitlines():
        if line.startswith("vendor_id"):
            _, _, vendor = line.partition(":")
            return MICROCODE_BY_VENDOR.get(vendor.strip())
    return None


def configure_zram(paths: Paths, *, dry_run: bool = False) -> None:
    write_file(
        paths.target("etc/systemd/zram-generator.conf"),
        "[zram0]\nzram-size = ram\n",
        dry_run=dry_run,
    )


def write_os_release(paths: Paths, *, dry_run: bool = False) -> None:
    v = __version__
    write_file(
        paths.target("etc/os-release"),
        (
            "NAME=Nebula\n"
            f'PRETTY_NAME="Nebula {v}"\n'
            "ID=nebula\n"
            "ID_LIKE=arch\n"
            f"VERSION_ID={v}\n"
            f'VERSION="{v}"\n'
        ),
        dry_run=dry_run,
    )


def copy_installer_log(sender: EventSender, paths: Paths, *, dry_run: bool = False) -> None:
    src = Path(paths.tmp_log)
    dest = paths.target(paths.installed_log_rel)
    if dry_run or not src.exists():
        return
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
    except OSError as e:
        sender.log(f"Failed to save installer log: {e}")
        return
    sender.log(f"Saved installer log to {dest}")


def _dump_busy_state(runner: CommandRunner) -> None:
    for argv in (
        ["dmsetup", "info", MAPPER_NAME],
        ["fuser", "-vm", MAPPER_DEVICE],
    ):
        # fuser -v writes its table to stderr, which run() relays line by line.
        try:
            runner.run(argv)
        except Exception as e:
            runner.sender.log(f"{argv[0]}: {e}")


def close_cryptroot(runner: CommandRunner, *, sleep: Callable[[float], None] = time.sleep) -> bool:
    """Release the LUKS mapping during teardown. Never raises."""

    runner.sender.log(f"Closing {MAPPER_NAME}...")
    argv = ["cryptsetup", "close", MAPPER_NAME]

    def attempt() -> None:
        rc = runner.status(argv)
        if rc != 0:
            raise CommandError(" ".join(argv), rc)

    closed = bounded_retry(
        attempt,
        fatal=False,
        description="cryptsetup close",
        diagnostics=lambda: _dump_busy_state(runner),
        sender=runner.sender,
        sleep=sleep,
    )
    if closed:
        runner.sender.log(f"{MAPPER_NAME} closed.")
    return closed

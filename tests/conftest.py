from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from nebula_installer.config import DiskInfo, InstallConfig
from nebula_installer.errors import CommandError
from nebula_installer.events import EventChannel, EventSender
from nebula_installer.lib.chroot import chroot_argv
from nebula_installer.lib.command import CommandSpec
from nebula_installer.lib.env import Paths

DEFAULT_GRUB = 'GRUB_DEFAULT=0\nGRUB_TIMEOUT=5\nGRUB_DISTRIBUTOR="Arch"\nGRUB_CMDLINE_LINUX_DEFAULT="loglevel=3"\nGRUB_CMDLINE_LINUX=""\n'


class FakeRunner:
    """Records every argv instead of running it.

    fail_when(argv) -> True makes that invocation raise CommandError.
    streamed maps a program to the output run() relays as log lines.
    """

    def __init__(
        self,
        sender: EventSender,
        *,
        target_root: str = "/mnt",
        dry_run: bool = False,
        fail_when: Optional[Callable[[List[str]], bool]] = None,
        outputs: Optional[dict] = None,
        streamed: Optional[dict] = None,
    ) -> None:
        self.sender = sender
        self.target_root = target_root
        self.dry_run = dry_run
        self.fail_when = fail_when or (lambda argv: False)
        self.outputs = outputs or {}
        self.streamed = streamed or {}
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []

    def _record(self, argv: Sequence[str], input_text: Optional[str] = None) -> str:
        argv = list(argv)
        cmdline = CommandSpec.of(argv).cmdline
        self.calls.append(argv)
        self.inputs.append(input_text)
        self.sender.log(f"$ {cmdline}")
        if self.fail_when(argv):
            raise CommandError(cmdline, 1)
        return cmdline

    def run(self, argv, *, input_text=None, env=None, heartbeat=None) -> None:
        self._record(argv, input_text)
        for line in self.streamed.get(argv[0], "").splitlines():
            self.sender.log(line)

    def capture(self, argv, *, input_text=None) -> str:
        self._record(argv, input_text)
        return self.outputs.get(argv[0], "")

    def status(self, argv) -> int:
        self.calls.append(list(argv))
        self.inputs.append(None)
        return 1 if self.fail_when(list(argv)) else 0

    def chroot(self, argv, *, input_text=None, env=None, heartbeat=None) -> None:
        self._record(chroot_argv(self.target_root, argv), input_text)

    def programs(self) -> List[str]:
        return [c[0] for c in self.calls]

    def find(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]


@pytest.fixture
def channel() -> EventChannel:
    return EventChannel()


@pytest.fixture
def sender(channel: EventChannel) -> EventSender:
    return channel.sender()


@pytest.fixture
def paths(tmp_path: Path) -> Paths:
    """Paths rooted in a temp dir, with the files a minimal target needs."""

    target = tmp_path / "mnt"
    (target / "usr/share/zoneinfo").mkdir(parents=True)
    (target / "usr/share/zoneinfo/UTC").write_text("", encoding="utf-8")
    (target / "etc/default").mkdir(parents=True)
    (target / "etc/default/grub").write_text(DEFAULT_GRUB, encoding="utf-8")

    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text("processor\t: 0\nvendor_id\t: GenuineIntel\n", encoding="utf-8")

    return Paths(
        target_root=str(target),
        tmp_log=str(tmp_path / "installer.log"),
        offline_repo=str(tmp_path / "offline-repo"),
        offline_pacman_conf=str(tmp_path / "pacman.offline.conf"),
        repo_key=str(tmp_path / "nebula-repo.gpg"),
        host_mirrorlist=str(tmp_path / "host" / "mirrorlist"),
        cpuinfo=str(cpuinfo),
        plymouth_themes=str(tmp_path / "themes"),
        hypr_defaults_script=str(tmp_path / "hypr" / "run.sh"),
    )


@pytest.fixture
def config() -> InstallConfig:
    return InstallConfig(
        disk=DiskInfo(name="sda", size="500G", model="Test Disk"),
        hostname="nebula",
        username="alice",
        user_password="hunter2",
    )

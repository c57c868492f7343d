from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from .runner import CommandRunner

logger = logging.getLogger(__name__)

GRUB_DEFAULTS_REL = "etc/default/grub"
DISTRIBUTOR = "Nebula"
DEFAULT_GFXMODE = "1920x1080"
CMDLINE_KEY = "GRUB_CMDLINE_LINUX"


def install_grub_efi(runner: CommandRunner) -> None:
    """Install GRUB for x86_64 EFI targets."""

    # Assumes the ESP is mounted at /boot in target.
    runner.chroot(
        [
            "grub-install",
            "--target=x86_64-efi",
            "--efi-directory=/boot",
            "--bootloader-id=GRUB",
        ]
    )
    runner.chroot(["grub-mkconfig", "-o", "/boot/grub/grub.cfg"])
    logger.info("GRUB EFI installed")


def _rewrite_lines(path: Path, key: str, render: Callable[[Optional[str]], str]) -> None:
    """Replace every KEY= line with render(old_line); append if absent."""

    prefix = f"{key}="
    lines = path.read_text(encoding="utf-8").splitlines()
    out: list[str] = []
    found = False
    for line in lines:
        if line.startswith(prefix):
            out.append(render(line))
            found = True
        else:
            out.append(line)
    if not found:
        out.append(render(None))
    path.write_text("\n".join(out) + "\n", encoding="utf-8")


def set_grub_value(path: Path, key: str, value: str) -> None:
    _rewrite_lines(path, key, lambda _old: f"{key}={value}")


def _cmdline_params(line: Optional[str]) -> list[str]:
    if line is None:
        return []
    start = line.find('"')
    end = line.rfind('"')
    if start == -1 or end <= start:
        return []
    return line[start + 1 : end].split()


def _cmdline(params: Sequence[str]) -> str:
    return f'{CMDLINE_KEY}="{" ".join(params)}"'


def ensure_grub_cmdline_params(path: Path, params: Sequence[str]) -> None:
    def render(line: Optional[str]) -> str:
        parts = _cmdline_params(line)
        parts += [p for p in params if p not in parts]
        return _cmdline(parts)

    _rewrite_lines(path, CMDLINE_KEY, render)


def remove_grub_cmdline_params(path: Path, params: Sequence[str]) -> None:
    _rewrite_lines(
        path,
        CMDLINE_KEY,
        lambda line: _cmdline([p for p in _cmdline_params(line) if p not in params]),
    )


def update_grub_cmdline_for_luks(path: Path, root_uuid: str, mapper_name: str) -> None:
    params = [
        f"cryptdevice=UUID={root_uuid}:{mapper_name}",
        f"root=/dev/mapper/{mapper_name}",
        "quiet",
        "splash",
    ]
    _rewrite_lines(path, CMDLINE_KEY, lambda _old: _cmdline(params))


def set_grub_distributor(path: Path) -> None:
    set_grub_value(path, "GRUB_DISTRIBUTOR", f'"{DISTRIBUTOR}"')


def set_grub_gfx(path: Path, gfxmode: str = DEFAULT_GFXMODE) -> None:
    set_grub_value(path, "GRUB_GFXMODE", gfxmode)
    set_grub_value(path, "GRUB_GFXPAYLOAD_LINUX", "keep")

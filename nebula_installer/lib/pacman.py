from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from ..errors import CommandError, PreconditionError, SpawnError
from .env import Paths
from .policies import FailureReport, best_effort
from .runner import CommandRunner
from .system import write_file

logger = logging.getLogger(__name__)

BASE_SYSTEM_PACKAGES = (
    "base",
    "linux-firmware",
    "btrfs-progs",
    "grub",
    "efibootmgr",
    "networkmanager",
    "plymouth",
    "sudo",
    "vim",
    "zram-generator",
)

DEFAULT_MIRROR_SERVER = "https://mirror.nebulalinux.com/stable/$repo/os/$arch"
NEBULA_REPO_SERVER = "https://pkgs.nebulalinux.com/stable/$arch"
NEBULA_REPO_KEY_URL = "https://pkgs.nebulalinux.com/nebula-repo.gpg"
NEBULA_REPO_KEY_ID = "7CB33A71D4C4C529149862B799EC53F7C03BE297"
PACMAN_ENV = {"PACMAN_COLOR": "never"}


def mirrorlist_contents(environ: Mapping[str, str] = os.environ) -> str:
    """Mirrorlist text; NEBULA_PACMAN_MIRRORLIST / NEBULA_PACMAN_MIRROR override the default."""

    if "NEBULA_PACMAN_MIRRORLIST" in environ:
        text = environ["NEBULA_PACMAN_MIRRORLIST"].strip()
        return f"{text}\n" if text else ""
    if "NEBULA_PACMAN_MIRROR" in environ:
        base = environ["NEBULA_PACMAN_MIRROR"].strip().rstrip("/")
        return f"Server = {base}/$repo/os/$arch\n" if base else ""
    return f"Server = {DEFAULT_MIRROR_SERVER}\n"


def configure_mirrorlist(path: Path | str, *, dry_run: bool = False) -> None:
    write_file(path, mirrorlist_contents(), dry_run=dry_run)


def _offline_conf(repo_path: str) -> str:
    return (
        "[options]\n"
        "HoldPkg     = pacman glibc\n"
        "Architecture = auto\n"
        "ParallelDownloads = 5\n"
        "SigLevel = Required DatabaseOptional\n"
        "LocalFileSigLevel = Optional\n"
        "\n"
        "[nebula-offline]\n"
        "SigLevel = Optional TrustAll\n"
        f"Server = file://{repo_path}\n"
    )


def write_offline_pacman_conf(path: Path | str, repo_path: str, *, dry_run: bool = False) -> None:
    write_file(path, _offline_conf(repo_path), dry_run=dry_run)


def write_hybrid_pacman_conf(
    path: Path | str,
    repo_path: str,
    *,
    include_nebula_repo: bool,
    dry_run: bool = False,
) -> None:
    """Offline repo first, then the online repos as fallback."""

    parts = [_offline_conf(repo_path), "\n"]
    if include_nebula_repo:
        parts.append(f"[nebula]\nSigLevel = Required DatabaseOptional\nServer = {NEBULA_REPO_SERVER}\n\n")
    for repo in ("core", "extra", "multilib"):
        parts.append(f"[{repo}]\nInclude = /etc/pacman.d/mirrorlist\n")
        if repo != "multilib":
            parts.append("\n")
    write_file(path, "".join(parts), dry_run=dry_run)


def validate_offline_packages(repo_path: str, packages: Iterable[str]) -> None:
    """Every package except the base group must have an archive in the repo."""

    repo = Path(repo_path)
    names = [e.name for e in repo.iterdir()] if repo.is_dir() else []
    missing: list[str] = []
    for pkg in packages:
        if pkg == "base":
            continue
        if not any(n.startswith(f"{pkg}-") and n.endswith(".pkg.tar.zst") for n in names):
            missing.append(f"{repo_path}/{pkg}-*.pkg.tar.zst")
    if missing:
        raise PreconditionError(f"Offline repo missing required packages: {', '.join(missing)}")


def validate_offline_base_package(runner: CommandRunner, conf_path: str) -> None:
    if runner.status(["pacman", "--config", conf_path, "-Sy", "--noconfirm"]) != 0:
        raise PreconditionError("Offline repo sync failed")
    try:
        out = runner.capture(["pacman", "--config", conf_path, "-Si", "base"])
    except CommandError as e:
        raise PreconditionError(f"Offline repo missing base package: {e.stderr.strip()}") from e
    if not out.strip() and not runner.dry_run:
        raise PreconditionError("Offline repo missing base package")


def dedup_packages(packages: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for p in packages:
        if p not in seen:
            seen.append(p)
    return seen


def _pacman_argv(op: Sequence[str], conf: Optional[str]) -> list[str]:
    argv = ["pacman", *op]
    if conf:
        argv += ["--config", conf]
    return argv


def install_pacman_packages(runner: CommandRunner, packages: Sequence[str], conf: Optional[str] = None) -> None:
    if not packages:
        return
    runner.chroot(
        [*_pacman_argv(["-S", "--noconfirm", "--needed"], conf), *packages],
        env=PACMAN_ENV,
        heartbeat="Installing packages...",
    )


def sync_pacman_databases(runner: CommandRunner, conf: Optional[str] = None) -> None:
    runner.chroot(
        _pacman_argv(["-Sy", "--noconfirm"], conf),
        env=PACMAN_ENV,
        heartbeat="Syncing package databases...",
    )


def install_optional_packages_best_effort(
    runner: CommandRunner,
    packages: Sequence[str],
    conf: Optional[str] = None,
) -> FailureReport:
    return best_effort(
        packages,
        lambda batch: install_pacman_packages(runner, batch, conf),
        fatal=False,
        sender=runner.sender,
        description="Optional package",
    )


def write_failed_packages_log(path: Path, report: FailureReport, *, dry_run: bool = False) -> None:
    if report.ok:
        return
    write_file(path, report.render(), dry_run=dry_run)


def _script_available(runner: CommandRunner) -> bool:
    try:
        return runner.status(["script", "--version"]) == 0
    except SpawnError:
        return False


def run_pacstrap(runner: CommandRunner, args: Sequence[str]) -> None:
    """pacstrap buffers its output when not on a tty; wrap it in script(1) when present."""

    heartbeat = "Still downloading packages..."
    if _script_available(runner):
        inner = "SYSTEMD_OFFLINE=1 PACMAN_COLOR=never pacstrap " + " ".join(shlex.quote(a) for a in args)
        runner.run(["script", "-qec", inner, "/dev/null"], heartbeat=heartbeat)
        return
    runner.run(
        ["pacstrap", *args],
        env={"SYSTEMD_OFFLINE": "1", **PACMAN_ENV},
        heartbeat=heartbeat,
    )


def import_nebula_repo_key(runner: CommandRunner, paths: Paths) -> None:
    dest_rel = paths.repo_key
    dest = paths.target(dest_rel)
    if not runner.dry_run:
        dest.parent.mkdir(parents=True, exist_ok=True)
    runner.run(["cp", paths.repo_key, str(dest)])
    runner.chroot(["pacman-key", "--add", dest_rel])
    runner.chroot(["pacman-key", "--lsign-key", NEBULA_REPO_KEY_ID])


def ensure_nebula_repo_configured(runner: CommandRunner, paths: Paths) -> None:
    """Trust the nebula repo key and add [nebula] ahead of [core] in pacman.conf."""

    if paths.target(paths.repo_key).exists():
        runner.chroot(["pacman-key", "--add", paths.repo_key])
    else:
        runner.chroot(["bash", "-c", f"curl -fsSL {NEBULA_REPO_KEY_URL} | pacman-key --add -"])
    runner.chroot(["pacman-key", "--lsign-key", NEBULA_REPO_KEY_ID])
    runner.chroot(
        [
            "bash",
            "-c",
            "if ! grep -q '^\\[nebula\\]' /etc/pacman.conf; then "
            "sed -i '/^\\[core\\]/i [nebula]\\nSigLevel = Required DatabaseOptional\\n"
            "Server = https://pkgs.nebulalinux.com/stable/\\$arch\\n' /etc/pacman.conf; fi",
        ]
    )

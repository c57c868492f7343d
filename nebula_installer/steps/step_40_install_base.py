from __future__ import annotations

import logging
from typing import Optional

from ..config import InstallConfig
from ..errors import PreconditionError
from ..lib.pacman import (
    BASE_SYSTEM_PACKAGES,
    configure_mirrorlist,
    run_pacstrap,
    validate_offline_base_package,
    validate_offline_packages,
    write_offline_pacman_conf,
)
from ..lib.system import detect_microcode_package
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


def base_package_list(cfg: InstallConfig, microcode: Optional[str]) -> list[str]:
    packages = [*BASE_SYSTEM_PACKAGES, cfg.kernel_package]
    for pkg in cfg.driver_packages:
        if pkg not in packages:
            packages.append(pkg)
    if cfg.needs_kernel_headers:
        packages.append(cfg.kernel_headers)
    if microcode:
        packages.append(microcode)
    return packages


class InstallBaseSystemStep:
    step_id = "40_install_base"
    name = "Installing Base System"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        paths = ctx.paths
        r = ctx.runner

        offline_available = ctx.offline_repo_available()
        if cfg.offline_only and not offline_available:
            raise PreconditionError(f"Offline repo not found at {paths.offline_repo}")
        use_offline = offline_available or cfg.offline_only

        ctx.log("Initializing pacman keyring...")
        r.run(["pacman-key", "--init"])
        r.run(["pacman-key", "--populate", "archlinux"])

        if use_offline:
            ctx.log("Offline repo detected; using it for base system install.")
        else:
            ctx.log("Setting pacman mirror...")
            configure_mirrorlist(paths.host_mirrorlist, dry_run=cfg.dry_run)

        microcode = detect_microcode_package(paths.cpuinfo)
        if microcode:
            ctx.log(f"Detected CPU microcode: {microcode}")
        packages = base_package_list(cfg, microcode)

        if use_offline:
            write_offline_pacman_conf(paths.offline_pacman_conf, paths.offline_repo, dry_run=cfg.dry_run)
            validate_offline_base_package(r, paths.offline_pacman_conf)
            validate_offline_packages(paths.offline_repo, packages)

        args: list[str] = []
        if use_offline:
            args += ["-C", paths.offline_pacman_conf]
        args += [paths.target_root, *packages]

        ctx.log("Downloading and installing packages...")
        run_pacstrap(r, args)
        configure_mirrorlist(ctx.target("etc/pacman.d/mirrorlist"), dry_run=cfg.dry_run)

        logger.info("Base system installed (%s packages, offline=%s)", len(packages), use_offline)

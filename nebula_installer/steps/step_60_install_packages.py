from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..lib.pacman import (
    dedup_packages,
    ensure_nebula_repo_configured,
    import_nebula_repo_key,
    install_optional_packages_best_effort,
    install_pacman_packages,
    sync_pacman_databases,
    write_failed_packages_log,
    write_hybrid_pacman_conf,
    write_offline_pacman_conf,
)
from ..lib.system import append_temp_installer_log
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)

AUR_HELPERS = ("yay", "yay-bin")


def _zsh_skeleton_script(username: str) -> str:
    return (
        f"if [ -f /etc/skel/.zshrc ] && [ ! -f /home/{username}/.zshrc ]; then "
        f"cp /etc/skel/.zshrc /home/{username}/.zshrc; "
        f"chown {username}:{username} /home/{username}/.zshrc; "
        "fi; "
        "if [ -d /etc/skel/.config/oh-my-zsh/custom/plugins ]; then "
        f"mkdir -p /home/{username}/.config/oh-my-zsh/custom; "
        f"cp -a -n /etc/skel/.config/oh-my-zsh/custom/plugins /home/{username}/.config/oh-my-zsh/custom/; "
        f"chown -R {username}:{username} /home/{username}/.config/oh-my-zsh/custom; "
        "fi"
    )


class InstallPackagesStep:
    step_id = "60_install_packages"
    name = "Installing Packages"

    def _mount_offline_repo(self, ctx: InstallCtx, needs_nebula_repo: bool) -> None:
        paths = ctx.paths
        mount_point = ctx.target(paths.offline_repo)
        if not ctx.dry_run:
            mount_point.mkdir(parents=True, exist_ok=True)
        ctx.runner.run(["mount", "--bind", paths.offline_repo, str(mount_point)])
        ctx.facts["offline_repo_mounted"] = True

        write_offline_pacman_conf(
            ctx.target(paths.target_offline_conf_rel),
            paths.offline_repo,
            dry_run=ctx.dry_run,
        )
        if not ctx.config.offline_only:
            write_hybrid_pacman_conf(
                ctx.target(paths.target_hybrid_conf_rel),
                paths.offline_repo,
                include_nebula_repo=needs_nebula_repo,
                dry_run=ctx.dry_run,
            )

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        paths = ctx.paths
        r = ctx.runner

        ctx.log("Installing selected apps and packages...")
        required = dedup_packages(cfg.base_packages)
        optional = dedup_packages([*cfg.extra_pacman_packages, *cfg.extra_aur_packages])
        needs_nebula_repo = bool(cfg.extra_aur_packages) or any(p in AUR_HELPERS for p in optional)

        if cfg.offline_only and needs_nebula_repo:
            ctx.log("Offline-only enabled; skipping nebula repo setup.")

        offline_available = ctx.offline_repo_available()
        offline_conf = "/" + paths.target_offline_conf_rel
        hybrid_conf = "/" + paths.target_hybrid_conf_rel

        if offline_available:
            self._mount_offline_repo(ctx, needs_nebula_repo)
            if Path(paths.repo_key).exists():
                import_nebula_repo_key(r, paths)
        if not cfg.offline_only or ctx.target(paths.repo_key).exists():
            ensure_nebula_repo_configured(r, paths)

        system_db_synced = False
        if required:
            required_conf: Optional[str] = offline_conf if (offline_available or cfg.offline_only) else None
            sync_pacman_databases(r, required_conf)
            system_db_synced = system_db_synced or required_conf is None
            install_pacman_packages(r, required, required_conf)

        if optional:
            optional_conf: Optional[str] = None
            if cfg.offline_only:
                optional_conf = offline_conf
            elif offline_available:
                optional_conf = hybrid_conf
            if optional_conf != offline_conf:
                sync_pacman_databases(r, optional_conf)
                system_db_synced = system_db_synced or optional_conf is None

            report = install_optional_packages_best_effort(r, optional, optional_conf)
            if not report.ok:
                notice = f"Some optional packages failed to install. See /{paths.failed_packages_rel}"
                ctx.log(notice)
                write_failed_packages_log(paths.failed_packages_report, report, dry_run=ctx.dry_run)
                append_temp_installer_log(
                    paths.tmp_log,
                    f"Optional packages failed. See /{paths.failed_packages_rel}",
                )
            logger.info("Optional packages: %s requested, %s failed", len(optional), len(report.items))

        if not cfg.offline_only and not system_db_synced:
            ctx.log("Syncing nebula repo database for first boot...")
            try:
                sync_pacman_databases(r)
            except Exception as e:
                ctx.log(f"Warning: failed to sync package databases: {e}")

        r.chroot(["bash", "-c", _zsh_skeleton_script(cfg.username)])

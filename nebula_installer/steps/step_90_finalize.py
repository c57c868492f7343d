from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..lib.system import close_cryptroot, copy_installer_log
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"
    name = "Finalizing"

    def _hypr_script(self, ctx: InstallCtx) -> Optional[str]:
        script = ctx.paths.hypr_defaults_script
        for candidate in (ctx.target(script), Path(script)):
            if candidate.exists():
                return str(candidate)
        return None

    def _install_hypr_defaults(self, ctx: InstallCtx) -> None:
        script = self._hypr_script(ctx)
        if script is None:
            ctx.log("nebula-hypr installer script not found; skipping Hyprland config install.")
            return
        ctx.log(f"Installing Nebula Hyprland defaults from {script}...")
        ctx.runner.run(["bash", script, ctx.paths.target_root, ctx.config.username])

    def _fix_home_ownership(self, ctx: InstallCtx) -> None:
        user = ctx.config.username
        try:
            ctx.runner.chroot(["chown", "-R", f"{user}:{user}", f"/home/{user}/.config", f"/home/{user}/.local"])
        except Exception as e:
            ctx.log(f"Failed to chown home dirs: {e}")
        try:
            ctx.runner.chroot(["sudo", "-u", user, "xdg-user-dirs-update"])
        except Exception as e:
            ctx.log(f"xdg-user-dirs-update failed: {e}")

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        r = ctx.runner

        r.chroot(["systemctl", "enable", "NetworkManager"])
        if "sddm" in cfg.base_packages:
            r.chroot(["systemctl", "enable", "sddm"])
        else:
            ctx.log("SDDM not in base package list; skipping service enable.")

        if cfg.hyprland_selected:
            self._install_hypr_defaults(ctx)

        self._fix_home_ownership(ctx)

        copy_installer_log(ctx.sender, ctx.paths, dry_run=ctx.dry_run)
        r.run(["sync"])
        if ctx.facts.get("offline_repo_mounted"):
            r.run(["umount", str(ctx.target(ctx.paths.offline_repo))])
        r.run(["umount", "-R", ctx.paths.target_root])

        if cfg.encrypt_disk:
            close_cryptroot(r)
        logger.info("Finalized install on %s", cfg.disk.device_path())

from __future__ import annotations

from ..lib.system import configure_zram
from ..pipeline import InstallCtx


class ConfigureSwapStep:
    step_id = "30_configure_swap"
    name = "Configuring Zram Swap"

    def run(self, ctx: InstallCtx) -> None:
        if not ctx.config.swap_enabled:
            ctx.log("Swap disabled.")
            return
        ctx.log("Configuring zram swap...")
        configure_zram(ctx.paths, dry_run=ctx.config.dry_run)

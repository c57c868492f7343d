from __future__ import annotations

import logging

from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class GenerateFstabStep:
    step_id = "45_generate_fstab"
    name = "Generating Fstab"

    def run(self, ctx: InstallCtx) -> None:
        fstab = ctx.runner.capture(["genfstab", "-U", ctx.paths.target_root])
        fstab_path = ctx.target("etc/fstab")

        if ctx.dry_run:
            logger.info("Would append to %s", str(fstab_path))
            return

        fstab_path.parent.mkdir(parents=True, exist_ok=True)
        with open(fstab_path, "a", encoding="utf-8") as f:
            f.write(fstab)
        logger.info("Wrote fstab (%s entries)", sum(1 for l in fstab.splitlines() if l.startswith("UUID=")))

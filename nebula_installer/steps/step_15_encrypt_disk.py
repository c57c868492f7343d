from __future__ import annotations

import logging

from ..errors import PreconditionError
from ..lib.env import MAPPER_NAME
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)


class EncryptDiskStep:
    step_id = "15_encrypt_disk"
    name = "Encrypting Disk"

    def should_skip(self, ctx: InstallCtx) -> bool:
        return not ctx.config.encrypt_disk

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        if not cfg.luks_password:
            raise PreconditionError("Disk encryption requested without a passphrase")

        root_part = cfg.root_partition
        pw = cfg.luks_password

        ctx.log("Setting up LUKS...")
        # Passphrase goes over stdin only; never argv.
        ctx.runner.run(
            ["cryptsetup", "luksFormat", "--type", "luks2", "--batch-mode", root_part],
            input_text=f"{pw}\n{pw}\n",
        )
        ctx.runner.run(
            ["cryptsetup", "open", root_part, MAPPER_NAME],
            input_text=f"{pw}\n",
        )
        logger.info("Opened %s as %s", root_part, MAPPER_NAME)

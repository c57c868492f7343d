from __future__ import annotations

from ..lib.bootloader import install_grub_efi
from ..pipeline import InstallCtx


class InstallBootloaderStep:
    step_id = "70_install_bootloader"
    name = "Installing Bootloader"

    def run(self, ctx: InstallCtx) -> None:
        install_grub_efi(ctx.runner)

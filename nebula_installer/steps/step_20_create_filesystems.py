from __future__ import annotations

from ..pipeline import InstallCtx


class CreateFilesystemsStep:
    step_id = "20_create_filesystems"
    name = "Creating File System"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        ctx.log("Formatting filesystems...")
        ctx.runner.run(["mkfs.fat", "-F32", cfg.efi_partition])
        ctx.runner.run(["mkfs.btrfs", "-f", cfg.root_device])

from __future__ import annotations

import logging

from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)

SUBVOLUMES = {"@": "", "@home": "home"}
MOUNT_OPTS = "compress=zstd"


class MountFilesystemsStep:
    step_id = "25_mount_filesystems"
    name = "Mounting File System"

    def run(self, ctx: InstallCtx) -> None:
        root = ctx.paths.target_root
        dev = ctx.config.root_device
        r = ctx.runner

        # Create subvolumes on the top-level volume, then remount the real layout.
        r.run(["mount", dev, root])
        for subvol in SUBVOLUMES:
            r.run(["btrfs", "subvolume", "create", f"{root}/{subvol}"])
        r.run(["umount", root])

        for subvol, rel in SUBVOLUMES.items():
            mountpoint = f"{root}/{rel}" if rel else root
            if rel:
                r.run(["mkdir", "-p", mountpoint])
            r.run(["mount", "-o", f"subvol={subvol},{MOUNT_OPTS}", dev, mountpoint])

        r.run(["mkdir", "-p", f"{root}/boot"])
        r.run(["mount", ctx.config.efi_partition, f"{root}/boot"])

        logger.info("Mounted target at %s", root)

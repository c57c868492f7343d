from __future__ import annotations

import logging

from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)

ESP_START = "1MiB"
ESP_END = "513MiB"


class PartitionDiskStep:
    step_id = "10_partition_disk"
    name = "Partitioning Disk"

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        disk = cfg.disk.device_path()
        r = ctx.runner

        ctx.log(f"Wiping {disk}...")
        r.run(["wipefs", "-af", disk])
        r.run(["parted", "-s", disk, "mklabel", "gpt"])
        r.run(["parted", "-s", disk, "mkpart", "ESP", "fat32", ESP_START, ESP_END])
        r.run(["parted", "-s", disk, "set", "1", "esp", "on"])
        r.run(["parted", "-s", disk, "mkpart", cfg.root_label, ESP_END, "100%"])

        logger.info("Partitioned %s (esp=%s root=%s)", disk, cfg.efi_partition, cfg.root_partition)

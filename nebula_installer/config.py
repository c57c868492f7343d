from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .lib.env import MAPPER_DEVICE

NVIDIA_DKMS_PACKAGES = {"nvidia-dkms", "nvidia-open-dkms"}


@dataclass(frozen=True)
class DiskInfo:
    name: str
    size: str = ""
    model: str = ""

    def device_path(self) -> str:
        return f"/dev/{self.name}"

    def partition_path(self, index: int) -> str:
        # nvme/mmcblk devices use p suffix
        if self.name[-1:].isdigit():
            return f"/dev/{self.name}p{index}"
        return f"/dev/{self.name}{index}"


@dataclass(frozen=True)
class InstallConfig:
    """Everything the user chose, fixed before the pipeline starts."""

    disk: DiskInfo
    hostname: str
    username: str
    user_password: str = field(repr=False)
    keymap: str = "us"
    timezone: str = "UTC"
    luks_password: str = field(default="", repr=False)
    encrypt_disk: bool = False
    swap_enabled: bool = True
    driver_packages: Tuple[str, ...] = ()
    kernel_package: str = "linux"
    kernel_headers: str = "linux-headers"
    base_packages: Tuple[str, ...] = ()
    extra_pacman_packages: Tuple[str, ...] = ()
    extra_aur_packages: Tuple[str, ...] = ()
    offline_only: bool = False
    hyprland_selected: bool = False
    dry_run: bool = False

    @property
    def efi_partition(self) -> str:
        return self.disk.partition_path(1)

    @property
    def root_partition(self) -> str:
        return self.disk.partition_path(2)

    @property
    def root_device(self) -> str:
        return MAPPER_DEVICE if self.encrypt_disk else self.root_partition

    @property
    def root_label(self) -> str:
        return "cryptroot" if self.encrypt_disk else "root"

    @property
    def needs_kernel_headers(self) -> bool:
        return any(p in NVIDIA_DKMS_PACKAGES for p in self.driver_packages)

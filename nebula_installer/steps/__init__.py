from .step_10_partition_disk import PartitionDiskStep
from .step_15_encrypt_disk import EncryptDiskStep
from .step_20_create_filesystems import CreateFilesystemsStep
from .step_25_mount_filesystems import MountFilesystemsStep
from .step_30_configure_swap import ConfigureSwapStep
from .step_40_install_base import InstallBaseSystemStep
from .step_45_generate_fstab import GenerateFstabStep
from .step_50_configure_system import ConfigureSystemStep
from .step_60_install_packages import InstallPackagesStep
from .step_70_install_bootloader import InstallBootloaderStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "PartitionDiskStep",
    "EncryptDiskStep",
    "CreateFilesystemsStep",
    "MountFilesystemsStep",
    "ConfigureSwapStep",
    "InstallBaseSystemStep",
    "GenerateFstabStep",
    "ConfigureSystemStep",
    "InstallPackagesStep",
    "InstallBootloaderStep",
    "FinalizeStep",
]

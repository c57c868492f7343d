from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    tmp_log: str = "/tmp/nebula-installer.log"
    offline_repo: str = "/opt/nebula-repo"
    offline_pacman_conf: str = "/tmp/nebula-pacman.offline.conf"
    repo_key: str = "/usr/share/nebula/nebula-repo.gpg"
    host_mirrorlist: str = "/etc/pacman.d/mirrorlist"
    cpuinfo: str = "/proc/cpuinfo"
    plymouth_themes: str = "/usr/share/plymouth/themes"
    hypr_defaults_script: str = "/usr/share/nebula-hypr/run.sh"
    # Paths below are relative to target_root.
    failed_packages_rel: str = "var/log/nebula-failed-packages.txt"
    installed_log_rel: str = "var/log/nebula-installer.log"
    target_offline_conf_rel: str = "etc/pacman.offline.conf"
    target_hybrid_conf_rel: str = "etc/pacman.hybrid.conf"

    def target(self, rel: str) -> Path:
        """Path inside the target root for an absolute-in-target path."""
        return Path(self.target_root) / rel.lstrip("/")

    @property
    def failed_packages_report(self) -> Path:
        return self.target(self.failed_packages_rel)


PATHS = Paths()

MAPPER_NAME = "cryptroot"
MAPPER_DEVICE = f"/dev/mapper/{MAPPER_NAME}"
CHROOT_PROGRAM = "arch-chroot"

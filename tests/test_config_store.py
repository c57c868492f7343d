import json

import pytest

from nebula_installer.config import DiskInfo
from nebula_installer.config_store import install_config_from_mapping, load_install_config


def test_load_json_config(tmp_path):
    path = tmp_path / "install.json"
    path.write_text(
        json.dumps(
            {
                "disk": "/dev/nvme0n1",
                "hostname": "nebula",
                "username": "alice",
                "user_password": "pw",
                "timezone": "Europe/Berlin",
                "swap_enabled": False,
                "driver_packages": ["nvidia-dkms", " "],
            }
        ),
        encoding="utf-8",
    )

    cfg = load_install_config(str(path))
    assert cfg.disk == DiskInfo(name="nvme0n1")
    assert cfg.efi_partition == "/dev/nvme0n1p1"
    assert cfg.root_partition == "/dev/nvme0n1p2"
    assert cfg.timezone == "Europe/Berlin"
    assert cfg.swap_enabled is False
    assert cfg.driver_packages == ("nvidia-dkms",)
    assert cfg.needs_kernel_headers
    assert cfg.keymap == "us"


def test_load_yaml_config(tmp_path):
    path = tmp_path / "install.yaml"
    path.write_text(
        "disk:\n"
        "  name: sda\n"
        "  size: 500G\n"
        "  model: Samsung SSD\n"
        "hostname: box\n"
        "username: bob\n"
        "user_password: pw\n"
        "encrypt_disk: true\n"
        "luks_password: secret\n"
        "extra_aur_packages:\n"
        "  - yay-bin\n",
        encoding="utf-8",
    )

    cfg = load_install_config(str(path))
    assert cfg.disk.model == "Samsung SSD"
    assert cfg.disk.partition_path(2) == "/dev/sda2"
    assert cfg.encrypt_disk
    assert cfg.root_device == "/dev/mapper/cryptroot"
    assert cfg.root_label == "cryptroot"
    assert cfg.extra_aur_packages == ("yay-bin",)


def test_secrets_not_in_repr():
    cfg = install_config_from_mapping(
        {"disk": "sda", "hostname": "h", "username": "u", "user_password": "topsecret", "luks_password": "luksphrase"}
    )
    assert "topsecret" not in repr(cfg)
    assert "luksphrase" not in repr(cfg)


def test_missing_required_keys():
    with pytest.raises(ValueError) as exc_info:
        install_config_from_mapping({"disk": "sda", "hostname": "h"})
    assert "username" in str(exc_info.value)
    assert "user_password" in str(exc_info.value)


def test_encryption_requires_passphrase():
    with pytest.raises(ValueError):
        install_config_from_mapping(
            {"disk": "sda", "hostname": "h", "username": "u", "user_password": "p", "encrypt_disk": True}
        )


def test_package_lists_must_be_lists():
    with pytest.raises(ValueError):
        install_config_from_mapping(
            {"disk": "sda", "hostname": "h", "username": "u", "user_password": "p", "base_packages": "sddm"}
        )


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_install_config(str(tmp_path / "nope.json"))


def test_non_mapping_document_rejected(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_install_config(str(path))


@pytest.mark.parametrize(
    "key, value",
    [("swap_enabled", "false"), ("hyprland_selected", "no"), ("offline_only", "0"), ("encrypt_disk", 1)],
)
def test_flags_must_be_real_booleans(key, value):
    raw = {"disk": "sda", "hostname": "h", "username": "u", "user_password": "p", key: value}
    with pytest.raises(ValueError, match=f"config.{key} must be a boolean"):
        install_config_from_mapping(raw)


def test_flags_accept_booleans():
    cfg = install_config_from_mapping(
        {"disk": "sda", "hostname": "h", "username": "u", "user_password": "p", "swap_enabled": False}
    )
    assert cfg.swap_enabled is False

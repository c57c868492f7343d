from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

from .config import DiskInfo, InstallConfig

logger = logging.getLogger(__name__)

_REQUIRED = ("disk", "hostname", "username", "user_password")
_PACKAGE_LISTS = (
    "driver_packages",
    "base_packages",
    "extra_pacman_packages",
    "extra_aur_packages",
)
_FLAGS = ("encrypt_disk", "swap_enabled", "offline_only", "hyprland_selected", "dry_run")
_STRINGS = ("keymap", "timezone", "luks_password", "kernel_package", "kernel_headers")


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_raw(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    fmt = _detect_format(p)
    data: Any

    if fmt in {"yaml", "yml"}:
        try:
            import yaml  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError(
                "YAML config requested but PyYAML is not available. "
                "Use a JSON config or add PyYAML to the live environment."
            ) from e
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"Config file must be an object/dict, got {type(data)}")

    return data


def _str_list(raw: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"config.{key} must be a list of strings")
    return tuple(str(v).strip() for v in value if str(v).strip())


def _flag(raw: Dict[str, Any], key: str) -> bool:
    value = raw[key]
    if not isinstance(value, bool):
        raise ValueError(f"config.{key} must be a boolean")
    return value


def install_config_from_mapping(raw: Dict[str, Any]) -> InstallConfig:
    """Build an InstallConfig from a plain mapping (parsed JSON/YAML)."""

    missing = [k for k in _REQUIRED if not raw.get(k)]
    if missing:
        raise ValueError(f"Missing required config keys: {', '.join(missing)}")

    disk_raw = raw["disk"]
    if isinstance(disk_raw, str):
        disk = DiskInfo(name=disk_raw.removeprefix("/dev/"))
    elif isinstance(disk_raw, dict) and disk_raw.get("name"):
        disk = DiskInfo(
            name=str(disk_raw["name"]).removeprefix("/dev/"),
            size=str(disk_raw.get("size", "")),
            model=str(disk_raw.get("model", "")),
        )
    else:
        raise ValueError("config.disk must be a device name or a mapping with 'name'")

    kwargs: Dict[str, Any] = {
        "disk": disk,
        "hostname": str(raw["hostname"]).strip(),
        "username": str(raw["username"]).strip(),
        "user_password": str(raw["user_password"]),
    }
    for key in _STRINGS:
        if raw.get(key) is not None:
            kwargs[key] = str(raw[key])
    for key in _FLAGS:
        if key in raw:
            kwargs[key] = _flag(raw, key)
    for key in _PACKAGE_LISTS:
        kwargs[key] = _str_list(raw, key)

    cfg = InstallConfig(**kwargs)
    if cfg.encrypt_disk and not cfg.luks_password:
        raise ValueError("config.luks_password is required when encrypt_disk is set")
    return cfg


def load_install_config(path: str) -> InstallConfig:
    cfg = install_config_from_mapping(load_raw(path))
    logger.info("Loaded install config from %s: %s", path, cfg)
    return cfg

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from ..errors import PreconditionError
from ..lib.block import get_uuid
from ..lib.bootloader import (
    GRUB_DEFAULTS_REL,
    ensure_grub_cmdline_params,
    remove_grub_cmdline_params,
    set_grub_distributor,
    set_grub_gfx,
    update_grub_cmdline_for_luks,
)
from ..lib.env import MAPPER_NAME
from ..lib.system import write_file, write_os_release
from ..pipeline import InstallCtx

logger = logging.getLogger(__name__)

LOCALE = "en_US.UTF-8"
SPLASH_THEME = "nebula-splash"
LUKS_THEME = "nebula-luks"
HOOKS_PLAIN = "base udev autodetect modconf block keyboard keymap plymouth filesystems"
HOOKS_ENCRYPTED = "base udev autodetect modconf block keyboard keymap plymouth encrypt filesystems"


def _hosts(hostname: str) -> str:
    return f"127.0.0.1\tlocalhost\n::1\tlocalhost\n127.0.1.1\t{hostname}\n"


class ConfigureSystemStep:
    step_id = "50_configure_system"
    name = "Configuring Base System"

    def _edit_grub(self, ctx: InstallCtx, edit: Callable[[Path], None]) -> None:
        path = ctx.target(GRUB_DEFAULTS_REL)
        if ctx.dry_run:
            logger.info("Would update %s", str(path))
            return
        edit(path)

    def _copy_plymouth_theme(self, ctx: InstallCtx, theme: str) -> bool:
        src = Path(ctx.paths.plymouth_themes) / theme
        if not src.exists():
            ctx.log(f"Plymouth theme not found at {src}; skipping {theme} install.")
            return False
        dest_dir = ctx.target("usr/share/plymouth/themes")
        ctx.runner.run(["mkdir", "-p", str(dest_dir)])
        ctx.runner.run(["cp", "-a", str(src), f"{dest_dir}/"])
        return True

    def _configure_locale_and_time(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        r = ctx.runner

        zoneinfo = ctx.target(f"usr/share/zoneinfo/{cfg.timezone}")
        if not ctx.dry_run and not zoneinfo.exists():
            raise PreconditionError(f"Timezone not found: {cfg.timezone}")

        r.chroot(["ln", "-sf", f"/usr/share/zoneinfo/{cfg.timezone}", "/etc/localtime"])
        r.chroot(["hwclock", "--systohc"])
        r.chroot(["timedatectl", "set-ntp", "true"])
        r.chroot(["sed", "-i", f"s/^#{LOCALE} UTF-8/{LOCALE} UTF-8/", "/etc/locale.gen"])
        r.chroot(["locale-gen"])
        r.chroot(["bash", "-c", f"echo LANG={LOCALE} > /etc/locale.conf"])

    def _create_user(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        r = ctx.runner
        r.chroot(["useradd", "-m", "-G", "wheel", "-s", "/bin/zsh", cfg.username])
        r.chroot(["chpasswd"], input_text=f"{cfg.username}:{cfg.user_password}\n")
        r.chroot(["passwd", "-l", "root"])
        r.chroot(
            [
                "sed",
                "-i",
                "s/^# %wheel ALL=(ALL:ALL) ALL/%wheel ALL=(ALL:ALL) ALL/",
                "/etc/sudoers",
            ]
        )

    def run(self, ctx: InstallCtx) -> None:
        cfg = ctx.config
        r = ctx.runner
        dry = cfg.dry_run

        write_file(ctx.target("etc/hostname"), f"{cfg.hostname}\n", dry_run=dry)
        write_file(ctx.target("etc/hosts"), _hosts(cfg.hostname), dry_run=dry)
        write_file(ctx.target("etc/vconsole.conf"), f"KEYMAP={cfg.keymap}\n", dry_run=dry)

        self._configure_locale_and_time(ctx)

        write_os_release(ctx.paths, dry_run=dry)
        self._edit_grub(ctx, set_grub_distributor)
        self._edit_grub(ctx, set_grub_gfx)

        self._create_user(ctx)

        splash_installed = self._copy_plymouth_theme(ctx, SPLASH_THEME)
        luks_installed = cfg.encrypt_disk and self._copy_plymouth_theme(ctx, LUKS_THEME)
        theme = None
        if cfg.encrypt_disk:
            theme = LUKS_THEME if luks_installed else None
        elif splash_installed:
            theme = SPLASH_THEME

        hooks = HOOKS_ENCRYPTED if cfg.encrypt_disk else HOOKS_PLAIN
        r.chroot(["sed", "-i", f"s/^HOOKS=.*/HOOKS=({hooks})/", "/etc/mkinitcpio.conf"])
        if theme:
            # Sets the theme and rebuilds the initramfs with it.
            r.chroot(["plymouth-set-default-theme", "-R", theme])
        else:
            r.chroot(["mkinitcpio", "-P"])

        if cfg.encrypt_disk:
            root_uuid = get_uuid(r, cfg.root_partition)
            write_file(
                ctx.target("etc/crypttab"),
                f"{MAPPER_NAME} UUID={root_uuid} none luks\n",
                dry_run=dry,
            )
            self._edit_grub(ctx, lambda p: update_grub_cmdline_for_luks(p, root_uuid, MAPPER_NAME))

        if cfg.encrypt_disk and not luks_installed:
            ctx.log("Plymouth LUKS theme missing! Disabling quiet splash to ensure crypt prompt is visible.")
            self._edit_grub(ctx, lambda p: remove_grub_cmdline_params(p, ["quiet", "splash"]))
        else:
            self._edit_grub(ctx, lambda p: ensure_grub_cmdline_params(p, ["quiet", "splash"]))

        logger.info("Configured hostname=%s user=%s keymap=%s", cfg.hostname, cfg.username, cfg.keymap)

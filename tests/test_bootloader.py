from nebula_installer.lib.bootloader import (
    ensure_grub_cmdline_params,
    remove_grub_cmdline_params,
    set_grub_distributor,
    set_grub_gfx,
    update_grub_cmdline_for_luks,
)

from conftest import DEFAULT_GRUB


def _grub(tmp_path, text=DEFAULT_GRUB):
    path = tmp_path / "grub"
    path.write_text(text, encoding="utf-8")
    return path


def _line(path, key):
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.startswith(f"{key}="):
            return line
    return None


def test_ensure_params_appends_missing_only(tmp_path):
    path = _grub(tmp_path, 'GRUB_CMDLINE_LINUX="quiet nowatchdog"\n')
    ensure_grub_cmdline_params(path, ["quiet", "splash"])
    assert _line(path, "GRUB_CMDLINE_LINUX") == 'GRUB_CMDLINE_LINUX="quiet nowatchdog splash"'


def test_ensure_params_adds_line_when_absent(tmp_path):
    path = _grub(tmp_path, "GRUB_TIMEOUT=5\n")
    ensure_grub_cmdline_params(path, ["quiet", "splash"])
    assert path.read_text(encoding="utf-8") == 'GRUB_TIMEOUT=5\nGRUB_CMDLINE_LINUX="quiet splash"\n'


def test_remove_params(tmp_path):
    path = _grub(tmp_path, 'GRUB_CMDLINE_LINUX="quiet splash rw"\n')
    remove_grub_cmdline_params(path, ["quiet", "splash"])
    assert _line(path, "GRUB_CMDLINE_LINUX") == 'GRUB_CMDLINE_LINUX="rw"'


def test_default_line_is_not_touched(tmp_path):
    path = _grub(tmp_path)
    ensure_grub_cmdline_params(path, ["splash"])
    assert _line(path, "GRUB_CMDLINE_LINUX_DEFAULT") == 'GRUB_CMDLINE_LINUX_DEFAULT="loglevel=3"'
    assert _line(path, "GRUB_CMDLINE_LINUX") == 'GRUB_CMDLINE_LINUX="splash"'


def test_luks_cmdline(tmp_path):
    path = _grub(tmp_path)
    update_grub_cmdline_for_luks(path, "abcd-1234", "cryptroot")
    assert _line(path, "GRUB_CMDLINE_LINUX") == (
        'GRUB_CMDLINE_LINUX="cryptdevice=UUID=abcd-1234:cryptroot root=/dev/mapper/cryptroot quiet splash"'
    )


def test_distributor_and_gfx(tmp_path):
    path = _grub(tmp_path)
    set_grub_distributor(path)
    set_grub_gfx(path)
    assert _line(path, "GRUB_DISTRIBUTOR") == 'GRUB_DISTRIBUTOR="Nebula"'
    assert _line(path, "GRUB_GFXMODE") == "GRUB_GFXMODE=1920x1080"
    assert _line(path, "GRUB_GFXPAYLOAD_LINUX") == "GRUB_GFXPAYLOAD_LINUX=keep"
    assert _line(path, "GRUB_TIMEOUT") == "GRUB_TIMEOUT=5"

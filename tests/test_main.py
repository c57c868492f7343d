import dataclasses
import json

import pytest

from nebula_installer import main as installer_main
from nebula_installer.main import run


def test_dry_run_install_writes_event_log(config, paths, tmp_path):
    cfg = dataclasses.replace(config, dry_run=True)
    log = tmp_path / "events.log"

    assert run(cfg, paths=paths, quiet=True, event_log_path=str(log)) is True

    lines = log.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "STEP Partitioning Disk: RUNNING"
    assert "$ wipefs -af /dev/sda" in lines
    assert "STEP Encrypting Disk: SKIP" in lines
    assert "STEP Finalizing: OK" in lines
    assert lines[-1] == "DONE: ok"
    # Nothing was written into the target in dry-run mode.
    assert not (paths.target("etc/hostname")).exists()


def test_run_prints_events(config, paths, tmp_path, capsys):
    cfg = dataclasses.replace(config, dry_run=True)
    run(cfg, paths=paths, event_log_path=str(tmp_path / "events.log"))
    out = capsys.readouterr().out
    assert "STEP Installing Base System: OK" in out
    assert out.rstrip().endswith("DONE: ok")


@pytest.fixture
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(installer_main, "configure_logging", lambda **kwargs: kwargs.get("log_path"))


def test_main_rejects_missing_config(tmp_path, no_logging_setup):
    assert installer_main.main(["--config", str(tmp_path / "missing.json")]) == 1


def test_main_forces_dry_run_and_reports_status(tmp_path, monkeypatch, no_logging_setup):
    cfg_path = tmp_path / "install.json"
    cfg_path.write_text(
        json.dumps({"disk": "sda", "hostname": "h", "username": "u", "user_password": "p"}),
        encoding="utf-8",
    )
    seen = []

    def fake_run(config, **kwargs):
        seen.append((config, kwargs))
        return False

    monkeypatch.setattr(installer_main, "run", fake_run)

    assert installer_main.main(["--config", str(cfg_path), "--dry-run", "--quiet"]) == 1
    config, kwargs = seen[0]
    assert config.dry_run is True
    assert kwargs == {"quiet": True}

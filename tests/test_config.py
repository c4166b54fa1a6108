"""Tests for environment-driven settings."""

import logging
from pathlib import Path

from procwarden.config import ProcwardenSettings


def test_defaults(monkeypatch):
    """Test the defaults match the stock platform layout."""
    for name in ("QUARANTINE_DIR", "QUARANTINE_MODE", "PROC_ROOT", "LOG_LEVEL"):
        monkeypatch.delenv(f"PROCWARDEN_{name}", raising=False)

    cfg = ProcwardenSettings()

    assert cfg.quarantine_dir == Path("quarantine")
    assert cfg.quarantine_mode == "444"
    assert cfg.proc_root == Path("/proc")
    assert cfg.procstat_bin == "procstat"
    assert cfg.powershell_bin == "powershell"
    assert cfg.log_level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    """Test PROCWARDEN_-prefixed variables override the defaults."""
    monkeypatch.setenv("PROCWARDEN_QUARANTINE_DIR", str(tmp_path))
    monkeypatch.setenv("PROCWARDEN_QUARANTINE_MODE", "400")
    monkeypatch.setenv("PROCWARDEN_LOG_LEVEL", "DEBUG")

    cfg = ProcwardenSettings()

    assert cfg.quarantine_dir == tmp_path
    assert cfg.quarantine_mode == "400"
    assert cfg.log_level == "DEBUG"


def test_log_level_is_normalized(monkeypatch):
    """Test a lower-case level is accepted by logging."""
    monkeypatch.setenv("PROCWARDEN_LOG_LEVEL", "debug")

    cfg = ProcwardenSettings()

    assert cfg.log_level == "DEBUG"
    assert logging.getLevelName(cfg.log_level) == logging.DEBUG

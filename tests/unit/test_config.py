import textwrap
from pathlib import Path

import pytest

from xts_client.config.loader import DEFAULTS, load_config


def test_defaults_load(monkeypatch):
    monkeypatch.delenv("XTS_LOGS_ROOT", raising=False)
    cfg = load_config()
    assert cfg.logs_root == Path(DEFAULTS.logs_root)
    assert cfg.segment == "NSEFO"
    assert cfg.equity_segment == "NSECM"
    assert cfg.interval_seconds == 60
    assert cfg.request_pause == 0.5
    assert cfg.targets_file is None
    assert isinstance(cfg.timezone, str) and cfg.timezone


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("XTS_LOGS_ROOT", "/tmp/override-logs")
    monkeypatch.setenv("XTS_TIMEZONE", "UTC")
    monkeypatch.setenv("XTS_INTERVAL_SECONDS", "300")
    monkeypatch.setenv("XTS_FETCH_TIMEOUT", "2.5")
    monkeypatch.setenv("XTS_TARGETS_FILE", "underlyings.yaml")
    cfg = load_config()
    assert cfg.logs_root == Path("/tmp/override-logs")
    assert cfg.timezone == "UTC"
    assert cfg.interval_seconds == 300
    assert cfg.fetch_timeout == 2.5
    assert cfg.targets_file == Path("underlyings.yaml")


def test_yaml_overrides(tmp_path, monkeypatch):
    # set env to something, then ensure YAML beats it
    monkeypatch.setenv("XTS_TIMEZONE", "EnvTZ")
    monkeypatch.setenv("XTS_SEGMENT", "ENVSEG")
    yml = tmp_path / "settings.yaml"
    yml.write_text(
        textwrap.dedent(
            """
        logs_root: /yaml-logs
        timezone: Asia/Kolkata
        segment: BSEFO
        request_pause: 0
    """
        ).strip(),
        encoding="utf-8",
    )
    cfg = load_config(yml)
    assert cfg.logs_root == Path("/yaml-logs")
    assert cfg.timezone == "Asia/Kolkata"
    assert cfg.segment == "BSEFO"
    assert cfg.request_pause == 0.0


def test_bad_values(tmp_path, monkeypatch):
    monkeypatch.setenv("XTS_REQUEST_PAUSE", "soon")
    with pytest.raises(ValueError):
        load_config()
    monkeypatch.delenv("XTS_REQUEST_PAUSE")

    yml = tmp_path / "list.yaml"
    yml.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(yml)

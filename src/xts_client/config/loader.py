from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .defaults import DEFAULTS

_KEYS = (
    "logs_root",
    "timezone",
    "segment",
    "equity_segment",
    "interval_seconds",
    "request_pause",
    "fetch_timeout",
    "targets_file",
)

_ENV = {
    "XTS_LOGS_ROOT": "logs_root",
    "XTS_TIMEZONE": "timezone",
    "XTS_SEGMENT": "segment",
    "XTS_EQUITY_SEGMENT": "equity_segment",
    "XTS_INTERVAL_SECONDS": "interval_seconds",
    "XTS_REQUEST_PAUSE": "request_pause",
    "XTS_FETCH_TIMEOUT": "fetch_timeout",
    "XTS_TARGETS_FILE": "targets_file",
}


@dataclass(frozen=True)
class Config:
    logs_root: Path
    timezone: str
    segment: str
    equity_segment: str
    interval_seconds: int
    request_pause: float
    fetch_timeout: float
    targets_file: Path | None


def _req_path(base: dict[str, Any], key: str, default: str) -> Path:
    """Return a required Path, falling back to default if missing/empty."""
    val = base.get(key) or default
    return Path(val)


def _opt_path(base: dict[str, Any], key: str) -> Path | None:
    """Return an optional Path, or None if missing/empty."""
    val = base.get(key)
    return Path(val) if val else None


def _num(base: dict[str, Any], key: str, cast: type[int] | type[float]) -> int | float:
    val = base.get(key)
    try:
        out = cast(val)
    except (TypeError, ValueError):
        raise ValueError(f"Config {key} must be numeric, got {val!r}") from None
    if out < 0:
        raise ValueError(f"Config {key} must be >= 0, got {val!r}")
    return out


def _apply_yaml_overrides(base: dict[str, Any], yml: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k in _KEYS:
        if k in yml:
            out[k] = yml[k]
    return out


def _apply_env_overrides(base: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for env_name, key in _ENV.items():
        if v := os.getenv(env_name):
            out[key] = v
    return out


def load_config(yaml_path: Path | None = None) -> Config:
    # start from defaults as a dict
    base = {k: getattr(DEFAULTS, k) for k in _KEYS}

    # ENV overrides (middle precedence)
    base = _apply_env_overrides(base)

    # YAML overrides (highest precedence)
    if yaml_path:
        data = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Config YAML must be a mapping at the top level.")
        base = _apply_yaml_overrides(base, data)

    return Config(
        logs_root=_req_path(base, "logs_root", DEFAULTS.logs_root),
        timezone=str(base["timezone"]),
        segment=str(base["segment"] or DEFAULTS.segment),
        equity_segment=str(base["equity_segment"] or DEFAULTS.equity_segment),
        interval_seconds=int(_num(base, "interval_seconds", int)),
        request_pause=float(_num(base, "request_pause", float)),
        fetch_timeout=float(_num(base, "fetch_timeout", float)),
        targets_file=_opt_path(base, "targets_file"),
    )

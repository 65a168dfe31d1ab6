from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Defaults:
    logs_root: str
    timezone: str
    segment: str
    equity_segment: str
    interval_seconds: int
    request_pause: float
    fetch_timeout: float
    targets_file: str | None


DEFAULTS = Defaults(
    logs_root="logs",
    timezone="Asia/Kolkata",
    segment="NSEFO",  # F&O segment
    equity_segment="NSECM",  # cash market
    interval_seconds=60,  # 1-minute bars
    request_pause=0.5,  # seconds between bar requests
    fetch_timeout=60.0,  # per-fetch deadline, seconds
    targets_file=None,  # Optional YAML with underlyings/aliases
)

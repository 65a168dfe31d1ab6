from __future__ import annotations

from collections.abc import Callable

import pytest

from xts_client.utils.logging import get_logger


@pytest.fixture(scope="session", autouse=True)
def _package_logger(tmp_path_factory):
    # configure once, before any capsys swaps the console stream
    get_logger("xts_client", logs_root=tmp_path_factory.mktemp("logs"), run_id="tests")


@pytest.fixture(autouse=True)
def _logs_in_tmp(tmp_path, monkeypatch):
    # keep JSON run logs out of the working tree
    monkeypatch.setenv("XTS_LOGS_ROOT", str(tmp_path / "logs"))


def _master_row(
    instrument_id: int | str,
    instrument_type: str,
    symbol: str,
    description: str,
    series: str,
    underlying: str,
    expiry: str,
    segment: str = "NSEFO",
) -> str:
    parts = [""] * 17
    parts[0] = segment
    parts[1] = str(instrument_id)
    parts[2] = instrument_type
    parts[3] = symbol
    parts[4] = description
    parts[5] = series
    parts[15] = underlying
    parts[16] = expiry
    return "|".join(parts)


@pytest.fixture
def master_row() -> Callable[..., str]:
    """Builder for 17-field master rows with the positions the parser reads."""
    return _master_row

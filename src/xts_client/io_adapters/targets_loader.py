from __future__ import annotations

from pathlib import Path

import yaml

from xts_client.model.contracts import TargetUnderlying


def load_targets(path: Path) -> tuple[TargetUnderlying, ...]:
    """
    Load an underlyings YAML into typed targets, in file order:

        underlyings:
          NIFTY:
            kind: index
            aliases: ["Nifty 50"]
          HDFCBANK:
            kind: stock
            series: [FUTSTK, FUTIDX]
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Invalid targets YAML: expected a mapping")

    raw = data.get("underlyings") or {}
    if not isinstance(raw, dict):
        raise ValueError("targets.underlyings must be a mapping")

    targets: list[TargetUnderlying] = []
    for sym, row in raw.items():
        if row is None:
            row = {}
        if not isinstance(row, dict):
            raise ValueError(f"underlyings.{sym} must be a mapping")

        aliases = row.get("aliases") or ()
        series = row.get("series") or ()
        if isinstance(aliases, str) or isinstance(series, str):
            raise ValueError(f"underlyings.{sym}: aliases/series must be lists")

        targets.append(
            TargetUnderlying(
                symbol=str(sym),
                kind=str(row.get("kind") or "stock"),
                aliases=tuple(str(a) for a in aliases),
                series=tuple(str(s) for s in series),
            )
        )
    return tuple(targets)


def load_equities(path: Path) -> dict[str, int]:
    """Read the optional `equities:` section (symbol -> instrument id) of the same YAML."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Invalid targets YAML: expected a mapping")

    raw = data.get("equities") or {}
    if not isinstance(raw, dict):
        raise ValueError("targets.equities must be a mapping")

    out: dict[str, int] = {}
    for sym, val in raw.items():
        try:
            out[str(sym)] = int(val)
        except (TypeError, ValueError):
            raise ValueError(f"equities.{sym} must be an integer instrument id") from None
    return out

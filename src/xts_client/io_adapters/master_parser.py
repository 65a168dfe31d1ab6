from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from datetime import UTC, date, datetime

from ..model.contracts import (
    DEFAULT_TARGETS,
    REGULAR_FUTURE,
    InstrumentRecord,
    SelectedContract,
    TargetUnderlying,
)

logger = logging.getLogger(__name__)

# Master row positions (0-indexed, pipe-delimited)
#   [0]  exchange segment
#   [1]  exchange instrument id
#   [2]  instrument type (1=future, 2=option, 4=spread)
#   [3]  trading symbol
#   [4]  description
#   [5]  series (FUTIDX, FUTSTK, OPTSTK, ...)
#   [15] underlying name (blank for spreads)
#   [16] expiry, e.g. 2026-02-24T14:30:00
_MIN_FIELDS = 10

# rows end at CR or LF only; descriptions may carry other separator characters
_ROW_SEP = re.compile(r"[\r\n]+")


def _field(parts: Sequence[str], i: int) -> str:
    return parts[i].strip() if len(parts) > i else ""


def _parse_expiry(s: str) -> datetime | None:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    # keep every expiry naive so rows compare against each other
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def parse_master_row(line: str) -> InstrumentRecord | None:
    """
    Extract an InstrumentRecord from one master row.
    Returns None for truncated rows or a non-numeric instrument id.
    An unparseable expiry is kept as expiry=None so callers can decide.
    """
    parts = line.split("|")
    if len(parts) < _MIN_FIELDS:
        return None
    try:
        instrument_id = int(parts[1].strip())
    except ValueError:
        return None

    expiry_raw = _field(parts, 16)
    return InstrumentRecord(
        exchange_segment=_field(parts, 0),
        instrument_id=instrument_id,
        instrument_type=_field(parts, 2),
        trading_symbol=_field(parts, 3),
        description=_field(parts, 4),
        series=_field(parts, 5),
        underlying=_field(parts, 15),
        expiry_raw=expiry_raw,
        expiry=_parse_expiry(expiry_raw),
    )


def iter_instrument_records(blob: str) -> Iterator[InstrumentRecord]:
    """Yield every structurally valid row of the master blob; malformed rows are skipped."""
    for line in _ROW_SEP.split(blob):
        if not line.strip():
            continue
        rec = parse_master_row(line)
        if rec is not None:
            yield rec


def match_target(rec: InstrumentRecord, targets: Iterable[TargetUnderlying]) -> TargetUnderlying | None:
    """Return the first target this row is a regular future of, if any."""
    if rec.instrument_type != REGULAR_FUTURE:
        return None
    for t in targets:
        if rec.series not in t.series:
            continue
        if rec.trading_symbol == t.symbol or rec.match_key in t.match_keys():
            return t
    return None


def select_near_month(
    blob: str,
    targets: Sequence[TargetUnderlying] = DEFAULT_TARGETS,
    today: date | None = None,
) -> dict[str, SelectedContract]:
    """
    Pick the near-month future per target underlying.

    Rows must be regular futures in an allowed series for the target and expire on or
    after `today` (UTC date by default). Within a target, the minimum expiry wins; on an
    exact tie the first row encountered is kept. Targets with nothing active are absent.
    """
    today = today or datetime.now(UTC).date()
    if not blob or not blob.strip():
        return {}

    best: dict[str, SelectedContract] = {}
    n_rows = n_matched = n_active = 0
    for rec in iter_instrument_records(blob):
        n_rows += 1
        target = match_target(rec, targets)
        if target is None:
            continue
        n_matched += 1
        if rec.expiry is None:
            logger.debug(
                "master_row_bad_expiry",
                extra={"instrument_id": rec.instrument_id, "expiry_raw": rec.expiry_raw},
            )
            continue
        if rec.expiry.date() < today:
            continue
        n_active += 1

        current = best.get(target.symbol)
        if current is None or rec.expiry < current.expiry:
            best[target.symbol] = SelectedContract(
                underlying=target.symbol,
                description=rec.description,
                instrument_id=rec.instrument_id,
                expiry=rec.expiry,
            )

    logger.debug(
        "master_parsed",
        extra={"rows": n_rows, "matched": n_matched, "active": n_active, "today": today.isoformat()},
    )

    # emit in target order
    out: dict[str, SelectedContract] = {}
    for t in targets:
        sel = best.get(t.symbol)
        if sel is not None:
            out[sel.key] = sel
    return out


def near_month_ids(
    blob: str,
    targets: Sequence[TargetUnderlying] = DEFAULT_TARGETS,
    today: date | None = None,
) -> dict[str, int]:
    """Map "<UNDERLYING>-FUT-<YYYY-MM-DD>" -> instrument id."""
    return {k: c.instrument_id for k, c in select_near_month(blob, targets, today).items()}

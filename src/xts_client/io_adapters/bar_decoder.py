from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from ..model.bars import BarRecord

# Bar series: "<ts>|<open>|<high>|<low>|<close>|<volume>|<oi>|,<ts>|..."
#   one bar per comma group, 7 pipe fields, trailing empty field allowed
_BAR_SEP = ","
_FIELD_SEP = "|"
_N_FIELDS = 7


def _to_decimal(s: str) -> Decimal:
    d = Decimal(s.strip())
    if not d.is_finite():
        raise InvalidOperation(f"non-finite price: {s!r}")
    return d


def decode_bar(segment: str) -> BarRecord | None:
    """Decode one pipe-delimited bar group, or None if it is malformed."""
    parts = segment.split(_FIELD_SEP)
    if len(parts) < _N_FIELDS:
        return None
    try:
        return BarRecord(
            timestamp=int(parts[0]),
            open=_to_decimal(parts[1]),
            high=_to_decimal(parts[2]),
            low=_to_decimal(parts[3]),
            close=_to_decimal(parts[4]),
            volume=int(parts[5]),
            open_interest=int(parts[6]),
        )
    except (ValueError, InvalidOperation):
        return None


def decode_bars(data: str | None) -> list[BarRecord]:
    """
    Decode a bar series string into BarRecords in input order.
    Empty input gives an empty list; malformed groups are dropped individually.
    """
    if not data or not data.strip():
        return []
    out: list[BarRecord] = []
    for seg in data.split(_BAR_SEP):
        if not seg:
            continue
        bar = decode_bar(seg)
        if bar is not None:
            out.append(bar)
    return out


def encode_bars(bars: Iterable[BarRecord]) -> str:
    """Inverse of decode_bars, in the API's own layout (trailing pipe per bar)."""
    return _BAR_SEP.join(
        _FIELD_SEP.join(
            str(v) for v in (b.timestamp, b.open, b.high, b.low, b.close, b.volume, b.open_interest)
        )
        + _FIELD_SEP
        for b in bars
    )

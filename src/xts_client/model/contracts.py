from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

# Instrument-type code for a regular (non-spread) future in the master feed.
REGULAR_FUTURE = "1"

DEFAULT_SERIES: dict[str, tuple[str, ...]] = {
    "index": ("FUTIDX",),
    "stock": ("FUTSTK",),
}


@dataclass(frozen=True)
class TargetUnderlying:
    symbol: str  # e.g. "NIFTY"
    kind: str  # "index" | "stock"
    aliases: tuple[str, ...] = ()  # e.g. ("Nifty 50",)
    series: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.kind not in DEFAULT_SERIES:
            raise ValueError(f"Unsupported underlying kind: {self.kind!r}")
        if not self.series:
            object.__setattr__(self, "series", DEFAULT_SERIES[self.kind])

    def match_keys(self) -> frozenset[str]:
        return frozenset((self.symbol, *self.aliases))


@dataclass(frozen=True)
class InstrumentRecord:
    """One row of the instrument master, by position."""

    exchange_segment: str
    instrument_id: int
    instrument_type: str
    trading_symbol: str
    description: str
    series: str
    underlying: str
    expiry_raw: str
    expiry: datetime | None

    @property
    def match_key(self) -> str:
        # spread rows leave the underlying column empty
        return self.underlying or self.trading_symbol


@dataclass(frozen=True)
class SelectedContract:
    underlying: str
    description: str
    instrument_id: int
    expiry: datetime

    @property
    def expiry_date(self) -> date:
        return self.expiry.date()

    @property
    def key(self) -> str:
        return f"{self.underlying}-FUT-{self.expiry_date.isoformat()}"


DEFAULT_TARGETS: tuple[TargetUnderlying, ...] = (
    TargetUnderlying(symbol="NIFTY", kind="index", aliases=("Nifty 50",)),
    TargetUnderlying(symbol="HDFCBANK", kind="stock"),
)

# Cash-market instrument ids for the equity download (symbol -> exchange instrument id)
DEFAULT_EQUITIES: dict[str, int] = {
    "RELIANCE": 2885,
    "TCS": 11536,
    "HDFCBANK": 1333,
    "INFY": 1594,
    "ICICIBANK": 4963,
}

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..utils.xts_time import epoch_to_datetime


@dataclass(frozen=True)
class BarRecord:
    timestamp: int  # seconds since epoch
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int
    open_interest: int

    def to_datetime(self) -> datetime:
        return epoch_to_datetime(self.timestamp)

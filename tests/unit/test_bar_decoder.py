from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from xts_client.io_adapters.bar_decoder import decode_bar, decode_bars, encode_bars
from xts_client.model.bars import BarRecord

SAMPLE = (
    "1738569300|100.5|101.0|100.0|100.75|500|1200|,"
    "bad|entry,"
    "1738569360|100.75|101.2|100.5|101.0|600|1250|"
)


def test_skips_malformed_segment_between_good_ones() -> None:
    bars = decode_bars(SAMPLE)
    assert len(bars) == 2
    assert [b.timestamp for b in bars] == [1738569300, 1738569360]

    first = bars[0]
    assert first.open == Decimal("100.5")
    assert first.high == Decimal("101.0")
    assert first.low == Decimal("100.0")
    assert first.close == Decimal("100.75")
    assert first.volume == 500
    assert first.open_interest == 1200
    assert bars[1].open_interest == 1250


def test_prices_are_exact_decimals() -> None:
    (bar,) = decode_bars("1|0.1|0.2|0.1|0.3|1|0|")
    assert isinstance(bar.close, Decimal)
    assert bar.open + bar.high == bar.close


def test_empty_inputs() -> None:
    assert decode_bars("") == []
    assert decode_bars(",") == []
    assert decode_bars("   ") == []
    assert decode_bars(None) == []


def test_trailing_field_optional() -> None:
    with_pipe = decode_bars("1738569300|1|2|0.5|1.5|10|0|")
    without = decode_bars("1738569300|1|2|0.5|1.5|10|0")
    assert with_pipe == without
    assert len(with_pipe) == 1


def test_bad_values_drop_only_that_bar() -> None:
    data = ",".join(
        [
            "1|1|1|1|1|1|1|",
            "2|1|1|1|1|1|",  # six fields
            "3|x|1|1|1|1|1|",  # non-numeric price
            "4|1|1|1|1|1.5|1|",  # fractional volume
            "5|NaN|1|1|1|1|1|",  # non-finite price
            "6|1|1|1|1|1||",  # empty open interest
            "7|1|1|1|1|1|1|",
        ]
    )
    assert [b.timestamp for b in decode_bars(data)] == [1, 7]


def test_decode_bar_rejects_short_group() -> None:
    assert decode_bar("bad|entry") is None


def test_zero_volume_and_duplicates_pass_through() -> None:
    data = "10|5|5|5|5|0|0|,10|5|5|5|5|0|0|,9|5|5|5|5|0|0|"
    bars = decode_bars(data)
    # order preserved, no dedup, no sort
    assert [b.timestamp for b in bars] == [10, 10, 9]
    assert all(b.volume == 0 and b.open_interest == 0 for b in bars)


def test_encode_then_decode_reproduces_bars() -> None:
    bars = [
        BarRecord(1738569300, Decimal("100.50"), Decimal("101.00"), Decimal("100.00"), Decimal("100.75"), 500, 1200),
        BarRecord(1738569360, Decimal("100.75"), Decimal("101.2"), Decimal("100.5"), Decimal("101.0"), 0, 1250),
    ]
    text = encode_bars(bars)
    assert text == (
        "1738569300|100.50|101.00|100.00|100.75|500|1200|,"
        "1738569360|100.75|101.2|100.5|101.0|0|1250|"
    )
    assert decode_bars(text) == bars


def test_bar_datetime_is_utc() -> None:
    (bar,) = decode_bars("1738569300|1|1|1|1|1|1|")
    assert bar.to_datetime() == datetime(2025, 2, 3, 7, 55, tzinfo=UTC)

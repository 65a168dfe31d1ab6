from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as _FutureTimeout
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, TypeVar

from ..config.loader import Config
from ..io_adapters.bar_decoder import decode_bars
from ..io_adapters.envelope import unwrap_bars, unwrap_master
from ..io_adapters.master_parser import select_near_month
from ..model.bars import BarRecord
from ..model.contracts import DEFAULT_TARGETS, SelectedContract, TargetUnderlying
from ..utils.logging import get_logger
from ..utils.xts_time import format_request_time

T = TypeVar("T")

# Collaborators (transport lives outside this package)
FetchMaster = Callable[[], str]
FetchBars = Callable[[int, str, datetime, datetime, int], str]  # id, segment, start, end, interval


class FetchTimeout(TimeoutError):
    """A collaborator fetch did not return before its deadline."""


@dataclass(frozen=True)
class DownloadRequest:
    start: datetime
    end: datetime
    segment: str | None = None  # default: cfg.segment (F&O) / cfg.equity_segment
    interval_seconds: int | None = None  # default: cfg.interval_seconds
    run_id: str | None = None
    today: date | None = None  # default: current UTC date


@dataclass(frozen=True)
class InstrumentBars:
    key: str  # "NIFTY-FUT-2026-02-24" or an equity symbol
    instrument_id: int
    bars: list[BarRecord]
    error: str | None = None
    contract: SelectedContract | None = None  # set for F&O downloads

    @property
    def ok(self) -> bool:
        return self.error is None


class SelectionCache:
    """
    Optional memo of near-month selections keyed by (blob sha256, today, targets).
    Owned by the caller; select_near_month itself never caches.
    Holds at most `max_entries` selections, dropping the oldest first.
    """

    def __init__(self, max_entries: int = 32) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: dict[tuple[str, date, tuple[TargetUnderlying, ...]], dict[str, SelectedContract]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def select(
        self,
        blob: str,
        targets: Sequence[TargetUnderlying],
        today: date,
    ) -> dict[str, SelectedContract]:
        digest = hashlib.sha256(blob.encode("utf-8")).hexdigest()
        key = (digest, today, tuple(targets))
        hit = self._entries.get(key)
        if hit is None:
            hit = select_near_month(blob, targets, today)
            while len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = hit
        return dict(hit)

    def clear(self) -> None:
        self._entries.clear()


# --- helpers -----------------------------------------------------------------


def call_with_deadline(fn: Callable[..., T], timeout: float, *args: Any) -> T:
    """
    Run fn(*args) and give up after `timeout` seconds (0 = no deadline).
    The call runs on a daemon thread: a timed-out fetch is abandoned, its result
    discarded, and it does not hold the interpreter open at exit.
    """
    if timeout <= 0:
        return fn(*args)
    fut: Future[T] = Future()

    def _run() -> None:
        if not fut.set_running_or_notify_cancel():
            return
        try:
            fut.set_result(fn(*args))
        except BaseException as e:
            fut.set_exception(e)

    threading.Thread(target=_run, name="xts-fetch", daemon=True).start()
    try:
        return fut.result(timeout=timeout)
    except _FutureTimeout:
        fut.cancel()
        raise FetchTimeout(f"fetch exceeded {timeout:g}s deadline") from None


def _describe(e: BaseException) -> str:
    return f"{type(e).__name__}: {e}"


def fetch_bars_sequential(
    cfg: Config,
    req: DownloadRequest,
    instruments: Mapping[str, int],
    fetch_bars: FetchBars,
    segment: str,
    log: logging.Logger,
    sleep: Callable[[float], None] = time.sleep,
    contracts: Mapping[str, SelectedContract] | None = None,
) -> list[InstrumentBars]:
    """One fetch + decode per instrument, in mapping order, pausing between requests."""
    interval = req.interval_seconds or cfg.interval_seconds
    results: list[InstrumentBars] = []
    for i, (key, instrument_id) in enumerate(instruments.items()):
        if i:
            sleep(cfg.request_pause)
        contract = contracts.get(key) if contracts else None
        ctx = {
            "key": key,
            "instrument_id": instrument_id,
            "segment": segment,
            "start": format_request_time(req.start),
            "end": format_request_time(req.end),
            "interval": interval,
        }
        try:
            raw = call_with_deadline(
                fetch_bars,
                cfg.fetch_timeout,
                instrument_id,
                segment,
                req.start,
                req.end,
                interval,
            )
            bars = decode_bars(unwrap_bars(raw))
        except Exception as e:
            err = _describe(e)
            log.error("bars_fetch_failed", extra={**ctx, "error": err})
            results.append(InstrumentBars(key, instrument_id, [], error=err, contract=contract))
            continue

        if bars:
            log.info(
                "bars_decoded",
                extra={
                    **ctx,
                    "count": len(bars),
                    "first_ts": bars[0].timestamp,
                    "last_ts": bars[-1].timestamp,
                    "last_oi": bars[-1].open_interest,
                },
            )
        else:
            log.warning("bars_empty", extra=ctx)
        results.append(InstrumentBars(key, instrument_id, bars, contract=contract))
    return results


# --- main pipelines ----------------------------------------------------------


def run_download(
    cfg: Config,
    req: DownloadRequest,
    fetch_master: FetchMaster,
    fetch_bars: FetchBars,
    targets: Sequence[TargetUnderlying] = DEFAULT_TARGETS,
    sleep: Callable[[float], None] = time.sleep,
    cache: SelectionCache | None = None,
) -> list[InstrumentBars]:
    """
    Near-month F&O download: discover contracts from the master feed, then fetch
    and decode bars for each. A failed master fetch yields []; a failed bar fetch
    is logged and recorded, and the run moves on to the next contract.
    """
    log = get_logger("xts_client", logs_root=cfg.logs_root, run_id=req.run_id)
    today = req.today or datetime.now(UTC).date()

    try:
        blob = unwrap_master(call_with_deadline(fetch_master, cfg.fetch_timeout))
    except Exception as e:
        log.error("master_fetch_failed", extra={"error": _describe(e)})
        return []

    if cache is not None:
        selected = cache.select(blob, targets, today)
    else:
        selected = select_near_month(blob, targets, today)

    missing = sorted({t.symbol for t in targets} - {c.underlying for c in selected.values()})
    log.info(
        "contracts_selected",
        extra={
            "today": today.isoformat(),
            "selected": {k: c.instrument_id for k, c in selected.items()},
            "missing": missing,
        },
    )
    if not selected:
        log.warning("no_active_contracts", extra={"targets": [t.symbol for t in targets]})
        return []

    results = fetch_bars_sequential(
        cfg,
        req,
        {k: c.instrument_id for k, c in selected.items()},
        fetch_bars,
        segment=req.segment or cfg.segment,
        log=log,
        sleep=sleep,
        contracts=selected,
    )
    log.info(
        "download_done",
        extra={"instruments": len(results), "failed": sum(1 for r in results if not r.ok)},
    )
    return results


def run_equity_download(
    cfg: Config,
    req: DownloadRequest,
    instruments: Mapping[str, int],
    fetch_bars: FetchBars,
    sleep: Callable[[float], None] = time.sleep,
) -> list[InstrumentBars]:
    """Cash-market download for a fixed symbol -> instrument id table."""
    log = get_logger("xts_client", logs_root=cfg.logs_root, run_id=req.run_id)
    results = fetch_bars_sequential(
        cfg,
        req,
        instruments,
        fetch_bars,
        segment=req.segment or cfg.equity_segment,
        log=log,
        sleep=sleep,
    )
    log.info(
        "equity_download_done",
        extra={"instruments": len(results), "failed": sum(1 for r in results if not r.ok)},
    )
    return results

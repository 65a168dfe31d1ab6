from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from . import __version__
from .config.loader import Config, load_config
from .io_adapters.bar_decoder import decode_bars
from .io_adapters.envelope import EnvelopeError, unwrap_bars, unwrap_master
from .io_adapters.master_parser import select_near_month
from .io_adapters.targets_loader import load_equities, load_targets
from .model.bars import BarRecord
from .model.contracts import DEFAULT_EQUITIES, DEFAULT_TARGETS, TargetUnderlying
from .pipeline.download import DownloadRequest, InstrumentBars, run_download, run_equity_download
from .utils.logging import get_logger
from .utils.xts_time import parse_request_time


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="xts-client", description="XTS market-data contract discovery and bar decoding")
    sub = p.add_subparsers(dest="cmd", required=False)

    # version
    sub.add_parser("version", help="print version")

    # doctor
    doctor = sub.add_parser("doctor", help="print effective config")
    doctor.add_argument("--config", type=Path, default=None, help="Optional YAML settings file")

    # contracts
    contracts = sub.add_parser("contracts", help="select near-month futures from an instrument-master dump")
    contracts.add_argument("master", type=Path, help="Master file (raw pipe rows or the API JSON response)")
    contracts.add_argument("--config", type=Path, default=None, help="Optional YAML settings file")
    contracts.add_argument("--targets", type=Path, default=None, help="Underlyings YAML (overrides config targets_file)")
    contracts.add_argument("--today", type=lambda s: date.fromisoformat(s), default=None, help="YYYY-MM-DD (default: UTC today)")
    contracts.add_argument("--json", dest="as_json", action="store_true", help="Output JSON")

    # bars
    bars = sub.add_parser("bars", help="decode a bar-series dump")
    bars.add_argument("file", type=Path, help="Bar file (raw series string or the API JSON response)")
    bars.add_argument("--config", type=Path, default=None, help="Optional YAML settings file (display timezone)")
    bars.add_argument("--limit", type=int, default=5, help="Rows printed from each end (default: 5)")
    bars.add_argument("--json", dest="as_json", action="store_true", help="Output JSON")

    # replay (orchestration over saved responses)
    replay = sub.add_parser("replay", help="run the download pipeline against saved master/bar responses")
    replay.add_argument("master", type=Path, help="Saved master response")
    replay.add_argument("--bars-dir", type=Path, required=True, help="Folder of <instrument_id>.txt bar responses")
    replay.add_argument("--start", type=parse_request_time, required=True, help='e.g. "Feb 03 2026 091500"')
    replay.add_argument("--end", type=parse_request_time, required=True, help='e.g. "Feb 03 2026 153000"')
    replay.add_argument("--config", type=Path, default=None, help="Optional YAML settings file")
    replay.add_argument("--targets", type=Path, default=None, help="Underlyings YAML (overrides config targets_file)")
    replay.add_argument("--today", type=lambda s: date.fromisoformat(s), default=None, help="YYYY-MM-DD (default: UTC today)")
    replay.add_argument("--equities", action="store_true", help="Also replay the cash-market equity table")

    return p


def _run_id() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def _targets_for(cfg: Config, override: Path | None) -> tuple[TargetUnderlying, ...]:
    path = override or cfg.targets_file
    return load_targets(path) if path else DEFAULT_TARGETS


def _equities_for(cfg: Config, override: Path | None) -> dict[str, int]:
    path = override or cfg.targets_file
    found = load_equities(path) if path else {}
    return found or dict(DEFAULT_EQUITIES)


def _fmt_bar(b: BarRecord, tz: ZoneInfo) -> str:
    try:
        ts = b.to_datetime().astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        # outside the platform datetime range
        ts = f"epoch {b.timestamp}"
    return f"{ts} | O:{b.open} H:{b.high} L:{b.low} C:{b.close} V:{b.volume} OI:{b.open_interest}"


def _bar_json(b: BarRecord) -> dict[str, object]:
    d = asdict(b)
    for k in ("open", "high", "low", "close"):
        d[k] = str(d[k])
    return d


def _print_result(r: InstrumentBars, tz: ZoneInfo) -> None:
    if not r.ok:
        print(f"  [WARN] {r.key} (ID: {r.instrument_id}): {r.error}")
        return
    if not r.bars:
        print(f"  [WARN] {r.key} (ID: {r.instrument_id}): no data received")
        return
    print(f"  [OK] {r.key} (ID: {r.instrument_id}): {len(r.bars)} bars")
    print(f"       First: {_fmt_bar(r.bars[0], tz)}")
    print(f"       Last:  {_fmt_bar(r.bars[-1], tz)}")


def _cmd_contracts(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    get_logger("xts_client", logs_root=cfg.logs_root, run_id=_run_id())
    if not args.master.exists():
        print(f"Master file not found: {args.master}")
        return 2

    targets = _targets_for(cfg, args.targets)
    try:
        blob = unwrap_master(args.master.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        print(f"Master file is not UTF-8: {args.master} ({e.reason} at byte {e.start})")
        return 2
    except EnvelopeError as e:
        print(f"Master response is an error: {e}")
        return 2

    selected = select_near_month(blob, targets, args.today)
    if args.as_json:
        print(
            json.dumps(
                {
                    k: {
                        "underlying": c.underlying,
                        "description": c.description,
                        "instrument_id": c.instrument_id,
                        "expiry": c.expiry.isoformat(),
                    }
                    for k, c in selected.items()
                },
                ensure_ascii=False,
                indent=2,
            )
        )
    else:
        for k, c in selected.items():
            print(f"{k:<28} id={c.instrument_id:<8} {c.description}")
        found = {c.underlying for c in selected.values()}
        for t in targets:
            if t.symbol not in found:
                print(f"{t.symbol:<28} no active contract")
    return 0 if selected else 4


def _cmd_bars(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    if not args.file.exists():
        print(f"Bar file not found: {args.file}")
        return 2
    try:
        series = unwrap_bars(args.file.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        print(f"Bar file is not UTF-8: {args.file} ({e.reason} at byte {e.start})")
        return 2
    except EnvelopeError as e:
        print(f"Bar response is an error: {e}")
        return 2

    bars = decode_bars(series)
    if args.as_json:
        print(json.dumps([_bar_json(b) for b in bars], indent=2))
        return 0

    if not bars:
        print("No bars.")
        return 0
    tz = ZoneInfo(cfg.timezone)
    n = max(0, int(args.limit))
    print(f"{len(bars)} bars ({cfg.timezone})")
    shown = bars[:n] + bars[-n:] if n and len(bars) > 2 * n else bars
    for i, b in enumerate(shown):
        if n and len(bars) > 2 * n and i == n:
            print("  ...")
        print(f"  {_fmt_bar(b, tz)}")
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    if not args.master.exists():
        print(f"Master file not found: {args.master}")
        return 2
    if not args.bars_dir.is_dir():
        print(f"Bars folder not found: {args.bars_dir}")
        return 2

    try:
        master_text = args.master.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        print(f"Master file is not UTF-8: {args.master} ({e.reason} at byte {e.start})")
        return 2
    bars_dir: Path = args.bars_dir

    def fetch_master() -> str:
        return master_text

    def fetch_bars(instrument_id: int, segment: str, start: datetime, end: datetime, interval: int) -> str:
        return (bars_dir / f"{instrument_id}.txt").read_text(encoding="utf-8")

    req = DownloadRequest(start=args.start, end=args.end, run_id=_run_id(), today=args.today)
    tz = ZoneInfo(cfg.timezone)
    results: list[InstrumentBars] = []

    if args.equities:
        print("Equity (cash market):")
        eq = run_equity_download(cfg, req, _equities_for(cfg, args.targets), fetch_bars, sleep=lambda _s: None)
        for r in eq:
            _print_result(r, tz)
        results.extend(eq)

    print("Near-month futures:")
    fno = run_download(cfg, req, fetch_master, fetch_bars, _targets_for(cfg, args.targets), sleep=lambda _s: None)
    if not fno:
        print("  [WARN] No near-month contracts found.")
    for r in fno:
        _print_result(r, tz)
    results.extend(fno)

    return 0 if any(r.ok and r.bars for r in results) else 4


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "version":
        print(__version__)
        return 0

    if args.cmd == "doctor":
        cfg = load_config(args.config)
        run_id = _run_id()
        log = get_logger("xts_client", logs_root=cfg.logs_root, run_id=run_id)

        print("env ok")
        print(f"config.logs_root        = {cfg.logs_root}")
        print(f"config.timezone         = {cfg.timezone}")
        print(f"config.segment          = {cfg.segment}")
        print(f"config.equity_segment   = {cfg.equity_segment}")
        print(f"config.interval_seconds = {cfg.interval_seconds}")
        print(f"config.request_pause    = {cfg.request_pause}")
        print(f"config.fetch_timeout    = {cfg.fetch_timeout}")
        if cfg.targets_file:
            print(f"config.targets_file     = {cfg.targets_file}")

        log.info(
            "doctor_config",
            extra={
                "logs_root": str(cfg.logs_root),
                "timezone": cfg.timezone,
                "segment": cfg.segment,
                "equity_segment": cfg.equity_segment,
                "interval_seconds": cfg.interval_seconds,
                "request_pause": cfg.request_pause,
                "fetch_timeout": cfg.fetch_timeout,
                "targets_file": str(cfg.targets_file) if cfg.targets_file else None,
                "run_id": run_id,
            },
        )
        return 0

    if args.cmd == "contracts":
        return _cmd_contracts(args)

    if args.cmd == "bars":
        return _cmd_bars(args)

    if args.cmd == "replay":
        return _cmd_replay(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())

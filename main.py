"""
===============================================================================
  MOVEMENT SCANNER — Command-line driver
===============================================================================
  Reads a candle file, runs the three-tier movement scan and reports:
    1. Opening price and the FM / LM / SM thresholds
    2. Hit counts per tier
    3. The first N movement events
    4. Optionally the full summary as JSON
===============================================================================

  Usage:
    python main.py candles.csv                 # IV from config (default 30)
    python main.py candles.json --iv 45        # explicit IV %
    python main.py candles.csv --output out.json --limit 20
    python main.py candles.csv -v              # include scan debug lines
===============================================================================
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import pandas as pd

import config as cfg
from core.candles import Candle, CandleError, candles_from_columns, candles_from_frame, candles_from_records
from core.movements import MovementInputError, MovementSummary, Tier, detect_movements
from utils.logger import setup_logging, get_logger

log = get_logger("main")


# ═════════════════════════════════════════════════════════════════════════════
#  INPUT
# ═════════════════════════════════════════════════════════════════════════════

def load_candles(path: Path) -> tuple[Candle, ...]:
    """
    Load candles from a ``.csv`` (timestamp, open, high, low, close columns)
    or ``.json`` file (array of records, or ``t/o/h/l/c`` column arrays).
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return candles_from_frame(pd.read_csv(path))
    if suffix == ".json":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            return candles_from_columns(data)
        if isinstance(data, list):
            return candles_from_records(data)
        raise CandleError(f"expected a JSON array or object, got {type(data).__name__}")
    raise CandleError(f"unsupported candle file type: {path.suffix or '(none)'}")


# ═════════════════════════════════════════════════════════════════════════════
#  OUTPUT
# ═════════════════════════════════════════════════════════════════════════════

def log_summary(summary: MovementSummary, limit: int) -> None:
    log.info(
        f"Opening price: {summary.opening_price:,.2f}  │  IV={summary.volatility_percent}%  "
        f"│  {summary.candle_count} candles"
    )
    for tier in Tier:
        log.info(
            f"  {tier.name}: th={summary.thresholds.for_tier(tier):,.2f}  "
            f"Hits: {summary.hit_counts[tier.name]}"
        )

    if not summary.events:
        log.info("No events found.")
        return

    shown = summary.events[:limit] if limit > 0 else summary.events
    log.info(f"Movement events (first {len(shown)} of {len(summary.events)}):")
    for e in shown:
        log.info(
            f"  [{e.timestamp_iso or e.timestamp}] {e.tier.name} {e.direction:<4} │ "
            f"Price: {e.observed_price:,.2f}  Th: {e.threshold_level:,.2f}  "
            f"Prev: {e.previous_reference:,.2f} → New: {e.new_reference:,.2f}"
        )


def write_summary(summary: MovementSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary.to_dict(), f, indent=2)
    log.info(f"Summary written → {path}")


# ═════════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═════════════════════════════════════════════════════════════════════════════

def run(args: argparse.Namespace) -> int:
    """Execute one scan; returns the process exit code."""
    path = Path(args.candles)
    try:
        candles = load_candles(path)
        summary = detect_movements(candles, args.iv)
    except (CandleError, MovementInputError) as e:
        log.error(f"Invalid input for {path}: {e}")
        return 1
    except (OSError, UnicodeDecodeError, json.JSONDecodeError,
            pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        log.error(f"Could not read {path}: {e}")
        return 1

    if summary is None:
        log.error(f"Nothing to scan in {path}: no candles, or the first candle has no close")
        return 1

    log_summary(summary, args.limit)
    if args.output:
        write_summary(summary, Path(args.output))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Three-tier IV movement scanner")
    parser.add_argument("candles", help="Candle file (.csv or .json)")
    parser.add_argument("--iv", type=float, default=cfg.DEFAULT_VOLATILITY_PERCENT,
                        help=f"Implied volatility %% (default {cfg.DEFAULT_VOLATILITY_PERCENT})")
    parser.add_argument("--limit", type=int, default=cfg.EVENT_LOG_LIMIT,
                        help="Max events to log, 0 = all")
    parser.add_argument("--output", default="", help="Write the full summary as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    return parser


def main():
    args = build_parser().parse_args()
    setup_logging("DEBUG" if args.verbose else None)
    sys.exit(run(args))


if __name__ == "__main__":
    main()

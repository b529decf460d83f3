"""
===============================================================================
  Candles — the canonical price record and its validation boundary
===============================================================================
  Market-data feeds arrive in different shapes: row records, column arrays,
  or DataFrames.  The builders here turn each of them into a tuple of
  Candle objects and reject anything malformed at construction time, so the
  movement engine never has to coerce or second-guess a field.

  Ordering is the caller's contract: nothing here sorts, dedupes or checks
  that timestamps ascend.
===============================================================================
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

import numpy as np
import pandas as pd

PRICE_FIELDS = ("open", "high", "low", "close")
COLUMN_KEYS = {"t": "timestamp", "o": "open", "h": "high", "l": "low", "c": "close"}


class CandleError(ValueError):
    """Raised when a candle field is missing or not of the expected type."""


def _check_price(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise CandleError(f"{name} must be a number or None, got {value!r}")
    value = float(value)
    if math.isnan(value):
        raise CandleError(f"{name} is NaN; pass None for a missing price")
    return value


@dataclass(frozen=True)
class Candle:
    """One interval's OHLC record, timestamp in epoch milliseconds."""
    timestamp: int
    open: Optional[float]
    high: Optional[float]
    low: Optional[float]
    close: Optional[float]

    def __post_init__(self):
        ts = self.timestamp
        if isinstance(ts, bool) or not isinstance(ts, numbers.Integral):
            raise CandleError(f"timestamp must be an integer (epoch ms), got {ts!r}")
        object.__setattr__(self, "timestamp", int(ts))
        for name in PRICE_FIELDS:
            object.__setattr__(self, name, _check_price(name, getattr(self, name)))


# ═════════════════════════════════════════════════════════════════════════════
#  BUILDERS
# ═════════════════════════════════════════════════════════════════════════════

def candles_from_records(records: Iterable[Mapping[str, Any]]) -> tuple[Candle, ...]:
    """
    Build candles from row-oriented records, e.g.
    ``[{"timestamp": 1727740800000, "open": 1.0, "high": ..., ...}, ...]``.

    Price keys may be absent (treated as None); ``timestamp`` is required.
    """
    candles = []
    for i, rec in enumerate(records):
        if not isinstance(rec, Mapping):
            raise CandleError(f"record {i} is not a mapping: {rec!r}")
        if "timestamp" not in rec:
            raise CandleError(f"record {i} has no timestamp")
        try:
            candles.append(Candle(
                timestamp=rec["timestamp"],
                **{name: rec.get(name) for name in PRICE_FIELDS},
            ))
        except CandleError as e:
            raise CandleError(f"record {i}: {e}") from e
    return tuple(candles)


def candles_from_columns(columns: Mapping[str, Iterable[Any]]) -> tuple[Candle, ...]:
    """
    Build candles from column arrays keyed ``t/o/h/l/c``.

    All five columns must be present and of equal length.
    """
    missing = [k for k in COLUMN_KEYS if k not in columns]
    if missing:
        raise CandleError(f"missing columns: {', '.join(missing)}")

    not_arrays = [k for k in COLUMN_KEYS if not isinstance(columns[k], (list, tuple, np.ndarray))]
    if not_arrays:
        raise CandleError(f"columns must be arrays: {', '.join(not_arrays)}")

    arrays = {k: list(columns[k]) for k in COLUMN_KEYS}
    lengths = {k: len(v) for k, v in arrays.items()}
    if len(set(lengths.values())) > 1:
        raise CandleError(f"column lengths differ: {lengths}")

    records = [
        {field: arrays[key][i] for key, field in COLUMN_KEYS.items()}
        for i in range(lengths["t"])
    ]
    return candles_from_records(records)


def _frame_timestamps(df: pd.DataFrame) -> list:
    if "timestamp" in df.columns:
        return df["timestamp"].tolist()
    if isinstance(df.index, pd.DatetimeIndex):
        epoch = pd.Timestamp("1970-01-01", tz=df.index.tz)
        return ((df.index - epoch) // pd.Timedelta(milliseconds=1)).tolist()
    raise CandleError("frame needs a 'timestamp' column or a DatetimeIndex")


def _nan_to_none(values: np.ndarray) -> list:
    out = []
    for v in values:
        if isinstance(v, (float, np.floating)) and np.isnan(v):
            out.append(None)
        else:
            out.append(v)
    return out


def candles_from_frame(df: pd.DataFrame) -> tuple[Candle, ...]:
    """
    Build candles from a DataFrame with ``open/high/low/close`` columns.

    Timestamps come from a ``timestamp`` column (epoch ms) when present,
    otherwise from the DatetimeIndex.  NaN prices become None.
    """
    if df is None or len(df) == 0:
        return ()

    missing = [c for c in PRICE_FIELDS if c not in df.columns]
    if missing:
        raise CandleError(f"missing columns: {', '.join(missing)}")

    columns = {"t": _frame_timestamps(df)}
    for key, field in COLUMN_KEYS.items():
        if key != "t":
            columns[key] = _nan_to_none(df[field].to_numpy())
    return candles_from_columns(columns)

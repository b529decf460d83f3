"""
===============================================================================
  Movement Detection — three-tier ratchet scan over a candle series
===============================================================================
  Reproduces the spreadsheet methodology used for implied-volatility
  movement counting:

    opening   = close of the first candle
    FM        = (IV% / 1900) * opening
    LM        = 0.7  * FM
    SM        = 0.25 * FM

  Each tier keeps a reference price starting at the opening price.  For
  every candle, in order:
    1. high - ref >= threshold   → upward hit, ref = high
    2. otherwise low - ref <= -threshold → downward hit, ref = low
  The upward check always wins when a candle breaches both ways.  A missing
  high or low simply disables that side for the candle.

  The three tiers never interact; a single candle can produce up to three
  events, one per tier.
===============================================================================
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

import pandas as pd

from core.candles import Candle
from utils.logger import get_logger

log = get_logger("movements")

# Calibration constant of the reference methodology.  Not configurable.
IV_DIVISOR: float = 1900.0

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

EVENT_COLUMNS = [
    "index", "timestamp", "timestamp_iso", "tier", "direction",
    "observed_price", "threshold_level", "previous_reference",
    "new_reference", "delta",
]


class MovementInputError(ValueError):
    """Raised when the volatility percentage is not a real number."""


class Tier(Enum):
    """Sensitivity tier; the value is the scale applied to the FM threshold."""
    FM = 1.0
    LM = 0.7
    SM = 0.25

    @property
    def scale(self) -> float:
        return self.value


# Evaluation order, also the tie-break order for events sharing a candle
_TIER_ORDER = {tier: i for i, tier in enumerate(Tier)}


# ═════════════════════════════════════════════════════════════════════════════
#  RESULT TYPES
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ThresholdSet:
    """Price-delta magnitudes for the three tiers, derived from one base."""
    fm: float
    lm: float
    sm: float

    @classmethod
    def from_volatility(cls, opening_price: float, volatility_percent: float) -> ThresholdSet:
        fm = (volatility_percent / IV_DIVISOR) * opening_price
        return cls(fm=fm, lm=fm * Tier.LM.scale, sm=fm * Tier.SM.scale)

    def for_tier(self, tier: Tier) -> float:
        return getattr(self, tier.name.lower())

    def to_dict(self) -> dict[str, float]:
        return {tier.name: self.for_tier(tier) for tier in Tier}


@dataclass(frozen=True)
class HitCounts:
    """Number of breaches per tier."""
    fm: int = 0
    lm: int = 0
    sm: int = 0

    def __getitem__(self, tier: Tier | str) -> int:
        name = tier.name if isinstance(tier, Tier) else tier
        return getattr(self, name.lower())

    def to_dict(self) -> dict[str, int]:
        return {tier.name: self[tier] for tier in Tier}


@dataclass(frozen=True)
class MovementEvent:
    """One threshold breach on one tier."""
    index: int
    timestamp: int
    tier: Tier
    direction: str              # "up" or "down"
    observed_price: float
    threshold_level: float
    previous_reference: float
    new_reference: float
    delta: float                # observed_price - previous_reference

    @property
    def timestamp_iso(self) -> Optional[str]:
        """UTC ISO-8601 time, or None when outside the datetime range (years 1-9999)."""
        try:
            dt = _EPOCH + timedelta(milliseconds=self.timestamp)
        except OverflowError:
            return None
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "timestamp_iso": self.timestamp_iso,
            "tier": self.tier.name,
            "direction": self.direction,
            "observed_price": self.observed_price,
            "threshold_level": self.threshold_level,
            "previous_reference": self.previous_reference,
            "new_reference": self.new_reference,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class MovementSummary:
    """Complete output of one scan."""
    opening_price: float
    volatility_percent: float
    thresholds: ThresholdSet
    hit_counts: HitCounts
    events: tuple[MovementEvent, ...]
    candle_count: int

    def events_for(self, tier: Tier) -> list[MovementEvent]:
        return [e for e in self.events if e.tier is tier]

    def to_dict(self) -> dict:
        return {
            "opening_price": self.opening_price,
            "volatility_percent": self.volatility_percent,
            "thresholds": self.thresholds.to_dict(),
            "hit_counts": self.hit_counts.to_dict(),
            "candle_count": self.candle_count,
            "events": [e.to_dict() for e in self.events],
        }

    def events_frame(self) -> pd.DataFrame:
        """Event log as a DataFrame, one row per event."""
        return pd.DataFrame([e.to_dict() for e in self.events], columns=EVENT_COLUMNS)


# ═════════════════════════════════════════════════════════════════════════════
#  RATCHET TRACKER
# ═════════════════════════════════════════════════════════════════════════════

class _RatchetTracker:
    """Reference price and hit count for a single tier."""

    def __init__(self, tier: Tier, threshold: float, opening_price: float):
        self.tier = tier
        self.threshold = threshold
        self.reference = opening_price
        self.hits = 0

    def step(self, index: int, candle: Candle) -> Optional[MovementEvent]:
        high, low = candle.high, candle.low
        if high is not None and high - self.reference >= self.threshold:
            return self._ratchet(index, candle.timestamp, high, "up")
        if low is not None and low - self.reference <= -self.threshold:
            return self._ratchet(index, candle.timestamp, low, "down")
        return None

    def _ratchet(self, index: int, timestamp: int, price: float, direction: str) -> MovementEvent:
        event = MovementEvent(
            index=index,
            timestamp=timestamp,
            tier=self.tier,
            direction=direction,
            observed_price=price,
            threshold_level=self.threshold,
            previous_reference=self.reference,
            new_reference=price,
            delta=price - self.reference,
        )
        self.reference = price
        self.hits += 1
        return event


# ═════════════════════════════════════════════════════════════════════════════
#  ENGINE
# ═════════════════════════════════════════════════════════════════════════════

def detect_movements(
    candles: Optional[Sequence[Candle]],
    volatility_percent: float,
) -> Optional[MovementSummary]:
    """
    Scan *candles* once and count FM / LM / SM movements.

    Parameters
    ----------
    candles : sequence of Candle
        Time-ascending candles.  Not re-sorted or validated for order.
    volatility_percent : float
        Implied volatility in percent, used only as a linear scale.

    Returns
    -------
    MovementSummary or None
        None when there are no candles to analyse, or the first candle
        has no close to serve as the opening price.

    Raises
    ------
    MovementInputError
        If *volatility_percent* is not a real number (bools and NaN included).
    """
    if not candles:
        return None

    if isinstance(volatility_percent, bool) or not isinstance(volatility_percent, numbers.Real):
        raise MovementInputError(f"volatility_percent must be a number, got {volatility_percent!r}")
    volatility_percent = float(volatility_percent)
    if math.isnan(volatility_percent):
        raise MovementInputError("volatility_percent is NaN")

    opening_price = candles[0].close
    if opening_price is None:
        log.warning("First candle has no close; no opening price to scan from")
        return None

    thresholds = ThresholdSet.from_volatility(opening_price, volatility_percent)
    trackers = [
        _RatchetTracker(tier, thresholds.for_tier(tier), opening_price)
        for tier in Tier
    ]

    events: list[MovementEvent] = []
    for i, candle in enumerate(candles):
        for tracker in trackers:
            event = tracker.step(i, candle)
            if event is not None:
                events.append(event)

    events.sort(key=lambda e: (e.timestamp, e.index, _TIER_ORDER[e.tier]))
    hit_counts = HitCounts(**{t.tier.name.lower(): t.hits for t in trackers})

    log.debug(
        f"Scanned {len(candles)} candles  open={opening_price}  IV={volatility_percent}%  "
        f"th FM={thresholds.fm:.6f} LM={thresholds.lm:.6f} SM={thresholds.sm:.6f}  "
        f"hits {hit_counts.to_dict()}"
    )

    return MovementSummary(
        opening_price=opening_price,
        volatility_percent=volatility_percent,
        thresholds=thresholds,
        hit_counts=hit_counts,
        events=tuple(events),
        candle_count=len(candles),
    )

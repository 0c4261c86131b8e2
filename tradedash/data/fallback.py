from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from tradedash.data.models import NUMERIC_FIELDS, CompositeDataPoint
from tradedash.data.parsing import synthesize_timestamps, to_number
from tradedash.utils.clock import Clock, SystemClock
from tradedash.utils.timeframes import display_time

logger = logging.getLogger("tradedash")

# Realistic ranges used when a field is missing, chosen around a DOGE-sized market.
# Ratios are long/short, volumes/notional in USD, prices in quote ccy.
FALLBACK_BOUNDS: Dict[str, Tuple[float, float]] = {
    "open_interest": (8.0e9, 1.2e10),
    "notional_value": (1.5e9, 3.0e9),
    "long_short_accounts": (1.5, 3.5),
    "long_short_positions": (2.5, 5.0),
    "long_short_ratio": (1.0, 3.0),
    "taker_buy": (5.5e9, 8.5e9),
    "taker_sell": (5.5e9, 8.5e9),
    "taker_buy_sell_ratio": (0.5, 1.5),
    "futures_price": (0.2525, 0.2575),
    "price_index": (0.2522, 0.2572),
    "basis": (-0.0005, 0.0005),
}

# (ratio, long %, short %) triples sharing the ratio <-> percentage invariant.
RATIO_GROUPS: Tuple[Tuple[str, str, str], ...] = (
    ("long_short_accounts", "long_account", "short_account"),
    ("long_short_positions", "long_position", "short_position"),
    ("long_short_ratio", "global_long_account", "global_short_account"),
)


def split_from_ratio(ratio: float) -> Tuple[float, float]:
    """long = 100*r/(1+r), short = 100/(1+r); long + short == 100, long/short == r."""
    return 100.0 * ratio / (1.0 + ratio), 100.0 / (1.0 + ratio)


def _normalize_pcts(long_pct: Optional[float], short_pct: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
    """
    Providers report account shares either as 0..1 fractions or 0..100 percents.
    Both sides present: decide on their sum. One side: a share <= 1 is a fraction.
    """
    if long_pct is not None and short_pct is not None:
        scale = 100.0 if (long_pct + short_pct) <= 1.5 else 1.0
    else:
        x = long_pct if long_pct is not None else short_pct
        scale = 100.0 if x is not None and x <= 1.0 else 1.0

    def _fix(v: Optional[float]) -> Optional[float]:
        if v is None or v < 0:
            return None
        return max(0.0, min(100.0, v * scale))

    return _fix(long_pct), _fix(short_pct)


class FallbackPolicy:
    """
    Turns raw per-index upstream values into a chart-safe CompositeDataPoint.
    Every missing field ends up as a finite number; substituted fields are
    recorded on the point's ``fallbacks``.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def random_value(self, field_name: str) -> float:
        lo, hi = FALLBACK_BOUNDS[field_name]
        return max(lo, min(hi, self.rng.uniform(lo, hi)))

    def _plain(self, field_name: str, raw: Mapping[str, Any], out: Dict[str, float], used: Set[str]) -> None:
        v = to_number(raw.get(field_name))
        if v is None:
            v = self.random_value(field_name)
            used.add(field_name)
        out[field_name] = v

    def _ratio_group(
        self,
        names: Tuple[str, str, str],
        raw: Mapping[str, Any],
        out: Dict[str, float],
        used: Set[str],
    ) -> None:
        ratio_f, long_f, short_f = names
        ratio = to_number(raw.get(ratio_f))
        if ratio is not None and ratio < 0:
            ratio = None
        long_pct, short_pct = _normalize_pcts(to_number(raw.get(long_f)), to_number(raw.get(short_f)))

        # One share known -> the other is its complement.
        if long_pct is not None and short_pct is None:
            short_pct = 100.0 - long_pct
        elif short_pct is not None and long_pct is None:
            long_pct = 100.0 - short_pct

        if ratio is None and long_pct is not None and short_pct is not None and short_pct > 0:
            ratio = long_pct / short_pct

        if ratio is None:
            ratio = self.random_value(ratio_f)
            used.add(ratio_f)
            if long_pct is None or short_pct is None:
                used.update((long_f, short_f))
                long_pct = short_pct = None

        if long_pct is None or short_pct is None:
            long_pct, short_pct = split_from_ratio(ratio)

        out[ratio_f] = ratio
        out[long_f] = long_pct
        out[short_f] = short_pct

    def _taker(self, raw: Mapping[str, Any], out: Dict[str, float], used: Set[str]) -> None:
        self._plain("taker_buy", raw, out, used)
        self._plain("taker_sell", raw, out, used)
        bs = to_number(raw.get("taker_buy_sell_ratio"))
        if bs is None:
            if not {"taker_buy", "taker_sell"} & used and out["taker_sell"] > 0:
                bs = out["taker_buy"] / out["taker_sell"]
            else:
                bs = self.random_value("taker_buy_sell_ratio")
                used.add("taker_buy_sell_ratio")
        out["taker_buy_sell_ratio"] = bs

    def _basis(self, raw: Mapping[str, Any], out: Dict[str, float], used: Set[str]) -> None:
        self._plain("futures_price", raw, out, used)
        self._plain("price_index", raw, out, used)
        if not {"futures_price", "price_index"} & used:
            out["basis"] = out["futures_price"] - out["price_index"]
            return
        self._plain("basis", raw, out, used)

    def build_point(self, timestamp: int, raw: Mapping[str, Any]) -> CompositeDataPoint:
        out: Dict[str, float] = {}
        used: Set[str] = set()

        self._plain("open_interest", raw, out, used)
        self._plain("notional_value", raw, out, used)
        for group in RATIO_GROUPS:
            self._ratio_group(group, raw, out, used)
        self._taker(raw, out, used)
        self._basis(raw, out, used)

        return CompositeDataPoint(
            timestamp=int(timestamp),
            display_time=display_time(timestamp),
            fallbacks=frozenset(used),
            **{name: float(out[name]) for name in NUMERIC_FIELDS},
        )


def build_placeholder_series(
    period_minutes: int,
    count: int = 30,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> List[CompositeDataPoint]:
    """
    Fully synthetic series for when no upstream data is available at all:
    ``count`` points at ``period_minutes`` spacing ending at now.
    """
    clock = clock or SystemClock()
    policy = FallbackPolicy(rng)
    stamps = synthesize_timestamps(count, clock.now_ms(), max(1, period_minutes) * 60_000)
    points = [policy.build_point(ts, {}) for ts in stamps]
    logger.debug("PLACEHOLDER | period=%sm | points=%d", period_minutes, len(points))
    return points

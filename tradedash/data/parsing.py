from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from tradedash.data.models import (
    FlatRecordArrayResponse,
    MissingSeriesResponse,
    RawSeriesResponse,
    SeriesFrame,
    StructuredSeriesResponse,
)

# Upstream sources, in dispatch order.
SRC_OPEN_INTEREST = "open_interest"
SRC_LS_ACCOUNT = "long_short_account"
SRC_LS_POSITION = "long_short_position"
SRC_GLOBAL_LS = "global_long_short"
SRC_TAKER = "taker"
SRC_BASIS = "basis"

SOURCES = (SRC_OPEN_INTEREST, SRC_LS_ACCOUNT, SRC_LS_POSITION, SRC_GLOBAL_LS, SRC_TAKER, SRC_BASIS)

# Structured shape: exact provider series names per source, first match wins.
SERIES_NAMES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    SRC_OPEN_INTEREST: {
        "open_interest": ("sum_open_interest", "open_interest", "Open Interest"),
        "notional_value": ("sum_open_interest_value", "open_interest_value", "Notional Value"),
    },
    SRC_LS_ACCOUNT: {
        "long_short_accounts": ("Long/Short Ratio",),
        "long_account": ("Long Account",),
        "short_account": ("Short Account",),
    },
    SRC_LS_POSITION: {
        "long_short_positions": ("Long/Short Ratio",),
        "long_position": ("Long Account",),
        "short_position": ("Short Account",),
    },
    SRC_GLOBAL_LS: {
        "long_short_ratio": ("Long/Short Ratio",),
        "global_long_account": ("Long Account",),
        "global_short_account": ("Short Account",),
    },
    SRC_TAKER: {
        "taker_buy": ("Buy Vol",),
        "taker_sell": ("Sell Vol",),
        "taker_buy_sell_ratio": ("Buy/Sell Ratio",),
    },
    SRC_BASIS: {
        "futures_price": ("futures", "futuresPrice", "markPrice", "Futures"),
        "price_index": ("index", "priceIndex", "indexPrice", "Index"),
        "basis": ("basis", "Basis"),
    },
}

# Flat record shape: accepted keys per canonical field, first present wins.
# A flat record may carry any field, regardless of which endpoint returned it.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "open_interest": ("openInterest", "sumOpenInterest", "sum_open_interest"),
    "notional_value": ("notionalValue", "sumOpenInterestValue", "sum_open_interest_value"),
    "long_short_accounts": ("longShortAccounts", "longShortRatio", "long_short_ratio", "ratio"),
    "long_account": ("longAccount", "long_account", "long"),
    "short_account": ("shortAccount", "short_account", "short"),
    "long_short_positions": ("longShortPositions", "long_short_positions", "positionsRatio", "pos_ratio"),
    "long_position": ("longPosition", "long_pos"),
    "short_position": ("shortPosition", "short_pos"),
    "long_short_ratio": ("longShortRatio", "globalRatio", "global_long_short_ratio"),
    "global_long_account": ("globalLongAccount", "globalLong", "global_long"),
    "global_short_account": ("globalShortAccount", "globalShort", "global_short"),
    "taker_buy": ("takerBuy", "buyVol", "taker_buy"),
    "taker_sell": ("takerSell", "sellVol", "taker_sell"),
    "taker_buy_sell_ratio": ("takerBuySellRatio", "buySellRatio"),
    "futures_price": ("futuresPrice", "futures", "markPrice"),
    "price_index": ("priceIndex", "index", "indexPrice"),
    "basis": ("basis",),
}

# Extra flat-record keys that only mean something for a given endpoint, e.g. the
# position-ratio endpoint reports its ratio under the generic "longShortRatio".
SOURCE_FLAT_ALIASES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    SRC_LS_POSITION: {
        "long_short_positions": ("longShortRatio",),
        "long_position": ("longAccount",),
        "short_position": ("shortAccount",),
    },
    SRC_GLOBAL_LS: {
        "global_long_account": ("longAccount",),
        "global_short_account": ("shortAccount",),
    },
}

TIMESTAMP_ALIASES: Tuple[str, ...] = ("timestamp", "ts")


def to_number(value: Any) -> Optional[float]:
    """
    Parse an upstream value into a finite float.
    - numbers pass through; numeric strings are converted ("0.25" -> 0.25)
    - percentage strings drop the trailing '%' ("2.45%" -> 2.45)
    - None, booleans, NaN/inf and anything unparsable -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        x = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith("%"):
            s = s[:-1].strip()
        if not s:
            return None
        try:
            x = float(s)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(x) or math.isinf(x):
        return None
    return x


def _to_timestamp(value: Any) -> Optional[int]:
    x = to_number(value)
    if x is None or x <= 0:
        return None
    return int(x)


def resolve_alias(record: Dict[str, Any], aliases: Tuple[str, ...]) -> Any:
    for key in aliases:
        v = record.get(key)
        if v is not None:
            return v
    return None


def classify_payload(payload: Any) -> RawSeriesResponse:
    """
    Classify an upstream JSON payload.
    Flat arrays may come bare or wrapped in ``{"data": [...]}``; the structured
    shape is ``{"data": {"xAxis": [...], "series": [{"name", "data"}, ...]}}``.
    """
    if isinstance(payload, list):
        return FlatRecordArrayResponse(records=[r for r in payload if isinstance(r, dict)])

    if not isinstance(payload, dict):
        return MissingSeriesResponse(reason=f"unexpected payload type {type(payload).__name__}")

    body = payload.get("data", payload)
    if isinstance(body, list):
        return FlatRecordArrayResponse(records=[r for r in body if isinstance(r, dict)])
    if not isinstance(body, dict):
        return MissingSeriesResponse(reason="no data")

    x_axis_raw = body.get("xAxis")
    series_raw = body.get("series")
    if not isinstance(x_axis_raw, list) or not isinstance(series_raw, list):
        return MissingSeriesResponse(reason="no xAxis/series")

    x_axis: List[int] = []
    for v in x_axis_raw:
        ts = _to_timestamp(v)
        if ts is None:
            return MissingSeriesResponse(reason=f"bad xAxis entry {v!r}")
        x_axis.append(ts)

    series: Dict[str, List[Any]] = {}
    for s in series_raw:
        if not isinstance(s, dict):
            continue
        name = s.get("name")
        data = s.get("data")
        # Keep the first series under a given name.
        if name is not None and isinstance(data, list) and str(name) not in series:
            series[str(name)] = data

    return StructuredSeriesResponse(x_axis=x_axis, series=series)


def synthesize_timestamps(count: int, now_ms: int, interval_ms: int) -> List[int]:
    """Strictly increasing, fixed-interval timestamps whose last entry is ``now_ms``."""
    return [now_ms - (count - 1 - i) * interval_ms for i in range(count)]


def to_frame(raw: RawSeriesResponse, source: str, now_ms: int, interval_ms: int) -> SeriesFrame:
    if isinstance(raw, StructuredSeriesResponse):
        columns: Dict[str, List[Any]] = {}
        for field_name, names in SERIES_NAMES[source].items():
            for name in names:
                if name in raw.series:
                    columns[field_name] = raw.series[name]
                    break
        return SeriesFrame(timestamps=list(raw.x_axis), columns=columns)

    if isinstance(raw, FlatRecordArrayResponse):
        n = len(raw.records)
        synthetic = synthesize_timestamps(n, now_ms, interval_ms)
        timestamps: List[int] = []
        for i, rec in enumerate(raw.records):
            ts = _to_timestamp(resolve_alias(rec, TIMESTAMP_ALIASES))
            timestamps.append(ts if ts is not None else synthetic[i])
        extra = SOURCE_FLAT_ALIASES.get(source, {})
        columns = {
            field_name: [resolve_alias(rec, aliases + extra.get(field_name, ())) for rec in raw.records]
            for field_name, aliases in FIELD_ALIASES.items()
        }
        return SeriesFrame(timestamps=timestamps, columns=columns, flat=True)

    return SeriesFrame(timestamps=[], columns={})

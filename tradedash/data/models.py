from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Union


@dataclass(frozen=True)
class RelayRequest:
    endpoint: str                              # provider path, host is the gateway's concern
    method: str = "POST"                       # "GET" | "POST"
    params: Optional[Dict[str, str]] = None    # query string (GET)
    body: Optional[Dict[str, Any]] = None      # JSON body (POST)


@dataclass(frozen=True)
class StructuredSeriesResponse:
    x_axis: List[int]                          # epoch ms, provider order
    series: Dict[str, List[Any]]               # series name -> values aligned with x_axis


@dataclass(frozen=True)
class FlatRecordArrayResponse:
    records: List[Dict[str, Any]]


@dataclass(frozen=True)
class MissingSeriesResponse:
    reason: str


RawSeriesResponse = Union[StructuredSeriesResponse, FlatRecordArrayResponse, MissingSeriesResponse]


@dataclass(frozen=True)
class SeriesFrame:
    """One upstream response normalized to canonical field names."""
    timestamps: List[int]
    columns: Dict[str, List[Any]]              # canonical field -> raw values, index-aligned
    flat: bool = False

    def value(self, field_name: str, index: int) -> Any:
        col = self.columns.get(field_name)
        if col is None or index >= len(col):
            return None
        return col[index]

    def index_at(self, ts: int, window_ms: int) -> Optional[int]:
        """Index of the latest sample at or before ``ts``, if it lies within ``window_ms``."""
        j = bisect_right(self.timestamps, ts) - 1
        if j < 0 or ts - self.timestamps[j] >= window_ms:
            return None
        return j

    def __len__(self) -> int:
        return len(self.timestamps)


# Canonical field names, in the order they appear on a CompositeDataPoint.
NUMERIC_FIELDS = (
    "open_interest",
    "notional_value",
    "long_short_accounts",
    "long_account",
    "short_account",
    "long_short_positions",
    "long_position",
    "short_position",
    "long_short_ratio",
    "global_long_account",
    "global_short_account",
    "taker_buy",
    "taker_sell",
    "taker_buy_sell_ratio",
    "futures_price",
    "price_index",
    "basis",
)

_CAMEL = {
    "open_interest": "openInterest",
    "notional_value": "notionalValue",
    "long_short_accounts": "longShortAccounts",
    "long_account": "longAccount",
    "short_account": "shortAccount",
    "long_short_positions": "longShortPositions",
    "long_position": "longPosition",
    "short_position": "shortPosition",
    "long_short_ratio": "longShortRatio",
    "global_long_account": "globalLongAccount",
    "global_short_account": "globalShortAccount",
    "taker_buy": "takerBuy",
    "taker_sell": "takerSell",
    "taker_buy_sell_ratio": "takerBuySellRatio",
    "futures_price": "futuresPrice",
    "price_index": "priceIndex",
    "basis": "basis",
}


@dataclass(frozen=True)
class CompositeDataPoint:
    timestamp: int                 # epoch ms, ordering key
    display_time: str              # HH:MM Bangkok, derived

    # Open interest
    open_interest: float
    notional_value: float          # USD

    # Top trader accounts
    long_short_accounts: float
    long_account: float            # % of accounts
    short_account: float

    # Top trader positions
    long_short_positions: float
    long_position: float
    short_position: float

    # Global accounts
    long_short_ratio: float
    global_long_account: float
    global_short_account: float

    # Taker volume (quote ccy)
    taker_buy: float
    taker_sell: float
    taker_buy_sell_ratio: float

    # Prices & basis
    futures_price: float
    price_index: float
    basis: float                   # futures - index, >0 contango

    fallbacks: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_real(self) -> bool:
        return not self.fallbacks

    def to_dict(self) -> Dict[str, Any]:
        """Chart-layer JSON shape (camelCase keys, ``time`` for the display label)."""
        out: Dict[str, Any] = {"time": self.display_time, "timestamp": self.timestamp}
        for name in NUMERIC_FIELDS:
            out[_CAMEL[name]] = getattr(self, name)
        out["fallbacks"] = sorted(_CAMEL[n] for n in self.fallbacks)
        return out

"""
Shared fixtures: an in-memory UpstreamGateway and payload builders shaped
like the provider's responses.
"""

import threading
from typing import Any, Dict, List, Optional

import pytest

from tradedash.data.models import RelayRequest
from tradedash.exchange import endpoints
from tradedash.exchange.base import UpstreamGateway
from tradedash.utils.clock import FixedClock


NOW_MS = 1_700_000_000_000
FIVE_MIN_MS = 5 * 60_000


def structured(x_axis: List[int], series: Dict[str, List[Any]]) -> Dict[str, Any]:
    return {
        "code": "000000",
        "data": {
            "xAxis": list(x_axis),
            "series": [{"name": name, "data": list(values)} for name, values in series.items()],
        },
    }


def axis(n: int, start: int = NOW_MS - 29 * FIVE_MIN_MS, step: int = FIVE_MIN_MS) -> List[int]:
    return [start + i * step for i in range(n)]


def full_payloads(n: int = 30) -> Dict[str, Any]:
    """Six well-formed structured responses of length n, keyed by endpoint."""
    xs = axis(n)
    return {
        endpoints.OPEN_INTEREST_STATS: structured(xs, {
            "sum_open_interest": [str(9.5e9 + i * 1e6) for i in range(n)],
            "sum_open_interest_value": [str(2.1e9 + i * 1e5) for i in range(n)],
        }),
        endpoints.LONG_SHORT_ACCOUNT_RATIO: structured(xs, {
            "Long/Short Ratio": ["2.5"] * n,
            "Long Account": ["0.7143"] * n,
            "Short Account": ["0.2857"] * n,
        }),
        endpoints.LONG_SHORT_POSITION_RATIO: structured(xs, {
            "Long/Short Ratio": [3.8] * n,
            "Long Account": [79.17] * n,
            "Short Account": [20.83] * n,
        }),
        endpoints.GLOBAL_LONG_SHORT_ACCOUNT_RATIO: structured(xs, {
            "Long/Short Ratio": ["2.3"] * n,
            "Long Account": ["69.7%"] * n,
            "Short Account": ["30.3%"] * n,
        }),
        endpoints.TAKER_LONG_SHORT_RATIO: structured(xs, {
            "Buy Vol": [7.1e9] * n,
            "Sell Vol": [6.9e9] * n,
            "Buy/Sell Ratio": [1.029] * n,
        }),
        endpoints.BASIS: structured(xs, {
            "futures": [0.2561 + i * 1e-4 for i in range(n)],
            "index": [0.2558 + i * 1e-4 for i in range(n)],
            "basis": [0.0003] * n,
        }),
    }


class FakeGateway(UpstreamGateway):
    """Answers from a dict keyed by endpoint; values may be exceptions to raise."""

    name = "fake"

    def __init__(self, payloads: Dict[str, Any], block: Optional[Dict[str, threading.Event]] = None) -> None:
        self.payloads = payloads
        self.block = block or {}
        self.requests: List[RelayRequest] = []
        self._lock = threading.Lock()

    def ping(self) -> bool:
        return True

    def relay(self, request: RelayRequest) -> Any:
        with self._lock:
            self.requests.append(request)
        ev = self.block.get(request.endpoint)
        if ev is not None:
            ev.wait(5)
        result = self.payloads.get(request.endpoint)
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def clock():
    return FixedClock(NOW_MS)

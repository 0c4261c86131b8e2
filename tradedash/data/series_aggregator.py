from __future__ import annotations

import logging
import random
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Mapping, Optional

from tradedash.data.fallback import FallbackPolicy
from tradedash.data.models import NUMERIC_FIELDS, CompositeDataPoint, RelayRequest, SeriesFrame
from tradedash.data.parsing import (
    SERIES_NAMES,
    SOURCES,
    SRC_BASIS,
    SRC_GLOBAL_LS,
    SRC_LS_ACCOUNT,
    SRC_LS_POSITION,
    SRC_OPEN_INTEREST,
    SRC_TAKER,
    classify_payload,
    to_frame,
)
from tradedash.errors import UpstreamUnavailable
from tradedash.exchange import endpoints
from tradedash.exchange.base import UpstreamGateway
from tradedash.utils.clock import Clock, SystemClock
from tradedash.utils.timeframes import is_allowed_period, period_param

logger = logging.getLogger("tradedash")

# Which upstream source owns each composite field.
FIELD_OWNER: Dict[str, str] = {
    field_name: src for src, names in SERIES_NAMES.items() for field_name in names
}


def build_requests(symbol: str, period_minutes: int) -> Dict[str, RelayRequest]:
    body = {"name": symbol, "periodMinutes": period_minutes}
    return {
        SRC_OPEN_INTEREST: RelayRequest(endpoints.OPEN_INTEREST_STATS, "POST", body=dict(body)),
        SRC_LS_ACCOUNT: RelayRequest(endpoints.LONG_SHORT_ACCOUNT_RATIO, "POST", body=dict(body)),
        SRC_LS_POSITION: RelayRequest(endpoints.LONG_SHORT_POSITION_RATIO, "POST", body=dict(body)),
        SRC_GLOBAL_LS: RelayRequest(endpoints.GLOBAL_LONG_SHORT_ACCOUNT_RATIO, "POST", body=dict(body)),
        SRC_TAKER: RelayRequest(endpoints.TAKER_LONG_SHORT_RATIO, "POST", body=dict(body)),
        SRC_BASIS: RelayRequest(
            endpoints.BASIS,
            "GET",
            params={
                "period": period_param(period_minutes),
                "limit": endpoints.BASIS_LIMIT,
                "pair": symbol,
                "contractType": endpoints.BASIS_CONTRACT_TYPE,
            },
        ),
    }


class MarketSeriesAggregator:
    """
    Fetches the six futures statistics series for one (symbol, period) and merges
    them into a single ordered list of CompositeDataPoint.

    All six calls must succeed: any failure or the overall deadline raises
    UpstreamUnavailable. Inside a successful batch, missing or malformed fields are
    filled by FallbackPolicy and never raise.
    """

    def __init__(
        self,
        gateway: UpstreamGateway,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        timeout_sec: float = 15.0,
    ) -> None:
        self.gateway = gateway
        self.clock = clock or SystemClock()
        self.policy = FallbackPolicy(rng)
        self.timeout_sec = timeout_sec

    def fetch_series(self, symbol: str, period_minutes: int) -> List[CompositeDataPoint]:
        if not symbol or not symbol.strip():
            raise ValueError("symbol must be a non-empty trading pair")
        if not isinstance(period_minutes, int) or isinstance(period_minutes, bool) or period_minutes <= 0:
            raise ValueError(f"period_minutes must be a positive integer, got {period_minutes!r}")
        if not is_allowed_period(period_minutes):
            # Provider decides; it fails the call itself if unsupported.
            logger.debug("PERIOD_PASSTHROUGH | %s | period=%sm", symbol, period_minutes)

        payloads = self._fan_out(symbol, period_minutes, build_requests(symbol, period_minutes))
        points = self.merge(payloads, period_minutes)

        logger.debug(
            "SERIES %s | period=%sm | points=%d | with_fallback=%d",
            symbol,
            period_minutes,
            len(points),
            sum(1 for p in points if p.fallbacks),
        )
        return points

    def _fan_out(self, symbol: str, period_minutes: int, reqs: Mapping[str, RelayRequest]) -> Dict[str, Any]:
        executor = ThreadPoolExecutor(max_workers=len(reqs), thread_name_prefix="upstream")
        try:
            futures: Dict[Future, str] = {executor.submit(self.gateway.relay, req): src for src, req in reqs.items()}
            done, pending = wait(futures, timeout=self.timeout_sec, return_when=FIRST_EXCEPTION)

            errors = {futures[f]: f.exception() for f in done if f.exception() is not None}
            if errors or pending:
                for f in pending:
                    f.cancel()
                if not errors:
                    timed_out = {futures[f] for f in pending}
                    failed = [src for src in SOURCES if src in timed_out]
                    logger.warning(
                        "UPSTREAM_TIMEOUT %s | period=%sm | after=%.1fs | pending=%s",
                        symbol, period_minutes, self.timeout_sec, failed,
                    )
                    raise UpstreamUnavailable(symbol, period_minutes, failed)

                failed = [src for src in SOURCES if src in errors]
                first = errors[failed[0]]
                logger.warning("UPSTREAM_FAILED %s | period=%sm | failed=%s | err=%s", symbol, period_minutes, failed, first)
                raise UpstreamUnavailable(symbol, period_minutes, failed) from first

            return {src: f.result() for f, src in futures.items()}
        finally:
            # Do not block on stragglers; their HTTP timeout bounds them.
            executor.shutdown(wait=False, cancel_futures=True)

    def merge(self, payloads: Mapping[str, Any], period_minutes: int) -> List[CompositeDataPoint]:
        """
        Align the six payloads on the canonical axis and build one point per entry.

        The open-interest axis is canonical and the other series are read index for
        index against it. When the account-ratio endpoint answers with non-empty flat
        records instead, those records drive the axis; they supply only the account
        fields, and every other series is looked up by time (latest sample at or
        before the record, within one period).
        """
        now_ms = self.clock.now_ms()
        interval_ms = max(1, period_minutes) * 60_000
        frames: Dict[str, SeriesFrame] = {
            src: to_frame(classify_payload(payloads.get(src)), src, now_ms, interval_ms) for src in SOURCES
        }

        account = frames[SRC_LS_ACCOUNT]
        by_time = account.flat and len(account) > 0
        canonical = account if by_time else frames[SRC_OPEN_INTEREST]

        points: List[CompositeDataPoint] = []
        for i, ts in enumerate(canonical.timestamps):
            raw: Dict[str, Any] = {}
            for field_name in NUMERIC_FIELDS:
                frame = frames[FIELD_OWNER[field_name]]
                if by_time and frame is not canonical:
                    j = frame.index_at(ts, interval_ms)
                else:
                    j = i
                raw[field_name] = frame.value(field_name, j) if j is not None else None
            points.append(self.policy.build_point(ts, raw))
        return points

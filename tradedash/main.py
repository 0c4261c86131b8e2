from __future__ import annotations

import time
from typing import List

from tradedash.config import AppConfig
from tradedash.data.fallback import build_placeholder_series
from tradedash.data.models import CompositeDataPoint
from tradedash.data.series_aggregator import MarketSeriesAggregator
from tradedash.errors import UpstreamUnavailable
from tradedash.exchange.binance_gateway import BinanceGateway
from tradedash.utils.logger import setup_logger


def load_series(agg: MarketSeriesAggregator, symbol: str, period_minutes: int, log) -> List[CompositeDataPoint]:
    """Fetch one chart series; on upstream failure hand back a placeholder series instead."""
    try:
        return agg.fetch_series(symbol, period_minutes)
    except UpstreamUnavailable as e:
        log.warning("PLACEHOLDER %s | period=%sm | reason=%s", symbol, period_minutes, e)
        return build_placeholder_series(period_minutes, clock=agg.clock)


def main() -> None:
    log = setup_logger()
    cfg = AppConfig.load()

    gateway = BinanceGateway(cfg)
    agg = MarketSeriesAggregator(gateway, timeout_sec=cfg.fetch_timeout_sec)

    if not gateway.ping():
        log.warning("Upstream ping failed (%s); will keep polling", cfg.upstream_base_url)

    while True:
        try:
            for sym in cfg.symbols:
                series = load_series(agg, sym, cfg.period_minutes, log)
                if not series:
                    log.info("SERIES %s | period=%sm | empty", sym, cfg.period_minutes)
                    continue

                last = series[-1]
                log.info(
                    "SERIES %s | period=%sm | points=%d | last=%s | oi=%s | ls_acc=%.3f | ls_pos=%.3f | ls_global=%.3f | taker_bs=%.3f | basis=%s | fallback=%d",
                    sym,
                    cfg.period_minutes,
                    len(series),
                    last.display_time,
                    last.open_interest,
                    last.long_short_accounts,
                    last.long_short_positions,
                    last.long_short_ratio,
                    last.taker_buy_sell_ratio,
                    last.basis,
                    len(last.fallbacks),
                )

            time.sleep(cfg.scan_interval_sec)

        except Exception as e:
            log.exception("Main loop error: %s", e)
            time.sleep(10)


if __name__ == "__main__":
    main()

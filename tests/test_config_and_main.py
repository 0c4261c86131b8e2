import io
import logging
import random

import pytest

from conftest import NOW_MS, FakeGateway, full_payloads
from tradedash.config import AppConfig
from tradedash.data.series_aggregator import MarketSeriesAggregator
from tradedash.errors import GatewayError
from tradedash.exchange import endpoints
from tradedash.main import load_series
from tradedash.utils.logger import LOGGER_NAME, setup_logger
from tradedash.utils.timeframes import ALLOWED_PERIODS, display_time, is_allowed_period


class TestConfig:

    def test_defaults(self, monkeypatch):
        for name in ("SYMBOLS", "PERIOD_MINUTES", "SCAN_INTERVAL_SEC", "UPSTREAM_BASE_URL", "FETCH_TIMEOUT_SEC"):
            monkeypatch.delenv(name, raising=False)
        cfg = AppConfig.load()
        assert cfg.symbols == ["DOGEUSDC"]
        assert cfg.period_minutes == 5
        assert cfg.upstream_base_url == "https://www.binance.com"
        assert cfg.fetch_timeout_sec == 15.0

    def test_symbols_csv(self, monkeypatch):
        monkeypatch.setenv("SYMBOLS", "dogeusdc, btcusdt,,")
        assert AppConfig.load().symbols == ["DOGEUSDC", "BTCUSDT"]

    def test_empty_symbols_rejected(self, monkeypatch):
        monkeypatch.setenv("SYMBOLS", " , ")
        with pytest.raises(RuntimeError):
            AppConfig.load()


class TestTimeframes:

    def test_allowed_periods(self):
        assert sorted(ALLOWED_PERIODS) == [5, 15, 30, 60, 240, 1440]
        assert is_allowed_period(240)
        assert not is_allowed_period(7)

    def test_display_time_24h(self):
        assert display_time(NOW_MS) == "05:13"
        # 2023-11-14 06:00 UTC -> 13:00 Bangkok
        assert display_time(1_699_941_600_000) == "13:00"


class TestLoadSeries:

    def test_real_series_passes_through(self, clock):
        agg = MarketSeriesAggregator(FakeGateway(full_payloads(30)), clock=clock, rng=random.Random(0))
        series = load_series(agg, "DOGEUSDC", 5, logging.getLogger(LOGGER_NAME))
        assert len(series) == 30
        assert all(p.is_real for p in series)

    def test_upstream_failure_gives_placeholder(self, clock):
        payloads = full_payloads()
        payloads[endpoints.BASIS] = GatewayError(endpoints.BASIS, "HTTP error", status=503)
        agg = MarketSeriesAggregator(FakeGateway(payloads), clock=clock)

        series = load_series(agg, "DOGEUSDC", 15, logging.getLogger(LOGGER_NAME))

        assert len(series) == 30
        assert series[-1].timestamp == NOW_MS
        assert all(not p.is_real for p in series)


def test_setup_logger_is_idempotent(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    setup_logger()
    log = setup_logger()
    assert log.name == LOGGER_NAME
    assert len(log.handlers) == 1
    assert log.level == logging.DEBUG
    assert log.propagate is False


def test_setup_logger_default_format_names_thread(monkeypatch):
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    buf = io.StringIO()
    log = setup_logger(level="info", stream=buf)
    log.info("fetched %d points", 30)

    line = buf.getvalue().strip()
    assert " | INFO | MainThread | " in line
    assert line.endswith("fetched 30 points")


def test_setup_logger_honors_log_format_and_level_argument(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_FORMAT", "%(levelname)s:%(message)s")
    buf = io.StringIO()
    log = setup_logger(level="warning", stream=buf)
    log.info("hidden")
    log.warning("upstream %s failed", "basis")

    assert log.level == logging.WARNING
    assert buf.getvalue() == "WARNING:upstream basis failed\n"

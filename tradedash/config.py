from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


def _getenv(name: str, default: Optional[str] = None) -> str:
    val = os.getenv(name, default)
    if val is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return val


def _split_csv(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


@dataclass(frozen=True)
class AppConfig:
    app_env: str
    symbols: List[str]
    period_minutes: int
    scan_interval_sec: int

    # Upstream relay
    upstream_base_url: str
    http_timeout_sec: float
    fetch_timeout_sec: float

    @staticmethod
    def load() -> "AppConfig":
        symbols = _split_csv(_getenv("SYMBOLS", "DOGEUSDC"))
        if not symbols:
            raise RuntimeError("SYMBOLS must list at least one trading pair")

        return AppConfig(
            app_env=_getenv("APP_ENV", "dev"),
            symbols=[s.upper() for s in symbols],
            period_minutes=int(_getenv("PERIOD_MINUTES", "5")),
            scan_interval_sec=int(_getenv("SCAN_INTERVAL_SEC", "300")),
            upstream_base_url=_getenv("UPSTREAM_BASE_URL", "https://www.binance.com").rstrip("/"),
            http_timeout_sec=float(_getenv("HTTP_TIMEOUT_SEC", "10")),
            fetch_timeout_sec=float(_getenv("FETCH_TIMEOUT_SEC", "15")),
        )

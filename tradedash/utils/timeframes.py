from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict

# Thailand has no DST, a fixed offset is exact.
BANGKOK_TZ = timezone(timedelta(hours=7), name="Asia/Bangkok")


@dataclass(frozen=True)
class TF:
    name: str
    minutes: int


TF_5M = TF("5m", 5)
TF_15M = TF("15m", 15)
TF_30M = TF("30m", 30)
TF_1H = TF("1h", 60)
TF_4H = TF("4h", 240)
TF_1D = TF("1d", 1440)

ALLOWED_PERIODS: Dict[int, TF] = {tf.minutes: tf for tf in (TF_5M, TF_15M, TF_30M, TF_1H, TF_4H, TF_1D)}


def is_allowed_period(period_minutes: int) -> bool:
    return period_minutes in ALLOWED_PERIODS


def period_param(period_minutes: int) -> str:
    # The basis endpoint takes minutes with an "m" suffix for every period, e.g. "240m".
    return f"{period_minutes}m"


def display_time(ts_ms: int) -> str:
    """Render an epoch-ms timestamp as 24-hour HH:MM Bangkok wall-clock time."""
    return datetime.fromtimestamp(ts_ms / 1000.0, tz=BANGKOK_TZ).strftime("%H:%M")

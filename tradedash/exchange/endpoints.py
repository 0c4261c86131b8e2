from __future__ import annotations

# Logical provider paths; the gateway decides which host serves them.
_FUTURE_DATA = "/bapi/futures/v1/public/future/data"

OPEN_INTEREST_STATS = f"{_FUTURE_DATA}/open-interest-stats"
LONG_SHORT_ACCOUNT_RATIO = f"{_FUTURE_DATA}/long-short-account-ratio"
LONG_SHORT_POSITION_RATIO = f"{_FUTURE_DATA}/long-short-position-ratio"
GLOBAL_LONG_SHORT_ACCOUNT_RATIO = f"{_FUTURE_DATA}/global-long-short-account-ratio"
TAKER_LONG_SHORT_RATIO = f"{_FUTURE_DATA}/taker-long-short-ratio"
BASIS = f"{_FUTURE_DATA}/basis"

PING = "/bapi/futures/v1/public/future/common/ping"

BASIS_LIMIT = "30"
BASIS_CONTRACT_TYPE = "PERPETUAL"

from __future__ import annotations

from typing import Optional, Sequence


class GatewayError(Exception):
    """Transport failure or non-2xx answer from the upstream relay."""

    def __init__(self, endpoint: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(f"{endpoint}: {message}" + (f" (status={status})" if status is not None else ""))
        self.endpoint = endpoint
        self.status = status


class FetchError(Exception):
    pass


class UpstreamUnavailable(FetchError):
    """At least one of the six upstream series could not be fetched."""

    def __init__(self, symbol: str, period_minutes: int, failed: Sequence[str]) -> None:
        self.symbol = symbol
        self.period_minutes = period_minutes
        self.failed = tuple(failed)
        super().__init__(
            f"upstream unavailable for {symbol} {period_minutes}m: {', '.join(self.failed) or 'unknown'}"
        )

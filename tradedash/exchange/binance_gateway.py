from __future__ import annotations

import logging
import requests
from typing import Any, Dict, Optional

from tradedash.config import AppConfig
from tradedash.data.models import RelayRequest
from tradedash.errors import GatewayError
from tradedash.exchange.base import UpstreamGateway
from tradedash.exchange.endpoints import PING

logger = logging.getLogger("tradedash")

DEFAULT_HEADERS: Dict[str, str] = {
    "Content-Type": "application/json",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}


class BinanceGateway(UpstreamGateway):
    name = "binance"

    def __init__(self, cfg: AppConfig, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.upstream_base_url
        self.timeout = cfg.http_timeout_sec
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def ping(self) -> bool:
        try:
            r = self.session.get(f"{self.base}{PING}", timeout=5)
            return r.status_code == 200
        except requests.RequestException:
            return False

    def relay(self, request: RelayRequest) -> Any:
        method = request.method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported relay method: {request.method}")

        url = f"{self.base}{request.endpoint}"
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        # GET carries params on the query string, POST carries a JSON body.
        if method == "GET" and request.params:
            kwargs["params"] = request.params
        if method == "POST" and request.body is not None:
            kwargs["json"] = request.body

        try:
            r = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise GatewayError(request.endpoint, f"transport error: {e}") from e

        if not r.ok:
            logger.debug("RELAY_HTTP_ERROR | %s %s | status=%s", method, request.endpoint, r.status_code)
            raise GatewayError(request.endpoint, "HTTP error", status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise GatewayError(request.endpoint, "response is not JSON", status=r.status_code) from e

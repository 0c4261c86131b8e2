from unittest.mock import MagicMock

import pytest
import requests

from tradedash.config import AppConfig
from tradedash.data.models import RelayRequest
from tradedash.errors import GatewayError
from tradedash.exchange import endpoints
from tradedash.exchange.binance_gateway import DEFAULT_HEADERS, BinanceGateway


@pytest.fixture
def cfg(monkeypatch):
    monkeypatch.setenv("UPSTREAM_BASE_URL", "https://relay.test/")
    monkeypatch.setenv("HTTP_TIMEOUT_SEC", "3")
    return AppConfig.load()


def make_response(status=200, payload=None, json_error=False):
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 300
    if json_error:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = payload
    return r


@pytest.fixture
def session():
    return MagicMock()


class TestRelay:

    def test_headers_attached(self, cfg, session):
        BinanceGateway(cfg, session=session)
        session.headers.update.assert_called_once_with(DEFAULT_HEADERS)

    def test_post_sends_json_body(self, cfg, session):
        session.request.return_value = make_response(payload={"data": []})
        gw = BinanceGateway(cfg, session=session)

        out = gw.relay(RelayRequest(endpoints.OPEN_INTEREST_STATS, "POST", body={"name": "DOGEUSDC", "periodMinutes": 5}))

        assert out == {"data": []}
        session.request.assert_called_once_with(
            "POST",
            "https://relay.test" + endpoints.OPEN_INTEREST_STATS,
            timeout=3.0,
            json={"name": "DOGEUSDC", "periodMinutes": 5},
        )

    def test_get_sends_query_params(self, cfg, session):
        session.request.return_value = make_response(payload=[])
        gw = BinanceGateway(cfg, session=session)
        params = {"period": "5m", "limit": "30", "pair": "DOGEUSDC", "contractType": "PERPETUAL"}

        gw.relay(RelayRequest(endpoints.BASIS, "GET", params=params))

        session.request.assert_called_once_with(
            "GET", "https://relay.test" + endpoints.BASIS, timeout=3.0, params=params,
        )

    def test_non_2xx_raises(self, cfg, session):
        session.request.return_value = make_response(status=500)
        with pytest.raises(GatewayError) as exc_info:
            BinanceGateway(cfg, session=session).relay(RelayRequest(endpoints.BASIS, "GET"))
        assert exc_info.value.status == 500
        assert exc_info.value.endpoint == endpoints.BASIS

    def test_transport_error_raises(self, cfg, session):
        session.request.side_effect = requests.ConnectionError("reset")
        with pytest.raises(GatewayError) as exc_info:
            BinanceGateway(cfg, session=session).relay(RelayRequest(endpoints.BASIS, "GET"))
        assert exc_info.value.status is None

    def test_undecodable_body_raises(self, cfg, session):
        session.request.return_value = make_response(json_error=True)
        with pytest.raises(GatewayError):
            BinanceGateway(cfg, session=session).relay(RelayRequest(endpoints.BASIS, "GET"))

    def test_unsupported_method(self, cfg, session):
        with pytest.raises(ValueError):
            BinanceGateway(cfg, session=session).relay(RelayRequest(endpoints.BASIS, "DELETE"))


class TestPing:

    def test_ping_ok(self, cfg, session):
        session.get.return_value = make_response(status=200)
        assert BinanceGateway(cfg, session=session).ping() is True

    def test_ping_transport_failure(self, cfg, session):
        session.get.side_effect = requests.Timeout("slow")
        assert BinanceGateway(cfg, session=session).ping() is False


class TestGatewayContract:

    def test_gateway_without_ping_cannot_be_built(self):
        from tradedash.exchange.base import UpstreamGateway

        class RelayOnly(UpstreamGateway):
            name = "relay-only"

            def relay(self, request):
                return {}

        with pytest.raises(TypeError):
            RelayOnly()

    def test_base_methods_raise_not_implemented(self):
        from tradedash.exchange.base import UpstreamGateway

        with pytest.raises(NotImplementedError):
            UpstreamGateway.ping(None)
        with pytest.raises(NotImplementedError):
            UpstreamGateway.relay(None, RelayRequest(endpoint=endpoints.BASIS, method="GET"))

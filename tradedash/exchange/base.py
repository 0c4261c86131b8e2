from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any
from tradedash.data.models import RelayRequest


class UpstreamGateway(ABC):
    name: str

    @abstractmethod
    def ping(self) -> bool:
        """True when the provider answers; never raises."""
        raise NotImplementedError

    @abstractmethod
    def relay(self, request: RelayRequest) -> Any:
        """Forward a logical request to the provider and return the parsed JSON.
        Raises GatewayError on transport failure or a non-2xx status."""
        raise NotImplementedError

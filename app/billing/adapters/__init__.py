"""
Payment gateway adapters.

Usage:
    from billing.adapters import get_adapter

    adapter = get_adapter("paguelofacil")
    notification = adapter.normalize(request_payload)
"""

from billing.exceptions import GatewayNotConfigured

from .base import (
    GatewayAdapter,
    NormalizedNotification,
    PaymentLinkRequest,
    PaymentLinkResult,
)
from .paguelofacil import PagueloFacilAdapter
from .yappy import YappyAdapter

ADAPTERS: dict[str, type[GatewayAdapter]] = {
    PagueloFacilAdapter.name: PagueloFacilAdapter,
    YappyAdapter.name: YappyAdapter,
}


def get_adapter(gateway: str) -> GatewayAdapter:
    """
    Return an adapter instance for a gateway name.

    Raises:
        GatewayNotConfigured: If the gateway is unknown
    """
    try:
        return ADAPTERS[gateway]()
    except KeyError:
        raise GatewayNotConfigured(
            f"Unknown gateway '{gateway}'",
            error_code="UNKNOWN_GATEWAY",
            details={"gateway": gateway},
        )


__all__ = [
    "ADAPTERS",
    "GatewayAdapter",
    "NormalizedNotification",
    "PagueloFacilAdapter",
    "PaymentLinkRequest",
    "PaymentLinkResult",
    "YappyAdapter",
    "get_adapter",
]

"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- RazorpayGateway when the Razorpay key pair is configured
- MockGateway when PAYMENT_MODE is ``mock`` (the default)
"""

from storefront.config import PaymentSettings
from storefront.errors import UpstreamError
from storefront.gateway.mock_adapter import MockGateway
from storefront.gateway.port import PaymentGateway
from storefront.gateway.razorpay_adapter import RazorpayGateway

_current_gateway: PaymentGateway | None = None


def build_gateway(settings: PaymentSettings) -> PaymentGateway:
    if settings.live:
        return RazorpayGateway(settings.key_id, settings.key_secret)
    if settings.mode == "mock":
        return MockGateway()
    raise UpstreamError("Payment gateway not configured")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway(PaymentSettings.from_env())
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

"""Configurable mock payment gateway for development and testing.

Simulates the provider without any external calls. It can be configured at
runtime to succeed or fail, which is useful for:
- Manual API testing via /payment/gateway/configure
- Automated tests with predictable outcomes
- Development without provider credentials
"""

from uuid import uuid4

from storefront.gateway.port import PaymentGateway, PaymentOrder, VerificationResult


class MockGateway(PaymentGateway):
    """Configurable mock payment gateway."""

    mode = "mock"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed

    def create_order(self, amount: float, order_id: str) -> PaymentOrder:
        self.calls.append({"method": "create_order", "amount": amount, "order_id": order_id})
        return PaymentOrder(
            id=f"mock_order_{uuid4().hex[:14]}",
            amount=round(amount * 100),
            currency="INR",
            receipt=order_id,
        )

    def verify_payment(self, provider_order_id, payment_id, signature) -> VerificationResult:
        self.calls.append(
            {
                "method": "verify_payment",
                "provider_order_id": provider_order_id,
                "payment_id": payment_id,
                "signature": signature,
            }
        )
        if not self.should_succeed:
            return VerificationResult(valid=False)
        return VerificationResult(valid=True, payment_id=payment_id or f"mock_pay_{uuid4().hex[:14]}")

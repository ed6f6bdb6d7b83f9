"""Razorpay payment gateway adapter.

Orders are created through the razorpay SDK client on the key pair.
Checkout signatures are verified locally with the key secret, the same
way webhook bodies are.
"""

import razorpay
import requests
import structlog
from razorpay.errors import BadRequestError, GatewayError, ServerError

from storefront.errors import UpstreamError
from storefront.gateway import signatures
from storefront.gateway.port import PaymentGateway, PaymentOrder, VerificationResult

logger = structlog.get_logger(__name__)

REQUEST_TIMEOUT_SECONDS = 10

PROVIDER_ERRORS = (BadRequestError, GatewayError, ServerError, requests.RequestException)


class RazorpayGateway(PaymentGateway):
    """Production Razorpay gateway adapter."""

    mode = "live"

    def __init__(self, key_id: str, key_secret: str, client: razorpay.Client | None = None) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount: float, order_id: str) -> PaymentOrder:
        body = {
            "amount": round(amount * 100),  # paise
            "currency": "INR",
            "receipt": str(order_id),
            "notes": {"orderId": str(order_id)},
        }
        try:
            data = self.client.order.create(data=body, timeout=REQUEST_TIMEOUT_SECONDS)
        except PROVIDER_ERRORS as exc:
            logger.error("Razorpay order creation failed", order_id=str(order_id), error=str(exc))
            raise UpstreamError(f"Payment provider error: {exc}") from exc

        logger.info("Razorpay order created", order_id=str(order_id), provider_order_id=data.get("id"))
        return PaymentOrder(
            id=data["id"],
            amount=data["amount"],
            currency=data["currency"],
            receipt=data.get("receipt"),
        )

    def verify_payment(self, provider_order_id, payment_id, signature) -> VerificationResult:
        if not signature:
            return VerificationResult(valid=False)

        payload = signatures.checkout_payload(provider_order_id, payment_id)
        valid = signatures.matches(self.key_secret, payload, signature)
        return VerificationResult(valid=valid, payment_id=payment_id if valid else None)

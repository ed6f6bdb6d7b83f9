"""Provider webhook intake.

The signature is an HMAC-SHA256 over the exact bytes the provider sent,
keyed with the webhook secret. Nothing is parsed or processed until the
signature checks out.
"""

import json

import structlog
from protean.utils.globals import current_domain

from storefront.errors import InvalidRequestError
from storefront.gateway import signatures
from storefront.order.payment import ConfirmPaymentCapture

logger = structlog.get_logger(__name__)

CAPTURED = "payment.captured"
FAILED = "payment.failed"


def verify(raw_body: bytes, signature: str | None, secret: str | None) -> None:
    if not signature or not secret:
        raise InvalidRequestError("Signature and secret are required for webhook")
    if not signatures.matches(secret, raw_body, signature):
        logger.warning("Webhook signature rejected")
        raise InvalidRequestError("Invalid webhook signature")


def _payment_entity(event: dict) -> dict:
    return ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}


def handle_webhook(raw_body: bytes, signature: str | None, secret: str | None) -> dict:
    """Verify and apply one webhook delivery.

    Redeliveries are safe: a capture for an order that is already paid
    changes nothing.
    """
    verify(raw_body, signature, secret)

    try:
        event = json.loads(raw_body)
    except ValueError as exc:
        raise InvalidRequestError("Malformed webhook payload") from exc
    if not isinstance(event, dict):
        raise InvalidRequestError("Malformed webhook payload")

    event_name = event.get("event")
    entity = _payment_entity(event)
    order_id = (entity.get("notes") or {}).get("orderId")

    if event_name == CAPTURED:
        if not order_id or not entity.get("id"):
            logger.warning("Captured payment without order reference", payment_id=entity.get("id"))
        else:
            current_domain.process(
                ConfirmPaymentCapture(
                    order_id=order_id,
                    payment_id=entity["id"],
                    provider_order_id=entity.get("order_id"),
                ),
                asynchronous=False,
            )
    elif event_name == FAILED:
        logger.info("Payment failed at provider", order_id=order_id, payment_id=entity.get("id"))
    else:
        logger.debug("Webhook event ignored", event=event_name)

    return {"status": "ok"}

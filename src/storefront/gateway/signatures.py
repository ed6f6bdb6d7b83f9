"""HMAC-SHA256 signatures used by the payment provider."""

import hashlib
import hmac


def sign(secret: str, payload: bytes | str) -> str:
    """Hex digest of HMAC-SHA256 over ``payload`` keyed with ``secret``."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def checkout_payload(provider_order_id: str, payment_id: str) -> str:
    """The string the provider signs when a checkout completes."""
    return f"{provider_order_id}|{payment_id}"


def matches(secret: str, payload: bytes | str, signature: str | None) -> bool:
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign(secret, payload), signature)

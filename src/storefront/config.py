"""Runtime settings read from the environment.

Domain infrastructure (databases, brokers) is configured in ``domain.toml``;
this module covers the payment provider and token settings that vary per
deployment.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentSettings:
    """Payment provider credentials and mode."""

    key_id: str = ""
    key_secret: str = ""
    webhook_secret: str = ""
    mode: str = "mock"

    @property
    def live(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @classmethod
    def from_env(cls) -> "PaymentSettings":
        return cls(
            key_id=os.environ.get("RAZORPAY_KEY_ID", ""),
            key_secret=os.environ.get("RAZORPAY_KEY_SECRET", ""),
            webhook_secret=os.environ.get("RAZORPAY_WEBHOOK_SECRET", ""),
            mode=os.environ.get("PAYMENT_MODE", "mock").lower(),
        )


def jwt_secret() -> str:
    return os.environ.get("JWT_SECRET", "dev-secret-change-me")


def is_production() -> bool:
    return os.environ.get("PROTEAN_ENV") == "production"

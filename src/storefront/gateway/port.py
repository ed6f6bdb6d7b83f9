"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between MockGateway (dev/test) and RazorpayGateway
(production) without changing any domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentOrder:
    """A provider-side order the client completes checkout against."""

    id: str
    amount: int
    currency: str
    receipt: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking a client-confirmed payment."""

    valid: bool
    payment_id: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    mode: str = ""

    @abstractmethod
    def create_order(self, amount: float, order_id: str) -> PaymentOrder:
        """Create a provider order for ``amount`` rupees."""
        ...

    @abstractmethod
    def verify_payment(
        self,
        provider_order_id: str | None,
        payment_id: str | None,
        signature: str | None,
    ) -> VerificationResult:
        """Check the signature the client received at checkout."""
        ...

"""User aggregate — the slice of a customer/admin account the core relies on.

Registration, login and profile edits are owned by the account service.
Orders only need the owner's identity and role, and notifications need the
administrator roster along with each admin's alert preferences.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, String, ValueObject

from storefront.domain import storefront


class Role(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class AlertPreference(Enum):
    ORDER_ALERTS = "order_alerts"
    LOW_STOCK_ALERTS = "low_stock_alerts"
    CUSTOMER_ALERTS = "customer_alerts"


@storefront.value_object(part_of="User")
class NotificationPreferences:
    """Per-channel opt-outs. An unset flag counts as enabled."""

    order_alerts = Boolean()
    low_stock_alerts = Boolean()
    customer_alerts = Boolean()


@storefront.aggregate
class User:
    name = String(max_length=100)
    email = String(max_length=255)
    role = String(choices=Role, default=Role.CUSTOMER.value)
    notification_preferences = ValueObject(NotificationPreferences)
    created_at = DateTime()

    @classmethod
    def register(cls, name, email, role=Role.CUSTOMER.value, notification_preferences=None, **kwargs):
        return cls(
            name=name,
            email=email,
            role=role,
            notification_preferences=notification_preferences,
            created_at=datetime.now(UTC),
            **kwargs,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def wants(self, preference: AlertPreference) -> bool:
        """Only an explicit ``False`` opts out."""
        if self.notification_preferences is None:
            return True
        return getattr(self.notification_preferences, preference.value) is not False


@storefront.repository(part_of=User)
class UserRepository:
    def admins(self) -> list[User]:
        return self._dao.query.filter(role=Role.ADMIN.value).all().items

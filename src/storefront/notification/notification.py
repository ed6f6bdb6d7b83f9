"""Notification aggregate — an in-app message addressed to one user.

Notifications are created by the core and never changed by it afterwards.
Toggling ``read`` belongs to the notification inbox endpoints.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront


class NotificationType(Enum):
    ORDER = "order"
    TRACKING = "tracking"
    PAYMENT = "payment"
    SYSTEM = "system"


@storefront.aggregate
class Notification:
    user_id: Identifier(required=True)
    title: String(required=True, max_length=255)
    message: Text(required=True)
    notification_type: String(choices=NotificationType, default=NotificationType.ORDER.value)
    link: String(max_length=500)
    read: Boolean(default=False)
    related_order_id: Identifier()
    created_at: DateTime()

    @classmethod
    def create(cls, user_id, title, message, notification_type, link=None, related_order_id=None):
        return cls(
            user_id=user_id,
            title=title,
            message=message,
            notification_type=notification_type,
            link=link,
            read=False,
            related_order_id=related_order_id,
            created_at=datetime.now(UTC),
        )


@storefront.repository(part_of=Notification)
class NotificationRepository:
    def for_user(self, user_id) -> list[Notification]:
        return self._dao.query.filter(user_id=str(user_id)).all().items

    def for_order(self, order_id) -> list[Notification]:
        return self._dao.query.filter(related_order_id=str(order_id)).all().items

"""Notification dispatcher — in-app notifications for customers and admins.

Provides the common pattern: build the message → create one Notification per
recipient. Admin fan-out loads every admin and skips those who explicitly
turned the relevant alert off.

Dispatch is best-effort. A notification that cannot be created is logged and
dropped; it never fails the order or payment operation that triggered it.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.identity.user import AlertPreference, User
from storefront.notification.notification import Notification, NotificationType
from storefront.product import ledger

logger = structlog.get_logger(__name__)


def notify_user(user_id, title, message, notification_type, link=None, related_order_id=None):
    """Create one notification for a user.

    Returns:
        The notification id, or None when creation failed.
    """
    try:
        notification = Notification.create(
            user_id=str(user_id),
            title=title,
            message=message,
            notification_type=notification_type,
            link=link,
            related_order_id=str(related_order_id) if related_order_id else None,
        )
        current_domain.repository_for(Notification).add(notification)
    except Exception as exc:
        logger.error(
            "Failed to create notification",
            user_id=str(user_id),
            title=title,
            error=str(exc),
        )
        return None

    return str(notification.id)


def _admins():
    try:
        return current_domain.repository_for(User).admins()
    except Exception as exc:
        logger.error("Failed to load administrators for notification", error=str(exc))
        return []


def notify_admins(preference, title, message, notification_type, link=None, related_order_id=None, admins=None):
    """Create one notification per admin who has not opted out of ``preference``.

    Returns:
        List of notification IDs created.
    """
    if admins is None:
        admins = _admins()

    notification_ids = []
    for admin in admins:
        if not admin.wants(preference):
            continue
        notification_id = notify_user(
            admin.id,
            title,
            message,
            notification_type,
            link=link,
            related_order_id=related_order_id,
        )
        if notification_id:
            notification_ids.append(notification_id)

    logger.info(
        "Admin notifications created",
        title=title,
        preference=preference.value,
        count=len(notification_ids),
    )
    return notification_ids


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------
def send_new_order_notifications(order):
    """Tell the customer and the admins about a newly placed order.

    Also raises low-stock alerts for the order's items.
    """
    notify_user(
        order.customer_id,
        "Order Placed!",
        f"Your order #{order.short_ref} has been placed successfully.",
        NotificationType.ORDER.value,
        link="/orders",
        related_order_id=order.id,
    )

    admins = _admins()
    notify_admins(
        AlertPreference.ORDER_ALERTS,
        "New Order Received!",
        f"Order #{order.short_ref} totaling ₹{order.pricing.total_price} has been placed.",
        NotificationType.ORDER.value,
        link=f"/admin/order/{order.id}",
        related_order_id=order.id,
        admins=admins,
    )
    send_low_stock_alerts(order, admins=admins)


def send_low_stock_alerts(order, admins=None):
    """Alert admins for every line item left at or below the low-stock threshold."""
    if admins is None:
        admins = _admins()

    alerted = []
    for item in order.items:
        try:
            holder = ledger.resolve(item.product_id)
        except Exception as exc:
            logger.error("Failed to check stock for alert", product_id=str(item.product_id), error=str(exc))
            continue

        if holder is None or not holder.is_low:
            continue

        notify_admins(
            AlertPreference.LOW_STOCK_ALERTS,
            "Low Stock Alert!",
            f'Product "{holder.name}" is low in stock ({holder.count_in_stock} remaining).',
            NotificationType.TRACKING.value,
            link=f"/admin/product/{holder.product.id}/edit",
            admins=admins,
        )
        alerted.append(str(item.product_id))

    return alerted


def send_cancellation_notifications(order):
    notify_user(
        order.customer_id,
        "Order Cancelled",
        f"Your order #{order.short_ref} has been cancelled.",
        NotificationType.ORDER.value,
        link=f"/track/{order.id}",
        related_order_id=order.id,
    )
    notify_admins(
        AlertPreference.ORDER_ALERTS,
        "Order Cancelled by User",
        f"Order #{order.short_ref} has been cancelled by the customer.",
        NotificationType.ORDER.value,
        link=f"/admin/order/{order.id}",
        related_order_id=order.id,
    )


def send_return_request_notifications(order):
    message = f"Return requested for Order #{order.short_ref}. Reason: {order.return_reason}"
    if order.return_admin_note:
        message += f". Admin Note: {order.return_admin_note}"

    notify_admins(
        AlertPreference.ORDER_ALERTS,
        "New Return Request",
        message,
        NotificationType.ORDER.value,
        link="/admin/returns",
        related_order_id=order.id,
    )


def send_payment_notification(order, succeeded):
    if succeeded:
        title = "Payment Successful"
        message = f"Payment of ₹{order.pricing.total_price} for order #{order.short_ref} was received."
    else:
        title = "Payment Failed"
        message = f"Payment for order #{order.short_ref} could not be completed. Please try again."

    return notify_user(
        order.customer_id,
        title,
        message,
        NotificationType.PAYMENT.value,
        link=f"/track/{order.id}",
        related_order_id=order.id,
    )


def send_order_confirmed_notification(order):
    return notify_user(
        order.customer_id,
        "Order Confirmed",
        f"Your order #{order.short_ref} is confirmed and will be processed shortly.",
        NotificationType.ORDER.value,
        link=f"/track/{order.id}",
        related_order_id=order.id,
    )

"""Fulfillment — delivery, tracking progression and admin bulk updates."""

import json
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import InvalidRequestError
from storefront.order.order import BULK_STATUS_TARGETS, Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class MarkOrderDelivered:
    order_id = Identifier(required=True)
    updated_by = Identifier()


@storefront.command(part_of="Order")
class UpdateTrackingStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    message = String(max_length=500)
    location = String(max_length=255)
    updated_by = Identifier()


@storefront.command(part_of="Order")
class BulkUpdateOrderStatus:
    order_ids = Text()  # JSON: list of order ids
    status = String(max_length=50)


@storefront.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(MarkOrderDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered(updated_by=command.updated_by)
        repo.add(order)
        logger.info("Order delivered", order_id=str(order.id))

    @handle(UpdateTrackingStatus)
    def update_tracking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.advance_tracking(
            command.status,
            message=command.message,
            location=command.location,
            updated_by=command.updated_by,
        )
        repo.add(order)
        logger.info("Tracking updated", order_id=str(order.id), status=order.tracking_status)

    @handle(BulkUpdateOrderStatus)
    def bulk_update(self, command):
        """Apply one status to many orders.

        Returns:
            The number of orders whose document changed.
        """
        order_ids = json.loads(command.order_ids) if isinstance(command.order_ids, str) else command.order_ids
        if not order_ids or not isinstance(order_ids, list):
            raise InvalidRequestError("No orders selected")

        if command.status not in BULK_STATUS_TARGETS:
            logger.warning("Bulk update with unrecognised status", status=command.status)
            return 0

        repo = current_domain.repository_for(Order)
        now = datetime.now(UTC)
        modified_count = 0
        for order in repo.with_ids(order_ids):
            if order.apply_bulk_status(command.status, now=now):
                repo.add(order)
                modified_count += 1

        logger.info("Bulk order update", status=command.status, modified_count=modified_count)
        return modified_count

"""Storefront bounded context — Catalogue stock, Orders, Payments and Notifications.

Handles the order lifecycle (creation with stock validation, cancellation,
returns, fulfillment tracking), payment reconciliation against the payment
provider, and in-app notifications for customers and administrators.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)

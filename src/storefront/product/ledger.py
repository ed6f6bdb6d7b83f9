"""Stock ledger — signed adjustments to per-item available quantity.

An item id names either a primary product or an add-on nested inside some
product. Resolution always tries the primary product first, then the product
carrying an add-on with that id.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from storefront.errors import ConflictError, NotFoundError
from storefront.product.product import LOW_STOCK_THRESHOLD, AddOnItem, Product

logger = structlog.get_logger(__name__)


@dataclass
class StockHolder:
    """The resolved owner of an item's stock count."""

    product: Product
    add_on: AddOnItem | None = None

    @property
    def name(self) -> str:
        return self.add_on.name if self.add_on is not None else self.product.name

    @property
    def count_in_stock(self) -> int:
        target = self.add_on if self.add_on is not None else self.product
        return target.count_in_stock

    @property
    def add_on_id(self):
        return str(self.add_on.id) if self.add_on is not None else None

    @property
    def is_low(self) -> bool:
        return self.count_in_stock <= LOW_STOCK_THRESHOLD

    def has_stock_for(self, quantity) -> bool:
        target = self.add_on if self.add_on is not None else self.product
        return target.has_stock_for(quantity)


def resolve(item_id) -> StockHolder | None:
    """Find the product or add-on holding stock for ``item_id``."""
    repo = current_domain.repository_for(Product)

    product = repo.find(item_id)
    if product is not None:
        return StockHolder(product=product)

    product = repo.find_by_add_on(item_id)
    if product is not None:
        return StockHolder(product=product, add_on=product.add_on(item_id))

    return None


def check(item_id, quantity, label=None) -> StockHolder:
    """Verify that ``quantity`` units of the item can be sold.

    Raises:
        NotFoundError: Neither a product nor an add-on has this id.
        ConflictError: The item is flagged out of stock or has too few units.
    """
    holder = resolve(item_id)
    if holder is None:
        raise NotFoundError(f"Product not found: {label or item_id}")

    if not holder.has_stock_for(quantity):
        raise ConflictError(f"Insufficient stock for product: {holder.name}")

    return holder


def _adjust(item_id, delta) -> StockHolder | None:
    holder = resolve(item_id)
    if holder is None:
        return None

    holder.product.adjust_stock(delta, add_on_id=holder.add_on_id)
    current_domain.repository_for(Product).add(holder.product)
    return holder


def reserve(item_id, quantity) -> StockHolder:
    """Decrement stock for a sold item. Unknown items are an error."""
    holder = _adjust(item_id, -quantity)
    if holder is None:
        raise NotFoundError(f"Product not found: {item_id}")

    logger.info(
        "Stock reserved",
        item_id=str(item_id),
        quantity=quantity,
        remaining=holder.count_in_stock,
    )
    return holder


def restore(item_id, quantity) -> StockHolder | None:
    """Increment stock for a returned line item.

    Items that no longer exist in the catalogue are skipped.
    """
    holder = _adjust(item_id, quantity)
    if holder is None:
        logger.debug("Stock restore skipped, item not in catalogue", item_id=str(item_id))
        return None

    logger.info(
        "Stock restored",
        item_id=str(item_id),
        quantity=quantity,
        remaining=holder.count_in_stock,
    )
    return holder

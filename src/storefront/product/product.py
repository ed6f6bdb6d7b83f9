"""Product aggregate — catalogue entries with independently stocked add-ons.

Only the stock-bearing slice of the catalogue lives here: names and prices
are carried so line items and alerts can be labelled, while catalogue
management itself (images, categories, banners) is handled elsewhere.

``in_stock`` is a merchandising flag managed by admins. Stock adjustments
never flip it.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront

LOW_STOCK_THRESHOLD = 5


@storefront.entity(part_of="Product")
class AddOnItem:
    """A sub-product sold alongside its parent, stocked on its own."""

    name = String(required=True, max_length=255)
    price = Float(default=0.0, min_value=0.0)
    image = String(max_length=500)
    count_in_stock = Integer(default=0)
    in_stock = Boolean(default=True)

    def has_stock_for(self, quantity):
        return bool(self.in_stock) and self.count_in_stock >= quantity


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(default=0.0, min_value=0.0)
    image = String(max_length=500)
    count_in_stock = Integer(default=0)
    in_stock = Boolean(default=True)
    add_on_items = HasMany(AddOnItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.count_in_stock is not None and self.count_in_stock < 0:
            raise ValidationError({"count_in_stock": ["Stock count cannot be negative"]})
        for add_on in self.add_on_items or []:
            if add_on.count_in_stock is not None and add_on.count_in_stock < 0:
                raise ValidationError({"count_in_stock": [f"Stock count for {add_on.name} cannot be negative"]})

    @classmethod
    def create(cls, name, count_in_stock=0, price=0.0, image=None, in_stock=True, **kwargs):
        now = datetime.now(UTC)
        return cls(
            name=name,
            price=price,
            image=image,
            count_in_stock=count_in_stock,
            in_stock=in_stock,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    def add_on(self, add_on_id):
        return next((a for a in self.add_on_items or [] if str(a.id) == str(add_on_id)), None)

    def has_stock_for(self, quantity):
        return bool(self.in_stock) and self.count_in_stock >= quantity

    def adjust_stock(self, delta, add_on_id=None):
        """Apply a signed adjustment to the product or one of its add-ons.

        Decrements that would take the count below zero are refused.
        """
        target = self if add_on_id is None else self.add_on(add_on_id)
        if target is None:
            raise ValidationError({"add_on_items": [f"Add-on {add_on_id} not found"]})

        new_count = target.count_in_stock + delta
        if new_count < 0:
            raise ValidationError({"count_in_stock": [f"Insufficient stock for product: {target.name}"]})

        target.count_in_stock = new_count
        self.updated_at = datetime.now(UTC)
        return new_count


@storefront.repository(part_of=Product)
class ProductRepository:
    def find(self, product_id) -> Product | None:
        return self._dao.query.filter(id=str(product_id)).all().first

    def find_by_add_on(self, add_on_id) -> Product | None:
        """Find the product carrying the add-on with the given id."""
        add_on = current_domain.repository_for(AddOnItem)._dao.query.filter(id=str(add_on_id)).all().first
        if add_on is None:
            return None
        return self.find(add_on.product_id)

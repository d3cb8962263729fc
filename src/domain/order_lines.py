"""
Order line management - Adds, updates and removes order lines.

Prices are snapshotted from the catalog when a line is added; later
catalog price changes do not affect existing lines. Every mutation goes
through the order repository's row lock, so editability is checked at
the moment of the write rather than when the request was validated.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .catalog import Event
from .exceptions import ArgumentError, NotFound
from .order import Order, OrderLine
from .ports import EventCatalog, OrderRepository, RegistrationRepository

logger = logging.getLogger(__name__)


@dataclass
class OrderLineManager:
    """Domain service for order line mutation."""

    orders: OrderRepository
    registrations: RegistrationRepository
    catalog: EventCatalog

    def build_line(self, event: Event, product_id: int, variant_id: int | None = None) -> OrderLine:
        """
        Price a product/variant selection for an event.

        Quantity is the product's mandatory count, and at least one.

        Raises:
            ArgumentError: If the product is not offered for the event, or
                the variant does not belong to the product
        """
        product = event.product(product_id)
        if product is None:
            raise ArgumentError(f"Product {product_id} does not belong to event {event.id}")

        variant = None
        if variant_id is not None:
            variant = product.variant(variant_id)
            if variant is None:
                raise ArgumentError(f"Variant {variant_id} does not belong to product {product_id}")

        return OrderLine(
            product_id=product.id,
            variant_id=variant_id,
            quantity=max(product.mandatory_count, 1),
            price=product.price_for(variant),
            product_name=product.name,
            variant_name=variant.name if variant is not None else None,
        )

    def attach(
        self, order: Order, event: Event, product_id: int, variant_id: int | None = None
    ) -> OrderLine:
        """Add a priced line to an in-memory order that is not yet persisted."""
        return order.add_line(self.build_line(event, product_id, variant_id))

    def add_line(self, order_id: int, product_id: int, variant_id: int | None = None) -> OrderLine:
        """
        Add a product/variant line to a persisted order.

        Raises:
            ArgumentError: If the order does not exist, cannot be edited,
                or the product/variant is not valid for the order's event
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise ArgumentError(f"Order {order_id} not found")

        line = self.build_line(self._event_for(order), product_id, variant_id)
        try:
            line = self.orders.modify_order(order_id, lambda locked: locked.add_line(line))
        except NotFound:
            raise ArgumentError(f"Order {order_id} not found") from None

        logger.info("Added line %s (product %s) to order %s", line.id, product_id, order_id)
        return line

    def update_line(self, line_id: int, quantity: int, price: Decimal) -> None:
        """
        Raises:
            ArgumentError: If the line does not exist, its order cannot be
                edited, or quantity/price is negative
        """
        if quantity < 0:
            raise ArgumentError(f"Quantity must not be negative, got {quantity}")
        if price < 0:
            raise ArgumentError(f"Price must not be negative, got {price}")

        try:
            self.orders.modify_order_by_line(
                line_id, lambda order: order.update_line(line_id, quantity, price)
            )
        except NotFound:
            raise ArgumentError(f"Order line {line_id} not found") from None

    def delete_line(self, line_id: int) -> bool:
        """
        Remove a line from its order.

        Returns:
            True if removed, False if the line does not exist

        Raises:
            OrderNotEditable: If the owning order cannot be edited
        """
        try:
            removed = self.orders.modify_order_by_line(
                line_id, lambda order: order.remove_line(line_id)
            )
        except NotFound:
            return False

        if removed:
            logger.info("Deleted order line %s", line_id)
        return removed

    def _event_for(self, order: Order) -> Event:
        registration = self.registrations.get_registration(order.registration_id)
        if registration is None:
            raise ArgumentError(f"Order {order.id} has no registration")
        event = self.catalog.get_event(registration.event_id)
        if event is None:
            raise ArgumentError(f"Event {registration.event_id} not found")
        return event

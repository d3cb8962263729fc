"""
Order aggregate - Financial record tied to a registration.

Order State Machine
===================

States:
- DRAFT: Initial state, assigned at construction only
- VERIFIED: Order checked and approved
- INVOICED: Invoice issued
- CANCELLED: Order withdrawn

Valid Transitions:
    DRAFT    -> VERIFIED   (verify)
    VERIFIED -> INVOICED   (invoice)
    any      -> CANCELLED  (cancel, repeat cancels are logged no-ops)

Invalid Transitions:
    any      -> DRAFT      (DRAFT is construction-only)
    non-DRAFT -> VERIFIED
    non-VERIFIED -> INVOICED

The status has no setter: callers move the order through the named
transition methods, each of which appends an OrderLogEntry.
Lines may only be added, changed or removed while the order can be
edited (DRAFT or VERIFIED).
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from .exceptions import ArgumentError, InvalidTransition, NotFound, OrderNotEditable
from .ports import OrderRepository

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    DRAFT = "Draft"
    VERIFIED = "Verified"
    INVOICED = "Invoiced"
    CANCELLED = "Cancelled"


EDITABLE_STATUSES = frozenset({OrderStatus.DRAFT, OrderStatus.VERIFIED})


@dataclass(frozen=True)
class OrderLogEntry:
    """One audit record of a status change."""

    timestamp: datetime
    from_status: OrderStatus
    to_status: OrderStatus
    note: str | None = None

    def __str__(self) -> str:
        text = f"{self.timestamp.astimezone(timezone.utc).isoformat()}: {self.to_status.value}"
        if self.note and self.note.strip():
            text += f": {self.note.strip()}"
        return text


@dataclass
class OrderLine:
    """A priced product/variant selection on an order."""

    product_id: int
    quantity: int
    price: Decimal
    variant_id: int | None = None
    product_name: str = ""
    variant_name: str | None = None
    id: int | None = None
    order_id: int | None = None

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


class Order:
    """
    Order aggregate root.

    New orders always start as DRAFT. Orders loaded from storage are
    rebuilt with Order.restore(), which is the only way to create an
    order in another state.
    """

    def __init__(
        self,
        *,
        user_id: str,
        registration_id: int | None = None,
        customer_name: str | None = None,
        customer_email: str | None = None,
        customer_vat_number: str | None = None,
        customer_invoice_reference: str | None = None,
        payment_method_id: int | None = None,
        comments: str | None = None,
        order_time: datetime | None = None,
        id: int | None = None,
    ) -> None:
        self.id = id
        self.user_id = user_id
        self.registration_id = registration_id
        self.customer_name = customer_name
        self.customer_email = customer_email
        self.customer_vat_number = customer_vat_number
        self.customer_invoice_reference = customer_invoice_reference
        self.payment_method_id = payment_method_id
        self.comments = comments
        self.order_time = order_time or utcnow()
        self._status = OrderStatus.DRAFT
        self._log: list[OrderLogEntry] = []
        self._lines: list[OrderLine] = []

    @classmethod
    def restore(
        cls,
        *,
        status: OrderStatus,
        log: Iterable[OrderLogEntry] = (),
        lines: Iterable[OrderLine] = (),
        **fields,
    ) -> "Order":
        """Rebuild a persisted order, bypassing the transition rules."""
        order = cls(**fields)
        order._status = OrderStatus(status)
        order._log = list(log)
        order._lines = list(lines)
        return order

    def __repr__(self) -> str:
        return f"Order(id={self.id!r}, status={self._status.value}, lines={len(self._lines)})"

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def log(self) -> tuple[OrderLogEntry, ...]:
        return tuple(self._log)

    @property
    def lines(self) -> tuple[OrderLine, ...]:
        return tuple(self._lines)

    @property
    def can_edit(self) -> bool:
        return self._status in EDITABLE_STATUSES

    @property
    def total(self) -> Decimal:
        return sum((line.total for line in self._lines), Decimal("0"))

    # State transitions

    def verify(self, note: str | None = None, *, now: datetime | None = None) -> None:
        """DRAFT -> VERIFIED."""
        if self._status is not OrderStatus.DRAFT:
            raise InvalidTransition(
                f"Only draft orders can be verified (order {self.id} is {self._status.value})"
            )
        self._move_to(OrderStatus.VERIFIED, note, now)

    def invoice(self, note: str | None = None, *, now: datetime | None = None) -> None:
        """VERIFIED -> INVOICED."""
        if self._status is not OrderStatus.VERIFIED:
            raise InvalidTransition(
                f"Only verified orders can be invoiced (order {self.id} is {self._status.value})"
            )
        self._move_to(OrderStatus.INVOICED, note, now)

    def cancel(self, note: str | None = None, *, now: datetime | None = None) -> None:
        """Any state -> CANCELLED."""
        self._move_to(OrderStatus.CANCELLED, note, now)

    def transition_to(
        self, status: OrderStatus, note: str | None = None, *, now: datetime | None = None
    ) -> None:
        """Dispatch a requested status to the matching named transition."""
        status = OrderStatus(status)
        if status is OrderStatus.DRAFT:
            raise InvalidTransition("Orders cannot be set as draft")
        if status is OrderStatus.VERIFIED:
            self.verify(note, now=now)
        elif status is OrderStatus.INVOICED:
            self.invoice(note, now=now)
        else:
            self.cancel(note, now=now)

    def _move_to(self, status: OrderStatus, note: str | None, now: datetime | None) -> None:
        entry = OrderLogEntry(
            timestamp=now or utcnow(),
            from_status=self._status,
            to_status=status,
            note=note,
        )
        self._status = status
        self._log.append(entry)

    # Line mutation

    def line(self, line_id: int) -> OrderLine | None:
        return next((line for line in self._lines if line.id == line_id), None)

    def add_line(self, line: OrderLine) -> OrderLine:
        self._ensure_editable()
        line.order_id = self.id
        self._lines.append(line)
        return line

    def update_line(self, line_id: int, quantity: int, price: Decimal) -> OrderLine:
        self._ensure_editable()
        if quantity < 0:
            raise ArgumentError(f"Quantity must not be negative, got {quantity}")
        if price < 0:
            raise ArgumentError(f"Price must not be negative, got {price}")
        line = self.line(line_id)
        if line is None:
            raise ArgumentError(f"Order {self.id} has no line {line_id}")
        line.quantity = quantity
        line.price = Decimal(price)
        return line

    def remove_line(self, line_id: int) -> bool:
        self._ensure_editable()
        line = self.line(line_id)
        if line is None:
            return False
        self._lines.remove(line)
        return True

    def _ensure_editable(self) -> None:
        if not self.can_edit:
            raise OrderNotEditable(f"Order {self.id} is {self._status.value} and cannot be edited")


def can_edit(order: Order) -> bool:
    """True while the order is DRAFT or VERIFIED."""
    return order.can_edit


@dataclass
class OrderService:
    """
    Drives the order state machine against the repository.

    Every transition runs inside the repository's row lock so legality
    is checked against the state at the moment of the write.
    """

    repository: OrderRepository

    def get_order(self, order_id: int) -> Order:
        order = self.repository.get_order(order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    def mark_verified(self, order_id: int, note: str | None = None) -> Order:
        return self._transition(order_id, lambda order: order.verify(note))

    def mark_invoiced(self, order_id: int, note: str | None = None) -> Order:
        return self._transition(order_id, lambda order: order.invoice(note))

    def mark_cancelled(self, order_id: int, note: str | None = None) -> Order:
        return self._transition(order_id, lambda order: order.cancel(note))

    def update_status(self, order_id: int, status: OrderStatus, note: str | None = None) -> Order:
        return self._transition(order_id, lambda order: order.transition_to(status, note))

    def _transition(self, order_id: int, move: Callable[[Order], None]) -> Order:
        def change(order: Order) -> Order:
            move(order)
            return order

        order = self.repository.modify_order(order_id, change)
        logger.info("Order %s is now %s", order_id, order.status.value)
        return order

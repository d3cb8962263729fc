"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, TypeVar

if TYPE_CHECKING:
    from .catalog import Event, PaymentMethod
    from .order import Order
    from .registration import Registration

T = TypeVar("T")


@dataclass(frozen=True)
class User:
    """Identity as seen by the registration domain."""

    id: str
    name: str
    email: str
    phone: str | None = None


class NoticeTemplate(str, Enum):
    """
    Named notification templates.

    - CONFIRM_REGISTRATION: fresh registration, carries the verification link
    - VERIFICATION_REMINDER: duplicate submission for an unverified registration
    - ALREADY_REGISTERED: duplicate submission for a verified registration
    """

    CONFIRM_REGISTRATION = "confirm_registration"
    VERIFICATION_REMINDER = "verification_reminder"
    ALREADY_REGISTERED = "already_registered"


class EventCatalog(Protocol):
    """Port interface for read-only event and payment method lookups."""

    def get_event(self, event_id: int) -> "Event | None":
        """
        Look up an event with its products and variants.

        Args:
            event_id: Event identifier

        Returns:
            Event, or None if it does not exist
        """
        ...

    def get_payment_method(self, payment_method_id: int) -> "PaymentMethod | None":
        """Look up a payment method, or None if it does not exist."""
        ...


class IdentityProvider(Protocol):
    """Port interface for user lookup and creation."""

    def find_by_email(self, email: str) -> User | None:
        """Return the user registered with a normalized email, if any."""
        ...

    def create_user(self, name: str, email: str, phone: str | None) -> User:
        """
        Create a new user.

        Raises:
            IdentityError: If the provider refuses to create the user
        """
        ...


class RegistrationRepository(Protocol):
    """Port interface for registration persistence."""

    def get_registration(self, registration_id: int) -> "Registration | None":
        """Return a registration by id, or None."""
        ...

    def find_registration(self, user_id: str, event_id: int) -> "Registration | None":
        """Return the non-cancelled registration of a user for an event, if any."""
        ...

    def create_registration(self, registration: "Registration", order: "Order") -> int:
        """
        Atomically persist a registration, its order and the order's lines.

        Ids are assigned to the registration, the order and every line
        only once the transaction has committed.

        Returns:
            The new registration id

        Raises:
            DuplicateRegistration: If the (user, event) uniqueness constraint fires
            PersistenceFailure: If anything else prevents the commit
        """
        ...

    def modify_registration(
        self,
        registration_id: int,
        change: "Callable[[Registration, list[Order]], T]",
    ) -> T:
        """
        Apply a change to a registration and its orders under a row lock.

        The registration and its orders are locked, handed to the change
        callback, and written back in the same transaction. If the callback
        raises, nothing is written.

        Raises:
            NotFound: If the registration does not exist
        """
        ...


class OrderRepository(Protocol):
    """Port interface for order persistence."""

    def get_order(self, order_id: int) -> "Order | None":
        """Return an order with its lines and log, or None."""
        ...

    def modify_order(self, order_id: int, change: "Callable[[Order], T]") -> T:
        """
        Apply a change to an order under a row lock.

        Status, log and line changes made by the callback are written
        back atomically. New lines receive their ids on commit.

        Raises:
            NotFound: If the order does not exist
        """
        ...

    def modify_order_by_line(self, line_id: int, change: "Callable[[Order], T]") -> T:
        """
        Same as modify_order, locating the order through one of its lines.

        Raises:
            NotFound: If the line does not exist
        """
        ...


class Notifier(Protocol):
    """Port interface for rendering and sending notices."""

    def send(self, template: NoticeTemplate, recipient: str, data: Mapping[str, object]) -> None:
        """
        Render a named template with data and send it to a recipient.

        Args:
            template: Template to render
            recipient: Email address
            data: Values substituted into the template

        Raises:
            OSError: If the notice could not be delivered
        """
        ...

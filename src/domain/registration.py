"""
Registration domain - One participant's claim to attend one event.

Registration Lifecycle
======================

Verification:
- Registrations are created with verified=False and a random code
- Following the emailed link with the matching code sets verified=True
  (and moves a DRAFT registration to ACTIVE); repeat confirmations are no-ops

Status Transitions (driven by explicit administrative calls):
    DRAFT -> ACTIVE | WAITING_LIST | ATTENDED | FINISHED | CANCELLED
    ACTIVE, WAITING_LIST, ATTENDED -> any other non-DRAFT status

Terminal States:
- CANCELLED: every order of the registration is cancelled with it
- FINISHED: the event is over for this participant

Invalid Transitions:
    any -> DRAFT              (DRAFT is construction-only)
    CANCELLED/FINISHED -> any (terminal, re-applying the same status is a no-op)

A registration counts as active only once verified and while not cancelled.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .exceptions import ArgumentError, InvalidTransition, NotFound
from .order import Order, OrderStatus, utcnow
from .ports import EventCatalog, RegistrationRepository

logger = logging.getLogger(__name__)


class RegistrationStatus(str, Enum):
    """Registration lifecycle states."""

    DRAFT = "Draft"
    ACTIVE = "Active"
    WAITING_LIST = "WaitingList"
    ATTENDED = "Attended"
    FINISHED = "Finished"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset({RegistrationStatus.CANCELLED, RegistrationStatus.FINISHED})


class RegistrationType(str, Enum):
    """Role of the registered participant."""

    PARTICIPANT = "Participant"
    STUDENT = "Student"
    STAFF = "Staff"
    LECTURER = "Lecturer"
    ARTIST = "Artist"


@dataclass
class Registration:
    """A participant's registration for an event."""

    event_id: int
    user_id: str
    participant_name: str
    email: str
    verification_code: str
    phone: str | None = None
    employer: str | None = None
    job_title: str | None = None
    city: str | None = None
    notes: str | None = None
    verified: bool = False
    status: RegistrationStatus = RegistrationStatus.DRAFT
    type: RegistrationType = RegistrationType.PARTICIPANT
    customer_name: str | None = None
    customer_email: str | None = None
    customer_vat_number: str | None = None
    customer_invoice_reference: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    customer_zip: str | None = None
    customer_country: str | None = None
    payment_method_id: int | None = None
    registered_at: datetime = field(default_factory=utcnow)
    id: int | None = None

    @property
    def is_active(self) -> bool:
        return self.verified and self.status is not RegistrationStatus.CANCELLED

    def confirm(self, code: str) -> bool:
        """
        Verify the registration if the code matches.

        Comparison is constant-time. A mismatch leaves the registration
        untouched.

        Returns:
            True if the code matches (including repeat confirmations)
        """
        if not secrets.compare_digest(self.verification_code.encode(), code.encode()):
            return False
        if not self.verified:
            self.verified = True
            if self.status is RegistrationStatus.DRAFT:
                self.status = RegistrationStatus.ACTIVE
        return True

    def change_status(self, status: RegistrationStatus) -> bool:
        """
        Move to a new status.

        Returns:
            True if the status changed, False if it already had that status

        Raises:
            InvalidTransition: On a move to DRAFT or out of a terminal status
        """
        status = RegistrationStatus(status)
        if status is self.status:
            return False
        if status is RegistrationStatus.DRAFT:
            raise InvalidTransition("Registrations cannot be set as draft")
        if self.status in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Registration {self.id} is {self.status.value} and cannot become {status.value}"
            )
        self.status = status
        return True

    def change_type(self, registration_type: RegistrationType) -> None:
        if self.status in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Registration {self.id} is {self.status.value} and its type cannot change"
            )
        self.type = RegistrationType(registration_type)


@dataclass
class RegistrationService:
    """
    Domain service for registration confirmation and administration.

    Every change is applied through the repository's row lock so checks
    run against the state at the moment of the write.
    """

    repository: RegistrationRepository
    catalog: EventCatalog

    def get_registration(self, registration_id: int) -> Registration:
        registration = self.repository.get_registration(registration_id)
        if registration is None:
            raise NotFound(f"Registration {registration_id} not found")
        return registration

    def confirm(self, registration_id: int, code: str) -> bool:
        """
        Confirm a registration with the code from the emailed link.

        Args:
            registration_id: Registration to confirm
            code: Verification code supplied by the participant

        Returns:
            True if confirmed (now or previously), False on code mismatch

        Raises:
            NotFound: If the registration does not exist
        """
        confirmed = self.repository.modify_registration(
            registration_id, lambda registration, orders: registration.confirm(code)
        )
        if confirmed:
            logger.info("Registration %s confirmed", registration_id)
        else:
            logger.warning("Registration %s confirmation with wrong code", registration_id)
        return confirmed

    def update_participant_info(
        self,
        registration_id: int,
        participant_name: str | None,
        job_title: str | None,
        city: str | None,
        employer: str | None,
    ) -> None:
        def change(registration: Registration, orders: list[Order]) -> None:
            registration.participant_name = participant_name or registration.participant_name
            registration.job_title = job_title
            registration.city = city
            registration.employer = employer

        self._modify(registration_id, change)

    def update_customer_info(
        self,
        registration_id: int,
        customer_name: str | None,
        customer_email: str | None,
        customer_vat_number: str | None,
        customer_invoice_reference: str | None,
    ) -> None:
        def change(registration: Registration, orders: list[Order]) -> None:
            registration.customer_name = customer_name
            registration.customer_email = customer_email
            registration.customer_vat_number = customer_vat_number
            registration.customer_invoice_reference = customer_invoice_reference

        self._modify(registration_id, change)

    def update_customer_address(
        self,
        registration_id: int,
        address: str | None,
        city: str | None,
        zip_code: str | None,
        country: str | None,
    ) -> None:
        def change(registration: Registration, orders: list[Order]) -> None:
            registration.customer_address = address
            registration.customer_city = city
            registration.customer_zip = zip_code
            registration.customer_country = country

        self._modify(registration_id, change)

    def update_payment_method(self, registration_id: int, payment_method_id: int) -> None:
        """
        Raises:
            ArgumentError: If the registration is missing or the payment
                method is unknown or inactive
        """
        payment_method = self.catalog.get_payment_method(payment_method_id)
        if payment_method is None or not payment_method.active:
            raise ArgumentError(f"Payment method {payment_method_id} is not available")

        def change(registration: Registration, orders: list[Order]) -> None:
            registration.payment_method_id = payment_method_id

        self._modify(registration_id, change)

    def update_status(self, registration_id: int, status: RegistrationStatus) -> list[int]:
        """
        Change the registration status, cancelling its orders on cancellation.

        The registration and its orders are written in one transaction.

        Returns:
            Ids of the orders cancelled by this call

        Raises:
            ArgumentError: If the registration does not exist
            InvalidTransition: If the move is illegal
        """
        status = RegistrationStatus(status)

        def change(registration: Registration, orders: list[Order]) -> list[int]:
            if not registration.change_status(status):
                return []
            if status is not RegistrationStatus.CANCELLED:
                return []
            cancelled = []
            for order in orders:
                if order.status is not OrderStatus.CANCELLED:
                    order.cancel(f"Registration {registration.id} cancelled")
                    cancelled.append(order.id)
            return cancelled

        cancelled = self._modify(registration_id, change)
        logger.info(
            "Registration %s is now %s (cancelled orders: %s)",
            registration_id,
            status.value,
            cancelled,
        )
        return cancelled

    def update_type(self, registration_id: int, registration_type: RegistrationType) -> None:
        def change(registration: Registration, orders: list[Order]) -> None:
            registration.change_type(registration_type)

        self._modify(registration_id, change)

    def _modify(self, registration_id, change):
        try:
            return self.repository.modify_registration(registration_id, change)
        except NotFound:
            raise ArgumentError(f"Registration {registration_id} not found") from None

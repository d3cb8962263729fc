"""
Registration intake workflow - Turns a submitted form into a registration.

Flow for one submission:
1. Resolve the event (NotFound if absent or archived)
2. Populate one product slot per event product; mandatory products are
   always selected, whatever the submitted form says
3. Validate the form; on failure return it with messages, storing nothing
4. Resolve the user by email, creating one through the identity provider
   if needed (refusals become form messages)
5. Look for an existing registration of the user for the event; if found,
   send a verification reminder (unverified) or an already-registered
   notice (verified) and stop
6. Summarise the selected products into the registration notes
7. Persist registration, draft order and order lines in one transaction
8. Email the confirmation link, only once the registration id exists

A uniqueness violation at step 7 (concurrent duplicate submission) is
handled exactly like a duplicate found at step 5.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import urlencode

from email_validator import EmailNotValidError, validate_email

from .catalog import Event
from .codes import VerificationCodeGenerator
from .exceptions import (
    DuplicateRegistration,
    IdentityError,
    NotFound,
    PersistenceFailure,
    ValidationFailed,
)
from .order import Order
from .order_lines import OrderLineManager
from .ports import (
    EventCatalog,
    IdentityProvider,
    Notifier,
    NoticeTemplate,
    RegistrationRepository,
    User,
)
from .registration import Registration

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


@dataclass
class ProductSelection:
    """One product slot of the registration form."""

    product_id: int
    selected: bool = False
    variant_id: int | None = None
    mandatory: bool = False
    name: str = ""


@dataclass
class RegistrationForm:
    """Participant, billing and product choices submitted for an event."""

    participant_name: str = ""
    email: str = ""
    phone: str = ""
    employer: str | None = None
    job_title: str | None = None
    city: str | None = None
    notes: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_vat_number: str | None = None
    customer_invoice_reference: str | None = None
    payment_method_id: int | None = None
    products: list[ProductSelection] = field(default_factory=list)


class IntakeOutcome(str, Enum):
    """How a submission ended."""

    REGISTERED = "registered"
    REMINDER_SENT = "reminder_sent"
    ALREADY_REGISTERED = "already_registered"
    INVALID = "invalid"


@dataclass
class IntakeResult:
    """Result of one submission."""

    outcome: IntakeOutcome
    form: RegistrationForm
    registration_id: int | None = None
    errors: list[str] = field(default_factory=list)


def normalize_email(email: str) -> str:
    """Normalized, lowercased form of an address that passed validation."""
    return validate_email(email.strip(), check_deliverability=False).normalized.lower()


def validate_form(form: RegistrationForm) -> list[str]:
    """Structural checks on the participant fields."""
    errors = []
    name = (form.participant_name or "").strip()
    if not name:
        errors.append("Name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Name must be at most {MAX_NAME_LENGTH} characters")
    email = (form.email or "").strip()
    if not email:
        errors.append("Email is required")
    else:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            errors.append("Email is not a valid email address")
    if not (form.phone or "").strip():
        errors.append("Phone is required")
    return errors


def populate_products(event: Event, submitted: list[ProductSelection]) -> list[ProductSelection]:
    """
    Build one slot per event product, merged with the submitted choices.

    Mandatory products are selected regardless of the submission. Slots
    for products the event does not offer are dropped. A slot without a
    chosen variant defaults to the product's first variant.
    """
    chosen = {selection.product_id: selection for selection in submitted}
    slots = []
    for product in event.products:
        selection = chosen.get(product.id)
        variant_id = selection.variant_id if selection is not None else None
        if variant_id is None and product.variants:
            variant_id = product.variants[0].id
        slots.append(
            ProductSelection(
                product_id=product.id,
                selected=product.is_mandatory or (selection is not None and selection.selected),
                variant_id=variant_id,
                mandatory=product.is_mandatory,
                name=product.name,
            )
        )
    return slots


def validate_selections(event: Event, slots: list[ProductSelection]) -> list[str]:
    errors = []
    for slot in slots:
        product = event.product(slot.product_id)
        if slot.selected and slot.variant_id is not None and product.variant(slot.variant_id) is None:
            errors.append(f"{product.name}: unknown variant {slot.variant_id}")
    return errors


def check_form(event: Event, form: RegistrationForm) -> None:
    """
    Raises:
        ValidationFailed: With every message found in the form
    """
    errors = validate_form(form) + validate_selections(event, form.products)
    if errors:
        raise ValidationFailed(errors)


def selection_summary(event: Event, slots: list[ProductSelection]) -> str:
    """Human-readable list of selections, e.g. "3. Dinner (7. Vegetarian)"."""
    parts = []
    for slot in slots:
        if not slot.selected:
            continue
        product = event.product(slot.product_id)
        text = f"{product.id}. {product.name}"
        variant = product.variant(slot.variant_id) if slot.variant_id is not None else None
        if variant is not None:
            text += f" ({variant.id}. {variant.name})"
        parts.append(text)
    return ", ".join(parts)


def merge_notes(summary: str, comment: str | None) -> str | None:
    """Product summary first, followed by the participant's own comment."""
    parts = [part for part in (summary, (comment or "").strip()) if part]
    return "\n".join(parts) or None


def confirmation_url(base_url: str, registration_id: int, code: str) -> str:
    query = urlencode({"code": code})
    return f"{base_url.rstrip('/')}/v1/registrations/{registration_id}/confirm?{query}"


@dataclass
class RegistrationIntake:
    """Orchestrates the registration intake flow."""

    catalog: EventCatalog
    identities: IdentityProvider
    registrations: RegistrationRepository
    line_manager: OrderLineManager
    notifier: Notifier
    codes: VerificationCodeGenerator
    public_base_url: str
    default_payment_method_id: int | None = None
    support_email: str = ""

    def prepare_form(self, event_id: int) -> tuple[Event, RegistrationForm]:
        """
        Blank form for an event, with mandatory products pre-selected.

        Raises:
            NotFound: If the event does not exist or is archived
        """
        event = self._resolve_event(event_id)
        form = RegistrationForm(
            payment_method_id=self.default_payment_method_id,
            products=populate_products(event, []),
        )
        return event, form

    def submit(self, event_id: int, form: RegistrationForm) -> IntakeResult:
        """
        Process one registration submission.

        Returns:
            IntakeResult; INVALID results carry the re-populated form and
            the messages to show

        Raises:
            NotFound: If the event does not exist or is archived
            PersistenceFailure: If the registration could not be stored
        """
        event = self._resolve_event(event_id)
        form = replace(form, products=populate_products(event, form.products))

        try:
            check_form(event, form)
            form.email = email = normalize_email(form.email)
            user = self._resolve_user(form, email)
        except (ValidationFailed, IdentityError) as e:
            return IntakeResult(IntakeOutcome.INVALID, form, errors=e.messages)

        existing = self.registrations.find_registration(user.id, event.id)
        if existing is not None:
            return self._notify_duplicate(existing, event, form)

        logger.info("Starting new registration of user %s for event %s", user.id, event.id)
        registration, order = self._materialize(event, form, user)
        try:
            registration_id = self.registrations.create_registration(registration, order)
        except DuplicateRegistration:
            logger.warning(
                "Concurrent registration of user %s for event %s", user.id, event.id
            )
            existing = self.registrations.find_registration(user.id, event.id)
            if existing is None:
                raise PersistenceFailure(
                    f"Registration of user {user.id} for event {event.id} conflicted "
                    "but no existing registration was found"
                ) from None
            return self._notify_duplicate(existing, event, form)
        except PersistenceFailure:
            logger.error(
                "Could not store registration of user %s (%s) for event %s",
                user.id,
                email,
                event.id,
                exc_info=True,
            )
            raise

        if registration_id is None:
            raise PersistenceFailure(
                f"Registration of user {user.id} for event {event.id} was not assigned an id"
            )
        logger.info(
            "Registration %s stored for user %s on event %s", registration_id, user.id, event.id
        )

        # Registration is committed at this point
        try:
            self.notifier.send(
                NoticeTemplate.CONFIRM_REGISTRATION,
                email,
                {
                    "name": registration.participant_name,
                    "email": email,
                    "phone": registration.phone,
                    "event_title": event.title,
                    "event_description": event.description,
                    "products": selection_summary(event, form.products),
                    "payment_method_id": registration.payment_method_id,
                    "verification_url": confirmation_url(
                        self.public_base_url, registration_id, registration.verification_code
                    ),
                },
            )
        except OSError:
            logger.error(
                "Could not send confirmation of registration %s to %s",
                registration_id,
                email,
                exc_info=True,
            )
        return IntakeResult(IntakeOutcome.REGISTERED, form, registration_id=registration_id)

    def _resolve_event(self, event_id: int) -> Event:
        event = self.catalog.get_event(event_id)
        if event is None or event.archived:
            raise NotFound(f"Event {event_id} not found")
        return event

    def _resolve_user(self, form: RegistrationForm, email: str) -> User:
        user = self.identities.find_by_email(email)
        if user is not None:
            logger.info("Found existing user %s", user.id)
            return user
        user = self.identities.create_user(form.participant_name.strip(), email, form.phone)
        logger.info("Created user %s", user.id)
        return user

    def _notify_duplicate(
        self, existing: Registration, event: Event, form: RegistrationForm
    ) -> IntakeResult:
        logger.warning("Found existing registration %s", existing.id)
        data = {
            "name": form.participant_name,
            "event_title": event.title,
            "support_email": self.support_email,
        }
        if existing.verified:
            self.notifier.send(NoticeTemplate.ALREADY_REGISTERED, form.email, data)
            outcome = IntakeOutcome.ALREADY_REGISTERED
        else:
            data["verification_url"] = confirmation_url(
                self.public_base_url, existing.id, existing.verification_code
            )
            self.notifier.send(NoticeTemplate.VERIFICATION_REMINDER, form.email, data)
            outcome = IntakeOutcome.REMINDER_SENT
        return IntakeResult(outcome, form, registration_id=existing.id)

    def _materialize(
        self, event: Event, form: RegistrationForm, user: User
    ) -> tuple[Registration, Order]:
        payment_method_id = form.payment_method_id or self.default_payment_method_id
        registration = Registration(
            event_id=event.id,
            user_id=user.id,
            participant_name=form.participant_name.strip(),
            email=form.email,
            phone=form.phone,
            employer=form.employer,
            job_title=form.job_title,
            city=form.city,
            notes=merge_notes(selection_summary(event, form.products), form.notes),
            verification_code=self.codes.generate(),
            customer_name=form.customer_name,
            customer_email=form.customer_email,
            customer_vat_number=form.customer_vat_number,
            customer_invoice_reference=form.customer_invoice_reference,
            payment_method_id=payment_method_id,
        )
        order = Order(
            user_id=user.id,
            customer_name=form.customer_name or registration.participant_name,
            customer_email=form.customer_email or registration.email,
            customer_vat_number=form.customer_vat_number,
            customer_invoice_reference=form.customer_invoice_reference,
            payment_method_id=payment_method_id,
            comments=form.notes,
        )
        for slot in form.products:
            if slot.selected:
                self.line_manager.attach(order, event, slot.product_id, slot.variant_id)
        return registration, order

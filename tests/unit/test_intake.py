"""
Unit tests for the registration intake workflow.

Tests the full submission flow against in-memory ports to verify:
- Form preparation (mandatory products pre-selected, default variants)
- Form validation and identity refusals come back as form errors
- A fresh submission stores registration, draft order and lines, then emails
- Duplicate submissions send a reminder or an already-registered notice
- Concurrent duplicates, storage failures and undeliverable confirmations
- Notes carry both the product summary and the participant's comment
"""

import logging
import random
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.domain.codes import VerificationCodeGenerator
from src.domain.exceptions import DuplicateRegistration, NotFound, PersistenceFailure
from src.domain.intake import (
    IntakeOutcome,
    ProductSelection,
    RegistrationForm,
    confirmation_url,
    merge_notes,
    selection_summary,
    validate_form,
)
from src.domain.order import Order, OrderStatus
from src.domain.ports import Notifier, NoticeTemplate, User
from src.domain.registration import Registration, RegistrationStatus
from tests.fakes import InMemoryRegistrationRepository
from tests.sample_data import (
    ARCHIVED_EVENT_ID,
    DINNER_PRODUCT_ID,
    EVENT_ID,
    FEE_PRODUCT_ID,
    FISH_VARIANT_ID,
    INVOICE_PAYMENT_METHOD_ID,
    VEGETARIAN_VARIANT_ID,
)


def make_form(**overrides) -> RegistrationForm:
    values = {
        "participant_name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+44 20 7946 0000",
    }
    values.update(overrides)
    return RegistrationForm(**values)


@pytest.fixture
def known_user(identities) -> User:
    user = User(id="42", name="Ada Lovelace", email="ada@example.com")
    identities.users[user.email] = user
    return user


def store_existing(registrations, user: User, code: str = "Old9Zx", verified: bool = False) -> int:
    registration = Registration(
        event_id=EVENT_ID,
        user_id=user.id,
        participant_name=user.name,
        email=user.email,
        verification_code=code,
        verified=verified,
    )
    return registrations.create_registration(registration, Order(user_id=user.id))


class TestPrepareForm:
    """Tests for building a blank form."""

    def test_one_slot_per_product(self, intake) -> None:
        event, form = intake.prepare_form(EVENT_ID)
        assert event.id == EVENT_ID
        assert [slot.product_id for slot in form.products] == [FEE_PRODUCT_ID, DINNER_PRODUCT_ID]

    def test_mandatory_product_preselected(self, intake) -> None:
        _, form = intake.prepare_form(EVENT_ID)
        fee, dinner = form.products
        assert fee.selected is True
        assert fee.mandatory is True
        assert dinner.selected is False
        assert dinner.mandatory is False

    def test_first_variant_is_default(self, intake) -> None:
        _, form = intake.prepare_form(EVENT_ID)
        assert form.products[1].variant_id == VEGETARIAN_VARIANT_ID
        assert form.products[0].variant_id is None

    def test_default_payment_method(self, intake) -> None:
        _, form = intake.prepare_form(EVENT_ID)
        assert form.payment_method_id == INVOICE_PAYMENT_METHOD_ID

    @pytest.mark.parametrize("event_id", [ARCHIVED_EVENT_ID, 404])
    def test_missing_or_archived_event(self, intake, event_id: int) -> None:
        with pytest.raises(NotFound):
            intake.prepare_form(event_id)


class TestFreshRegistration:
    """Tests for a first-time submission."""

    def test_registration_order_and_line_created(self, intake, store, orders) -> None:
        result = intake.submit(EVENT_ID, make_form())

        assert result.outcome is IntakeOutcome.REGISTERED
        registration = store.registrations[result.registration_id]
        assert registration.verified is False
        assert registration.status is RegistrationStatus.DRAFT
        assert registration.event_id == EVENT_ID

        (order,) = store.orders_of(registration.id)
        order = orders.get_order(order.id)
        assert order.status is OrderStatus.DRAFT
        assert order.user_id == registration.user_id
        assert len(order.lines) == 1
        line = order.lines[0]
        assert line.product_id == FEE_PRODUCT_ID
        assert line.quantity == 1
        assert line.price == Decimal("500")

    def test_confirmation_email_sent_after_save(self, intake, store, notifier) -> None:
        result = intake.submit(EVENT_ID, make_form())

        assert len(notifier.sent) == 1
        notice = notifier.sent[0]
        registration = store.registrations[result.registration_id]
        assert notice["template"] is NoticeTemplate.CONFIRM_REGISTRATION
        assert notice["recipient"] == "ada@example.com"
        assert notice["data"]["event_title"] == "Spring Conference"
        assert notice["data"]["verification_url"] == (
            f"https://events.example.com/v1/registrations/{registration.id}"
            f"/confirm?code={registration.verification_code}"
        )

    def test_code_comes_from_injected_generator(self, intake, store) -> None:
        result = intake.submit(EVENT_ID, make_form())
        expected = VerificationCodeGenerator(rng=random.Random(1234)).generate()
        assert store.registrations[result.registration_id].verification_code == expected

    def test_new_user_created_with_normalized_email(self, intake, identities, store) -> None:
        result = intake.submit(EVENT_ID, make_form(email="  ADA@Example.COM "))
        user = identities.find_by_email("ada@example.com")
        assert user is not None
        registration = store.registrations[result.registration_id]
        assert registration.user_id == user.id

    def test_stored_registration_is_logged(self, intake, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="src.domain.intake"):
            result = intake.submit(EVENT_ID, make_form())
        assert f"Registration {result.registration_id} stored" in caplog.text
        assert registration.email == "ada@example.com"

    def test_existing_user_reused(self, intake, known_user, store) -> None:
        result = intake.submit(EVENT_ID, make_form())
        assert store.registrations[result.registration_id].user_id == "42"

    def test_mandatory_deselection_ignored(self, intake, store) -> None:
        form = make_form(products=[ProductSelection(product_id=FEE_PRODUCT_ID, selected=False)])
        result = intake.submit(EVENT_ID, form)
        (order,) = store.orders_of(result.registration_id)
        assert [line.product_id for line in order.lines] == [FEE_PRODUCT_ID]
        assert result.form.products[0].selected is True

    def test_optional_product_with_variant(self, intake, store) -> None:
        form = make_form(
            products=[
                ProductSelection(
                    product_id=DINNER_PRODUCT_ID, selected=True, variant_id=FISH_VARIANT_ID
                )
            ]
        )
        result = intake.submit(EVENT_ID, form)
        (order,) = store.orders_of(result.registration_id)
        assert [(line.product_id, line.price) for line in order.lines] == [
            (FEE_PRODUCT_ID, Decimal("500")),
            (DINNER_PRODUCT_ID, Decimal("45")),
        ]

    def test_notes_keep_summary_and_comment(self, intake, store) -> None:
        form = make_form(
            notes="Arriving late",
            products=[
                ProductSelection(
                    product_id=DINNER_PRODUCT_ID, selected=True, variant_id=FISH_VARIANT_ID
                )
            ],
        )
        result = intake.submit(EVENT_ID, form)
        registration = store.registrations[result.registration_id]
        assert registration.notes == "10. Conference fee, 11. Dinner (8. Fish)\nArriving late"

    def test_default_payment_method_applied(self, intake, store) -> None:
        result = intake.submit(EVENT_ID, make_form())
        registration = store.registrations[result.registration_id]
        assert registration.payment_method_id == INVOICE_PAYMENT_METHOD_ID

    def test_order_customer_defaults_to_participant(self, intake, store) -> None:
        result = intake.submit(EVENT_ID, make_form())
        (order,) = store.orders_of(result.registration_id)
        assert order.customer_name == "Ada Lovelace"
        assert order.customer_email == "ada@example.com"

    def test_order_customer_from_billing_fields(self, intake, store) -> None:
        form = make_form(customer_name="ACME", customer_email="billing@acme.example.com")
        result = intake.submit(EVENT_ID, form)
        (order,) = store.orders_of(result.registration_id)
        assert order.customer_name == "ACME"
        assert order.customer_email == "billing@acme.example.com"

    def test_cancelled_registration_allows_new_one(self, intake, known_user, registrations, store) -> None:
        first = store_existing(registrations, known_user)
        store.registrations[first].status = RegistrationStatus.CANCELLED

        result = intake.submit(EVENT_ID, make_form())
        assert result.outcome is IntakeOutcome.REGISTERED
        assert result.registration_id != first

    def test_unknown_event(self, intake, notifier) -> None:
        with pytest.raises(NotFound):
            intake.submit(404, make_form())
        assert notifier.sent == []


class TestDuplicateSubmission:
    """Tests for a user submitting again for the same event."""

    def test_unverified_duplicate_gets_reminder(
        self, intake, known_user, registrations, store, notifier
    ) -> None:
        first = store_existing(registrations, known_user, code="Old9Zx")

        result = intake.submit(EVENT_ID, make_form())

        assert result.outcome is IntakeOutcome.REMINDER_SENT
        assert result.registration_id == first
        assert len(store.registrations) == 1
        (notice,) = notifier.sent
        assert notice["template"] is NoticeTemplate.VERIFICATION_REMINDER
        assert notice["data"]["verification_url"].endswith(
            f"/v1/registrations/{first}/confirm?code=Old9Zx"
        )
        assert notice["data"]["support_email"] == "help@example.com"

    def test_verified_duplicate_gets_notice(
        self, intake, known_user, registrations, store, notifier
    ) -> None:
        first = store_existing(registrations, known_user, verified=True)

        result = intake.submit(EVENT_ID, make_form())

        assert result.outcome is IntakeOutcome.ALREADY_REGISTERED
        assert result.registration_id == first
        assert len(store.registrations) == 1
        (notice,) = notifier.sent
        assert notice["template"] is NoticeTemplate.ALREADY_REGISTERED
        assert "verification_url" not in notice["data"]

    def test_concurrent_duplicate_falls_back_to_reminder(
        self, intake, known_user, store, notifier
    ) -> None:
        class RacingRepository(InMemoryRegistrationRepository):
            """Another submission commits between the lookup and the insert."""

            lookups = 0

            def find_registration(self, user_id, event_id):
                self.lookups += 1
                if self.lookups == 1:
                    return None
                return super().find_registration(user_id, event_id)

        racing = RacingRepository(store)
        store_existing(racing, known_user, code="Won1st")
        intake.registrations = racing

        result = intake.submit(EVENT_ID, make_form())

        assert result.outcome is IntakeOutcome.REMINDER_SENT
        assert len(store.registrations) == 1
        (notice,) = notifier.sent
        assert notice["template"] is NoticeTemplate.VERIFICATION_REMINDER
        assert notice["data"]["verification_url"].endswith("code=Won1st")

    def test_conflict_without_survivor_is_persistence_failure(
        self, intake, store, notifier
    ) -> None:
        intake.registrations = InMemoryRegistrationRepository(
            store, fail_with=DuplicateRegistration("42", EVENT_ID)
        )
        with pytest.raises(PersistenceFailure):
            intake.submit(EVENT_ID, make_form())
        assert notifier.sent == []


class TestStorageFailure:
    """Tests for failures while persisting."""

    def test_failure_propagates_without_email(self, intake, store, notifier) -> None:
        intake.registrations = InMemoryRegistrationRepository(
            store, fail_with=PersistenceFailure("connection lost")
        )
        with pytest.raises(PersistenceFailure):
            intake.submit(EVENT_ID, make_form())
        assert notifier.sent == []
        assert store.registrations == {}
        assert store.orders == {}

    def test_missing_id_is_failure(self, intake, notifier) -> None:
        class NoIdRepository(InMemoryRegistrationRepository):
            def create_registration(self, registration, order):
                return None

        intake.registrations = NoIdRepository(intake.registrations.store)
        with pytest.raises(PersistenceFailure):
            intake.submit(EVENT_ID, make_form())
        assert notifier.sent == []


class TestNotificationFailure:
    """Tests for a confirmation email that cannot be delivered."""

    @pytest.fixture
    def broken_notifier(self, intake) -> MagicMock:
        intake.notifier = MagicMock(spec=Notifier)
        intake.notifier.send.side_effect = OSError("smtp down")
        return intake.notifier

    def test_registration_still_reported(self, intake, store, broken_notifier) -> None:
        result = intake.submit(EVENT_ID, make_form())

        assert result.outcome is IntakeOutcome.REGISTERED
        assert list(store.registrations) == [result.registration_id]
        broken_notifier.send.assert_called_once()

    def test_failure_is_logged(self, intake, broken_notifier, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="src.domain.intake"):
            result = intake.submit(EVENT_ID, make_form())

        (record,) = caplog.records
        assert f"confirmation of registration {result.registration_id}" in record.getMessage()
        assert record.exc_info[0] is OSError


class TestInvalidSubmission:
    """Tests for forms that are returned with messages."""

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"participant_name": "  "}, "Name is required"),
            ({"participant_name": "x" * 101}, "Name must be at most 100 characters"),
            ({"email": ""}, "Email is required"),
            ({"email": "not-an-email"}, "Email is not a valid email address"),
            ({"email": "ada..lovelace@example.com"}, "Email is not a valid email address"),
            ({"email": "ada@example..com"}, "Email is not a valid email address"),
            ({"email": "ada@-example.com"}, "Email is not a valid email address"),
            ({"phone": ""}, "Phone is required"),
        ],
    )
    def test_field_errors(self, intake, store, notifier, overrides, message) -> None:
        result = intake.submit(EVENT_ID, make_form(**overrides))
        assert result.outcome is IntakeOutcome.INVALID
        assert message in result.errors
        assert store.registrations == {}
        assert notifier.sent == []

    def test_invalid_form_is_repopulated(self, intake) -> None:
        result = intake.submit(EVENT_ID, make_form(phone=""))
        assert result.form.participant_name == "Ada Lovelace"
        assert [slot.product_id for slot in result.form.products] == [
            FEE_PRODUCT_ID,
            DINNER_PRODUCT_ID,
        ]
        assert result.form.products[0].selected is True

    def test_unknown_variant(self, intake) -> None:
        form = make_form(
            products=[ProductSelection(product_id=DINNER_PRODUCT_ID, selected=True, variant_id=999)]
        )
        result = intake.submit(EVENT_ID, form)
        assert result.outcome is IntakeOutcome.INVALID
        assert result.errors == ["Dinner: unknown variant 999"]

    def test_identity_refusal_is_form_error(self, intake, identities, store, notifier) -> None:
        identities.refuse = ["Email domain is blocked"]
        result = intake.submit(EVENT_ID, make_form())
        assert result.outcome is IntakeOutcome.INVALID
        assert result.errors == ["Email domain is blocked"]
        assert store.registrations == {}
        assert notifier.sent == []


class TestHelpers:
    """Tests for the pure helper functions."""

    def test_validate_form_collects_all_errors(self) -> None:
        errors = validate_form(RegistrationForm())
        assert errors == ["Name is required", "Email is required", "Phone is required"]

    def test_selection_summary(self, event) -> None:
        slots = [
            ProductSelection(product_id=FEE_PRODUCT_ID, selected=True),
            ProductSelection(product_id=DINNER_PRODUCT_ID, selected=True, variant_id=VEGETARIAN_VARIANT_ID),
        ]
        assert selection_summary(event, slots) == "10. Conference fee, 11. Dinner (7. Vegetarian)"

    def test_selection_summary_skips_unselected(self, event) -> None:
        slots = [ProductSelection(product_id=DINNER_PRODUCT_ID, selected=False)]
        assert selection_summary(event, slots) == ""

    @pytest.mark.parametrize(
        ("summary", "comment", "expected"),
        [
            ("10. Conference fee", "Vegan please", "10. Conference fee\nVegan please"),
            ("10. Conference fee", None, "10. Conference fee"),
            ("", "  Vegan please ", "Vegan please"),
            ("", None, None),
        ],
    )
    def test_merge_notes(self, summary, comment, expected) -> None:
        assert merge_notes(summary, comment) == expected

    def test_confirmation_url_encodes_code(self) -> None:
        url = confirmation_url("https://events.example.com/", 5, "a+b")
        assert url == "https://events.example.com/v1/registrations/5/confirm?code=a%2Bb"

"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A small event catalog (one mandatory product, one optional product with variants)
- In-memory repositories, identity provider and notifier
- Domain services wired against the in-memory ports
"""

import random
from decimal import Decimal

import pytest

from src.domain.catalog import Event, PaymentMethod, Product, ProductVariant
from src.domain.codes import VerificationCodeGenerator
from src.domain.intake import RegistrationIntake
from src.domain.order import OrderService
from src.domain.order_lines import OrderLineManager
from src.domain.registration import RegistrationService
from tests.fakes import (
    InMemoryEventCatalog,
    InMemoryIdentityProvider,
    InMemoryOrderRepository,
    InMemoryRegistrationRepository,
    InMemoryStore,
    RecordingNotifier,
)
from tests.sample_data import (
    ARCHIVED_EVENT_ID,
    DINNER_PRODUCT_ID,
    EVENT_ID,
    FEE_PRODUCT_ID,
    FISH_VARIANT_ID,
    INVOICE_PAYMENT_METHOD_ID,
    OTHER_EVENT_ID,
    OTHER_EVENT_PRODUCT_ID,
    RETIRED_PAYMENT_METHOD_ID,
    VEGETARIAN_VARIANT_ID,
)


@pytest.fixture
def event() -> Event:
    """Event 1 with a mandatory conference fee and an optional dinner."""
    return Event(
        id=EVENT_ID,
        title="Spring Conference",
        description="Two days of talks",
        products=(
            Product(
                id=FEE_PRODUCT_ID,
                event_id=EVENT_ID,
                name="Conference fee",
                price=Decimal("500"),
                mandatory_count=1,
            ),
            Product(
                id=DINNER_PRODUCT_ID,
                event_id=EVENT_ID,
                name="Dinner",
                price=Decimal("40"),
                variants=(
                    ProductVariant(id=VEGETARIAN_VARIANT_ID, product_id=DINNER_PRODUCT_ID, name="Vegetarian"),
                    ProductVariant(
                        id=FISH_VARIANT_ID, product_id=DINNER_PRODUCT_ID, name="Fish", price=Decimal("45")
                    ),
                ),
            ),
        ),
    )


@pytest.fixture
def other_event() -> Event:
    return Event(
        id=OTHER_EVENT_ID,
        title="Autumn Workshop",
        products=(
            Product(id=OTHER_EVENT_PRODUCT_ID, event_id=OTHER_EVENT_ID, name="Workshop", price=Decimal("100")),
        ),
    )


@pytest.fixture
def archived_event() -> Event:
    return Event(id=ARCHIVED_EVENT_ID, title="Last Year", archived=True)


@pytest.fixture
def catalog(event: Event, other_event: Event, archived_event: Event) -> InMemoryEventCatalog:
    return InMemoryEventCatalog(
        events=[event, other_event, archived_event],
        payment_methods=[
            PaymentMethod(id=INVOICE_PAYMENT_METHOD_ID, name="Invoice"),
            PaymentMethod(id=RETIRED_PAYMENT_METHOD_ID, name="Cheque", active=False),
        ],
    )


@pytest.fixture
def identities() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def registrations(store: InMemoryStore) -> InMemoryRegistrationRepository:
    return InMemoryRegistrationRepository(store)


@pytest.fixture
def orders(store: InMemoryStore) -> InMemoryOrderRepository:
    return InMemoryOrderRepository(store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def codes() -> VerificationCodeGenerator:
    """Deterministic code generator."""
    return VerificationCodeGenerator(rng=random.Random(1234))


@pytest.fixture
def line_manager(orders, registrations, catalog) -> OrderLineManager:
    return OrderLineManager(orders=orders, registrations=registrations, catalog=catalog)


@pytest.fixture
def intake(catalog, identities, registrations, line_manager, notifier, codes) -> RegistrationIntake:
    return RegistrationIntake(
        catalog=catalog,
        identities=identities,
        registrations=registrations,
        line_manager=line_manager,
        notifier=notifier,
        codes=codes,
        public_base_url="https://events.example.com",
        default_payment_method_id=INVOICE_PAYMENT_METHOD_ID,
        support_email="help@example.com",
    )


@pytest.fixture
def registration_service(registrations, catalog) -> RegistrationService:
    return RegistrationService(repository=registrations, catalog=catalog)


@pytest.fixture
def order_service(orders) -> OrderService:
    return OrderService(repository=orders)

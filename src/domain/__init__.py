"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration/order lifecycle engine: the
order and registration state machines, order line management, the
registration intake workflow and verification code generation. It
defines its own port interfaces for infrastructure abstraction, ensuring
true hexagonal architecture decoupling.
"""

from .catalog import Event, PaymentMethod, Product, ProductVariant
from .codes import VerificationCodeGenerator
from .exceptions import (
    ArgumentError,
    DuplicateRegistration,
    IdentityError,
    InvalidTransition,
    NotFound,
    OrderNotEditable,
    PersistenceFailure,
    RegistrationError,
    ValidationFailed,
)
from .intake import (
    IntakeOutcome,
    IntakeResult,
    ProductSelection,
    RegistrationForm,
    RegistrationIntake,
)
from .order import Order, OrderLine, OrderLogEntry, OrderService, OrderStatus
from .order_lines import OrderLineManager
from .ports import (
    EventCatalog,
    IdentityProvider,
    NoticeTemplate,
    Notifier,
    OrderRepository,
    RegistrationRepository,
    User,
)
from .registration import (
    Registration,
    RegistrationService,
    RegistrationStatus,
    RegistrationType,
)

__all__ = [
    "ArgumentError",
    "DuplicateRegistration",
    "Event",
    "EventCatalog",
    "IdentityError",
    "IdentityProvider",
    "IntakeOutcome",
    "IntakeResult",
    "InvalidTransition",
    "NoticeTemplate",
    "Notifier",
    "NotFound",
    "Order",
    "OrderLine",
    "OrderLineManager",
    "OrderLogEntry",
    "OrderNotEditable",
    "OrderRepository",
    "OrderService",
    "OrderStatus",
    "PaymentMethod",
    "PersistenceFailure",
    "Product",
    "ProductSelection",
    "ProductVariant",
    "Registration",
    "RegistrationError",
    "RegistrationForm",
    "RegistrationIntake",
    "RegistrationRepository",
    "RegistrationService",
    "RegistrationStatus",
    "RegistrationType",
    "User",
    "ValidationFailed",
    "VerificationCodeGenerator",
]

"""
Domain exceptions - Semantic error types for registrations and orders.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class NotFound(RegistrationError):
    """Referenced event, registration, order or order line does not exist."""

    pass


class ValidationFailed(RegistrationError):
    """Submitted registration form is malformed."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = list(messages)


class InvalidTransition(RegistrationError):
    """Illegal move in the order or registration state machine."""

    pass


class ArgumentError(RegistrationError):
    """Structurally invalid id, or quantity/price out of range."""

    pass


class OrderNotEditable(ArgumentError):
    """Order is invoiced or cancelled and cannot be changed."""

    pass


class DuplicateRegistration(RegistrationError):
    """A registration for the same user and event already exists."""

    def __init__(self, user_id: str, event_id: int) -> None:
        super().__init__(f"user {user_id} is already registered for event {event_id}")
        self.user_id = user_id
        self.event_id = event_id


class PersistenceFailure(RegistrationError):
    """Data store write failed; nothing was committed."""

    pass


class IdentityError(RegistrationError):
    """Identity provider refused to create a user."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = list(messages)

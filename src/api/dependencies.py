"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.catalog import PostgresEventCatalog
from src.adapters.repository.postgres import (
    PostgresOrderRepository,
    PostgresRegistrationRepository,
)
from src.adapters.repository.users import PostgresIdentityProvider
from src.adapters.smtp.console import ConsoleNotifier
from src.adapters.smtp.sender import SmtpNotifier
from src.config.settings import get_settings
from src.domain.codes import VerificationCodeGenerator
from src.domain.intake import RegistrationIntake
from src.domain.order import OrderService
from src.domain.order_lines import OrderLineManager
from src.domain.ports import Notifier
from src.domain.registration import RegistrationService

# Module-level singleton - ConsoleNotifier is stateless
_console_notifier = ConsoleNotifier()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_registration_repository(request: Request) -> PostgresRegistrationRepository:
    """Create repository with connection pool from app state."""
    return PostgresRegistrationRepository(get_pool(request))


def get_order_repository(request: Request) -> PostgresOrderRepository:
    return PostgresOrderRepository(get_pool(request))


def get_catalog(request: Request) -> PostgresEventCatalog:
    return PostgresEventCatalog(get_pool(request))


def get_identity_provider(request: Request) -> PostgresIdentityProvider:
    return PostgresIdentityProvider(get_pool(request))


def get_notifier() -> Notifier:
    """Console notifier (singleton) unless SMTP delivery is configured."""
    settings = get_settings()
    if settings.notifier == "smtp":
        return SmtpNotifier(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.emails_from,
            username=settings.smtp_user,
            password=settings.smtp_password,
        )
    return _console_notifier


def get_order_line_manager(request: Request) -> OrderLineManager:
    return OrderLineManager(
        orders=get_order_repository(request),
        registrations=get_registration_repository(request),
        catalog=get_catalog(request),
    )


def get_registration_intake(request: Request) -> RegistrationIntake:
    """
    Create the intake workflow with injected dependencies.

    Configuration values (payment method default, link base, code length)
    come from settings rather than being fixed in the workflow.
    """
    settings = get_settings()
    return RegistrationIntake(
        catalog=get_catalog(request),
        identities=get_identity_provider(request),
        registrations=get_registration_repository(request),
        line_manager=get_order_line_manager(request),
        notifier=get_notifier(),
        codes=VerificationCodeGenerator(length=settings.verification_code_length),
        public_base_url=settings.public_base_url,
        default_payment_method_id=settings.default_payment_method_id,
        support_email=settings.support_email,
    )


def get_registration_service(request: Request) -> RegistrationService:
    return RegistrationService(
        repository=get_registration_repository(request),
        catalog=get_catalog(request),
    )


def get_order_service(request: Request) -> OrderService:
    return OrderService(repository=get_order_repository(request))

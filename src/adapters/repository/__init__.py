"""Repository adapters - Database implementations."""

from .catalog import PostgresEventCatalog
from .postgres import PostgresOrderRepository, PostgresRegistrationRepository, run_migrations
from .users import PostgresIdentityProvider

__all__ = [
    "PostgresEventCatalog",
    "PostgresIdentityProvider",
    "PostgresOrderRepository",
    "PostgresRegistrationRepository",
    "run_migrations",
]

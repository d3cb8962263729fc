"""
PostgreSQL identity adapter - Implements IdentityProvider protocol.

Users are keyed by normalized email. The UNIQUE constraint on email
means a concurrent creation for the same address loses; that is
reported as an IdentityError so the intake form can show it.
"""

import logging

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import IdentityError
from src.domain.ports import User

logger = logging.getLogger(__name__)


class PostgresIdentityProvider:
    """
    Implements IdentityProvider protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_by_email(self, email: str) -> User | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                "SELECT id, name, email, phone FROM users WHERE email = %s",
                (email.strip().lower(),),
            )
            row = cursor.fetchone()
        return User(**row) if row is not None else None

    def create_user(self, name: str, email: str, phone: str | None) -> User:
        """
        Insert a new user.

        Raises:
            IdentityError: If the email is taken or the row is rejected
        """
        sql = """
            INSERT INTO users (name, email, phone)
            VALUES (%s, %s, %s)
            RETURNING id, name, email, phone
        """
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (name, email.strip().lower(), phone))
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation:
            raise IdentityError([f"A user with email {email} already exists"]) from None
        except psycopg.IntegrityError as e:
            logger.warning("User creation rejected for %s: %s", email, e)
            raise IdentityError(["User could not be created"]) from e
        return User(**row)

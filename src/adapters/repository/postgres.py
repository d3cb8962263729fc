"""
PostgreSQL repository adapters - Implement the registration and order ports.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Registration uniqueness**: A partial UNIQUE index on
   (user_id, event_id) for non-cancelled registrations guarantees that
   concurrent submissions for the same pair commit at most one row. The
   losing insert surfaces as DuplicateRegistration, never as a raw
   database error.

2. **Atomic intake**: create_registration() inserts the registration,
   its order, the order lines and the initial log in one transaction, so
   a registration never exists without its order and mandatory lines.

3. **Row locks**: modify_* methods load rows with SELECT ... FOR UPDATE,
   run the domain callback against the locked state, and write back in
   the same transaction. A cancellation committed between request
   validation and the write is therefore always seen by the check.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DuplicateRegistration, NotFound, PersistenceFailure
from src.domain.order import Order, OrderLine, OrderLogEntry, OrderStatus
from src.domain.registration import Registration, RegistrationStatus, RegistrationType

logger = logging.getLogger(__name__)

T = TypeVar("T")

_REGISTRATION_FIELDS = (
    "event_id",
    "user_id",
    "participant_name",
    "email",
    "phone",
    "employer",
    "job_title",
    "city",
    "notes",
    "verification_code",
    "verified",
    "status",
    "type",
    "customer_name",
    "customer_email",
    "customer_vat_number",
    "customer_invoice_reference",
    "customer_address",
    "customer_city",
    "customer_zip",
    "customer_country",
    "payment_method_id",
    "registered_at",
)

_ORDER_FIELDS = (
    "user_id",
    "registration_id",
    "status",
    "customer_name",
    "customer_email",
    "customer_vat_number",
    "customer_invoice_reference",
    "payment_method_id",
    "order_time",
    "comments",
)


def _registration_from_row(row: dict) -> Registration:
    values = {name: row[name] for name in _REGISTRATION_FIELDS}
    values["status"] = RegistrationStatus(values["status"])
    values["type"] = RegistrationType(values["type"])
    return Registration(id=row["id"], **values)


def _registration_values(registration: Registration) -> list:
    values = []
    for name in _REGISTRATION_FIELDS:
        value = getattr(registration, name)
        if isinstance(value, (RegistrationStatus, RegistrationType)):
            value = value.value
        values.append(value)
    return values


def _order_values(order: Order) -> list:
    values = []
    for name in _ORDER_FIELDS:
        value = getattr(order, name)
        if isinstance(value, OrderStatus):
            value = value.value
        values.append(value)
    return values


def _load_orders(cursor: psycopg.Cursor, where: str, params: tuple, lock: bool) -> list[Order]:
    """Load orders with their lines and log. `where` is a fixed SQL fragment."""
    sql = f"SELECT id, {', '.join(_ORDER_FIELDS)} FROM orders WHERE {where} ORDER BY id"
    if lock:
        sql += " FOR UPDATE"
    cursor.execute(sql, params)
    rows = cursor.fetchall()
    if not rows:
        return []

    order_ids = [row["id"] for row in rows]
    cursor.execute(
        """
        SELECT id, order_id, product_id, variant_id, product_name, variant_name, quantity, price
        FROM order_lines
        WHERE order_id = ANY(%s)
        ORDER BY id
        """,
        (order_ids,),
    )
    lines: dict[int, list[OrderLine]] = {order_id: [] for order_id in order_ids}
    for line in cursor.fetchall():
        lines[line["order_id"]].append(OrderLine(**line))

    cursor.execute(
        """
        SELECT order_id, logged_at, from_status, to_status, note
        FROM order_log
        WHERE order_id = ANY(%s)
        ORDER BY id
        """,
        (order_ids,),
    )
    log: dict[int, list[OrderLogEntry]] = {order_id: [] for order_id in order_ids}
    for entry in cursor.fetchall():
        log[entry["order_id"]].append(
            OrderLogEntry(
                timestamp=entry["logged_at"],
                from_status=OrderStatus(entry["from_status"]),
                to_status=OrderStatus(entry["to_status"]),
                note=entry["note"],
            )
        )

    orders = []
    for row in rows:
        fields = {name: row[name] for name in _ORDER_FIELDS if name != "status"}
        orders.append(
            Order.restore(
                id=row["id"],
                status=OrderStatus(row["status"]),
                lines=lines[row["id"]],
                log=log[row["id"]],
                **fields,
            )
        )
    return orders


def _insert_line(cursor: psycopg.Cursor, order_id: int, line: OrderLine) -> None:
    cursor.execute(
        """
        INSERT INTO order_lines
            (order_id, product_id, variant_id, product_name, variant_name, quantity, price)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            order_id,
            line.product_id,
            line.variant_id,
            line.product_name,
            line.variant_name,
            line.quantity,
            line.price,
        ),
    )
    line.id = cursor.fetchone()["id"]
    line.order_id = order_id


def _append_log(cursor: psycopg.Cursor, order: Order, entries: tuple[OrderLogEntry, ...]) -> None:
    for entry in entries:
        cursor.execute(
            """
            INSERT INTO order_log (order_id, logged_at, from_status, to_status, note)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (order.id, entry.timestamp, entry.from_status.value, entry.to_status.value, entry.note),
        )


def _insert_order(cursor: psycopg.Cursor, order: Order) -> None:
    placeholders = ", ".join(["%s"] * len(_ORDER_FIELDS))
    cursor.execute(
        f"INSERT INTO orders ({', '.join(_ORDER_FIELDS)}) VALUES ({placeholders}) RETURNING id",
        _order_values(order),
    )
    order.id = cursor.fetchone()["id"]
    for line in order.lines:
        _insert_line(cursor, order.id, line)
    _append_log(cursor, order, order.log)


def _save_order(cursor: psycopg.Cursor, order: Order) -> None:
    """Write back an order loaded under lock: fields, lines and new log entries."""
    assignments = ", ".join(f"{name} = %s" for name in _ORDER_FIELDS)
    cursor.execute(
        f"UPDATE orders SET {assignments} WHERE id = %s",
        [*_order_values(order), order.id],
    )

    kept = [line.id for line in order.lines if line.id is not None]
    cursor.execute(
        "DELETE FROM order_lines WHERE order_id = %s AND NOT (id = ANY(%s))",
        (order.id, kept),
    )
    for line in order.lines:
        if line.id is None:
            _insert_line(cursor, order.id, line)
        else:
            cursor.execute(
                "UPDATE order_lines SET quantity = %s, price = %s WHERE id = %s AND order_id = %s",
                (line.quantity, line.price, line.id, order.id),
            )

    cursor.execute("SELECT COUNT(*) AS logged FROM order_log WHERE order_id = %s", (order.id,))
    logged = cursor.fetchone()["logged"]
    _append_log(cursor, order, order.log[logged:])


class PostgresRegistrationRepository:
    """
    Implements RegistrationRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_registration(self, registration_id: int) -> Registration | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute("SELECT * FROM registrations WHERE id = %s", (registration_id,))
            row = cursor.fetchone()
        return _registration_from_row(row) if row is not None else None

    def find_registration(self, user_id: str, event_id: int) -> Registration | None:
        sql = """
            SELECT * FROM registrations
            WHERE user_id = %s AND event_id = %s AND status <> %s
            ORDER BY id
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (user_id, event_id, RegistrationStatus.CANCELLED.value))
            row = cursor.fetchone()
        return _registration_from_row(row) if row is not None else None

    def create_registration(self, registration: Registration, order: Order) -> int:
        """
        Insert registration, order, lines and log in a single transaction.

        The partial unique index on (user_id, event_id) makes the insert
        fail for a concurrent duplicate; that failure is reported as
        DuplicateRegistration so callers can route it to a notice.

        Returns:
            New registration id

        Raises:
            DuplicateRegistration: Unique (user_id, event_id) violation
            PersistenceFailure: Any other database error (nothing committed)
        """
        placeholders = ", ".join(["%s"] * len(_REGISTRATION_FIELDS))
        sql = f"""
            INSERT INTO registrations ({', '.join(_REGISTRATION_FIELDS)})
            VALUES ({placeholders})
            RETURNING id
        """

        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, _registration_values(registration))
                registration_id = cursor.fetchone()["id"]
                order.registration_id = registration_id
                _insert_order(cursor, order)
                conn.commit()
        except UniqueViolation as e:
            self._forget_ids(registration, order)
            raise DuplicateRegistration(registration.user_id, registration.event_id) from e
        except psycopg.Error as e:
            self._forget_ids(registration, order)
            raise PersistenceFailure(
                f"Could not store registration for user {registration.user_id} "
                f"on event {registration.event_id}"
            ) from e

        registration.id = registration_id
        return registration_id

    def modify_registration(
        self,
        registration_id: int,
        change: Callable[[Registration, list[Order]], T],
    ) -> T:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                "SELECT * FROM registrations WHERE id = %s FOR UPDATE", (registration_id,)
            )
            row = cursor.fetchone()
            if row is None:
                raise NotFound(f"Registration {registration_id} not found")

            registration = _registration_from_row(row)
            orders = _load_orders(cursor, "registration_id = %s", (registration_id,), lock=True)
            result = change(registration, orders)

            assignments = ", ".join(f"{name} = %s" for name in _REGISTRATION_FIELDS)
            cursor.execute(
                f"UPDATE registrations SET {assignments} WHERE id = %s",
                [*_registration_values(registration), registration_id],
            )
            for order in orders:
                _save_order(cursor, order)
            conn.commit()
            return result

    @staticmethod
    def _forget_ids(registration: Registration, order: Order) -> None:
        registration.id = None
        order.id = None
        order.registration_id = None
        for line in order.lines:
            line.id = None
            line.order_id = None


class PostgresOrderRepository:
    """
    Implements OrderRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_order(self, order_id: int) -> Order | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            orders = _load_orders(cursor, "id = %s", (order_id,), lock=False)
        return orders[0] if orders else None

    def modify_order(self, order_id: int, change: Callable[[Order], T]) -> T:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            orders = _load_orders(cursor, "id = %s", (order_id,), lock=True)
            if not orders:
                raise NotFound(f"Order {order_id} not found")
            result = change(orders[0])
            _save_order(cursor, orders[0])
            conn.commit()
            return result

    def modify_order_by_line(self, line_id: int, change: Callable[[Order], T]) -> T:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute("SELECT order_id FROM order_lines WHERE id = %s", (line_id,))
            row = cursor.fetchone()
            if row is None:
                raise NotFound(f"Order line {line_id} not found")

            orders = _load_orders(cursor, "id = %s", (row["order_id"],), lock=True)
            # The line may have been deleted while we waited for the lock
            if not orders or orders[0].line(line_id) is None:
                raise NotFound(f"Order line {line_id} not found")
            result = change(orders[0])
            _save_order(cursor, orders[0])
            conn.commit()
            return result


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

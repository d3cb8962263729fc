"""
PostgreSQL catalog adapter - Implements EventCatalog protocol.

Events, products, variants and payment methods are reference data
maintained elsewhere; this adapter only reads them.
"""

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.catalog import Event, PaymentMethod, Product, ProductVariant


class PostgresEventCatalog:
    """
    Implements EventCatalog protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def get_event(self, event_id: int) -> Event | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                "SELECT id, title, description, archived, starts_at FROM events WHERE id = %s",
                (event_id,),
            )
            event = cursor.fetchone()
            if event is None:
                return None

            cursor.execute(
                """
                SELECT id, event_id, name, description, price, mandatory_count
                FROM products
                WHERE event_id = %s
                ORDER BY position, id
                """,
                (event_id,),
            )
            product_rows = cursor.fetchall()

            cursor.execute(
                """
                SELECT v.id, v.product_id, v.name, v.price
                FROM product_variants v
                JOIN products p ON p.id = v.product_id
                WHERE p.event_id = %s
                ORDER BY v.position, v.id
                """,
                (event_id,),
            )
            variants: dict[int, list[ProductVariant]] = {}
            for row in cursor.fetchall():
                variants.setdefault(row["product_id"], []).append(ProductVariant(**row))

        products = tuple(
            Product(
                id=row["id"],
                event_id=row["event_id"],
                name=row["name"],
                description=row["description"] or "",
                price=row["price"],
                mandatory_count=row["mandatory_count"],
                variants=tuple(variants.get(row["id"], ())),
            )
            for row in product_rows
        )
        return Event(
            id=event["id"],
            title=event["title"],
            description=event["description"] or "",
            archived=event["archived"],
            starts_at=event["starts_at"],
            products=products,
        )

    def get_payment_method(self, payment_method_id: int) -> PaymentMethod | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(
                "SELECT id, name, active FROM payment_methods WHERE id = %s",
                (payment_method_id,),
            )
            row = cursor.fetchone()
        return PaymentMethod(**row) if row is not None else None

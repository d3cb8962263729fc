"""Read-only catalog data: events, products, variants and payment methods."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class ProductVariant:
    """A selectable variant of a product, optionally with its own price."""

    id: int
    product_id: int
    name: str
    price: Decimal | None = None


@dataclass(frozen=True)
class Product:
    """A product offered for an event."""

    id: int
    event_id: int
    name: str
    price: Decimal
    description: str = ""
    mandatory_count: int = 0
    variants: tuple[ProductVariant, ...] = ()

    @property
    def is_mandatory(self) -> bool:
        return self.mandatory_count > 0

    def variant(self, variant_id: int) -> ProductVariant | None:
        return next((v for v in self.variants if v.id == variant_id), None)

    def price_for(self, variant: ProductVariant | None) -> Decimal:
        """Variant price when the variant defines one, else the product price."""
        if variant is not None and variant.price is not None:
            return variant.price
        return self.price


@dataclass(frozen=True)
class Event:
    """An event participants can register for."""

    id: int
    title: str
    description: str = ""
    archived: bool = False
    starts_at: datetime | None = None
    products: tuple[Product, ...] = ()

    def product(self, product_id: int) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)


@dataclass(frozen=True)
class PaymentMethod:
    """Payment method reference data."""

    id: int
    name: str
    active: bool = True

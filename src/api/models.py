"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field

from src.domain.intake import ProductSelection, RegistrationForm
from src.domain.order import Order, OrderLine
from src.domain.registration import RegistrationStatus, RegistrationType


class ProductSelectionModel(BaseModel):
    """One product slot of the registration form."""

    product_id: int
    selected: bool = False
    variant_id: int | None = None
    mandatory: bool = False
    name: str = ""

    @classmethod
    def from_domain(cls, selection: ProductSelection) -> "ProductSelectionModel":
        return cls(
            product_id=selection.product_id,
            selected=selection.selected,
            variant_id=selection.variant_id,
            mandatory=selection.mandatory,
            name=selection.name,
        )


class RegistrationRequest(BaseModel):
    """
    Registration form submission.

    Name, email and phone are checked by the intake workflow so that a
    rejected submission comes back with the re-populated form.
    """

    participant_name: str = ""
    email: str = ""
    phone: str = ""
    employer: str | None = None
    job_title: str | None = None
    city: str | None = None
    notes: str | None = Field(None, description="Free-text comment, kept alongside product choices")
    customer_name: str | None = None
    customer_email: str | None = None
    customer_vat_number: str | None = None
    customer_invoice_reference: str | None = None
    payment_method_id: int | None = None
    products: list[ProductSelectionModel] = Field(default_factory=list)

    def to_domain(self) -> RegistrationForm:
        return RegistrationForm(
            participant_name=self.participant_name,
            email=self.email,
            phone=self.phone,
            employer=self.employer,
            job_title=self.job_title,
            city=self.city,
            notes=self.notes,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_vat_number=self.customer_vat_number,
            customer_invoice_reference=self.customer_invoice_reference,
            payment_method_id=self.payment_method_id,
            products=[
                ProductSelection(
                    product_id=p.product_id, selected=p.selected, variant_id=p.variant_id
                )
                for p in self.products
            ],
        )

    @classmethod
    def from_domain(cls, form: RegistrationForm) -> "RegistrationRequest":
        return cls(
            participant_name=form.participant_name,
            email=form.email,
            phone=form.phone,
            employer=form.employer,
            job_title=form.job_title,
            city=form.city,
            notes=form.notes,
            customer_name=form.customer_name,
            customer_email=form.customer_email,
            customer_vat_number=form.customer_vat_number,
            customer_invoice_reference=form.customer_invoice_reference,
            payment_method_id=form.payment_method_id,
            products=[ProductSelectionModel.from_domain(p) for p in form.products],
        )


class RegistrationFormResponse(BaseModel):
    """Blank registration form for an event."""

    event_id: int
    event_title: str
    event_description: str
    form: RegistrationRequest


class RegistrationAcceptedResponse(BaseModel):
    """Response for every submission that ended in an email."""

    message: str


class RegistrationRejectedResponse(BaseModel):
    """Validation failure with the re-populated form."""

    detail: str
    errors: list[str]
    form: RegistrationRequest


class ConfirmResponse(BaseModel):
    message: str
    registration_id: int


class ParticipantInfoRequest(BaseModel):
    participant_name: str | None = None
    job_title: str | None = None
    city: str | None = None
    employer: str | None = None


class CustomerInfoRequest(BaseModel):
    """Billing details and billing address."""

    customer_name: str | None = None
    customer_email: EmailStr | None = None
    customer_vat_number: str | None = None
    customer_invoice_reference: str | None = None
    customer_address: str | None = None
    customer_city: str | None = None
    customer_zip: str | None = None
    customer_country: str | None = None


class MessageResponse(BaseModel):
    message: str


class RegistrationStatusResponse(BaseModel):
    message: str
    status: RegistrationStatus
    cancelled_order_ids: list[int]


class RegistrationTypeResponse(BaseModel):
    message: str
    type: RegistrationType


class OrderLineAddRequest(BaseModel):
    order_id: int
    product_id: int
    variant_id: int | None = None


class OrderLineUpdateRequest(BaseModel):
    quantity: int
    price: Decimal


class OrderLineResponse(BaseModel):
    id: int | None
    order_id: int | None
    product_id: int
    variant_id: int | None
    product_name: str
    variant_name: str | None
    quantity: int
    price: Decimal
    total: Decimal

    @classmethod
    def from_domain(cls, line: OrderLine) -> "OrderLineResponse":
        return cls(
            id=line.id,
            order_id=line.order_id,
            product_id=line.product_id,
            variant_id=line.variant_id,
            product_name=line.product_name,
            variant_name=line.variant_name,
            quantity=line.quantity,
            price=line.price,
            total=line.total,
        )


class OrderStatusRequest(BaseModel):
    note: str | None = Field(None, description="Appended to the audit log entry")


class OrderResponse(BaseModel):
    id: int
    registration_id: int | None
    user_id: str
    status: str
    can_edit: bool
    total: Decimal
    order_time: datetime
    customer_name: str | None
    customer_email: str | None
    payment_method_id: int | None
    comments: str | None
    lines: list[OrderLineResponse]
    log: list[str]

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            registration_id=order.registration_id,
            user_id=order.user_id,
            status=order.status.value,
            can_edit=order.can_edit,
            total=order.total,
            order_time=order.order_time,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            payment_method_id=order.payment_method_id,
            comments=order.comments,
            lines=[OrderLineResponse.from_domain(line) for line in order.lines],
            log=[str(entry) for entry in order.log],
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

"""
API v1 registration routes.

Registration intake and confirmation for participants, and the
administrative updates of participant, billing, payment, status and type.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from src.api.dependencies import get_registration_intake, get_registration_service
from src.api.models import (
    ConfirmResponse,
    CustomerInfoRequest,
    ErrorResponse,
    MessageResponse,
    ParticipantInfoRequest,
    RegistrationAcceptedResponse,
    RegistrationFormResponse,
    RegistrationRejectedResponse,
    RegistrationRequest,
    RegistrationStatusResponse,
    RegistrationTypeResponse,
)
from src.domain.exceptions import ArgumentError, InvalidTransition, NotFound, PersistenceFailure
from src.domain.intake import IntakeOutcome, RegistrationIntake
from src.domain.registration import RegistrationService, RegistrationStatus, RegistrationType

router = APIRouter(tags=["registrations"])

# Same message for new, reminder and already-registered outcomes (no enumeration)
EMAIL_SENT_MESSAGE = "Registration received, please check your email"


@router.get(
    "/events/{event_id}/registration-form",
    response_model=RegistrationFormResponse,
    responses={404: {"model": ErrorResponse, "description": "Event not found"}},
    summary="Get the registration form for an event",
)
def registration_form(
    event_id: int,
    intake: RegistrationIntake = Depends(get_registration_intake),
) -> RegistrationFormResponse:
    """Blank form with one slot per product; mandatory products are pre-selected."""
    try:
        event, form = intake.prepare_form(event_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found") from None
    return RegistrationFormResponse(
        event_id=event.id,
        event_title=event.title,
        event_description=event.description,
        form=RegistrationRequest.from_domain(form),
    )


@router.post(
    "/events/{event_id}/registrations",
    response_model=RegistrationAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "Event not found"},
        422: {"model": RegistrationRejectedResponse, "description": "Invalid registration form"},
        503: {"model": ErrorResponse, "description": "Registration could not be stored"},
    },
    summary="Register for an event",
    description="Submit participant, billing and product choices. A confirmation link, "
    "or a notice about an existing registration, is sent to the given email.",
)
def register(
    event_id: int,
    request_data: RegistrationRequest,
    intake: RegistrationIntake = Depends(get_registration_intake),
):
    try:
        result = intake.submit(event_id, request_data.to_domain())
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found") from None
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registration could not be stored, please try again",
        ) from None

    if result.outcome == IntakeOutcome.INVALID:
        rejected = RegistrationRejectedResponse(
            detail="Invalid registration form",
            errors=result.errors,
            form=RegistrationRequest.from_domain(result.form),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=rejected.model_dump(mode="json"),
        )
    return RegistrationAcceptedResponse(message=EMAIL_SENT_MESSAGE)


@router.get(
    "/registrations/{registration_id}/confirm",
    response_model=ConfirmResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Wrong confirmation code"},
        404: {"model": ErrorResponse, "description": "Registration not found"},
    },
    summary="Confirm a registration with the emailed code",
)
def confirm(
    registration_id: int,
    code: str = Query(..., min_length=1, max_length=64),
    service: RegistrationService = Depends(get_registration_service),
) -> ConfirmResponse:
    try:
        confirmed = service.confirm(registration_id, code)
    except NotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found"
        ) from None
    if not confirmed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid confirmation code"
        )
    return ConfirmResponse(message="Registration confirmed", registration_id=registration_id)


@router.post(
    "/registrations/{registration_id}/participant",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Update participant details",
)
def update_participant(
    registration_id: int,
    request_data: ParticipantInfoRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.update_participant_info(
            registration_id,
            request_data.participant_name,
            request_data.job_title,
            request_data.city,
            request_data.employer,
        )
    except ArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return MessageResponse(message="Participant details updated")


@router.post(
    "/registrations/{registration_id}/customer",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Update billing details and billing address",
)
def update_customer(
    registration_id: int,
    request_data: CustomerInfoRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.update_customer_info(
            registration_id,
            request_data.customer_name,
            request_data.customer_email,
            request_data.customer_vat_number,
            request_data.customer_invoice_reference,
        )
        service.update_customer_address(
            registration_id,
            request_data.customer_address,
            request_data.customer_city,
            request_data.customer_zip,
            request_data.customer_country,
        )
    except ArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return MessageResponse(message="Billing details updated")


@router.post(
    "/registrations/{registration_id}/payment-method/{payment_method_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Change the payment method",
)
def update_payment_method(
    registration_id: int,
    payment_method_id: int,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    try:
        service.update_payment_method(registration_id, payment_method_id)
    except ArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return MessageResponse(message="Payment method updated")


@router.post(
    "/registrations/{registration_id}/status/{new_status}",
    response_model=RegistrationStatusResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Change the registration status",
    description="Cancelling a registration cancels all of its orders.",
)
def update_status(
    registration_id: int,
    new_status: RegistrationStatus,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationStatusResponse:
    try:
        cancelled = service.update_status(registration_id, new_status)
    except (ArgumentError, InvalidTransition) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    message = f"Registration is now {new_status.value}."
    if cancelled:
        message += " Cancelled orders: " + ", ".join(str(order_id) for order_id in cancelled)
    return RegistrationStatusResponse(
        message=message, status=new_status, cancelled_order_ids=cancelled
    )


@router.post(
    "/registrations/{registration_id}/type/{new_type}",
    response_model=RegistrationTypeResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Change the registration type",
)
def update_type(
    registration_id: int,
    new_type: RegistrationType,
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationTypeResponse:
    try:
        service.update_type(registration_id, new_type)
    except (ArgumentError, InvalidTransition) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return RegistrationTypeResponse(message=f"Registration type is now {new_type.value}", type=new_type)

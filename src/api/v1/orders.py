"""
API v1 order routes.

Order inspection, status transitions and order line editing.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from src.api.dependencies import get_order_line_manager, get_order_service
from src.api.models import (
    ErrorResponse,
    MessageResponse,
    OrderLineAddRequest,
    OrderLineResponse,
    OrderLineUpdateRequest,
    OrderResponse,
    OrderStatusRequest,
)
from src.domain.exceptions import ArgumentError, InvalidTransition, NotFound, OrderNotEditable
from src.domain.order import OrderService, OrderStatus
from src.domain.order_lines import OrderLineManager

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/lines",
    response_model=OrderLineResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Add a product line to an order",
)
def add_line(
    request_data: OrderLineAddRequest,
    manager: OrderLineManager = Depends(get_order_line_manager),
) -> OrderLineResponse:
    try:
        line = manager.add_line(request_data.order_id, request_data.product_id, request_data.variant_id)
    except ArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return OrderLineResponse.from_domain(line)


@router.post(
    "/lines/{line_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Change quantity and price of an order line",
)
def update_line(
    line_id: int,
    request_data: OrderLineUpdateRequest,
    manager: OrderLineManager = Depends(get_order_line_manager),
) -> MessageResponse:
    try:
        manager.update_line(line_id, request_data.quantity, request_data.price)
    except ArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return MessageResponse(message="Order line updated")


@router.delete(
    "/lines/{line_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ErrorResponse, "description": "Order cannot be edited"},
        404: {"model": ErrorResponse, "description": "Order line not found"},
    },
    summary="Delete an order line",
)
def delete_line(
    line_id: int,
    manager: OrderLineManager = Depends(get_order_line_manager),
) -> Response:
    try:
        deleted = manager.delete_line(line_id)
    except OrderNotEditable as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order line not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get an order with its lines and audit log",
)
def get_order(
    order_id: int,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    try:
        order = service.get_order(order_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from None
    return OrderResponse.from_domain(order)


@router.post(
    "/{order_id}/status/{new_status}",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Illegal status transition"},
        404: {"model": ErrorResponse},
    },
    summary="Move an order to a new status",
    description="Draft -> Verified -> Invoiced; any order can be cancelled. "
    "Orders can never be set back to Draft.",
)
def update_order_status(
    order_id: int,
    new_status: OrderStatus,
    request_data: OrderStatusRequest | None = Body(None),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    note = request_data.note if request_data is not None else None
    try:
        order = service.update_status(order_id, new_status, note)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found") from None
    except InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return OrderResponse.from_domain(order)

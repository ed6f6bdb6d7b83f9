"""FastAPI routes for the Storefront — orders and payments."""

import json

from fastapi import APIRouter, Depends, Request
from protean.utils.globals import current_domain

from storefront.api.auth import Principal, get_principal, require_admin
from storefront.api.schemas import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    ConfigureGatewayRequest,
    CreateOrderRequest,
    GatewayConfigResponse,
    MarkPaidRequest,
    MessageResponse,
    OrderItemResponse,
    OrderResponse,
    PaymentFailureRequest,
    PaymentOrderRequest,
    PaymentOrderResponse,
    PaymentResultResponse,
    PaymentStatusResponse,
    PricingResponse,
    RequestReturnRequest,
    ShippingAddressSchema,
    StatusResponse,
    TrackingEventResponse,
    TrackingUpdateRequest,
    UpdateReturnRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.config import PaymentSettings, is_production
from storefront.errors import AuthorizationError, InvalidRequestError, NotFoundError
from storefront.gateway import get_gateway
from storefront.gateway.mock_adapter import MockGateway
from storefront.order.cancellation import AbandonOrder, CancelOrder
from storefront.order.creation import PlaceOrder
from storefront.order.fulfillment import BulkUpdateOrderStatus, MarkOrderDelivered, UpdateTrackingStatus
from storefront.order.order import Order
from storefront.order.payment import MarkOrderPaid, RecordPaymentFailure, VerifyPayment
from storefront.order.returns import RequestReturn, UpdateReturnStatus
from storefront.payment import webhook
from storefront.payment.checkout import create_payment_order

WEBHOOK_SIGNATURE_HEADERS = ("x-razorpay-signature", "x-provider-signature")


def order_response(order: Order) -> OrderResponse:
    receipt = order.payment_result
    address = order.shipping_address
    return OrderResponse(
        id=str(order.id),
        customer_id=str(order.customer_id),
        order_items=[
            OrderItemResponse(
                id=str(item.id),
                product_id=str(item.product_id),
                name=item.name,
                quantity=item.quantity,
                price=item.price,
                image=item.image,
            )
            for item in order.items
        ],
        shipping_address=(
            ShippingAddressSchema(
                address=address.address,
                city=address.city,
                postal_code=address.postal_code,
                country=address.country,
            )
            if address
            else None
        ),
        payment_method=order.payment_method,
        pricing=PricingResponse(
            items_price=order.pricing.items_price or 0.0,
            tax_price=order.pricing.tax_price or 0.0,
            shipping_price=order.pricing.shipping_price or 0.0,
            total_price=order.pricing.total_price or 0.0,
        ),
        customization=order.customization,
        is_paid=bool(order.is_paid),
        paid_at=order.paid_at,
        payment_result=_payment_result_response(receipt),
        is_delivered=bool(order.is_delivered),
        delivered_at=order.delivered_at,
        tracking_status=order.tracking_status,
        tracking_history=[
            TrackingEventResponse(
                status=event.status,
                message=event.message,
                location=event.location,
                timestamp=event.timestamp,
                updated_by=str(event.updated_by) if event.updated_by else None,
            )
            for event in order.tracking_history
        ],
        return_status=order.return_status,
        return_reason=order.return_reason,
        return_admin_note=order.return_admin_note,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _payment_result_response(receipt) -> PaymentResultResponse | None:
    if receipt is None:
        return None
    return PaymentResultResponse(
        id=receipt.payment_id,
        status=receipt.status,
        update_time=receipt.update_time,
        provider_order_id=receipt.provider_order_id,
        payment_method=receipt.payment_method,
        email_address=receipt.email_address,
    )


def _load_order(order_id: str) -> Order:
    order = current_domain.repository_for(Order).find(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest, principal: Principal = Depends(get_principal)) -> OrderResponse:
    command = PlaceOrder(
        customer_id=principal.user_id,
        items=json.dumps([item.model_dump() for item in body.order_items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()) if body.shipping_address else None,
        payment_method=body.payment_method,
        items_price=body.items_price,
        tax_price=body.tax_price,
        shipping_price=body.shipping_price,
        total_price=body.total_price,
        customization=body.customization,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(principal: Principal = Depends(require_admin)) -> list[OrderResponse]:  # noqa: ARG001
    return [order_response(o) for o in current_domain.repository_for(Order).everything()]


@order_router.get("/mine", response_model=list[OrderResponse])
@order_router.get("/myorders", response_model=list[OrderResponse])
async def my_orders(principal: Principal = Depends(get_principal)) -> list[OrderResponse]:
    """The caller's orders. Online orders appear once paid."""
    orders = current_domain.repository_for(Order).for_customer(principal.user_id)
    return [order_response(o) for o in orders]


@order_router.get("/returns/all", response_model=list[OrderResponse])
async def return_requests(principal: Principal = Depends(require_admin)) -> list[OrderResponse]:  # noqa: ARG001
    return [order_response(o) for o in current_domain.repository_for(Order).return_requests()]


@order_router.put("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update(body: BulkUpdateRequest, principal: Principal = Depends(require_admin)) -> BulkUpdateResponse:  # noqa: ARG001
    command = BulkUpdateOrderStatus(
        order_ids=json.dumps(body.order_ids or []),
        status=body.status,
    )
    modified_count = current_domain.process(command, asynchronous=False)
    return BulkUpdateResponse(
        message=f"Successfully updated {modified_count} orders",
        modified_count=modified_count,
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, principal: Principal = Depends(get_principal)) -> OrderResponse:
    order = _load_order(order_id)
    if not (principal.is_admin or order.is_owned_by(principal.user_id)):
        raise AuthorizationError("Not authorized to view this order", status_code=401)
    return order_response(order)


@order_router.put("/{order_id}/pay", response_model=OrderResponse)
async def mark_paid(order_id: str, body: MarkPaidRequest, principal: Principal = Depends(get_principal)) -> OrderResponse:
    order = _load_order(order_id)
    if not (principal.is_admin or order.is_owned_by(principal.user_id)):
        raise AuthorizationError("Not authorized to pay for this order", status_code=401)

    command = MarkOrderPaid(
        order_id=order_id,
        payment_id=body.id,
        status=body.status,
        update_time=body.update_time,
        email_address=body.email_address,
    )
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.put("/{order_id}/deliver", response_model=OrderResponse)
async def mark_delivered(order_id: str, principal: Principal = Depends(require_admin)) -> OrderResponse:
    command = MarkOrderDelivered(order_id=order_id, updated_by=principal.user_id)
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.put("/{order_id}/tracking", response_model=OrderResponse)
async def update_tracking(
    order_id: str,
    body: TrackingUpdateRequest,
    principal: Principal = Depends(require_admin),
) -> OrderResponse:
    command = UpdateTrackingStatus(
        order_id=order_id,
        status=body.status,
        message=body.message,
        location=body.location,
        updated_by=principal.user_id,
    )
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, principal: Principal = Depends(get_principal)) -> OrderResponse:
    command = CancelOrder(
        order_id=order_id,
        requested_by=principal.user_id,
        requested_by_admin=principal.is_admin,
    )
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.put("/{order_id}/abandon", response_model=MessageResponse)
async def abandon_order(order_id: str, principal: Principal = Depends(get_principal)) -> MessageResponse:
    """Delete an unpaid order and put its stock back."""
    command = AbandonOrder(
        order_id=order_id,
        requested_by=principal.user_id,
        requested_by_admin=principal.is_admin,
    )
    current_domain.process(command, asynchronous=False)
    return MessageResponse(message="Order abandoned and stock restored")


@order_router.put("/{order_id}/request-return", response_model=OrderResponse)
async def request_return(
    order_id: str,
    body: RequestReturnRequest,
    principal: Principal = Depends(get_principal),
) -> OrderResponse:
    command = RequestReturn(order_id=order_id, requested_by=principal.user_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


@order_router.put("/{order_id}/return", response_model=OrderResponse)
async def update_return_status(
    order_id: str,
    body: UpdateReturnRequest,
    principal: Principal = Depends(require_admin),  # noqa: ARG001
) -> OrderResponse:
    command = UpdateReturnStatus(
        order_id=order_id,
        status=body.status,
        reason=body.reason,
        admin_note=body.admin_note,
    )
    current_domain.process(command, asynchronous=False)
    return order_response(_load_order(order_id))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payment", tags=["payment"])


@payment_router.post("/order", response_model=PaymentOrderResponse)
async def create_order_for_payment(
    body: PaymentOrderRequest,
    principal: Principal = Depends(get_principal),
) -> PaymentOrderResponse:
    """Open a provider order for checkout."""
    result = create_payment_order(body.order_id, body.amount, principal.user_id)
    return PaymentOrderResponse(**result)


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    principal: Principal = Depends(get_principal),  # noqa: ARG001
) -> VerifyPaymentResponse:
    command = VerifyPayment(
        order_id=body.order_id,
        provider_order_id=body.razorpay_order_id,
        payment_id=body.razorpay_payment_id,
        signature=body.razorpay_signature,
    )
    current_domain.process(command, asynchronous=False)
    return VerifyPaymentResponse(order=order_response(_load_order(body.order_id)))


@payment_router.post("/webhook", response_model=StatusResponse)
async def process_webhook(request: Request) -> StatusResponse:
    """Provider callback. Verified over the raw body before anything is parsed."""
    raw_body = await request.body()
    signature = next(
        (request.headers[name] for name in WEBHOOK_SIGNATURE_HEADERS if request.headers.get(name)),
        None,
    )
    result = webhook.handle_webhook(raw_body, signature, PaymentSettings.from_env().webhook_secret)
    return StatusResponse(status=result["status"])


@payment_router.post("/failure", response_model=MessageResponse)
async def payment_failure(
    body: PaymentFailureRequest,
    principal: Principal = Depends(get_principal),  # noqa: ARG001
) -> MessageResponse:
    command = RecordPaymentFailure(order_id=body.order_id, error=body.error)
    current_domain.process(command, asynchronous=False)
    return MessageResponse(message="Payment failure recorded")


@payment_router.get("/status/{order_id}", response_model=PaymentStatusResponse)
async def payment_status(
    order_id: str,
    principal: Principal = Depends(get_principal),  # noqa: ARG001
) -> PaymentStatusResponse:
    order = _load_order(order_id)
    return PaymentStatusResponse(
        is_paid=bool(order.is_paid),
        paid_at=order.paid_at,
        payment_method=order.payment_method,
        payment_result=_payment_result_response(order.payment_result),
    )


@payment_router.put("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(
    body: ConfigureGatewayRequest,
    principal: Principal = Depends(require_admin),  # noqa: ARG001
) -> GatewayConfigResponse:
    """Configure the MockGateway behavior (non-production only).

    It allows toggling success/failure behavior for manual API testing.
    """
    if is_production():
        raise AuthorizationError("Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, MockGateway):
        raise InvalidRequestError("Gateway configuration only available for MockGateway")

    gateway.configure(should_succeed=body.should_succeed)
    return GatewayConfigResponse(gateway=type(gateway).__name__, should_succeed=gateway.should_succeed)

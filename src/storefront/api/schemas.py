"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    address: str
    city: str
    postal_code: str
    country: str


class OrderItemSchema(BaseModel):
    product_id: str
    name: str
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)
    image: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    order_items: list[OrderItemSchema] = Field(default_factory=list)
    shipping_address: ShippingAddressSchema | None = None
    payment_method: str
    items_price: float = 0.0
    tax_price: float = 0.0
    shipping_price: float = 0.0
    total_price: float = 0.0
    customization: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_items": [
                        {
                            "product_id": "prod-001",
                            "name": "Chocolate Truffle Cake",
                            "quantity": 2,
                            "price": 450.0,
                        }
                    ],
                    "shipping_address": {
                        "address": "12 MG Road",
                        "city": "Bengaluru",
                        "postal_code": "560001",
                        "country": "India",
                    },
                    "payment_method": "COD",
                    "items_price": 900.0,
                    "tax_price": 0.0,
                    "shipping_price": 50.0,
                    "total_price": 950.0,
                }
            ]
        }
    }


class MarkPaidRequest(BaseModel):
    id: str | None = None
    status: str | None = None
    update_time: datetime | None = None
    email_address: str | None = None


class TrackingUpdateRequest(BaseModel):
    status: str
    message: str | None = None
    location: str | None = None


class BulkUpdateRequest(BaseModel):
    order_ids: list[str] | None = None
    status: str | None = None


class RequestReturnRequest(BaseModel):
    reason: str


class UpdateReturnRequest(BaseModel):
    status: str
    reason: str | None = None
    admin_note: str | None = None


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class PaymentOrderRequest(BaseModel):
    amount: float | None = None
    order_id: str | None = None


class VerifyPaymentRequest(BaseModel):
    order_id: str
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None


class PaymentFailureRequest(BaseModel):
    order_id: str
    error: str | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class MessageResponse(BaseModel):
    message: str


class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    name: str
    quantity: int
    price: float
    image: str | None = None


class TrackingEventResponse(BaseModel):
    status: str
    message: str | None = None
    location: str | None = None
    timestamp: datetime | None = None
    updated_by: str | None = None


class PaymentResultResponse(BaseModel):
    id: str | None = None
    status: str | None = None
    update_time: datetime | None = None
    provider_order_id: str | None = None
    payment_method: str | None = None
    email_address: str | None = None


class PricingResponse(BaseModel):
    items_price: float = 0.0
    tax_price: float = 0.0
    shipping_price: float = 0.0
    total_price: float = 0.0


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    order_items: list[OrderItemResponse]
    shipping_address: ShippingAddressSchema | None = None
    payment_method: str
    pricing: PricingResponse
    customization: str | None = None
    is_paid: bool
    paid_at: datetime | None = None
    payment_result: PaymentResultResponse | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    tracking_status: str
    tracking_history: list[TrackingEventResponse]
    return_status: str
    return_reason: str | None = None
    return_admin_note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BulkUpdateResponse(BaseModel):
    message: str
    modified_count: int


class PaymentOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    amount: int
    currency: str
    key: str | None = None
    mode: str


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str = "Payment verified"
    order: OrderResponse


class PaymentStatusResponse(BaseModel):
    is_paid: bool
    paid_at: datetime | None = None
    payment_method: str
    payment_result: PaymentResultResponse | None = None


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool

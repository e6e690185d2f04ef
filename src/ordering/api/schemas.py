"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. The checkout session itself travels as a
``CheckoutSession`` document that the client keeps between steps.
"""

from enum import Enum

from pydantic import BaseModel, Field

from ordering.checkout.pricing import CartItem
from ordering.checkout.session import CheckoutForm, CheckoutSession


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str | None = None
    address1: str
    address2: str | None = None
    city: str
    state: str | None = ""
    postal_code: str
    country: str = "US"
    phone: str | None = None
    email: str | None = None


class AddressVerdictSchema(BaseModel):
    is_valid: bool
    is_complete: bool
    messages: list[str] = []
    suggested: AddressSchema | None = None
    normalized: AddressSchema | None = None
    retryable: bool = False


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class BeginCheckoutRequest(BaseModel):
    items: list[CartItem] = Field(min_length=1)
    form: CheckoutForm
    discount_cents: int = Field(ge=0, default=0)
    shipping_cost_cents: int = Field(ge=0, default=0)
    auth_user_id: str | None = None
    is_training: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-1", "name": "Mug", "unit_price_cents": 1200, "quantity": 2}],
                    "form": {
                        "email": "buyer@example.com",
                        "shipping_first_name": "Ada",
                        "shipping_last_name": "Lovelace",
                        "shipping_address1": "12 Analytical Way",
                        "shipping_city": "Austin",
                        "shipping_state": "TX",
                        "shipping_postal_code": "78701",
                        "shipping_country": "US",
                    },
                    "shipping_cost_cents": 500,
                }
            ]
        }
    }


class AddressAction(Enum):
    VALIDATE = "validate"
    ACCEPT_SUGGESTION = "accept_suggestion"
    CONFIRM = "confirm"


class CheckoutAddressRequest(BaseModel):
    session: CheckoutSession
    action: AddressAction = AddressAction.VALIDATE
    suggested: AddressSchema | None = None


class CheckoutSessionRequest(BaseModel):
    session: CheckoutSession


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RefundOrderRequest(BaseModel):
    amount_cents: int = Field(gt=0)


# ---------------------------------------------------------------------------
# Shipping Request Schemas
# ---------------------------------------------------------------------------
class ValidateAddressRequest(BaseModel):
    address: AddressSchema


class RatesRequest(BaseModel):
    order_id: str
    package_id: str | None = None


class PurchaseLabelRequest(BaseModel):
    order_id: str
    rate_id: str
    package_id: str | None = None


class VoidLabelRequest(BaseModel):
    shipment_id: str


class ManualShipmentRequest(BaseModel):
    carrier: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    service: str | None = None
    delivered: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutSessionResponse(BaseModel):
    session: CheckoutSession


class CheckoutAddressResponse(BaseModel):
    session: CheckoutSession
    result: AddressVerdictSchema | None = None


class FinalizeResponse(BaseModel):
    order_id: str
    session: CheckoutSession


class LineItemResponse(BaseModel):
    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price_cents: int
    line_total_cents: int


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    payment_reference: str
    payment_status: str
    order_status: str
    shipping_status: str
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    shipping_cost_cents: int
    total_cents: int
    refunded_cents: int
    currency: str
    is_training: bool
    line_items: list[LineItemResponse]
    shipping_address: AddressSchema | None = None
    cancellation_reason: str | None = None


class PackageResponse(BaseModel):
    id: str
    name: str
    length_cm: float
    width_cm: float
    height_cm: float
    weight_g: float
    is_default: bool


class RateResponse(BaseModel):
    rate_id: str
    carrier: str
    service: str
    amount_cents: int
    currency: str
    estimated_days: int | None = None


class ShipmentResponse(BaseModel):
    shipment_id: str
    order_id: str
    status: str
    carrier: str
    service: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    label_url: str | None = None
    transaction_id: str | None = None
    amount_cents: int | None = None
    currency: str | None = None
    is_manual: bool = False


class WebhookResponse(BaseModel):
    status: str

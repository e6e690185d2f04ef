"""FastAPI routes for the Ordering domain: checkout, orders, shipping and webhooks."""

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from ordering.address.validator import get_address_validator
from ordering.api.schemas import (
    AddressAction,
    AddressSchema,
    BeginCheckoutRequest,
    CancelOrderRequest,
    CheckoutAddressRequest,
    CheckoutAddressResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    FinalizeResponse,
    ManualShipmentRequest,
    OrderResponse,
    PackageResponse,
    PurchaseLabelRequest,
    RateResponse,
    RatesRequest,
    RefundOrderRequest,
    ShipmentResponse,
    ValidateAddressRequest,
    VoidLabelRequest,
    WebhookResponse,
)
from ordering.carrier.port import Address
from ordering.checkout.service import CheckoutService
from ordering.config import get_settings
from ordering.errors import WebhookSignatureError
from ordering.gateway import get_gateway
from ordering.order.order import Order
from ordering.order.payment import CancelOrder
from ordering.order.refund import OrderRefunder
from ordering.shipment.manager import ShipmentManager
from ordering.shipment.shipment import Shipment
from ordering.webhook.carriers import handle_tracking_event, verify_shared_secret
from ordering.webhook.payments import handle_payment_event

logger = structlog.get_logger(__name__)


def _order_response(order: Order) -> OrderResponse:
    detail = order.shipping_detail
    shipping_address = None
    if detail is not None:
        shipping_address = AddressSchema(
            name=detail.recipient_name,
            address1=detail.address1,
            address2=detail.address2,
            city=detail.city,
            state=detail.state or "",
            postal_code=detail.postal_code,
            country=detail.country,
            phone=detail.phone,
            email=detail.email,
        )
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        payment_reference=order.payment_reference,
        payment_status=order.payment_status,
        order_status=order.order_status,
        shipping_status=order.shipping_status,
        subtotal_cents=order.subtotal_cents,
        discount_cents=order.discount_cents or 0,
        tax_cents=order.tax_cents or 0,
        shipping_cost_cents=order.shipping_cost_cents or 0,
        total_cents=order.total_cents,
        refunded_cents=order.refunded_cents or 0,
        currency=order.currency,
        is_training=bool(order.is_training),
        line_items=[
            {
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price_cents": item.unit_price_cents,
                "line_total_cents": item.line_total_cents,
            }
            for item in order.line_items
        ],
        shipping_address=shipping_address,
        cancellation_reason=order.cancellation_reason,
    )


def _shipment_response(shipment: Shipment) -> ShipmentResponse:
    return ShipmentResponse(
        shipment_id=str(shipment.id),
        order_id=str(shipment.order_id),
        status=shipment.status,
        carrier=shipment.carrier,
        service=shipment.service,
        tracking_number=shipment.tracking_number,
        tracking_url=shipment.tracking_url,
        label_url=shipment.label_url,
        transaction_id=shipment.transaction_id,
        amount_cents=shipment.amount_cents,
        currency=shipment.currency,
        is_manual=bool(shipment.is_manual),
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/sessions", status_code=201, response_model=CheckoutSessionResponse)
def begin_checkout(body: BeginCheckoutRequest) -> CheckoutSessionResponse:
    session = CheckoutService().begin(
        cart=body.items,
        form=body.form,
        discount_cents=body.discount_cents,
        shipping_cost_cents=body.shipping_cost_cents,
        auth_user_id=body.auth_user_id,
        is_training=body.is_training,
    )
    return CheckoutSessionResponse(session=session)


@checkout_router.post("/validate-address", response_model=CheckoutAddressResponse)
def checkout_address(body: CheckoutAddressRequest) -> CheckoutAddressResponse:
    service = CheckoutService()
    if body.action == AddressAction.CONFIRM:
        return CheckoutAddressResponse(session=service.confirm_address(body.session))
    if body.action == AddressAction.ACCEPT_SUGGESTION:
        if body.suggested is None:
            raise HTTPException(status_code=400, detail="A suggested address is required")
        session = service.accept_suggestion(body.session, Address(**body.suggested.model_dump()))
        return CheckoutAddressResponse(session=session)

    session, result = service.validate_address(body.session)
    return CheckoutAddressResponse(session=session, result=result.to_dict())


@checkout_router.post("/payment-intent", response_model=CheckoutSessionResponse)
def start_payment(body: CheckoutSessionRequest) -> CheckoutSessionResponse:
    return CheckoutSessionResponse(session=CheckoutService().start_payment(body.session))


@checkout_router.post("/finalize", status_code=201, response_model=FinalizeResponse)
def finalize_checkout(body: CheckoutSessionRequest) -> FinalizeResponse:
    session = CheckoutService().finalize(body.session)
    return FinalizeResponse(order_id=session.order_id, session=session)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: str, body: CancelOrderRequest) -> OrderResponse:
    current_domain.process(CancelOrder(order_id=order_id, reason=body.reason), asynchronous=False)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/refunds", response_model=OrderResponse)
def refund_order(
    order_id: str,
    body: RefundOrderRequest,
    idempotency_key: str | None = Header(default=None),
) -> OrderResponse:
    OrderRefunder().refund(order_id, body.amount_cents, idempotency_key=idempotency_key)
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/shipments", status_code=201, response_model=ShipmentResponse)
def record_manual_shipment(order_id: str, body: ManualShipmentRequest) -> ShipmentResponse:
    shipment = ShipmentManager().record_manual(
        order_id=order_id,
        carrier=body.carrier,
        tracking_number=body.tracking_number,
        tracking_url=body.tracking_url,
        service=body.service,
        delivered=body.delivered,
    )
    return _shipment_response(shipment)


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


@shipping_router.get("/packages", response_model=list[PackageResponse])
def list_packages() -> list[PackageResponse]:
    return [PackageResponse(**asdict(preset)) for preset in get_settings().packages]


@shipping_router.post("/validate-address", response_model=dict)
def validate_address(body: ValidateAddressRequest) -> dict:
    result = get_address_validator().validate(Address(**body.address.model_dump()))
    return result.to_dict()


@shipping_router.post("/rates", response_model=list[RateResponse])
def get_rates(body: RatesRequest) -> list[RateResponse]:
    rates = ShipmentManager().get_rates(body.order_id, package_id=body.package_id)
    return [RateResponse(**asdict(rate)) for rate in rates]


@shipping_router.post("/labels", status_code=201, response_model=ShipmentResponse)
def purchase_label(
    body: PurchaseLabelRequest,
    idempotency_key: str | None = Header(default=None),
) -> ShipmentResponse:
    shipment = ShipmentManager().purchase(
        body.order_id,
        body.rate_id,
        idempotency_key=idempotency_key,
        package_id=body.package_id,
    )
    return _shipment_response(shipment)


@shipping_router.post("/labels/void", response_model=ShipmentResponse)
def void_label(body: VoidLabelRequest) -> ShipmentResponse:
    return _shipment_response(ShipmentManager().void(body.shipment_id))


@shipping_router.post("/webhook", response_model=WebhookResponse)
async def carrier_webhook(
    request: Request,
    x_shippo_secret: str = Header(default=""),
) -> WebhookResponse:
    """Receive tracking updates from the carrier platform.

    The shared secret configured on the carrier's webhook is sent back in the
    ``X-Shippo-Secret`` header and compared in constant time.
    """
    try:
        verify_shared_secret(get_settings().shippo_webhook_secret, x_shippo_secret)
    except WebhookSignatureError:
        logger.warning("carrier_webhook_rejected", client=request.client.host if request.client else None)
        raise HTTPException(status_code=401, detail="Invalid webhook secret") from None

    payload = await request.json()
    return WebhookResponse(status=await run_in_threadpool(handle_tracking_event, payload))


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


@shipment_router.delete("/{shipment_id}/tracking", response_model=ShipmentResponse)
def clear_tracking(shipment_id: str) -> ShipmentResponse:
    return _shipment_response(ShipmentManager().clear_tracking(shipment_id))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
) -> WebhookResponse:
    """Receive payment intent and charge events from the processor.

    The raw body is verified against the ``Stripe-Signature`` header before
    anything is parsed.
    """
    payload = await request.body()
    try:
        event = get_gateway().parse_webhook(payload, stripe_signature)
    except WebhookSignatureError as exc:
        logger.warning("payment_webhook_rejected", error=exc.message)
        raise HTTPException(status_code=400, detail=exc.message) from None

    return WebhookResponse(status=await run_in_threadpool(handle_payment_event, event))

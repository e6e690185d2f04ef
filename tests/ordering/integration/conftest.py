import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import register_exception_handlers, routers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def checkout_body():
    return {
        "items": [
            {"product_id": "prod-mug", "name": "Stoneware Mug", "unit_price_cents": 1200, "quantity": 2},
            {"product_id": "prod-poster", "name": "Poster", "unit_price_cents": 1500, "quantity": 1},
        ],
        "form": {
            "email": "grace@example.com",
            "phone": "+1 (212) 555-0199",
            "shipping_first_name": "Grace",
            "shipping_last_name": "Hopper",
            "shipping_address1": "1 Compiler Court",
            "shipping_city": "Austin",
            "shipping_state": "TX",
            "shipping_postal_code": "78701",
            "shipping_country": "US",
        },
        "shipping_cost_cents": 500,
    }


@pytest.fixture()
def paid_order_id(client, gateway, products, checkout_body):
    """Drive a checkout through the API and return the placed order's id."""
    session = client.post("/checkout/sessions", json=checkout_body).json()["session"]
    session = client.post("/checkout/validate-address", json={"session": session}).json()["session"]
    session = client.post("/checkout/payment-intent", json={"session": session}).json()["session"]
    gateway.set_status(session["payment_intent_id"], "succeeded")
    response = client.post("/checkout/finalize", json={"session": session})
    assert response.status_code == 201
    return response.json()["order_id"]

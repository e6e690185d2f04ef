"""Integration tests for shipping endpoints and the carrier webhook."""


def _rates(client, order_id, **extra):
    response = client.post("/shipping/rates", json={"order_id": order_id, **extra})
    assert response.status_code == 200
    return response.json()


class TestShippingEndpoints:
    def test_list_packages(self, client):
        response = client.get("/shipping/packages")

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["small-box", "padded-mailer"]
        assert response.json()[0]["is_default"] is True

    def test_validate_address(self, client):
        response = client.post(
            "/shipping/validate-address",
            json={"address": {"address1": "9 Elm St", "city": "Austin", "state": "TX", "postal_code": "78701"}},
        )

        assert response.status_code == 200
        assert response.json()["is_valid"] is True
        assert response.json()["is_complete"] is True
        # Casing differences are not offered as a correction
        assert response.json()["normalized"] is None

    def test_rates_cheapest_first(self, client, paid_order_id):
        rates = _rates(client, paid_order_id)

        assert [r["amount_cents"] for r in rates] == [825, 1295]

    def test_rates_for_unknown_package(self, client, paid_order_id):
        response = client.post("/shipping/rates", json={"order_id": paid_order_id, "package_id": "crate"})

        assert response.status_code == 400

    def test_purchase_with_idempotency_key(self, client, carrier, paid_order_id):
        rate_id = _rates(client, paid_order_id)[0]["rate_id"]
        body = {"order_id": paid_order_id, "rate_id": rate_id}

        first = client.post("/shipping/labels", json=body, headers={"Idempotency-Key": "ui-click-1"})
        second = client.post("/shipping/labels", json=body, headers={"Idempotency-Key": "ui-click-1"})

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["shipment_id"] == second.json()["shipment_id"]
        assert len(carrier.purchased) == 1
        assert client.get(f"/orders/{paid_order_id}").json()["order_status"] == "fulfilled"

    def test_carrier_rejection(self, client, carrier, paid_order_id):
        rate_id = _rates(client, paid_order_id)[0]["rate_id"]
        carrier.configure(should_succeed=False, failure_reason="Address not serviceable")

        response = client.post("/shipping/labels", json={"order_id": paid_order_id, "rate_id": rate_id})

        assert response.status_code == 422
        assert "Address not serviceable" in response.json()["detail"]

    def test_void_label(self, client, carrier, paid_order_id):
        rate_id = _rates(client, paid_order_id)[0]["rate_id"]
        shipment = client.post("/shipping/labels", json={"order_id": paid_order_id, "rate_id": rate_id}).json()

        response = client.post("/shipping/labels/void", json={"shipment_id": shipment["shipment_id"]})

        assert response.status_code == 200
        assert response.json()["status"] == "voided"
        again = client.post("/shipping/labels/void", json={"shipment_id": shipment["shipment_id"]})
        assert again.status_code == 409

    def test_clear_tracking(self, client, paid_order_id):
        rate_id = _rates(client, paid_order_id)[0]["rate_id"]
        shipment = client.post("/shipping/labels", json={"order_id": paid_order_id, "rate_id": rate_id}).json()

        response = client.delete(f"/shipments/{shipment['shipment_id']}/tracking")

        assert response.status_code == 200
        assert response.json()["tracking_number"] is None
        assert response.json()["label_url"] == shipment["label_url"]


class TestCarrierWebhook:
    def test_wrong_secret_is_unauthorized(self, client):
        response = client.post("/shipping/webhook", json={"event": "track_updated"}, headers={"X-Shippo-Secret": "guess"})

        assert response.status_code == 401

    def test_missing_secret_is_unauthorized(self, client):
        response = client.post("/shipping/webhook", json={"event": "track_updated"})

        assert response.status_code == 401

    def test_tracking_update_applied(self, client, settings, paid_order_id):
        rate_id = _rates(client, paid_order_id)[0]["rate_id"]
        shipment = client.post("/shipping/labels", json={"order_id": paid_order_id, "rate_id": rate_id}).json()
        payload = {
            "event": "track_updated",
            "event_id": "shippo-evt-1",
            "data": {
                "transaction": shipment["transaction_id"],
                "tracking_number": shipment["tracking_number"],
                "tracking_status": {"status": "TRANSIT"},
            },
        }
        headers = {"X-Shippo-Secret": settings.shippo_webhook_secret}

        first = client.post("/shipping/webhook", json=payload, headers=headers)
        second = client.post("/shipping/webhook", json=payload, headers=headers)

        assert first.json() == {"status": "processed"}
        assert second.json() == {"status": "duplicate"}
        assert client.get(f"/orders/{paid_order_id}").json()["shipping_status"] == "in_transit"

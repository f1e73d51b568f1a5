from decimal import Decimal

import pytest
from conftest import ADDRESS, login

from blissora.extensions import db
from blissora.errors import ValidationError
from blissora.model import Order, Payment, User


@pytest.fixture
def paid_order(buyer, make_product):
    """A card order for 260.00; returns (client, order json)."""
    client, _ = buyer
    client.post("/cart/items", json={"product_id": make_product(price="100.00"), "quantity": 2})
    order = client.post("/orders", json={"payment_method": "card", "shipping_address": ADDRESS})
    return client, order.get_json()["data"]["order"]


def _payment_id(app, order_id):
    with app.app_context():
        return Order.query.filter_by(order_id=order_id).one().payments[0].payment_id


# ---- payments ----

def test_owner_and_admin_can_read_payment(paid_order, admin, app, make_client, make_user):
    client, order = paid_order
    admin_client, _ = admin
    payment_id = _payment_id(app, order["order_id"])

    payment = client.get(f"/payments/{payment_id}").get_json()["data"]["payment"]
    assert payment["amount"] == 260.0
    assert payment["status"] == "completed"
    assert payment["order_id"] == order["order_id"]
    assert admin_client.get(f"/payments/{payment_id}").status_code == 200

    make_user(email="stranger@example.com")
    stranger = make_client()
    login(stranger, "stranger@example.com")
    assert stranger.get(f"/payments/{payment_id}").status_code == 404


def test_partial_then_full_refund(paid_order, admin, app):
    client, order = paid_order
    admin_client, _ = admin
    payment_id = _payment_id(app, order["order_id"])

    assert client.post(f"/payments/{payment_id}/refund", json={"amount": 10}).status_code == 403

    resp = admin_client.post(f"/payments/{payment_id}/refund", json={"amount": "60", "reason": "damaged"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["refund"]["amount"] == 60.0
    assert data["payment"]["status"] == "completed"

    assert admin_client.post(f"/payments/{payment_id}/refund", json={"amount": 500}).status_code == 400
    assert admin_client.post(f"/payments/{payment_id}/refund", json={"amount": "abc"}).status_code == 400

    # no amount refunds the remainder
    data = admin_client.post(f"/payments/{payment_id}/refund", json={}).get_json()["data"]
    assert data["refund"]["amount"] == 200.0
    assert data["payment"]["status"] == "refunded"
    assert admin_client.post(f"/payments/{payment_id}/refund", json={"amount": 1}).status_code == 400

    with app.app_context():
        assert Order.query.filter_by(order_id=order["order_id"]).one().payment_status == "refunded"


def test_cod_payment_cannot_be_refunded_before_collection(buyer, admin, app, make_product):
    client, _ = buyer
    admin_client, _ = admin
    client.post("/cart/items", json={"product_id": make_product(), "quantity": 1})
    order = client.post("/orders", json={"payment_method": "cod", "shipping_address": ADDRESS}).get_json()["data"]["order"]
    payment_id = _payment_id(app, order["order_id"])
    resp = admin_client.post(f"/payments/{payment_id}/refund", json={"amount": 10})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Cannot refund a payment that is not completed"


def test_payment_stats(paid_order, admin):
    admin_client, _ = admin
    data = admin_client.get("/payments/stats", query_string={"timeframe": "week"}).get_json()["data"]
    assert data["overview"]["total_transactions"] == 1
    assert data["overview"]["total_revenue"] == 260.0
    assert data["by_status"] == [{"status": "completed", "count": 1, "total_amount": 260.0}]

    assert admin_client.get("/payments/stats", query_string={"timeframe": "decade"}).status_code == 400


# ---- admin ----

def test_dashboard_requires_admin(buyer, admin):
    client, _ = buyer
    admin_client, _ = admin
    assert client.get("/admin/dashboard").status_code == 403

    stats = admin_client.get("/admin/dashboard").get_json()["data"]["stats"]
    assert stats["users"]["by_role"] == {"admin": 1, "user": 1}
    assert stats["orders"]["total"] == 0


def test_dashboard_counts_orders_and_revenue(paid_order, admin):
    admin_client, _ = admin
    stats = admin_client.get("/admin/dashboard").get_json()["data"]["stats"]
    assert stats["orders"]["by_status"] == {"confirmed": 1}
    assert stats["revenue"] == 260.0
    assert stats["recent_orders"][0]["total"] == 260.0
    assert stats["products"]["total"] == 1


def test_sales_report_counts_delivered_orders(paid_order, admin, app):
    _, order = paid_order
    admin_client, _ = admin
    report = admin_client.get("/admin/reports").get_json()["data"]["report"]
    assert report["sales_by_day"] == []
    assert report["top_products"] == []

    with app.app_context():
        Order.query.filter_by(order_id=order["order_id"]).one().status = "delivered"
        db.session.commit()

    report = admin_client.get("/admin/reports").get_json()["data"]["report"]
    assert report["totals"] == {"orders": 1, "revenue": 260.0}
    assert report["sales_by_day"][0]["orders"] == 1
    assert report["top_products"][0]["units_sold"] == 2
    assert report["top_products"][0]["revenue"] == 200.0

    resp = admin_client.get("/admin/reports", query_string={"format": "csv"})
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    lines = resp.get_data(as_text=True).strip().splitlines()
    assert lines[0] == "date,orders,revenue"
    assert lines[1].endswith(",1,260.0")


def test_report_rejects_bad_dates(admin):
    admin_client, _ = admin
    assert admin_client.get("/admin/reports", query_string={"start": "yesterday"}).status_code == 400
    assert admin_client.get("/admin/reports",
                            query_string={"start": "2024-02-01", "end": "2024-01-01"}).status_code == 400


def test_admin_approves_and_suspends_seller(admin, app, make_user):
    admin_client, _ = admin
    seller = make_user(email="new-seller@example.com", role="seller", store_name="New", seller_approved=False)
    buyer_id = make_user(email="plain@example.com")

    resp = admin_client.post("/admin/sellers", json={"seller_id": seller, "action": "approve"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["seller"]["seller_approved"] is True

    resp = admin_client.post("/admin/sellers", json={"seller_id": seller, "action": "suspend"})
    assert resp.get_json()["data"]["seller"]["seller_approved"] is False
    with app.app_context():
        assert db.session.get(User, seller).refresh_token_hash is None

    assert admin_client.post("/admin/sellers", json={"seller_id": buyer_id, "action": "approve"}).status_code == 404
    assert admin_client.post("/admin/sellers", json={"seller_id": seller, "action": "promote"}).status_code == 400


def test_failed_payment_keeps_gateway_details_and_cannot_refund(app):
    with app.app_context():
        payment = Payment(order_pk=1, user_id=1, amount=Decimal("10.00"), method="card")
        payment.mark_failed({"gateway_payment_id": "gw_1", "error": "card_declined"})
        assert payment.status == "failed"
        assert payment.failed_at is not None
        assert payment.gateway_payment_id == "gw_1"
        assert payment.gateway_raw["error"] == "card_declined"
        with pytest.raises(ValidationError):
            payment.process_refund(Decimal("1"))

"""Demo data seeding and app wiring."""

from init_data import DEMO_ORDER_SERVES, initialize_demo_data
from models import Donor, NGO, Order


def test_seeds_demo_orders(app):
    created = initialize_demo_data()

    assert created == len(DEMO_ORDER_SERVES)
    assert Donor.query.count() == 1
    assert NGO.query.count() == 1
    assert sorted(order.serves for order in Order.query.all()) == sorted(DEMO_ORDER_SERVES)
    assert all(order.receipt_generated is False for order in Order.query.all())


def test_seeding_is_idempotent(app):
    initialize_demo_data()

    assert initialize_demo_data() == 0
    assert Order.query.count() == len(DEMO_ORDER_SERVES)


def test_seeded_order_can_be_receipted(client, app):
    initialize_demo_data()
    order = Order.query.first()

    response = client.get(f"/receipt?id={order.id}")

    assert response.status_code == 200


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["ok"] is True


def test_unknown_route_returns_json(client):
    response = client.get("/no-such-page")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


def test_receipt_config_defaults(app):
    assert app.config["RECEIPT_RATE_PER_SERVING"] == 50
    assert app.config["RECEIPT_CURRENCY"] == "INR"
    assert app.config["RECEIPT_RENDER_WORKERS"] >= 1

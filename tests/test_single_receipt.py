"""GET /receipt and GET /receipts/<order_id>."""

import pytest
from sqlalchemy.exc import OperationalError

import receipt_service
from database import db
from models import Order, Receipt


def disposition_filename(response):
    return response.headers["Content-Disposition"].split("filename=", 1)[1]


def test_missing_order_id_is_rejected(client):
    response = client.get("/receipt")

    assert response.status_code == 400
    assert response.get_json() == {"error": "Order ID is required"}


def test_unknown_order_returns_json_404(client):
    response = client.get("/receipt?id=does-not-exist")

    assert response.status_code == 404
    assert response.is_json
    assert response.get_json() == {"error": "Order not found"}


def test_issues_receipt_and_marks_order(client, make_order):
    order_id = make_order(serves=20)

    response = client.get(f"/receipt?id={order_id}")

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert b"1000.00" in response.data

    db.session.expire_all()
    receipt = Receipt.query.filter_by(order_id=order_id).one()
    order = db.session.get(Order, order_id)

    assert receipt.receipt_type == "individual"
    assert receipt.amount == 1000
    assert receipt.batch_id is None
    assert receipt.receipt_number.startswith(f"DNTN-{order_id[:8]}-")
    assert disposition_filename(response) == f"donation_receipt_{receipt.receipt_number}.pdf"
    assert order.receipt_generated is True
    assert order.receipt_number == receipt.receipt_number


def test_zero_serves_gives_zero_amount(client, make_order):
    order_id = make_order(serves=None)

    response = client.get(f"/receipt?id={order_id}")

    assert response.status_code == 200
    db.session.expire_all()
    assert Receipt.query.filter_by(order_id=order_id).one().amount == 0


def test_repeat_request_reissues_without_second_receipt(client, make_order):
    order_id = make_order()

    first = client.get(f"/receipt?id={order_id}")
    second = client.get(f"/receipt?id={order_id}")

    assert first.status_code == 200
    assert second.status_code == 200
    assert disposition_filename(first) == disposition_filename(second)
    assert b"REISSUED COPY" in second.data
    assert b"REISSUED COPY" not in first.data
    assert Receipt.query.filter_by(order_id=order_id).count() == 1


def test_bookkeeping_failure_still_returns_document(client, make_order, monkeypatch):
    order_id = make_order()

    def fail_commit():
        raise OperationalError("INSERT INTO receipts", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "commit", fail_commit)
    response = client.get(f"/receipt?id={order_id}")
    monkeypatch.undo()

    assert response.status_code == 200
    assert response.data.startswith(b"%PDF")
    db.session.expire_all()
    assert Receipt.query.filter_by(order_id=order_id).count() == 0
    assert db.session.get(Order, order_id).receipt_generated is False


def test_concurrent_insert_is_reported_as_conflict(client, make_order, monkeypatch):
    order_id = make_order()
    db.session.add(Receipt(order_id=order_id, receipt_number="DNTN-earlier", receipt_type="individual", amount=1000))
    db.session.commit()

    # Simulate a request that checked before the other one committed
    monkeypatch.setattr(receipt_service, "_existing_receipt", lambda _order_id: None)
    response = client.get(f"/receipt?id={order_id}")

    assert response.status_code == 409
    assert "error" in response.get_json()
    assert Receipt.query.filter_by(order_id=order_id).count() == 1


def test_render_failure_returns_500(client, make_order, monkeypatch):
    order_id = make_order()

    def broken(context, compress=True):
        raise RuntimeError("font missing")

    monkeypatch.setattr(receipt_service, "generate_receipt_pdf", broken)
    response = client.get(f"/receipt?id={order_id}")

    assert response.status_code == 500
    assert response.get_json() == {"error": "An unexpected error occurred while generating the receipt"}


class TestExistingReceiptDownload:

    def test_not_issued_yet(self, client, make_order):
        order_id = make_order()

        response = client.get(f"/receipts/{order_id}")

        assert response.status_code == 404
        assert response.get_json() == {"error": "Receipt not found"}
        assert Receipt.query.count() == 0

    def test_unknown_order(self, client):
        response = client.get("/receipts/nope")

        assert response.status_code == 404

    @pytest.mark.parametrize("serves", [3, 20])
    def test_serves_issued_receipt(self, client, make_order, serves):
        order_id = make_order(serves=serves)
        issued = client.get(f"/receipt?id={order_id}")

        response = client.get(f"/receipts/{order_id}")

        assert response.status_code == 200
        assert disposition_filename(response) == disposition_filename(issued)
        assert f"{serves * 50:.2f}".encode() in response.data
        assert Receipt.query.count() == 1

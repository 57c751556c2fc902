"""
Shared fixtures for the receipt service tests.

The app module configures itself from the environment at import time, so the
test database and settings are exported before it is imported.
"""

import os
import tempfile
from datetime import datetime

import pytest

_db_dir = tempfile.mkdtemp(prefix="donation-receipts-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_db_dir, "test.db")
os.environ["RECEIPT_PDF_COMPRESSION"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ.setdefault("RECEIPT_RATE_PER_SERVING", "50")

from app import app as flask_app  # noqa: E402
from database import db  # noqa: E402
from models import Donor, DonorForm, NGO, Order  # noqa: E402


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def donor(app):
    donor = Donor(name="Spice Garden Restaurant", phone_no="+91 98765 43210", email="spice@example.com")
    db.session.add(donor)
    db.session.commit()
    return donor


@pytest.fixture
def ngo(app):
    ngo = NGO(name="Annapurna Food Trust", reg_no="NGO-REG-12345")
    db.session.add(ngo)
    db.session.commit()
    return ngo


@pytest.fixture
def make_order(app, donor, ngo):
    """Create an order; returns its id."""

    def create(serves=20, created_at=datetime(2024, 1, 15, 12, 0), for_donor=None,
               receipt_generated=False, delivery_person_name="Ravi Kumar", food_name="Vegetable Biryani",
               order_id=None):
        listing = DonorForm(food_name=food_name, food_type="veg", donor=for_donor or donor)
        order = Order(
            serves=serves,
            donor_form=listing,
            ngo=ngo,
            delivery_person_name=delivery_person_name,
            delivery_person_phone_no="+91 98765 43211" if delivery_person_name else None,
            receipt_generated=receipt_generated,
            created_at=created_at,
        )
        if order_id:
            order.id = order_id
        db.session.add(order)
        db.session.commit()
        return order.id

    return create

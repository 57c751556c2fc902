from datetime import datetime, timedelta
from models import Donor, NGO, DonorForm, Order
from database import db
import logging

DEMO_ORDER_SERVES = [20, 35, 12]


def initialize_demo_data():
    """Seed one donor, NGO and listing with a few completed pickups.

    Does nothing when any donor already exists. Returns the number of orders created.
    """
    if Donor.query.count() > 0:
        return 0

    donor = Donor(
        name='Spice Garden Restaurant',
        phone_no='+91 98765 43210',
        email='donations@spicegarden.example',
        food_preference='veg',
    )
    ngo = NGO(
        name='Annapurna Food Trust',
        reg_no='NGO-REG-12345',
        address_map_link='https://maps.example/annapurna',
        food_preference='veg',
    )
    listing = DonorForm(
        food_name='Mixed Vegetable Curry',
        food_type='veg',
        donor=donor,
    )
    db.session.add_all([donor, ngo, listing])

    now = datetime.utcnow()
    for days_ago, serves in enumerate(DEMO_ORDER_SERVES, start=1):
        db.session.add(Order(
            serves=serves,
            donor_form=listing,
            ngo=ngo,
            delivery_person_name='Ravi Kumar',
            delivery_person_phone_no='+91 98765 43211',
            created_at=now - timedelta(days=days_ago),
        ))

    db.session.commit()
    logging.info(f"Demo data created: {len(DEMO_ORDER_SERVES)} orders for {donor.name}")
    return len(DEMO_ORDER_SERVES)

if __name__ == "__main__":
    from app import app
    with app.app_context():
        db.create_all()
        print("All tables created.")
        created = initialize_demo_data()
        print(f"Demo orders seeded: {created}")

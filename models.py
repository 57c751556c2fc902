from datetime import datetime
from database import db
import uuid


def _new_id():
    return str(uuid.uuid4())


class Donor(db.Model):
    __tablename__ = 'donors'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    phone_no = db.Column(db.String(20))
    email = db.Column(db.String(120))
    food_preference = db.Column(db.String(50))  # veg, non_veg, both
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class NGO(db.Model):
    __tablename__ = 'ngos'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    reg_no = db.Column(db.String(50))  # Government registration number
    address_map_link = db.Column(db.String(500))
    food_preference = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class DonorForm(db.Model):
    """A single surplus food listing posted by a donor."""
    __tablename__ = 'donor_forms'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    food_name = db.Column(db.String(200), nullable=False)
    food_image = db.Column(db.String(500))
    food_type = db.Column(db.String(50))
    donor_id = db.Column(db.String(36), db.ForeignKey('donors.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    donor = db.relationship('Donor', backref='donor_forms')

class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    serves = db.Column(db.Integer)  # number of people the food serves

    donor_form_id = db.Column(db.String(36), db.ForeignKey('donor_forms.id'), nullable=False)
    ngo_id = db.Column(db.String(36), db.ForeignKey('ngos.id'), nullable=False)

    # Delivery details
    delivery_person_name = db.Column(db.String(100))
    delivery_person_phone_no = db.Column(db.String(20))

    # Receipt details
    receipt_generated = db.Column(db.Boolean, nullable=False, default=False)
    receipt_number = db.Column(db.String(64))
    batch_id = db.Column(db.String(64), index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    donor_form = db.relationship('DonorForm', backref='orders')
    ngo = db.relationship('NGO', backref='orders')

class Receipt(db.Model):
    __tablename__ = 'receipts'

    INDIVIDUAL = 'individual'
    BATCH = 'batch'

    id = db.Column(db.Integer, primary_key=True)
    # One receipt per order; a second insert fails instead of double-counting
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), unique=True, nullable=False)
    receipt_number = db.Column(db.String(64), unique=True, nullable=False)
    receipt_type = db.Column(db.String(20), nullable=False, default=INDIVIDUAL)
    batch_id = db.Column(db.String(64), index=True)
    amount = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    order = db.relationship('Order', backref=db.backref('receipt', uselist=False))

    @staticmethod
    def generate_individual_number(order_id, now=None):
        # DNTN-<first 8 of order id>-<epoch millis>
        now = now or datetime.utcnow()
        millis = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
        return f"DNTN-{str(order_id)[:8]}-{millis}"

    @staticmethod
    def generate_batch_number(order_id, batch_id):
        return f"DNTN-{str(order_id)[:8]}-BATCH-{str(batch_id)[:8]}"

    @staticmethod
    def generate_batch_id(now=None):
        """Default batch id when the caller does not supply one."""
        now = now or datetime.utcnow()
        return now.strftime('%y%m%d%H%M%S')

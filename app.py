import os
import logging
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from database import db


def env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())

# Create the app
app = Flask(__name__)
app.secret_key = os.environ.get("SESSION_SECRET", "food-donation-secret-key")
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)
app.config['SITE_NAME'] = os.environ.get("SITE_NAME", "Food Rescue Network")

# Configure the database
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///food_donations.db")
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
    "pool_recycle": 300,
    "pool_pre_ping": True,
}

# Configure receipt generation
app.config['RECEIPT_RATE_PER_SERVING'] = float(os.environ.get("RECEIPT_RATE_PER_SERVING", "50"))
app.config['RECEIPT_CURRENCY'] = os.environ.get("RECEIPT_CURRENCY", "INR")
app.config['RECEIPT_RENDER_WORKERS'] = int(os.environ.get("RECEIPT_RENDER_WORKERS", "4"))
app.config['RECEIPT_BATCH_MAX_ORDERS'] = int(os.environ.get("RECEIPT_BATCH_MAX_ORDERS", "500"))
app.config['RECEIPT_PDF_COMPRESSION'] = env_flag("RECEIPT_PDF_COMPRESSION", True)
app.config['SEED_DEMO_DATA'] = env_flag("SEED_DEMO_DATA", False)

# Initialize the app with the extension
db.init_app(app)

with app.app_context():
    # Import models to ensure tables are created
    import models
    db.create_all()
    logging.info("Database tables created successfully")

    if app.config['SEED_DEMO_DATA']:
        from init_data import initialize_demo_data
        initialize_demo_data()

# Import routes after app is created
from routes import *

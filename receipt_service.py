"""Single and batch donation receipt generation."""
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
import logging
import re

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from database import db
from donation_valuation import build_valuation, format_amount
from exceptions import InvalidRequest, NotFound, ReceiptConflict, RenderFailure, UpstreamFailure
from models import Order, DonorForm, Receipt
from utils import generate_receipt_pdf, receipt_filename, build_zip_archive

DATE_INPUT_FORMAT = '%Y-%m-%d'

# Batch ids end up in receipt numbers, zip entry names and response headers
BATCH_ID_PATTERN = re.compile(r'[A-Za-z0-9_-]{1,64}')


def _order_query():
    return Order.query.options(
        joinedload(Order.donor_form).joinedload(DonorForm.donor),
        joinedload(Order.ngo),
    )


def parse_date(value, name):
    try:
        return datetime.strptime(value, DATE_INPUT_FORMAT)
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid {name}, expected YYYY-MM-DD")


def fetch_order(order_id):
    """Load an order with its listing, donor and NGO in one query."""
    try:
        order = _order_query().filter(Order.id == order_id).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error fetching order data for {order_id}: {str(e)}")
        raise UpstreamFailure(f"Failed to fetch order data: {str(e)}")

    if not order:
        logging.error(f"No data found for order ID: {order_id}")
        raise NotFound("Order not found")
    return order


def fetch_eligible_orders(start_date, end_date, donor_id=None, limit=None):
    # end date covers the whole day
    query = _order_query().filter(
        Order.created_at >= start_date,
        Order.created_at < end_date + timedelta(days=1),
        Order.receipt_generated.is_(False),
    )
    if donor_id:
        query = query.join(Order.donor_form).filter(DonorForm.donor_id == donor_id)

    query = query.order_by(Order.created_at.asc(), Order.id.asc())
    if limit is not None:
        query = query.limit(limit)

    try:
        return query.all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error fetching orders: {str(e)}")
        raise UpstreamFailure(f"Failed to fetch orders: {str(e)}")


def build_receipt_context(order, receipt_number, receipt_type, batch_id=None,
                          issue_date=None, reissue=False, amount=None):
    """Snapshot everything the renderer needs into a plain dict."""
    config = current_app.config
    valuation = build_valuation(
        order.serves,
        config['RECEIPT_RATE_PER_SERVING'],
        config['RECEIPT_CURRENCY'],
    )
    if amount is not None:
        # A reissued receipt keeps the amount it was issued with
        valuation['amount'] = amount
        valuation['amount_display'] = format_amount(amount, valuation['currency'])

    donor_form = order.donor_form
    donor = donor_form.donor if donor_form else None
    ngo = order.ngo

    return {
        'order_id': order.id,
        'receipt_number': receipt_number,
        'receipt_type': receipt_type,
        'batch_id': batch_id,
        'reissue': reissue,
        'issue_date': issue_date or datetime.utcnow(),
        'donation_date': order.created_at,
        'site_name': config['SITE_NAME'],
        'food_name': donor_form.food_name if donor_form else None,
        'donor': {
            'name': donor.name if donor else None,
            'phone_no': donor.phone_no if donor else None,
            'email': donor.email if donor else None,
        },
        'ngo': {
            'name': ngo.name if ngo else None,
            'reg_no': ngo.reg_no if ngo else None,
        },
        'delivery_person_name': order.delivery_person_name,
        'delivery_person_phone_no': order.delivery_person_phone_no,
        **valuation,
    }


def record_receipts(entries, batch_id=None):
    """Insert receipts and mark their orders in one transaction.

    ``entries`` is a list of ``(order, context)`` pairs. Returns True when the
    write committed.
    """
    try:
        for order, context in entries:
            db.session.add(Receipt(
                order_id=order.id,
                receipt_number=context['receipt_number'],
                receipt_type=context['receipt_type'],
                batch_id=batch_id,
                amount=context['amount'],
                created_at=context['issue_date'],
            ))
            order.receipt_generated = True
            if batch_id:
                order.batch_id = batch_id
            else:
                order.receipt_number = context['receipt_number']
        db.session.commit()
        return True
    except IntegrityError as e:
        db.session.rollback()
        order_ids = [context['order_id'] for _, context in entries]
        logging.warning(f"Receipt already recorded for orders {order_ids}: {str(e.orig)}")
        raise ReceiptConflict("A receipt was already issued for this order by a concurrent request")
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error recording receipts (continuing with generation): {str(e)}")
        return False


def render_receipt(context):
    try:
        return generate_receipt_pdf(context, compress=current_app.config['RECEIPT_PDF_COMPRESSION'])
    except Exception as e:
        raise RenderFailure(
            "An unexpected error occurred while generating the receipt", order_id=context['order_id']
        ) from e


def _existing_receipt(order_id):
    try:
        return Receipt.query.filter_by(order_id=order_id).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error checking existing receipts for {order_id}: {str(e)}")
        raise UpstreamFailure(f"Failed to fetch receipt data: {str(e)}")


def _reissue_context(order, receipt):
    return build_receipt_context(
        order,
        receipt.receipt_number,
        receipt.receipt_type,
        batch_id=receipt.batch_id,
        issue_date=receipt.created_at,
        reissue=True,
        amount=receipt.amount,
    )


def generate_single_receipt(order_id):
    """Issue (or reissue) the receipt for one order.

    Returns ``(receipt_number, pdf_bytes)``.
    """
    if not order_id:
        raise InvalidRequest("Order ID is required")

    logging.info(f"Processing receipt for order ID: {order_id}")
    order = fetch_order(order_id)

    existing = _existing_receipt(order.id)
    if existing:
        logging.info(f"Order {order.id} already has receipt {existing.receipt_number}, reissuing copy")
        context = _reissue_context(order, existing)
    else:
        context = build_receipt_context(
            order,
            Receipt.generate_individual_number(order.id),
            Receipt.INDIVIDUAL,
        )
        record_receipts([(order, context)])

    return context['receipt_number'], render_receipt(context)


def download_existing_receipt(order_id):
    """Serve an already issued receipt; never creates one."""
    order = fetch_order(order_id)
    existing = _existing_receipt(order.id)
    if not existing:
        raise NotFound("Receipt not found")

    context = _reissue_context(order, existing)
    return context['receipt_number'], render_receipt(context)


def _render_completed(contexts, compress, max_workers):
    """Yield ``(filename, pdf)`` as renders finish; failed orders land in ``failed``."""
    failed = []

    def render(context):
        return generate_receipt_pdf(context, compress=compress)

    def results():
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(render, context): context for context in contexts}
            for future in as_completed(futures):
                context = futures[future]
                try:
                    pdf = future.result()
                except Exception as e:
                    logging.error(f"Error generating receipt for order {context['order_id']}: {str(e)}")
                    failed.append(context['order_id'])
                    continue
                filename = receipt_filename(context['receipt_number'])
                logging.info(f"Added PDF receipt to zip file: {filename}")
                yield filename, pdf

    return results(), failed


def generate_batch_receipts(start, end, donor_id=None, batch_id=None):
    """Issue receipts for every eligible order in ``[start, end]``.

    Returns a dict with the zip bytes plus a manifest of what made it in.
    """
    if not start or not end:
        raise InvalidRequest("Date range is required")

    start_date = parse_date(start, 'startDate')
    end_date = parse_date(end, 'endDate')
    if start_date > end_date:
        raise InvalidRequest("startDate must not be after endDate")

    if batch_id and not BATCH_ID_PATTERN.fullmatch(batch_id):
        raise InvalidRequest("Invalid batchId, use up to 64 letters, digits, '-' or '_'")

    config = current_app.config
    batch_id = batch_id or Receipt.generate_batch_id()

    logging.info(f"Processing batch receipts from {start} to {end}")
    if donor_id:
        logging.info(f"Filtering for donor ID: {donor_id}")

    max_orders = config['RECEIPT_BATCH_MAX_ORDERS']
    orders = fetch_eligible_orders(start_date, end_date, donor_id, limit=max_orders + 1)
    if not orders:
        logging.info("No eligible orders found for the specified criteria")
        raise NotFound("No eligible orders found in the specified date range")

    if len(orders) > max_orders:
        raise InvalidRequest(
            f"More than {max_orders} eligible orders, above the batch limit. "
            "Please narrow the date range."
        )

    logging.info(f"Found {len(orders)} orders for receipt generation")

    issue_date = datetime.utcnow()
    entries = []
    seen_numbers = set()
    skipped = []
    for order in orders:
        receipt_number = Receipt.generate_batch_number(order.id, batch_id)
        if receipt_number in seen_numbers:
            # Same order-id prefix as an earlier order; it stays eligible for the next batch
            logging.warning(f"Receipt number {receipt_number} already used in batch {batch_id}, skipping order {order.id}")
            skipped.append(order.id)
            continue
        seen_numbers.add(receipt_number)
        entries.append((order, build_receipt_context(
            order,
            receipt_number,
            Receipt.BATCH,
            batch_id=batch_id,
            issue_date=issue_date,
        )))
    record_receipts(entries, batch_id=batch_id)

    contexts = [context for _, context in entries]
    documents, failed = _render_completed(
        contexts,
        compress=config['RECEIPT_PDF_COMPRESSION'],
        max_workers=config['RECEIPT_RENDER_WORKERS'],
    )
    archive = build_zip_archive(documents)

    generated = len(contexts) - len(failed)
    failed = failed + skipped
    if generated == 0:
        logging.error("No receipt files were added to the zip file")
        raise RenderFailure("Failed to generate any receipts")

    logging.info(f"Successfully generated {generated} receipts for batch {batch_id}")
    return {
        'archive': archive,
        'batch_id': batch_id,
        'generated': generated,
        'failed': sorted(failed),
        'start': start_date.strftime(DATE_INPUT_FORMAT),
        'end': end_date.strftime(DATE_INPUT_FORMAT),
    }


def list_receipts(donor_id=None, start=None, end=None, receipt_type=None, page=1, per_page=20):
    """Paginated receipt history, newest first."""
    query = Receipt.query.options(
        joinedload(Receipt.order).joinedload(Order.donor_form),
        joinedload(Receipt.order).joinedload(Order.ngo),
    )
    if donor_id:
        query = query.join(Receipt.order).join(Order.donor_form).filter(DonorForm.donor_id == donor_id)
    if start:
        query = query.filter(Receipt.created_at >= parse_date(start, 'start'))
    if end:
        query = query.filter(Receipt.created_at < parse_date(end, 'end') + timedelta(days=1))
    if receipt_type:
        if receipt_type not in (Receipt.INDIVIDUAL, Receipt.BATCH):
            raise InvalidRequest(f"Invalid receipt type: {receipt_type}")
        query = query.filter(Receipt.receipt_type == receipt_type)

    per_page = min(per_page, 100)
    try:
        paged = query.order_by(Receipt.created_at.desc()).paginate(page=page, per_page=per_page, error_out=False)
    except SQLAlchemyError as e:
        db.session.rollback()
        logging.error(f"Error fetching receipts: {str(e)}")
        raise UpstreamFailure(f"Failed to fetch receipts: {str(e)}")

    return {
        'page': page,
        'per_page': per_page,
        'total': paged.total,
        'items': [{
            'receipt_number': r.receipt_number,
            'order_id': r.order_id,
            'receipt_type': r.receipt_type,
            'batch_id': r.batch_id,
            'amount': float(r.amount or 0),
            'created_at': r.created_at.isoformat() if r.created_at else None,
            'food_name': r.order.donor_form.food_name if r.order.donor_form else None,
            'ngo_name': r.order.ngo.name if r.order.ngo else None,
        } for r in paged.items],
    }

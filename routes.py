from flask import request, jsonify, make_response
from app import app, db
from exceptions import ReceiptError
from receipt_service import (
    generate_single_receipt,
    generate_batch_receipts,
    download_existing_receipt,
    list_receipts,
)
import logging


def pdf_response(receipt_number, pdf_content):
    response = make_response(pdf_content)
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'attachment; filename=donation_receipt_{receipt_number}.pdf'
    return response

@app.errorhandler(ReceiptError)
def receipt_error(error):
    return jsonify({'error': error.message}), error.status_code

@app.route('/health')
def health():
    return jsonify({'ok': True, 'site': app.config['SITE_NAME']})

@app.route('/receipt')
def generate_receipt():
    """Generate (or reissue) the donation receipt for one order"""
    receipt_number, pdf_content = generate_single_receipt(request.args.get('id'))
    return pdf_response(receipt_number, pdf_content)

@app.route('/receipts/batch')
def generate_receipts_batch():
    """Generate receipts for all unreceipted orders in a date range as a zip"""
    result = generate_batch_receipts(
        request.args.get('startDate'),
        request.args.get('endDate'),
        donor_id=request.args.get('donorId'),
        batch_id=request.args.get('batchId'),
    )

    response = make_response(result['archive'])
    response.headers['Content-Type'] = 'application/zip'
    response.headers['Content-Disposition'] = (
        f"attachment; filename=donation_receipts_{result['start']}_to_{result['end']}.zip"
    )
    response.headers['X-Batch-Id'] = result['batch_id']
    response.headers['X-Receipts-Generated'] = str(result['generated'])
    response.headers['X-Receipts-Failed'] = ','.join(result['failed'])
    return response

@app.route('/receipts/<order_id>')
def download_receipt(order_id):
    """Download the receipt already issued for an order"""
    receipt_number, pdf_content = download_existing_receipt(order_id)
    return pdf_response(receipt_number, pdf_content)

@app.route('/receipts')
def receipt_history():
    """
    Query params:
      - donorId
      - start, end (YYYY-MM-DD)
      - type (individual | batch)
      - page, per_page
    """
    try:
        page = int(request.args.get('page', 1))
        per_page = int(request.args.get('per_page', 20))
    except ValueError:
        return jsonify({'error': 'page and per_page must be integers'}), 400

    history = list_receipts(
        donor_id=request.args.get('donorId'),
        start=request.args.get('start'),
        end=request.args.get('end'),
        receipt_type=request.args.get('type'),
        page=max(page, 1),
        per_page=max(per_page, 1),
    )
    return jsonify(history)

@app.errorhandler(404)
def not_found(error):
    return jsonify({'error': 'Not found'}), 404

@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    logging.error(f"Unhandled error: {str(getattr(error, 'original_exception', error))}")
    return jsonify({'error': 'An unexpected error occurred'}), 500

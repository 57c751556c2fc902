from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_RIGHT
import logging
import zipfile

LEGAL_STATEMENT = (
    "This receipt is issued as documentation for tax deduction purposes under Section 80G "
    "of the Income Tax Act. The amount stated represents the fair market value of the "
    "donated food items."
)

INDIVIDUAL_WARNING = (
    "IMPORTANT: This donation receipt is unique and can only be used for tax deduction once. "
    "This donation cannot be claimed again if it appears in a batch receipt."
)

BATCH_WARNING = (
    "IMPORTANT: This is part of a batch receipt. The donation can only be claimed once "
    "for tax deduction purposes."
)

DATE_FORMAT = '%B %d, %Y'

INFO_TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#ecf0f1')),
    ('TEXTCOLOR', (0, 0), (-1, -1), colors.black),
    ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
    ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
    ('FONTSIZE', (0, 0), (-1, -1), 11),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
    ('GRID', (0, 0), (-1, -1), 1, colors.black)
])


def receipt_filename(receipt_number):
    return f"donation_receipt_{receipt_number}.pdf"


def _info_table(rows):
    table = Table(rows, colWidths=[2*inch, 4.3*inch])
    table.setStyle(INFO_TABLE_STYLE)
    return table


def _format_date(value):
    return (value or datetime.utcnow()).strftime(DATE_FORMAT)


def generate_receipt_pdf(receipt, compress=True):
    """Render one donation receipt to PDF bytes.

    ``receipt`` is a plain dict snapshot (see ``receipt_service.build_receipt_context``)
    so this can run on a worker thread without touching the database session.
    """
    is_batch = receipt['receipt_type'] == 'batch'
    donor = receipt['donor']
    ngo = receipt['ngo']

    buffer = BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=54,
            leftMargin=54,
            topMargin=54,
            bottomMargin=36,
            title=f"Donation Receipt - {receipt['receipt_number']}",
            author=donor['name'] or 'Restaurant',
            pageCompression=1 if compress else 0,
        )

        elements = []

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'ReceiptTitle',
            parent=styles['Heading1'],
            fontSize=20,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#2c3e50')
        )
        subtitle_style = ParagraphStyle(
            'ReceiptSubtitle',
            parent=styles['Heading2'],
            fontSize=15,
            spaceAfter=12,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#34495e')
        )
        heading_style = ParagraphStyle(
            'ReceiptHeading',
            parent=styles['Heading2'],
            fontSize=13,
            spaceAfter=8,
            textColor=colors.HexColor('#34495e')
        )
        meta_style = ParagraphStyle(
            'ReceiptMeta',
            parent=styles['Normal'],
            fontSize=11,
            alignment=TA_RIGHT,
        )
        total_style = ParagraphStyle(
            'ReceiptTotal',
            parent=styles['Normal'],
            fontName='Helvetica-Bold',
            fontSize=13,
            alignment=TA_RIGHT,
            spaceBefore=6,
        )
        legal_style = ParagraphStyle(
            'ReceiptLegal',
            parent=styles['Normal'],
            fontName='Helvetica-Oblique',
            fontSize=11,
            leading=14,
            alignment=TA_JUSTIFY,
        )
        warning_style = ParagraphStyle(
            'ReceiptWarning',
            parent=styles['Normal'],
            fontName='Helvetica-Bold',
            fontSize=10,
            leading=13,
            alignment=TA_CENTER,
            textColor=colors.red,
        )

        # Title
        title = "DONATION RECEIPT (BATCH)" if is_batch else "DONATION RECEIPT"
        elements.append(Paragraph(title, title_style))
        if receipt.get('reissue'):
            elements.append(Paragraph("REISSUED COPY", warning_style))
        elements.append(Paragraph(escape(donor['name'] or 'Restaurant Name'), subtitle_style))

        # Receipt information
        meta_lines = [f"Receipt Number: {escape(receipt['receipt_number'])}"]
        if is_batch and receipt.get('batch_id'):
            meta_lines.append(f"Batch ID: {escape(receipt['batch_id'])}")
        meta_lines.append(f"Date Issued: {_format_date(receipt.get('issue_date'))}")
        meta_lines.append(f"Donation Date: {_format_date(receipt.get('donation_date'))}")
        elements.append(Paragraph("<br/>".join(meta_lines), meta_style))
        elements.append(Spacer(1, 16))

        # Donor Information
        elements.append(Paragraph("Donor Information", heading_style))
        elements.append(_info_table([
            ['Name:', donor['name'] or 'Unknown'],
            ['Phone:', donor['phone_no'] or 'N/A'],
            ['Email:', donor['email'] or 'N/A'],
        ]))
        elements.append(Spacer(1, 16))

        # Recipient Information
        elements.append(Paragraph("Recipient Organization", heading_style))
        elements.append(_info_table([
            ['Name:', ngo['name'] or 'Unknown'],
            ['Registration Number:', ngo['reg_no'] or 'N/A'],
        ]))
        elements.append(Spacer(1, 16))

        # Donation Details
        elements.append(Paragraph("Donation Details", heading_style))
        donation_rows = [
            ['Description', 'Food Serves', 'Value per Serve', 'Total Amount'],
            [
                receipt['food_name'] or 'Food Donation',
                str(receipt['serves']),
                receipt['rate_display'],
                receipt['amount_display'],
            ],
        ]
        donation_table = Table(donation_rows, colWidths=[2.3*inch, 1.2*inch, 1.4*inch, 1.4*inch], repeatRows=1)
        donation_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2c3e50')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
            ('ALIGN', (0, 0), (0, -1), 'LEFT'),
            ('ALIGN', (1, 0), (2, -1), 'CENTER'),
            ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 1, colors.black)
        ]))
        elements.append(donation_table)
        elements.append(Paragraph(f"Total Donation Value: {receipt['amount_display']}", total_style))
        elements.append(Spacer(1, 16))

        # Legal statement and duplicate warning
        elements.append(Paragraph(LEGAL_STATEMENT, legal_style))
        elements.append(Spacer(1, 10))
        elements.append(Paragraph(BATCH_WARNING if is_batch else INDIVIDUAL_WARNING, warning_style))
        elements.append(Spacer(1, 16))

        # Delivery information, only when a delivery person was recorded
        if receipt.get('delivery_person_name'):
            elements.append(Paragraph("Delivery Information", heading_style))
            elements.append(_info_table([
                ['Delivered by:', receipt['delivery_person_name']],
                ['Contact:', receipt.get('delivery_person_phone_no') or 'N/A'],
            ]))
            elements.append(Spacer(1, 16))

        elements.append(Paragraph("Thank You For Your Generous Donation!", subtitle_style))
        elements.append(Spacer(1, 40))

        # Signature lines
        signature_table = Table(
            [['_________________________', '_________________________'],
             ['Donor Signature', 'Recipient Signature']],
            colWidths=[3.15*inch, 3.15*inch]
        )
        signature_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
        ]))
        elements.append(signature_table)
        elements.append(Spacer(1, 24))

        # Footer
        footer_text = Paragraph(
            f"Issued through {escape(receipt.get('site_name') or '')}<br/>"
            f"Generated on: {datetime.now().strftime('%B %d, %Y at %I:%M %p')}",
            ParagraphStyle(
                'Footer',
                parent=styles['Normal'],
                fontSize=9,
                alignment=TA_CENTER,
                textColor=colors.HexColor('#7f8c8d')
            )
        )
        elements.append(footer_text)

        doc.build(elements)
        return buffer.getvalue()

    except Exception as e:
        logging.error(f"Error generating receipt PDF {receipt.get('receipt_number')}: {str(e)}")
        raise
    finally:
        buffer.close()


def build_zip_archive(documents):
    """Pack ``(filename, pdf_bytes)`` pairs into a single zip, returned as bytes."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as archive:
        for filename, content in documents:
            archive.writestr(filename, content)
    return buffer.getvalue()

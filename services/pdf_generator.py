"""PDF generation service for quotes and invoices using ReportLab."""

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_RIGHT, TA_CENTER
from io import BytesIO
from xml.sax.saxutils import escape
import base64
import binascii
import logging
import os
import urllib.request

from models.enums import InvoiceType
from models.invoice import Invoice
from models.organization import Organization
from models.quote import Quote

logger = logging.getLogger(__name__)

INVOICE_TITLES = {
    InvoiceType.STANDARD: "FACTURE",
    InvoiceType.DEPOSIT: "FACTURE D'ACOMPTE",
    InvoiceType.FINAL: "FACTURE DE SOLDE",
    InvoiceType.CREDIT_NOTE: "AVOIR",
    InvoiceType.RECURRING: "FACTURE",
}


def _styles():
    styles = getSampleStyleSheet()
    normal = ParagraphStyle('Body', parent=styles['Normal'], fontSize=10, leading=14)
    return {
        "title": ParagraphStyle(
            'DocTitle', parent=styles['Heading1'], fontSize=22,
            textColor=colors.HexColor('#1a1a1a'), spaceAfter=10, alignment=TA_RIGHT,
        ),
        "company": ParagraphStyle(
            'CompanyName', parent=styles['Heading2'], fontSize=16,
            textColor=colors.HexColor('#1a1a1a'), spaceAfter=2,
        ),
        "normal": normal,
        "bold": ParagraphStyle('BodyBold', parent=normal, fontName='Helvetica-Bold'),
        "right": ParagraphStyle('RightAlign', parent=normal, alignment=TA_RIGHT),
        "legal": ParagraphStyle('Legal', parent=normal, fontSize=8, textColor=colors.gray),
        "footer": ParagraphStyle('Footer', parent=normal, fontSize=8, textColor=colors.gray, alignment=TA_CENTER),
    }


def _text(value) -> str:
    return escape(value or "").replace('\n', '<br/>')


def _eur(value) -> str:
    return f"{value:,.2f} €".replace(",", " ").replace(".", ",")


def _logo(url: str):
    try:
        if url.startswith("http"):
            req = urllib.request.Request(url, headers={'User-Agent': 'Mozilla/5.0'})
            with urllib.request.urlopen(req, timeout=2) as response:
                img = Image(BytesIO(response.read()), width=1.5*cm, height=1.5*cm, kind='proportional')
        elif os.path.exists(url):
            img = Image(url, width=1.5*cm, height=1.5*cm, kind='proportional')
        else:
            return None
    except OSError as e:
        logger.warning("Logo %s could not be loaded: %s", url, e)
        return None
    img.hAlign = 'LEFT'
    return img


def _issuer_block(organization: Organization, s) -> list:
    column = []
    if organization.logo_url:
        img = _logo(organization.logo_url)
        if img:
            column.extend([img, Spacer(1, 0.3*cm)])
    column.append(Paragraph(_text(organization.legal_name or organization.name), s["company"]))
    if organization.full_address:
        column.append(Paragraph(_text(organization.full_address), s["normal"]))
    if organization.email:
        column.append(Paragraph(f"Email : {_text(organization.email)}", s["normal"]))
    if organization.phone:
        column.append(Paragraph(f"Tél : {_text(organization.phone)}", s["normal"]))
    if organization.website:
        column.append(Paragraph(f"Web : {_text(organization.website)}", s["normal"]))
    if organization.siret:
        column.append(Paragraph(f"SIRET : {organization.siret}", s["normal"]))
    if organization.tva_number and organization.is_vat_applicable:
        column.append(Paragraph(f"N° TVA : {organization.tva_number}", s["normal"]))
    return column


def _client_block(client, s) -> list:
    column = [Paragraph("<b>Client :</b>", s["right"])]
    if client:
        column.append(Paragraph(_text(client.display_name), s["right"]))
        contact = " ".join(p for p in (client.contact_first_name, client.contact_last_name) if p)
        if contact and contact != client.display_name:
            column.append(Paragraph(_text(contact), s["right"]))
        if client.full_address:
            column.append(Paragraph(_text(client.full_address), s["right"]))
        if client.contact_email:
            column.append(Paragraph(_text(client.contact_email), s["right"]))
        if client.siret:
            column.append(Paragraph(f"SIRET : {client.siret}", s["right"]))
    return column


def _lines_table(lines, s, vat_applicable: bool):
    header = ['Description', 'Qté', 'Prix unit. HT', 'TVA', 'Total HT']
    data = [header]
    commands = [
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#f3f4f6')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor('#111827')),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('TOPPADDING', (0, 0), (-1, 0), 8),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#e5e7eb')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
    ]
    for row, line in enumerate(lines, start=1):
        if line.is_section:
            data.append([Paragraph(_text(line.description), s["bold"]), '', '', '', ''])
            commands += [
                ('SPAN', (0, row), (-1, row)),
                ('BACKGROUND', (0, row), (-1, row), colors.HexColor('#fafafa')),
            ]
            continue
        description = _text(line.description)
        if getattr(line, "is_optional", False):
            description += " <i>(option)</i>"
        if line.details:
            description += f"<br/><font size=8 color='grey'>{_text(line.details)}</font>"
        data.append([
            Paragraph(description, s["normal"]),
            f"{line.quantity.normalize():f} {line.unit}",
            _eur(line.unit_price_ht),
            f"{line.tva_rate.normalize():f} %" if vat_applicable else "-",
            _eur(line.total_ht),
        ])
    table = Table(data, colWidths=[7.5*cm, 2.2*cm, 2.8*cm, 1.5*cm, 3*cm], repeatRows=1)
    table.setStyle(TableStyle(commands))
    return table


def _totals_table(document, organization: Organization):
    rows = [['Total HT :', _eur(document.subtotal_ht)]]
    if document.discount_amount:
        rows.append([f'Remise ({document.discount_percent.normalize():f} %) :', f"- {_eur(document.discount_amount)}"])
        rows.append(['Net HT :', _eur(document.net_ht)])
    if organization.is_vat_applicable:
        rows.append(['TVA :', _eur(document.total_tva)])
        rows.append(['Total TTC :', _eur(document.total_ttc)])
    else:
        rows.append(['Total à payer :', _eur(document.total_ttc)])
    table = Table(rows, colWidths=[13*cm, 4*cm])
    table.setStyle(TableStyle([
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
    ]))
    return table


def _legal_mentions(organization: Organization, s, with_payment_terms: bool) -> list:
    elements = [Spacer(1, 0.8*cm)]
    if not organization.is_vat_applicable:
        elements.append(Paragraph(_text(organization.vat_exemption_text), s["legal"]))
    if with_payment_terms:
        elements.append(Paragraph(f"Pénalités de retard : {_text(organization.late_payment_penalties)}", s["legal"]))
        elements.append(Paragraph(
            "Indemnité forfaitaire pour frais de recouvrement en cas de retard de paiement : 40 €", s["legal"]
        ))
        elements.append(Paragraph("Pas d'escompte pour paiement anticipé.", s["legal"]))
    if organization.legal_mentions:
        elements.append(Paragraph(_text(organization.legal_mentions), s["legal"]))
    return elements


def _signature_block(quote: Quote, s) -> list:
    elements = [Spacer(1, 0.8*cm), Paragraph("<b>Signature électronique :</b>", s["normal"])]
    try:
        raw = quote.signature_data.split(",", 1)[1] if "," in quote.signature_data else quote.signature_data
        img = Image(BytesIO(base64.b64decode(raw)), width=4*cm, height=1.5*cm, kind='proportional')
        img.hAlign = 'LEFT'
        elements.append(img)
    except (binascii.Error, ValueError, OSError) as e:
        logger.warning("Signature image of quote %s unreadable: %s", quote.quote_number, e)

    details = []
    if quote.signed_at:
        details.append(f"Signé le {quote.signed_at.strftime('%d/%m/%Y à %H:%M')}")
    if quote.signer_name:
        details.append(f"Par : {_text(quote.signer_name)}")
    if quote.signer_ip:
        details.append(f"IP : {quote.signer_ip}")
    elements.append(Paragraph(" - ".join(details), s["legal"]))
    return elements


def _build(organization: Organization, client, title: str, meta: list[str], body: list, s) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=2*cm, leftMargin=2*cm,
                            topMargin=2*cm, bottomMargin=2*cm, title=title)

    right_column = [Paragraph(title, s["title"])]
    right_column += [Paragraph(item, s["right"]) for item in meta]
    right_column.append(Spacer(1, 0.8*cm))
    right_column += _client_block(client, s)

    header_table = Table([[_issuer_block(organization, s), right_column]], colWidths=[9*cm, 8*cm])
    header_table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ('RIGHTPADDING', (0, 0), (-1, -1), 0),
    ]))
    elements = [header_table, Spacer(1, 1*cm)] + body

    if organization.pdf_footer_text:
        elements.append(Spacer(1, 1*cm))
        elements.append(Paragraph(_text(organization.pdf_footer_text), s["footer"]))

    doc.build(elements)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def generate_quote_pdf(quote: Quote, organization: Organization) -> bytes:
    s = _styles()
    meta = [
        f"N° {quote.quote_number}",
        f"Date : {quote.issue_date.strftime('%d/%m/%Y')}",
        f"Valable jusqu'au : {quote.validity_date.strftime('%d/%m/%Y')}",
    ]
    if quote.reference:
        meta.append(f"Réf. : {_text(quote.reference)}")

    body = []
    if quote.introduction:
        body += [Paragraph(_text(quote.introduction), s["normal"]), Spacer(1, 0.5*cm)]
    body += [_lines_table(quote.lines, s, organization.is_vat_applicable), Spacer(1, 0.5*cm)]
    body.append(_totals_table(quote, organization))
    if quote.deposit_percent:
        deposit = quote.total_ttc * quote.deposit_percent / 100
        body.append(Paragraph(
            f"Acompte de {quote.deposit_percent.normalize():f} % à la commande : {_eur(deposit)}", s["right"]
        ))
    if quote.terms:
        body += [Spacer(1, 0.8*cm), Paragraph("<b>Conditions :</b>", s["normal"]), Paragraph(_text(quote.terms), s["normal"])]
    if quote.notes:
        body += [Spacer(1, 0.5*cm), Paragraph("<b>Notes :</b>", s["normal"]), Paragraph(_text(quote.notes), s["normal"])]
    body += _legal_mentions(organization, s, with_payment_terms=False)

    if quote.signed_at and quote.signature_data:
        body += _signature_block(quote, s)
    else:
        body += [Spacer(1, 0.8*cm), Paragraph("Bon pour accord, date et signature :", s["normal"])]

    return _build(organization, quote.client, "DEVIS", meta, body, s)


def generate_invoice_pdf(invoice: Invoice, organization: Organization, parent_number: str | None = None) -> bytes:
    s = _styles()
    meta = [
        f"N° {invoice.invoice_number}",
        f"Date : {invoice.issue_date.strftime('%d/%m/%Y')}",
        f"Échéance : {invoice.due_date.strftime('%d/%m/%Y')}",
    ]
    if parent_number:
        meta.append(f"Facture d'origine : {parent_number}")
    if invoice.reference:
        meta.append(f"Réf. : {_text(invoice.reference)}")
    if invoice.paid_date:
        meta.append(f"<b>Payée le : {invoice.paid_date.strftime('%d/%m/%Y')}</b>")

    body = []
    if invoice.introduction:
        body += [Paragraph(_text(invoice.introduction), s["normal"]), Spacer(1, 0.5*cm)]
    body += [_lines_table(invoice.lines, s, organization.is_vat_applicable), Spacer(1, 0.5*cm)]
    body.append(_totals_table(invoice, organization))
    if invoice.amount_paid and invoice.type != InvoiceType.CREDIT_NOTE:
        body.append(Paragraph(f"Déjà réglé : {_eur(invoice.amount_paid)}", s["right"]))
        body.append(Paragraph(f"<b>Reste à payer : {_eur(invoice.amount_due)}</b>", s["right"]))

    if invoice.type != InvoiceType.CREDIT_NOTE and organization.iban:
        body += [Spacer(1, 0.8*cm), Paragraph("<b>Coordonnées bancaires :</b>", s["normal"])]
        if organization.account_holder:
            body.append(Paragraph(f"Titulaire : {_text(organization.account_holder)}", s["normal"]))
        if organization.bank_name:
            body.append(Paragraph(f"Banque : {_text(organization.bank_name)}", s["normal"]))
        body.append(Paragraph(f"IBAN : {organization.iban}", s["normal"]))
        if organization.bic:
            body.append(Paragraph(f"BIC : {organization.bic}", s["normal"]))

    if invoice.footer_notes:
        body += [Spacer(1, 0.5*cm), Paragraph(_text(invoice.footer_notes), s["normal"])]
    body += _legal_mentions(organization, s, with_payment_terms=invoice.type != InvoiceType.CREDIT_NOTE)

    return _build(organization, invoice.client, INVOICE_TITLES[invoice.type], meta, body, s)

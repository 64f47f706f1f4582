"""Delivery challan PDF rendering (reportlab) and merging (pypdf)."""

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from typing import Any

from pypdf import PdfReader, PdfWriter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from src.config import settings
from src.models.delivery_challan import DeliveryChallan

_LEFT = 25 * mm
_RIGHT_COLUMN = 125 * mm
_TABLE_WIDTH = 160 * mm
_COL_ITEM_CODE = 35 * mm
_COL_ITEM_NAME = 85 * mm


def _ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return f"{day}th"
    return f"{day}{ {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th') }"


def _fmt_date(d: Any) -> str:
    """Format as '27th Dec 2025'."""
    if not d:
        return ""
    if isinstance(d, (datetime, date)):
        return f"{_ordinal(d.day)} {d.strftime('%b %Y')}"
    return str(d)


def _label_value(c: canvas.Canvas, x: float, y: float, label: str, value: str) -> None:
    c.setFont("Helvetica-Bold", 11)
    c.drawString(x, y, label)
    c.setFont("Helvetica", 11)
    c.drawString(x + c.stringWidth(label, "Helvetica-Bold", 11) + 2, y, value)


def _wrap(text: str, font: str, size: float, width: float, c: canvas.Canvas) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if c.stringWidth(candidate, font, size) <= width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines or [""]


def _draw_header(c: canvas.Canvas) -> float:
    w, h = A4
    y = h - 25 * mm
    c.setFont("Helvetica-Bold", 14)
    c.drawCentredString(w / 2, y, settings.company_name)
    if settings.company_address:
        y -= 6 * mm
        c.setFont("Helvetica", 9)
        c.drawCentredString(w / 2, y, settings.company_address)

    y -= 18 * mm
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(w / 2, y, "Delivery Challan")
    title_width = c.stringWidth("Delivery Challan", "Helvetica-Bold", 18)
    c.setLineWidth(0.8)
    c.line(w / 2 - title_width / 2, y - 2, w / 2 + title_width / 2, y - 2)
    return y - 16 * mm


def _draw_item_table(c: canvas.Canvas, y: float, challan: DeliveryChallan) -> float:
    height = 28 * mm
    top = y
    c.setStrokeColor(colors.black)
    c.setLineWidth(0.6)
    c.rect(_LEFT, top - height, _TABLE_WIDTH, height)
    c.line(_LEFT, top - 10 * mm, _LEFT + _TABLE_WIDTH, top - 10 * mm)
    c.line(_LEFT + _COL_ITEM_CODE, top, _LEFT + _COL_ITEM_CODE, top - height)
    qty_x = _LEFT + _COL_ITEM_CODE + _COL_ITEM_NAME
    c.line(qty_x, top, qty_x, top - height)

    c.setFont("Helvetica-Bold", 11)
    c.drawString(_LEFT + 3 * mm, top - 7 * mm, "Item Code")
    c.drawString(_LEFT + _COL_ITEM_CODE + 3 * mm, top - 7 * mm, "Item Name")
    c.drawCentredString(qty_x + (_TABLE_WIDTH - _COL_ITEM_CODE - _COL_ITEM_NAME) / 2, top - 7 * mm, "Quantity")

    c.setFont("Helvetica", 10)
    c.drawString(_LEFT + 3 * mm, top - 16 * mm, challan.item_code or "N/A")
    name_lines = _wrap(challan.product_name, "Helvetica", 10, _COL_ITEM_NAME - 6 * mm, c)
    line_y = top - 16 * mm
    for line in name_lines[:2]:
        c.drawString(_LEFT + _COL_ITEM_CODE + 3 * mm, line_y, line)
        line_y -= 4.5 * mm
    if challan.product_serial_number:
        c.setFont("Helvetica", 8)
        c.drawString(_LEFT + _COL_ITEM_CODE + 3 * mm, line_y, f"S/N: {challan.product_serial_number}")
        c.setFont("Helvetica", 10)
    c.drawCentredString(
        qty_x + (_TABLE_WIDTH - _COL_ITEM_CODE - _COL_ITEM_NAME) / 2,
        top - 16 * mm,
        str(challan.quantity),
    )
    return top - height - 10 * mm


def render_challan_pdf(challan: DeliveryChallan) -> bytes:
    """Render one challan as a single A4 page and return the PDF bytes."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Delivery Challan {challan.challan_number}")

    y = _draw_header(c)

    _label_value(c, _LEFT, y, "Challan #:", challan.challan_number)
    _label_value(c, _RIGHT_COLUMN, y, "Date:", _fmt_date(challan.challan_date))
    y -= 7 * mm
    _label_value(c, _LEFT, y, "Order Ref:", challan.order_reference or "N/A")
    if challan.consignment_number:
        _label_value(c, _RIGHT_COLUMN, y, "CN:", challan.consignment_number)
    y -= 7 * mm
    _label_value(c, _LEFT, y, "Courier:", f"{challan.courier_name} / {challan.tracking_number}")
    _label_value(c, _RIGHT_COLUMN, y, "Dispatched:", _fmt_date(challan.dispatch_date))

    y -= 12 * mm
    _label_value(c, _LEFT, y, "Customer:", challan.customer_name.upper())
    y -= 6 * mm
    address = f"{challan.customer_address} {challan.customer_city}".upper()
    address_lines = _wrap(address, "Helvetica", 11, _TABLE_WIDTH - 20 * mm, c)
    _label_value(c, _LEFT, y, "Address:", address_lines[0])
    for line in address_lines[1:3]:
        y -= 5 * mm
        c.drawString(_LEFT + 18 * mm, y, line)
    y -= 6 * mm
    _label_value(c, _LEFT, y, "Ph:", challan.customer_phone)
    if challan.customer_cnic:
        _label_value(c, _RIGHT_COLUMN, y, "CNIC:", challan.customer_cnic)

    y = _draw_item_table(c, y - 10 * mm, challan)

    c.setFont("Helvetica", 9)
    c.drawString(_LEFT + 2 * mm, y, "•  Goods received complete and in good condition")
    y -= 5 * mm
    c.drawString(
        _LEFT + 2 * mm, y, "•  Please sign and send back a photo of this challan via email or WhatsApp"
    )
    if settings.company_phone:
        y -= 4 * mm
        c.drawString(_LEFT + 6 * mm, y, settings.company_phone)
    if challan.remarks:
        y -= 7 * mm
        _label_value(c, _LEFT, y, "Remarks:", challan.remarks[:90])

    y -= 25 * mm
    c.setFont("Helvetica", 10)
    c.drawString(_LEFT, y, "_______________________")
    c.drawString(_LEFT + 8 * mm, y - 6 * mm, "Customer Sign")
    c.drawString(_RIGHT_COLUMN, y, "_______________________")
    c.drawString(_RIGHT_COLUMN + 8 * mm, y - 6 * mm, "Company Sign")

    c.showPage()
    c.save()
    return buf.getvalue()


def merge_pdfs(documents: list[bytes]) -> bytes:
    """Concatenate every page of every document, in order, into one PDF."""
    writer = PdfWriter()
    for document in documents:
        reader = PdfReader(BytesIO(document))
        for page in reader.pages:
            writer.add_page(page)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()

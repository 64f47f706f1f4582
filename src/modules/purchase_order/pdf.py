"""Purchase order PDF rendering (reportlab)."""

from __future__ import annotations

from decimal import Decimal
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from src.config import settings
from src.models.purchase_order import PurchaseOrder
from src.models.vendor import Vendor

_LEFT = 20 * mm
_RIGHT = A4[0] - 20 * mm
_BOTTOM = 30 * mm
_ROW_HEIGHT = 7 * mm
_MAX_PRODUCT_NAME = 25

# x offsets of each table column
_COLUMNS = {
    "#": _LEFT,
    "Product": _LEFT + 10 * mm,
    "Bank P/N": _LEFT + 70 * mm,
    "Serial": _LEFT + 95 * mm,
    "Qty": _LEFT + 122 * mm,
    "Unit Price": _LEFT + 135 * mm,
    "Total": _LEFT + 157 * mm,
}


def format_amount(amount: Decimal | int | float | None) -> str:
    return f"Rs {Decimal(amount or 0):,.2f}"


def _short(name: str) -> str:
    if len(name) > _MAX_PRODUCT_NAME:
        return name[: _MAX_PRODUCT_NAME - 3] + "..."
    return name


def _draw_letterhead(c: canvas.Canvas) -> float:
    _, h = A4
    y = h - 22 * mm
    c.setFont("Helvetica-Bold", 20)
    c.drawString(_LEFT, y, settings.company_name)
    c.setFont("Helvetica", 9)
    for line in (settings.company_address, settings.company_phone):
        if line:
            y -= 5 * mm
            c.drawString(_LEFT, y, line)
    y -= 6 * mm
    c.setLineWidth(0.8)
    c.line(_LEFT, y, _RIGHT, y)

    y -= 12 * mm
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(A4[0] / 2, y, "PURCHASE ORDER")
    return y - 12 * mm


def _draw_table_header(c: canvas.Canvas, y: float) -> float:
    c.setFont("Helvetica-Bold", 9)
    for title, x in _COLUMNS.items():
        c.drawString(x, y, title)
    c.setLineWidth(0.6)
    c.line(_LEFT, y - 2.5 * mm, _RIGHT, y - 2.5 * mm)
    c.setFont("Helvetica", 9)
    return y - _ROW_HEIGHT


def render_purchase_order_pdf(po: PurchaseOrder, vendor: Vendor | None) -> bytes:
    """Render a PO with its vendor block and line items; long POs span pages."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Purchase Order {po.po_number}")

    y = _draw_letterhead(c)

    c.setFont("Helvetica-Bold", 10)
    c.drawString(_LEFT, y, "PO Number:")
    c.drawString(_LEFT, y - 5 * mm, "Date:")
    c.drawString(_LEFT, y - 10 * mm, "Status:")
    c.setFont("Helvetica", 10)
    c.drawString(_LEFT + 25 * mm, y, po.po_number)
    c.drawString(_LEFT + 25 * mm, y - 5 * mm, po.created_at.strftime("%d %b %Y") if po.created_at else "")
    c.drawString(_LEFT + 25 * mm, y - 10 * mm, po.status.value)
    if po.merged_from:
        c.drawString(_LEFT + 25 * mm, y - 15 * mm, f"Merged from {', '.join(po.merged_from)}")
        y -= 5 * mm

    y -= 22 * mm
    c.setFont("Helvetica-Bold", 11)
    c.drawString(_LEFT, y, "Vendor Information")
    c.setFont("Helvetica", 10)
    vendor_lines = [f"Name: {vendor.vendor_name if vendor else 'N/A'}"]
    if vendor is not None:
        if vendor.contact_person:
            vendor_lines.append(f"Contact: {vendor.contact_person}")
        if vendor.email:
            vendor_lines.append(f"Email: {vendor.email}")
        if vendor.phone:
            vendor_lines.append(f"Phone: {vendor.phone}")
        if vendor.address:
            vendor_lines.append(f"Address: {vendor.address[:90]}")
    for line in vendor_lines:
        y -= 5.5 * mm
        c.drawString(_LEFT, y, line)

    y = _draw_table_header(c, y - 14 * mm)
    for item in po.items:
        if y < _BOTTOM:
            c.showPage()
            y = _draw_table_header(c, A4[1] - 25 * mm)
        c.drawString(_COLUMNS["#"], y, str(item.line_number))
        c.drawString(_COLUMNS["Product"], y, _short(item.product_name))
        c.drawString(_COLUMNS["Bank P/N"], y, item.bank_product_number or "-")
        c.drawString(_COLUMNS["Serial"], y, item.serial_number or "-")
        c.drawString(_COLUMNS["Qty"], y, str(item.quantity))
        c.drawString(_COLUMNS["Unit Price"], y, format_amount(item.unit_price))
        c.drawString(_COLUMNS["Total"], y, format_amount(item.line_total))
        y -= _ROW_HEIGHT

    if y < _BOTTOM + 30 * mm:
        c.showPage()
        y = A4[1] - 25 * mm
    c.line(_COLUMNS["Unit Price"], y + 3 * mm, _RIGHT, y + 3 * mm)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(_COLUMNS["Unit Price"], y - 3 * mm, "Total Amount:")
    c.drawRightString(_RIGHT, y - 9 * mm, format_amount(po.total_amount))

    c.setFont("Helvetica", 8)
    c.drawCentredString(A4[0] / 2, _BOTTOM - 10 * mm, "This is a system-generated purchase order.")
    c.drawCentredString(
        A4[0] / 2, _BOTTOM - 14 * mm, "For any queries, please contact our procurement department."
    )

    c.showPage()
    c.save()
    return buf.getvalue()

"""
Fasercon Quote PDF Generator
============================
Typesets a QuoteDocumentRequest into an A4 quote ("Cotización").

Layout:
  - Every page: gray header band with logo + red contact bar, red footer strip
    (both carry a clickable link to the website)
  - Page 1: title, DATOS DEL CLIENTE block, description box,
    execution time / payment method boxes
  - Item table with data-dependent row heights; rows never split, column
    headers repeat on each continuation page
  - Totals box (neto sin descuento, neto, IVA, total) + disclaimer, moved
    to a fresh page when they do not fit under the last row

Fonts (Sintony) and logo are read from ASSETS_DIR on every call. Missing or
unreadable assets log a warning and fall back to Helvetica / no logo.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Optional

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..core.formatting import capitalize_words, money
from ..core.models import QuoteDocumentRequest
from ..core.paths import ASSETS_DIR, FONT_BOLD_FILE, FONT_REGULAR_FILE, LOGO_FILES, asset_path
from ..core.pricing import TAX_LABEL, QuoteTotals, line_amounts
from ..core.units import unit_label
from .layout import (
    CELL_FONT_SIZE, LINE_HEIGHT, MIN_ROW_HEIGHT, SPACER_HEIGHT, Box, RenderCursor,
    column_edges, compute_column_widths, fit_text, layout_row, wrap_text,
)

log = logging.getLogger("quote_pdf")

# ═══════════════════════════════════════════════════════════════════════════════
# COLORS
# ═══════════════════════════════════════════════════════════════════════════════
RED        = Color(0.71, 0.11, 0.11)     # brand accent: bars, table border, TOTAL
DARK       = Color(0.18, 0.18, 0.18)     # body text
HEADER_BG  = Color(0.95, 0.95, 0.95)     # header band
TITLE      = Color(0.6, 0.6, 0.7)
MUTED      = Color(0.6, 0.6, 0.6)        # section titles, block borders
BOX_BD     = Color(0.61, 0.64, 0.69)     # description / field boxes
ROW_ALT    = Color(0.97, 0.97, 0.97)
WHITE      = HexColor("#FFFFFF")

# ═══════════════════════════════════════════════════════════════════════════════
# COMPANY INFO
# ═══════════════════════════════════════════════════════════════════════════════
BRAND = {
    "name":   "Fasercon",
    "web":    "fasercon.cl",
    "url":    "https://fasercon.cl",
    "email":  "ventas@fasercon.cl",
    "phone":  "+56 9 9868 0862",
}

DISCLAIMER = (
    "Esta cotización constituye una propuesta comercial basada en la información "
    "disponible a la fecha. Los precios, condiciones y plazos indicados son válidos "
    "por 5 días y pueden estar sujetos a cambios sin previo aviso. La aceptación de "
    "esta cotización debe formalizarse por escrito para su posterior ejecución."
)

# ═══════════════════════════════════════════════════════════════════════════════
# PAGE GEOMETRY (points, A4 portrait, y from the bottom)
# ═══════════════════════════════════════════════════════════════════════════════
PAGE_W, PAGE_H = 595, 842
SIDE_MARGIN = 24
CONTENT_W = PAGE_W - 2 * SIDE_MARGIN

HEADER_H = 90
LOGO_MAX_W, LOGO_MAX_H = 180, 54
INFO_BAR_H = 20
FOOTER_H = 30
FOOTER_RESERVE = FOOTER_H + 16           # rows and closing blocks stay above this
CONTINUATION_TOP = PAGE_H - HEADER_H - 20

COLUMN_HEADER_H = 20
COLUMNS = ["Código", "Características", "Cantidad", "Unidad", "P/U", "Precio", "Desc. %", "Subtotal"]
LEAD_PERCENTS = (0.06, 0.35)                                  # of the full table width
TRAIL_PERCENTS = (0.14, 0.14, 0.18, 0.18, 0.12, 0.24)         # of what the lead columns leave
MIN_COLUMN_W = 30
CELL_PAD = 8

TOTALS_W, TOTALS_H = 260, 90
TOTALS_GAP = 12
TOTALS_ROW_H = 18
DISCLAIMER_GAP = 10
DISCLAIMER_MIN_H = 56
DISCLAIMER_SIZE = 9
DISCLAIMER_LINE_H = 12
CLOSING_BLOCK_H = TOTALS_GAP + TOTALS_H + DISCLAIMER_GAP + DISCLAIMER_MIN_H


@dataclass(frozen=True)
class Fonts:
    regular: str = "Helvetica"
    bold: str = "Helvetica-Bold"


@dataclass(frozen=True)
class RenderResult:
    pdf: bytes
    pages: int
    totals: QuoteTotals
    placements: tuple = ()


# ═══════════════════════════════════════════════════════════════════════════════
# ASSETS
# ═══════════════════════════════════════════════════════════════════════════════

def _load_fonts(assets_dir: str) -> Fonts:
    """Register Sintony from the assets dir, or fall back to Helvetica."""
    regular = asset_path(assets_dir, FONT_REGULAR_FILE)
    bold = asset_path(assets_dir, FONT_BOLD_FILE)
    if not (os.path.exists(regular) and os.path.exists(bold)):
        log.warning("Sintony fonts not found under %s, using Helvetica", assets_dir)
        return Fonts()
    try:
        pdfmetrics.registerFont(TTFont("Sintony", regular))
        pdfmetrics.registerFont(TTFont("Sintony-Bold", bold))
    except Exception as e:
        log.warning("Font load failed (%s), using Helvetica", e)
        return Fonts()
    return Fonts("Sintony", "Sintony-Bold")


def _load_logo(assets_dir: str) -> Optional[ImageReader]:
    for name in LOGO_FILES:
        path = asset_path(assets_dir, name)
        if not os.path.exists(path):
            continue
        try:
            img = ImageReader(path)
            img.getSize()
            return img
        except Exception as e:
            log.warning("Logo load failed for %s: %s", path, e)
            return None
    log.warning("No logo under %s, header drawn without it", assets_dir)
    return None


def _wrap_after_label(text: str, font: str, size: float, first_width: float,
                      width: float) -> list:
    """Wrap a paragraph whose first line shares the row with a label."""
    text = " ".join((text or "").split())
    if not text:
        return []
    first = wrap_text(text, font, size, first_width)[0]
    rest = text[len(first):].strip()
    return [first] + wrap_text(rest, font, size, width)


# ═══════════════════════════════════════════════════════════════════════════════
# DRAWING SURFACE
# ═══════════════════════════════════════════════════════════════════════════════

class QuoteCanvas:
    """reportlab canvas plus the quote's fonts, logo and column grid.

    Implements the surface protocol RenderCursor drives: new_page(),
    draw_column_headers(y) and close_table(top, bottom).
    """

    def __init__(self, c: canvas.Canvas, fonts: Fonts, logo: Optional[ImageReader] = None,
                 brand: dict = BRAND):
        self.c = c
        self.fonts = fonts
        self.logo = logo
        self.brand = brand
        self.widths = compute_column_widths(CONTENT_W, LEAD_PERCENTS, TRAIL_PERCENTS, MIN_COLUMN_W)
        self.edges = column_edges(SIDE_MARGIN, self.widths)
        self.links = 0

    # ── Primitives ────────────────────────────────────────────────────────────
    def text(self, x, y, txt, font=None, size=10, color=DARK, align="left"):
        c = self.c
        c.setFont(font or self.fonts.regular, size)
        c.setFillColor(color)
        s = str(txt) if txt is not None else ""
        if align == "right":
            c.drawRightString(x, y, s)
        elif align == "center":
            c.drawCentredString(x, y, s)
        else:
            c.drawString(x, y, s)

    def frame(self, box: Box, color, width=1.0, fill=None):
        c = self.c
        if fill is not None:
            c.setFillColor(fill)
            c.rect(box.x, box.bottom, box.width, box.height, fill=1, stroke=0)
        c.setStrokeColor(color)
        c.setLineWidth(width)
        c.rect(box.x, box.bottom, box.width, box.height, fill=0, stroke=1)

    def link(self, url, x, y, txt, font, size, pad=2):
        """URI annotation over a drawn string. Failure keeps the text, drops the link."""
        w = stringWidth(txt, font, size)
        try:
            self.c.linkURL(url, (x - pad, y - pad, x + w + pad, y + size + pad),
                           relative=0, thickness=0)
            self.links += 1
        except Exception as e:
            log.warning("Link annotation for %s failed: %s", url, e)

    def _linked_line(self, line, x, y, font, size, color, align):
        """Draw a contact line and link its web address."""
        w = stringWidth(line, font, size)
        left = x - w / 2 if align == "center" else x
        self.text(left, y, line, font, size, color)
        web = self.brand["web"]
        at = line.find(web)
        if at >= 0:
            self.link(self.brand["url"], left + stringWidth(line[:at], font, size), y,
                      web, font, size)

    # ── Header / footer (every page) ──────────────────────────────────────────
    def draw_header(self):
        c = self.c
        band_y = PAGE_H - HEADER_H
        c.setFillColor(HEADER_BG)
        c.rect(0, band_y, PAGE_W, HEADER_H, fill=1, stroke=0)

        bar_x = SIDE_MARGIN
        if self.logo is not None:
            iw, ih = self.logo.getSize()
            scale = min(LOGO_MAX_W / iw, LOGO_MAX_H / ih)
            dw, dh = iw * scale, ih * scale
            c.drawImage(self.logo, SIDE_MARGIN, band_y + (HEADER_H - dh) / 2,
                        width=dw, height=dh, mask="auto")
            bar_x = SIDE_MARGIN + dw + 18

        bar_w = PAGE_W - SIDE_MARGIN - bar_x
        bar_y = band_y + (HEADER_H - INFO_BAR_H) / 2
        c.setFillColor(RED)
        c.rect(bar_x, bar_y, bar_w, INFO_BAR_H, fill=1, stroke=0)

        b = self.brand
        line = f"Web: {b['web']}   -   Email: {b['email']}   -   Tel.: {b['phone']}"
        size = 10
        while size > 9 and stringWidth(line, self.fonts.regular, size) > bar_w - 16:
            size -= 0.5
        self._linked_line(line, bar_x + bar_w / 2, bar_y + 7, self.fonts.regular, size,
                          WHITE, "center")

    def draw_footer(self):
        c = self.c
        c.setFillColor(RED)
        c.rect(0, 0, PAGE_W, FOOTER_H, fill=1, stroke=0)
        b = self.brand
        line = f"Web: {b['web']}   -   Tel: {b['phone']}   -   Email: {b['email']}"
        self._linked_line(line, PAGE_W / 2, 11, self.fonts.regular, 9, WHITE, "center")

    # ── Surface protocol ──────────────────────────────────────────────────────
    def new_page(self) -> float:
        self.c.showPage()
        self.draw_header()
        self.draw_footer()
        return CONTINUATION_TOP

    def draw_column_headers(self, y: float) -> float:
        c = self.c
        c.setFillColor(RED)
        c.rect(SIDE_MARGIN, y - COLUMN_HEADER_H, CONTENT_W, COLUMN_HEADER_H, fill=1, stroke=0)
        for name, x, w in zip(COLUMNS, self.edges, self.widths):
            self.text(x + w / 2, y - 13, name, self.fonts.bold, CELL_FONT_SIZE, WHITE, "center")
        return y - COLUMN_HEADER_H

    def close_table(self, top: float, bottom: float):
        self.frame(Box(SIDE_MARGIN, top, CONTENT_W, top - bottom), RED)

    # ── Page 1 blocks ─────────────────────────────────────────────────────────
    def draw_intro(self, request: QuoteDocumentRequest) -> float:
        """Title, client block, description and field boxes. Returns y under them."""
        f = self.fonts
        meta = request.metadata
        contact = request.contact

        y = PAGE_H - HEADER_H - 40
        self.text(PAGE_W / 2, y, f"Cotización Nº {meta.display_number}", f.regular, 20,
                  TITLE, "center")

        y -= 30
        self.text(SIDE_MARGIN, y, "DATOS DEL CLIENTE", f.bold, 11, MUTED)

        client = Box(SIDE_MARGIN, y - 5, CONTENT_W, 70)
        self.frame(client, MUTED)
        col1 = client.x + 8
        col2 = client.x + client.width / 2 + 48
        rows = [
            (("Empresa:", contact.company), None),
            (("Dirección:", contact.address), ("Email:", contact.email)),
            (("RUT:", contact.tax_id or "-"), ("Fecha:", meta.display_date)),
            (("Contacto:", capitalize_words(contact.contact_name)), ("Teléfono:", contact.phone)),
        ]
        ty = client.top - 16
        for first, second in rows:
            first_edge = client.right - 8 if second is None else col2 - 8
            self._field(col1, ty, first[0], first[1], first_edge)
            if second is not None:
                self._field(col2, ty, second[0], second[1], client.right - 8)
            ty -= 15

        desc = self._description_box(client.bottom - 12, meta.description)

        half = (CONTENT_W - 12) / 2
        left = Box(SIDE_MARGIN, desc.bottom - 20, half, 26)
        right = Box(left.right + 12, left.top, half, 26)
        for box, label, value in (
            (left, "Tiempo de ejecución / entrega:", meta.execution_time),
            (right, "Forma de pago:", meta.payment_method),
        ):
            self.frame(box, BOX_BD)
            self._field(box.x + 8, box.bottom + 9, label, value or "-", box.right - 8, size=9)
        return left.bottom - 10

    def _field(self, x, y, label, value, right_edge, size=10):
        f = self.fonts
        self.text(x, y, label, f.bold, size)
        vx = x + stringWidth(label, f.bold, size) + 4
        self.text(vx, y, fit_text(value, f.regular, size, right_edge - vx), f.regular, size)

    def _description_box(self, top: float, description: Optional[str]) -> Box:
        f = self.fonts
        label = "Descripción:"
        label_w = stringWidth(label, f.bold, 10) + 6
        inner_w = CONTENT_W - 16

        lines = []
        for i, para in enumerate((description or "").split("\n")):
            if i == 0:
                lines.extend(_wrap_after_label(para, f.regular, 8, inner_w - label_w, inner_w) or [""])
            else:
                lines.extend(wrap_text(para, f.regular, 8, inner_w) or [""])

        height = 10 + max(0, len(lines) - 1) * 12 + 15 + 6
        box = Box(SIDE_MARGIN, top, CONTENT_W, height)
        self.frame(box, BOX_BD)

        ty = top - 16
        self.text(box.x + 8, ty, label, f.bold, 10)
        for i, line in enumerate(lines):
            x = box.x + 8 + (label_w if i == 0 else 0)
            self.text(x, ty, line, f.regular, 8)
            ty -= 12
        return box

    # ── Item rows ─────────────────────────────────────────────────────────────
    def draw_row(self, index: int, item, row, amounts, top: float):
        f = self.fonts
        c = self.c
        h = row.height
        c.setFillColor(ROW_ALT if index % 2 else WHITE)
        c.rect(SIDE_MARGIN, top - h, CONTENT_W, h, fill=1, stroke=0)

        center = top - h / 2
        mid = center - CELL_FONT_SIZE * 0.35
        e, w = self.edges, self.widths

        def cell(col, txt, align="center"):
            txt = fit_text(txt, f.regular, CELL_FONT_SIZE, w[col] - 8)
            if align == "right":
                self.text(e[col] + w[col] - 4, mid, txt, f.regular, CELL_FONT_SIZE, align="right")
            else:
                self.text(e[col] + w[col] / 2, mid, txt, f.regular, CELL_FONT_SIZE, align="center")

        cell(0, item.sku or "-")

        # Name, spacer, characteristics: vertically centred as one block
        ty = center + row.block_height / 2 - LINE_HEIGHT * 0.8
        for line in row.name_lines:
            self.text(e[1] + CELL_PAD, ty, line, f.regular, CELL_FONT_SIZE)
            ty -= LINE_HEIGHT
        if row.has_spacer:
            ty -= SPACER_HEIGHT
        for line in row.char_lines:
            self.text(e[1] + CELL_PAD, ty, line, f.regular, CELL_FONT_SIZE, color=MUTED)
            ty -= LINE_HEIGHT

        cell(2, str(item.quantity))
        cell(3, unit_label(item.unit_size, item.measurement_unit) or "-")
        cell(4, money(item.unit_price) if item.unit_price else "-", "right")
        cell(5, money(amounts.gross) if amounts.gross else "-", "right")
        cell(6, f"{item.discount_percent:g}%" if item.discount_percent else "-")
        cell(7, money(amounts.subtotal) if amounts.subtotal else "-", "right")

    # ── Closing blocks ────────────────────────────────────────────────────────
    def draw_totals(self, y: float, totals: QuoteTotals) -> Box:
        f = self.fonts
        box = Box(PAGE_W - SIDE_MARGIN - TOTALS_W, y - TOTALS_GAP, TOTALS_W, TOTALS_H)
        self.frame(box, RED, fill=WHITE)
        rows = [
            ("Total Neto Sin Descuento:", totals.gross),
            ("Total Neto:", totals.net),
            (f"{TAX_LABEL}:", totals.tax),
            ("TOTAL:", totals.grand_total),
        ]
        row_top = box.top - (TOTALS_H - len(rows) * TOTALS_ROW_H) / 2
        for i, (label, value) in enumerate(rows):
            if i % 2:
                self.c.setFillColor(ROW_ALT)
                self.c.rect(box.x + 1, row_top - TOTALS_ROW_H, box.width - 2, TOTALS_ROW_H,
                            fill=1, stroke=0)
            baseline = row_top - 13
            is_total = label == "TOTAL:"
            self.text(box.x + 10, baseline, label, f.bold, 9)
            self.text(box.right - 10, baseline, money(value), f.bold if is_total else f.regular,
                      10 if is_total else 9, RED if is_total else DARK, "right")
            row_top -= TOTALS_ROW_H
        return box

    def draw_disclaimer(self, top: float) -> Box:
        f = self.fonts
        lines = wrap_text(DISCLAIMER, f.regular, DISCLAIMER_SIZE, CONTENT_W - 16)
        height = max(DISCLAIMER_MIN_H, 16 + len(lines) * DISCLAIMER_LINE_H)
        box = Box(SIDE_MARGIN, top, CONTENT_W, height)
        self.frame(box, MUTED)
        ty = top - 8 - DISCLAIMER_SIZE
        for line in lines:
            self.text(box.x + 8, ty, line, f.regular, DISCLAIMER_SIZE)
            ty -= DISCLAIMER_LINE_H
        return box


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN PDF GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════

def render_quote(request: QuoteDocumentRequest, assets_dir: str = None) -> RenderResult:
    """Typeset the whole quote. Returns the PDF bytes with page count and totals."""
    assets_dir = assets_dir or ASSETS_DIR
    meta = request.metadata
    log.info("Generating quote %s for %s (%d items)",
             meta.display_number, request.contact.company[:40] or "?", len(request.items))

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(PAGE_W, PAGE_H))
    c.setTitle(f"Cotización {meta.display_number}")
    c.setAuthor(BRAND["name"])

    qc = QuoteCanvas(c, _load_fonts(assets_dir), _load_logo(assets_dir))
    qc.draw_header()
    qc.draw_footer()

    cursor = RenderCursor(qc, qc.draw_intro(request), FOOTER_RESERVE)
    cursor.begin_table(COLUMN_HEADER_H + MIN_ROW_HEIGHT)

    totals = QuoteTotals()
    text_w = qc.widths[1] - 2 * CELL_PAD
    for idx, item in enumerate(request.items):
        row = layout_row(item.name, item.characteristics_text, qc.fonts.regular, text_w)
        amounts = line_amounts(item)
        totals.add(amounts)
        placement = cursor.place_row(row.height)
        qc.draw_row(idx, item, row, amounts, placement.top)
        log.debug("Row %d: %d lines, h=%d, page %d", idx + 1, row.line_count,
                  row.height, placement.page_index + 1)
    cursor.finish_rows()

    y = cursor.reserve_block(CLOSING_BLOCK_H)
    box = qc.draw_totals(y, totals)
    qc.draw_disclaimer(box.bottom - DISCLAIMER_GAP)
    cursor.finish()

    c.save()
    pages = cursor.page_index + 1
    log.info("Quote %s typeset: %d page(s), total $ %s", meta.display_number, pages,
             totals.grand_total)
    return RenderResult(buf.getvalue(), pages, totals, tuple(cursor.placements))


def generate_document(request: QuoteDocumentRequest) -> bytes:
    """Complete PDF bytes for a quote request."""
    return render_quote(request).pdf


def generate_quote(quote_data, output_path: str, assets_dir: str = None) -> dict:
    """Write a quote PDF to output_path.

    quote_data is a QuoteDocumentRequest or a JSON-shaped dict:
        contact{company, company_address, email, phone, document, contact_name},
        items[{name, sku, characteristics[], qty, price, update_price?, discount,
               measurement_unit, unit_size}],
        quote_number, correlative, createdAt, description, execution_time,
        payment_method
    """
    if isinstance(quote_data, QuoteDocumentRequest):
        request = quote_data
    else:
        request = QuoteDocumentRequest.from_dict(quote_data)

    result = render_quote(request, assets_dir=assets_dir)
    out_dir = os.path.dirname(output_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "wb") as f:
        f.write(result.pdf)

    totals = result.totals
    log.info("Quote %s written: %d bytes → %s", request.metadata.display_number,
             len(result.pdf), output_path)
    return {
        "ok": True,
        "path": output_path,
        "quote_number": request.metadata.quote_number,
        "correlative": request.metadata.correlative,
        "company": request.contact.company,
        "pages": result.pages,
        "items_count": len(request.items),
        "subtotal": totals.gross,
        "discount": totals.discount,
        "net": totals.net,
        "tax": totals.tax,
        "total": totals.grand_total,
        "bytes": len(result.pdf),
    }

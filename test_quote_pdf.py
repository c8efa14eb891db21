"""
Tests for quotedoc.forms.quote_pdf: typesetting real PDFs and reading them
back with pdfplumber (text) and pypdf (pages, link annotations).

    render_quote(request) -> RenderResult(pdf, pages, totals, placements)
    generate_document(request) -> bytes
    generate_quote(quote_data, output_path) -> {ok, path, pages, total, ...}
"""
import io
import logging
import os

import pdfplumber
import pytest
from pypdf import PdfReader

from conftest import make_item
from quotedoc.core.models import Contact, LineItem, QuoteDocumentRequest
from quotedoc.forms import quote_pdf
from quotedoc.forms.layout import compute_column_widths, layout_row
from quotedoc.forms.quote_pdf import (
    BRAND, COLUMN_HEADER_H, FOOTER_RESERVE, QuoteCanvas, generate_document, generate_quote,
    render_quote,
)


def _request(body):
    return QuoteDocumentRequest.from_dict(body)


def _page_texts(pdf_bytes):
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return [page.extract_text() or "" for page in pdf.pages]


def _link_uris(pdf_bytes):
    uris = []
    for page in PdfReader(io.BytesIO(pdf_bytes)).pages:
        annots = page.get("/Annots")
        if annots is None:
            continue
        for annot in annots.get_object():
            action = annot.get_object().get("/A")
            if action is None:
                continue
            action = action.get_object()
            if "/URI" in action:
                uris.append(str(action["/URI"]))
    return uris


# ═══════════════════════════════════════════════════════════════════════════════
# Single page
# ═══════════════════════════════════════════════════════════════════════════════

class TestSinglePage:

    def test_three_items_one_page(self, sample_quote):
        result = render_quote(_request(sample_quote))
        assert result.pages == 1
        assert result.totals.net == 3000
        assert result.totals.tax == 570
        assert result.totals.grand_total == 3570
        assert len(PdfReader(io.BytesIO(result.pdf)).pages) == 1

    def test_pdf_bytes(self, sample_quote):
        pdf = generate_document(_request(sample_quote))
        assert pdf.startswith(b"%PDF")

    def test_page_one_blocks(self, sample_quote):
        text = _page_texts(generate_document(_request(sample_quote)))[0]
        assert "Cotización Nº 0042" in text
        assert "DATOS DEL CLIENTE" in text
        assert "Constructora Andes SpA" in text
        assert "76.123.456-7" in text
        assert "05-03-2026" in text
        assert "María José Soto" in text
        assert "Descripción:" in text
        assert "Suministro de perfiles" in text
        assert "10 días hábiles" in text
        assert "Transferencia 30 días" in text

    def test_table_and_totals(self, sample_quote):
        text = _page_texts(generate_document(_request(sample_quote)))[0]
        for header in ("Código", "Características", "Cantidad", "Subtotal"):
            assert header in text
        assert "PC-001" in text
        assert "Galvanizado, Acero, Rosca fina" in text
        assert "6 m" in text
        assert "Total Neto:" in text
        assert "IVA (19%):" in text
        assert "$ 3.570" in text
        assert "válidos" in text

    def test_missing_optional_fields_dash(self, sample_quote):
        for key in ("execution_time", "payment_method", "description"):
            sample_quote.pop(key)
        sample_quote["contact"].pop("document")
        text = _page_texts(generate_document(_request(sample_quote)))[0]
        assert "Forma de pago: -" in text
        assert "RUT: -" in text

    def test_placeholder_correlative_in_title(self, sample_quote):
        del sample_quote["correlative"]
        text = _page_texts(generate_document(_request(sample_quote)))[0]
        assert "Cotización Nº XXXX" in text

    def test_discount_column(self, sample_quote):
        sample_quote["items"] = [make_item(1, qty=2, price=1000, discount=12.5)]
        result = render_quote(_request(sample_quote))
        text = _page_texts(result.pdf)[0]
        assert "12.5%" in text
        assert "$ 1.750" in text
        assert result.totals.discount == 250

    def test_zero_items(self, sample_quote):
        sample_quote["items"] = []
        result = render_quote(_request(sample_quote))
        assert result.pages == 1
        assert result.totals.grand_total == 0

    def test_items_built_with_string_numbers(self):
        item = LineItem(name="Perfil", quantity=2, unit_price="1000", discount_percent="10")
        request = QuoteDocumentRequest(contact=Contact(company="Acme"), items=(item,))
        result = render_quote(request)
        text = _page_texts(result.pdf)[0]
        assert "10%" in text
        assert "$ 1.800" in text
        assert result.totals.net == 1800


# ═══════════════════════════════════════════════════════════════════════════════
# Page breaks
# ═══════════════════════════════════════════════════════════════════════════════

class TestPagination:

    def test_overflow_gives_two_pages(self, big_quote):
        result = render_quote(_request(big_quote))
        assert result.pages == 2
        assert len(PdfReader(io.BytesIO(result.pdf)).pages) == 2
        assert {p.page_index for p in result.placements} == {0, 1}

    def test_header_and_footer_on_every_page(self, big_quote):
        texts = _page_texts(generate_document(_request(big_quote)))
        assert len(texts) == 2
        for text in texts:
            assert "Email: ventas@fasercon.cl" in text          # header bar
            assert "Tel: +56 9 9868 0862" in text                # footer
            assert "Código" in text                              # column headers repeat

    def test_title_only_on_first_page(self, big_quote):
        texts = _page_texts(generate_document(_request(big_quote)))
        assert "DATOS DEL CLIENTE" in texts[0]
        assert "DATOS DEL CLIENTE" not in texts[1]

    def test_no_row_split(self, big_quote):
        result = render_quote(_request(big_quote))
        for p in result.placements:
            assert p.bottom >= FOOTER_RESERVE
        texts = _page_texts(result.pdf)
        for n in range(1, 26):
            sku = f"PC-{n:03d}"
            assert sum(sku in t for t in texts) == 1

    def test_breaks_only_when_needed(self):
        body = {"items": [make_item(n, name="Tubo " * (n % 7 + 1) * 6) for n in range(1, 61)]}
        result = render_quote(_request(body))
        placements = result.placements
        assert result.pages >= 3
        for prev, cur in zip(placements, placements[1:]):
            if cur.page_index != prev.page_index:
                assert prev.bottom - cur.height < FOOTER_RESERVE

    def test_forty_items(self, sample_quote):
        sample_quote["items"] = [make_item(n) for n in range(1, 41)]
        result = render_quote(_request(sample_quote))
        assert result.pages == 3
        assert len(result.placements) == 40
        assert {p.page_index for p in result.placements} == {0, 1, 2}
        assert len(PdfReader(io.BytesIO(result.pdf)).pages) == result.pages

    def test_forty_items_three_line_characteristics(self, sample_quote):
        chars = ["Galvanizado"] * 9
        widths = compute_column_widths(quote_pdf.CONTENT_W, quote_pdf.LEAD_PERCENTS,
                                       quote_pdf.TRAIL_PERCENTS, quote_pdf.MIN_COLUMN_W)
        row = layout_row(make_item()["name"], ", ".join(chars), "Helvetica",
                         widths[1] - 2 * quote_pdf.CELL_PAD)
        assert len(row.char_lines) == 3

        sample_quote["items"] = [make_item(n, characteristics=chars) for n in range(1, 41)]
        result = render_quote(_request(sample_quote))
        assert result.pages == 4
        assert len(result.placements) == 40
        assert {p.height for p in result.placements} == {row.height}
        for p in result.placements:
            assert p.bottom >= FOOTER_RESERVE
        for prev, cur in zip(result.placements, result.placements[1:]):
            if cur.page_index != prev.page_index:
                assert prev.bottom - cur.height < FOOTER_RESERVE

        texts = _page_texts(result.pdf)
        assert len(texts) == 4
        for text in texts:
            assert "Email: ventas@fasercon.cl" in text
            assert "Tel: +56 9 9868 0862" in text
            assert "Código" in text
        for n in range(1, 41):
            assert sum(f"PC-{n:03d}" in t for t in texts) == 1
        assert "TOTAL:" in texts[-1]

    def test_long_description_moves_table_to_next_page(self, sample_quote, monkeypatch):
        drawn = []
        original = QuoteCanvas.draw_column_headers

        def spy(self, y):
            drawn.append((self.c.getPageNumber(), y))
            return original(self, y)

        monkeypatch.setattr(QuoteCanvas, "draw_column_headers", spy)
        sample_quote["description"] = "\n".join(f"Etapa {i}: montaje" for i in range(1, 41))
        result = render_quote(_request(sample_quote))

        assert drawn
        for _, y in drawn:
            assert y - COLUMN_HEADER_H >= FOOTER_RESERVE
        assert drawn[0][0] == 2
        assert result.placements[0].page_index == 1
        texts = _page_texts(result.pdf)
        assert "Etapa 40: montaje" in texts[0]
        assert "Código" not in texts[0]
        assert "PC-001" in texts[1]

    def test_totals_independent_of_pages(self, sample_quote, big_quote):
        items = [make_item(n, qty=n, price=1234.5, discount=n % 3 * 5) for n in range(1, 26)]
        small = dict(sample_quote, items=items[:3])
        big = dict(big_quote, items=items)
        r_small = render_quote(_request(small))
        r_big = render_quote(_request(big))
        per_line = render_quote(_request(dict(sample_quote, items=items[3:])))
        assert r_big.pages > r_small.pages
        assert r_big.totals.net == r_small.totals.net + per_line.totals.net
        assert r_big.totals.gross == r_small.totals.gross + per_line.totals.gross

    def test_closing_blocks_move_to_new_page(self, sample_quote):
        # fill page 1 until the totals box no longer fits under the last row
        for n in range(1, 30):
            sample_quote["items"] = [make_item(i) for i in range(1, n + 1)]
            result = render_quote(_request(sample_quote))
            if result.pages == 2 and {p.page_index for p in result.placements} == {0}:
                text = _page_texts(result.pdf)[1]
                assert "TOTAL:" in text
                assert "PC-" not in text
                return
        pytest.fail("no item count pushed only the totals to page 2")


# ═══════════════════════════════════════════════════════════════════════════════
# Assets + links
# ═══════════════════════════════════════════════════════════════════════════════

class TestAssets:

    def test_missing_assets_fallback(self, sample_quote, temp_assets_dir, caplog):
        with caplog.at_level(logging.WARNING, logger="quote_pdf"):
            result = render_quote(_request(sample_quote))
        assert result.pages == 1
        assert "Helvetica" in caplog.text
        assert "No logo" in caplog.text

    def test_corrupt_font_falls_back(self, sample_quote, temp_assets_dir, caplog):
        fonts = os.path.join(temp_assets_dir, "fonts")
        os.makedirs(fonts)
        for name in ("Sintony-Regular.ttf", "Sintony-Bold.ttf"):
            with open(os.path.join(fonts, name), "wb") as f:
                f.write(b"not a font")
        with caplog.at_level(logging.WARNING, logger="quote_pdf"):
            pdf = generate_document(_request(sample_quote))
        assert "Font load failed" in caplog.text
        assert "Cotización Nº 0042" in _page_texts(pdf)[0]

    def test_logo_drawn(self, sample_quote, logo_file, caplog):
        with caplog.at_level(logging.WARNING, logger="quote_pdf"):
            pdf = generate_document(_request(sample_quote))
        assert "No logo" not in caplog.text
        page = PdfReader(io.BytesIO(pdf)).pages[0]
        assert page["/Resources"]["/XObject"]

    def test_corrupt_logo_skipped(self, sample_quote, temp_assets_dir, caplog):
        path = os.path.join(temp_assets_dir, "images", "logo.png")
        os.makedirs(os.path.dirname(path))
        with open(path, "wb") as f:
            f.write(b"\x89PNG broken")
        with caplog.at_level(logging.WARNING, logger="quote_pdf"):
            result = render_quote(_request(sample_quote))
        assert result.pages == 1
        assert "Logo load failed" in caplog.text

    def test_explicit_assets_dir(self, sample_quote, tmp_path):
        result = render_quote(_request(sample_quote), assets_dir=str(tmp_path))
        assert result.pdf.startswith(b"%PDF")


class TestLinks:

    def test_header_and_footer_links(self, sample_quote):
        uris = _link_uris(generate_document(_request(sample_quote)))
        assert uris == [BRAND["url"], BRAND["url"]]

    def test_links_repeat_per_page(self, big_quote):
        uris = _link_uris(generate_document(_request(big_quote)))
        assert uris.count(BRAND["url"]) == 4

    def test_link_failure_keeps_text(self, sample_quote, monkeypatch, caplog):
        def boom(*a, **kw):
            raise RuntimeError("annotation refused")
        monkeypatch.setattr(quote_pdf.canvas.Canvas, "linkURL", boom)
        with caplog.at_level(logging.WARNING, logger="quote_pdf"):
            pdf = generate_document(_request(sample_quote))
        assert _link_uris(pdf) == []
        assert "Link annotation" in caplog.text
        assert "fasercon.cl" in _page_texts(pdf)[0]


# ═══════════════════════════════════════════════════════════════════════════════
# generate_quote (file writer)
# ═══════════════════════════════════════════════════════════════════════════════

class TestGenerateQuote:

    def test_writes_file(self, sample_quote, tmp_path):
        out = str(tmp_path / "out" / "cotizacion-0042.pdf")
        r = generate_quote(sample_quote, out)
        assert r["ok"] is True
        assert os.path.exists(out)
        assert r["pages"] == 1
        assert r["correlative"] == "0042"
        assert r["net"] == 3000
        assert r["tax"] == 570
        assert r["total"] == 3570
        assert r["items_count"] == 3
        assert os.path.getsize(out) == r["bytes"]

    def test_accepts_request_object(self, sample_quote, tmp_path):
        out = str(tmp_path / "q.pdf")
        r = generate_quote(_request(sample_quote), out)
        assert r["quote_number"] == "Q-2026-0042"

    def test_bad_data_raises(self, sample_quote, tmp_path):
        sample_quote["items"][0]["price"] = -10
        with pytest.raises(ValueError):
            generate_quote(sample_quote, str(tmp_path / "bad.pdf"))
        assert not os.path.exists(tmp_path / "bad.pdf")

"""
Integration tests for the quote PDF Flask routes.
"""
import io

from pypdf import PdfReader


# ═══════════════════════════════════════════════════════════════════════════════
# PDF FILE
# ═══════════════════════════════════════════════════════════════════════════════

class TestGenerateQuotePdfFile:

    def test_returns_pdf(self, client, sample_quote):
        r = client.post("/api/generate-quote-pdf-file", json=sample_quote)
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        assert r.headers["X-CORRELATIVE"] == "0042"
        assert r.data.startswith(b"%PDF")
        assert len(PdfReader(io.BytesIO(r.data)).pages) == 1

    def test_placeholder_correlative(self, client, sample_quote):
        del sample_quote["correlative"]
        r = client.post("/api/generate-quote-pdf-file", json=sample_quote)
        assert r.headers["X-CORRELATIVE"] == "XXXX"

    def test_multi_page(self, client, big_quote):
        r = client.post("/api/generate-quote-pdf-file", json=big_quote)
        assert r.status_code == 200
        assert len(PdfReader(io.BytesIO(r.data)).pages) == 2

    def test_bad_item_400(self, client, sample_quote):
        sample_quote["items"][0]["qty"] = 0
        r = client.post("/api/generate-quote-pdf-file", json=sample_quote)
        assert r.status_code == 400
        body = r.get_json()
        assert body["ok"] is False
        assert "item 1" in body["error"]

    def test_not_json_400(self, client):
        r = client.post("/api/generate-quote-pdf-file", data="hello",
                        content_type="text/plain")
        assert r.status_code == 400
        assert r.get_json()["ok"] is False

    def test_render_failure_500(self, client, sample_quote, monkeypatch):
        import quotedoc.api.routes_quotes as routes

        def boom(*a, **kw):
            raise RuntimeError("disk full")
        monkeypatch.setattr(routes, "render_quote", boom)
        r = client.post("/api/generate-quote-pdf-file", json=sample_quote)
        assert r.status_code == 500
        assert r.get_json() == {"ok": False, "error": "Error generating PDF"}


# ═══════════════════════════════════════════════════════════════════════════════
# PDF + EMAIL HEADERS
# ═══════════════════════════════════════════════════════════════════════════════

class TestGenerateQuotePdf:

    def test_email_headers_false(self, client, sample_quote):
        r = client.post("/api/generate-quote-pdf", json=sample_quote)
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        for h in ("X-EMAIL-SENT", "X-EMAIL-CLIENT", "X-EMAIL-INTERNAL"):
            assert r.headers[h] == "false"
        assert r.headers["X-CORRELATIVE"] == "0042"

    def test_bad_discount_400(self, client, sample_quote):
        sample_quote["items"][2]["discount"] = 150
        r = client.post("/api/generate-quote-pdf", json=sample_quote)
        assert r.status_code == 400
        assert "item 3" in r.get_json()["error"]


# ═══════════════════════════════════════════════════════════════════════════════
# CORRELATIVE + HEALTH
# ═══════════════════════════════════════════════════════════════════════════════

class TestMisc:

    def test_next_correlative(self, client):
        r = client.post("/api/quotes/next-correlative",
                        json={"existing": ["0001", "0009", "XXXX"]})
        assert r.get_json() == {"ok": True, "correlative": "0010"}

    def test_next_correlative_empty(self, client):
        r = client.post("/api/quotes/next-correlative", json={})
        assert r.get_json()["correlative"] == "0001"

    def test_next_correlative_bad_input(self, client):
        r = client.post("/api/quotes/next-correlative", json={"existing": "0001"})
        assert r.status_code == 400

    def test_health(self, client):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.get_json()["ok"] is True

"""
Quote PDF routes.

Handlers stay thin: JSON body → QuoteDocumentRequest → PDF bytes. Bad quote
data answers 400, anything else 500, both as {"ok": false, "error": ...}.
"""

import logging

from flask import Blueprint, Response, jsonify, request

from ..core.models import QuoteDataError, QuoteDocumentRequest, next_correlative
from ..forms.quote_pdf import render_quote

log = logging.getLogger("routes_quotes")

bp = Blueprint("quotes", __name__)


def _build_request():
    body = request.get_json(silent=True)
    if body is None:
        raise QuoteDataError("request body must be JSON")
    return QuoteDocumentRequest.from_dict(body)


def _pdf_response(result, headers: dict) -> Response:
    return Response(result.pdf, status=200, mimetype="application/pdf", headers=headers)


def _render(route: str):
    """Shared body of the two PDF routes. Returns (request, RenderResult) or an error response."""
    try:
        quote = _build_request()
    except QuoteDataError as e:
        log.warning("%s rejected: %s", route, e)
        return None, (jsonify({"ok": False, "error": str(e)}), 400)
    try:
        return quote, render_quote(quote)
    except Exception as e:
        log.error("%s failed: %s", route, e, exc_info=True)
        return None, (jsonify({"ok": False, "error": "Error generating PDF"}), 500)


# ═══════════════════════════════════════════════════════════════════════
# PDF generation
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/generate-quote-pdf-file", methods=["POST"])
def api_generate_quote_pdf_file():
    """Preview / download: PDF bytes plus the correlative it was stamped with."""
    quote, result = _render("generate-quote-pdf-file")
    if quote is None:
        return result
    correlative = quote.metadata.correlative
    log.info("PDF file for quote %s: %d page(s), %d bytes",
             correlative, result.pages, len(result.pdf),
             extra={"correlative": correlative, "pages": result.pages})
    return _pdf_response(result, {"X-CORRELATIVE": correlative})


@bp.route("/api/generate-quote-pdf", methods=["POST"])
def api_generate_quote_pdf():
    """Same document as the file route. No mail is sent from this service."""
    quote, result = _render("generate-quote-pdf")
    if quote is None:
        return result
    return _pdf_response(result, {
        "X-CORRELATIVE": quote.metadata.correlative,
        "X-EMAIL-SENT": "false",
        "X-EMAIL-CLIENT": "false",
        "X-EMAIL-INTERNAL": "false",
    })


# ═══════════════════════════════════════════════════════════════════════
# Correlatives + health
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/quotes/next-correlative", methods=["POST"])
def api_next_correlative():
    """Next 4-digit correlative given the ones already issued: {"existing": [...]}."""
    body = request.get_json(silent=True) or {}
    existing = body.get("existing") or []
    if not isinstance(existing, list):
        return jsonify({"ok": False, "error": "existing must be a list"}), 400
    return jsonify({"ok": True, "correlative": next_correlative(existing)})


@bp.route("/api/health")
def api_health():
    return jsonify({"ok": True, "service": "quotedoc"})

"""Quote PDF generation.

Key exports:
    generate_document()  — PDF bytes for a QuoteDocumentRequest
    render_quote()       — same, plus page count and totals
    generate_quote()     — write a quote PDF from a JSON-shaped dict
"""

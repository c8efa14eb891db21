"""
quotedoc — Fasercon quote documents

Packages:
    core/   Request model, pricing, unit/money formatting, paths
    forms/  Layout primitives and the quote PDF typesetter
    api/    Flask routes that return the PDF
"""

#!/usr/bin/env python3
"""Render a sample quote to disk for eyeballing layout changes.

Usage: python scripts/preview_quote.py [--items N] [--out tmp/preview-quote.pdf] [--open]
"""
import argparse
import os
import subprocess
import sys
from datetime import datetime

# Ensure repo root is in path
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, REPO_ROOT)

from logging_config import setup_logging
from quotedoc.forms.quote_pdf import generate_quote

SAMPLE_ITEMS = [
    {"name": "TUERCA HX 2H GALV", "qty": 1, "price": 0, "sku": "SKU-123",
     "unit_size": '1/2"', "measurement_unit": "in", "characteristics": ["Galvanizado"]},
    {"name": "TORNILLO M8x20", "qty": 10, "price": 120, "sku": "SKU-456",
     "unit_size": "M8", "measurement_unit": "mm", "characteristics": ["Acero Inox"]},
    {"name": "PLANCHA ACANALADA PREPINTADA 0.5MM LARGO A MEDIDA", "qty": 24, "price": 18990,
     "discount": 5, "product": {"sku": "PL-0500"}, "unit_size": "0.85", "measurement_unit": "m",
     "characteristics": ["Color rojo colonial", "Incluye tornillería autoperforante"]},
]


def build_sample(n_items: int) -> dict:
    items = [dict(SAMPLE_ITEMS[i % len(SAMPLE_ITEMS)]) for i in range(n_items)]
    return {
        "correlative": "PREVIEW-001",
        "contact": {
            "company": "ACME S.A.",
            "company_address": "Av. Libertador Bernardo O'Higgins 1234, Santiago",
            "email": "cliente@acme.cl",
            "phone": "+56 9 1234 5678",
            "document": "12.345.678-9",
            "contact_name": "juan pérez",
        },
        "items": items,
        "createdAt": datetime.now().isoformat(),
        "description": "Cotización de prueba generada por scripts/preview_quote.py",
        "execution_time": "5 días hábiles",
        "payment_method": "Contado",
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Write a sample quote PDF")
    parser.add_argument("--items", type=int, default=len(SAMPLE_ITEMS),
                        help="number of line items (cycles the samples)")
    parser.add_argument("--out", default=os.path.join(REPO_ROOT, "tmp", "preview-quote.pdf"))
    parser.add_argument("--open", action="store_true", help="open the PDF when done")
    args = parser.parse_args(argv)

    setup_logging()
    result = generate_quote(build_sample(args.items), args.out)
    print(f"PDF guardado en: {result['path']} ({result['pages']} pág., total $ {result['total']})")

    if args.open:
        opener = "open" if sys.platform == "darwin" else "xdg-open"
        try:
            subprocess.run([opener, args.out], check=False)
        except OSError as e:
            print(f"Could not open viewer: {e}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

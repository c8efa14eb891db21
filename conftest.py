"""
Shared pytest fixtures for the quote service test suite.

Every test runs against an empty, isolated assets directory, so PDFs are
typeset with the Helvetica fallback and no logo unless a test seeds assets.
"""
import os
import pytest


# ── Temp asset/data directories (per-test isolation) ──────────────────────────

@pytest.fixture(autouse=True)
def temp_assets_dir(tmp_path, monkeypatch):
    """Redirect module asset dirs to an empty tmp directory."""
    assets = str(tmp_path / "assets")
    os.makedirs(assets, exist_ok=True)

    import quotedoc.core.paths as paths
    import quotedoc.forms.quote_pdf as quote_pdf
    monkeypatch.setattr(paths, "ASSETS_DIR", assets)
    monkeypatch.setattr(quote_pdf, "ASSETS_DIR", assets)
    monkeypatch.setattr(paths, "OUTPUT_DIR", str(tmp_path / "output"))
    return assets


@pytest.fixture
def logo_file(temp_assets_dir):
    """Seed a small PNG logo into the assets dir."""
    from PIL import Image
    path = os.path.join(temp_assets_dir, "images", "logo.png")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    Image.new("RGB", (360, 108), (180, 28, 28)).save(path)
    return path


# ── Flask test client ─────────────────────────────────────────────────────────

@pytest.fixture
def app():
    """Create Flask app configured for testing."""
    from app import create_app
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ── Sample data factories ─────────────────────────────────────────────────────

@pytest.fixture
def sample_contact():
    return {
        "company": "Constructora Andes SpA",
        "company_address": "Av. Apoquindo 4501, Las Condes",
        "email": "compras@andes.cl",
        "phone": "+56 2 2345 6789",
        "document": "76.123.456-7",
        "contact_name": "maría josé soto",
    }


def make_item(n=1, **overrides):
    item = {
        "name": f"Perfil C 100x50x15 2mm #{n}",
        "sku": f"PC-{n:03d}",
        "characteristics": ["Galvanizado", "Acero", "Rosca fina"],
        "qty": 1,
        "price": 1000,
        "discount": 0,
        "measurement_unit": "m",
        "unit_size": "6",
    }
    item.update(overrides)
    return item


@pytest.fixture
def sample_items():
    """Three plain lines, 1000 CLP each, no discount."""
    return [make_item(n) for n in (1, 2, 3)]


@pytest.fixture
def sample_quote(sample_contact, sample_items):
    """JSON body as posted by the quote screen."""
    return {
        "contact": sample_contact,
        "items": sample_items,
        "createdAt": "2026-03-05T14:30:00Z",
        "quote_number": "Q-2026-0042",
        "correlative": "0042",
        "description": "Suministro de perfiles para cubierta de galpón industrial.",
        "execution_time": "10 días hábiles",
        "payment_method": "Transferencia 30 días",
    }


@pytest.fixture
def big_quote(sample_quote):
    """Quote whose item table overflows the first page."""
    sample_quote["items"] = [make_item(n) for n in range(1, 26)]
    return sample_quote

"""
Quote request model: the immutable input of the PDF typesetter.

Route handlers receive loosely-typed JSON (snake_case and camelCase keys,
numbers as strings, SKUs nested under product/service) and shape it here.
Once built, a QuoteDocumentRequest is never mutated: items are frozen
dataclasses held in a tuple.

Numeric fields are validated on the way in. Negative or non-finite prices,
quantities below 1 and discounts outside 0–100 raise QuoteDataError instead
of flowing into the totals.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from dateutil.parser import parse as parse_date

PLACEHOLDER_CORRELATIVE = "XXXX"
_CORRELATIVE_RE = re.compile(r"^\d{4}$")


class QuoteDataError(ValueError):
    """Quote payload that cannot be typeset as given."""


def _text(value) -> str:
    if value is None:
        return ""
    return str(value)


def _opt_text(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _number(value, what: str) -> float:
    if isinstance(value, bool):
        raise QuoteDataError(f"{what} must be a number, got {value!r}")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise QuoteDataError(f"{what} must be a number, got {value!r}") from None
    if not math.isfinite(n):
        raise QuoteDataError(f"{what} must be finite, got {value!r}")
    return n


# ═══════════════════════════════════════════════════════════════════════════════
# CONTACT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Contact:
    company: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    contact_name: str = ""
    tax_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Contact":
        data = data or {}
        return cls(
            company=_text(data.get("company")),
            address=_text(data.get("company_address", data.get("address"))),
            email=_text(data.get("email")),
            phone=_text(data.get("phone")),
            contact_name=_text(data.get("contact_name")),
            tax_id=_opt_text(data.get("document", data.get("tax_id"))),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# LINE ITEMS
# ═══════════════════════════════════════════════════════════════════════════════

def _resolve_sku(data: dict) -> Optional[str]:
    """SKU for the 'Código' column.

    Order: item sku → product.sku → service.sku → product_id → product.id
    → service.id. Blank strings are skipped.
    """
    product = data.get("product") or {}
    service = data.get("service") or {}
    candidates = (
        data.get("sku"),
        product.get("sku") if isinstance(product, dict) else None,
        service.get("sku") if isinstance(service, dict) else None,
        data.get("product_id"),
        product.get("id") if isinstance(product, dict) else None,
        service.get("id") if isinstance(service, dict) else None,
    )
    for c in candidates:
        if c is not None and str(c).strip():
            return str(c).strip()
    return None


def _characteristics(value) -> tuple:
    if not value:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(str(v) for v in value if v is not None and str(v).strip())


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int = 1
    unit_price: float = 0.0
    discount_percent: float = 0.0
    sku: Optional[str] = None
    characteristics: tuple = ()
    measurement_unit: Optional[str] = None
    unit_size: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise QuoteDataError(f"quantity must be an integer, got {self.quantity!r}")
        if self.quantity < 1:
            raise QuoteDataError(f"quantity must be >= 1, got {self.quantity}")
        price = _number(self.unit_price, "unit_price")
        if price < 0:
            raise QuoteDataError(f"unit_price must be >= 0, got {price}")
        discount = _number(self.discount_percent, "discount_percent")
        if not 0 <= discount <= 100:
            raise QuoteDataError(f"discount_percent must be within 0-100, got {discount}")
        # frozen: store the parsed numbers, not "1000" as given
        object.__setattr__(self, "unit_price", price)
        object.__setattr__(self, "discount_percent", discount)

    @property
    def characteristics_text(self) -> str:
        return ", ".join(self.characteristics)

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """Build from a quote item row.

        Price precedence: a numeric ``update_price`` (price edited on the
        quote) beats the catalog ``price``; a missing price is 0.
        """
        raw_qty = data.get("qty", data.get("quantity", 1))
        qty = _number(raw_qty, "quantity")
        if not qty.is_integer():
            raise QuoteDataError(f"quantity must be an integer, got {raw_qty!r}")

        update_price = data.get("update_price")
        if isinstance(update_price, (int, float)) and not isinstance(update_price, bool):
            price = update_price
        else:
            price = data.get("price", data.get("unit_price"))
        price = 0.0 if price is None else _number(price, "unit_price")

        discount = data.get("discount", data.get("discount_percent"))
        discount = 0.0 if discount in (None, "") else _number(discount, "discount_percent")

        unit_size = data.get("unit_size")
        return cls(
            name=_text(data.get("name")),
            quantity=int(qty),
            unit_price=price,
            discount_percent=discount,
            sku=_resolve_sku(data),
            characteristics=_characteristics(data.get("characteristics")),
            measurement_unit=_opt_text(data.get("measurement_unit")),
            unit_size=None if unit_size is None else str(unit_size),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# METADATA + REQUEST
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class QuoteMetadata:
    quote_number: str = ""
    correlative: str = PLACEHOLDER_CORRELATIVE
    created_at: str = ""
    description: Optional[str] = None
    execution_time: Optional[str] = None
    payment_method: Optional[str] = None

    @property
    def display_number(self) -> str:
        return self.correlative or self.quote_number or ""

    @property
    def display_date(self) -> str:
        """dd-mm-YYYY, the es-CL short date. Unparseable dates print as given."""
        raw = self.created_at
        if not raw:
            return ""
        try:
            dt = parse_date(str(raw))
        except (ValueError, OverflowError):
            return str(raw)
        return dt.strftime("%d-%m-%Y")


@dataclass(frozen=True)
class QuoteDocumentRequest:
    contact: Contact
    items: tuple = ()
    metadata: QuoteMetadata = field(default_factory=QuoteMetadata)

    @classmethod
    def from_dict(cls, body: dict) -> "QuoteDocumentRequest":
        """Shape a JSON request body into a typesetter request.

        Raises QuoteDataError when an item carries invalid numbers; the
        message names the 1-based item position.
        """
        if not isinstance(body, dict):
            raise QuoteDataError("quote body must be an object")
        raw_items = body.get("items") or []
        if not isinstance(raw_items, (list, tuple)):
            raise QuoteDataError("items must be a list")
        items = []
        for i, raw in enumerate(raw_items, start=1):
            if not isinstance(raw, dict):
                raise QuoteDataError(f"item {i}: expected an object")
            try:
                items.append(LineItem.from_dict(raw))
            except QuoteDataError as e:
                raise QuoteDataError(f"item {i}: {e}") from None

        created = body.get("createdAt", body.get("created_at"))
        if isinstance(created, datetime):
            created = created.isoformat()
        metadata = QuoteMetadata(
            quote_number=_text(body.get("quote_number")),
            correlative=_text(body.get("correlative")).strip() or PLACEHOLDER_CORRELATIVE,
            created_at=_text(created) or datetime.now().isoformat(),
            description=_text(body.get("description")) or None,
            execution_time=_opt_text(body.get("execution_time")),
            payment_method=_opt_text(body.get("payment_method")),
        )
        return cls(contact=Contact.from_dict(body.get("contact")),
                   items=tuple(items), metadata=metadata)


def next_correlative(existing) -> str:
    """Next 4-digit correlative after the highest well-formed one.

    Values that are not exactly four digits (placeholders, legacy ids) are
    ignored. next_correlative(["0007", "XXXX", "12"]) == "0008".
    """
    highest = 0
    for value in existing or ():
        if value is None:
            continue
        s = str(value).strip()
        if _CORRELATIVE_RE.match(s):
            highest = max(highest, int(s))
    return str(highest + 1).zfill(4)

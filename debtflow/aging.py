from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from .utils import parse_date


UNCLASSIFIED = "unclassified"
BUCKET_ORDER = ["days0_30", "days31_90", "days91_180", "days181_365", "above1Year", UNCLASSIFIED]
BUCKET_LIMITS = [
    (30, "days0_30"),
    (90, "days31_90"),
    (180, "days91_180"),
    (365, "days181_365"),
]


def parse_invoice_date(value: Optional[str]) -> date | None:
    return parse_date(value)


def days_since(invoice_date: date, today: date) -> int:
    return (today - invoice_date).days


def bucket_for_days(days: int) -> str:
    for limit, bucket in BUCKET_LIMITS:
        if days <= limit:
            return bucket
    return "above1Year"


def classify_invoice_date(value: Optional[str], today: date) -> str:
    """Age band for an invoice date string; blank or unreadable dates are unclassified."""
    invoice_date = parse_invoice_date(value)
    if invoice_date is None:
        return UNCLASSIFIED
    return bucket_for_days(days_since(invoice_date, today))


def empty_aging() -> dict[str, Decimal]:
    return {k: Decimal("0") for k in BUCKET_ORDER}

from __future__ import annotations

import csv
import io
import logging

from pydantic import ValidationError

from .models import ManualEntry
from .utils import none_if_blank, parse_decimal


logger = logging.getLogger(__name__)

UPLOAD_HEADERS = [
    "Customer Code", "Customer Name", "Invoice Number", "Invoice Date",
    "Invoice Amount", "Outstanding Amount", "Region",
]


def _normalize_header(value: str | None) -> str:
    return (value or "").replace("\ufeff", "").strip()


def _required(row: dict[str, str], column: str, line: int) -> str:
    value = none_if_blank(row.get(column))
    if value is None:
        raise ValueError(f"Row {line}: {column} is required")
    return value


def parse_csv(content: bytes, year: int, month: int) -> list[ManualEntry]:
    """Read a bulk upload into manual entries for the given year and month."""
    rows = csv.DictReader(io.StringIO(content.decode("utf-8-sig")))
    parsed_headers = [_normalize_header(h) for h in (rows.fieldnames or [])]
    if parsed_headers != UPLOAD_HEADERS:
        raise ValueError("CSV headers do not match expected upload template")
    rows.fieldnames = parsed_headers

    entries: list[ManualEntry] = []
    # header is line 1
    for line, row in enumerate(rows, start=2):
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            logger.debug("Skipping blank row %s", line)
            continue

        try:
            invoice_amount = parse_decimal(row.get("Invoice Amount"))
            outstanding_amount = parse_decimal(row.get("Outstanding Amount"))
        except ValueError as exc:
            raise ValueError(f"Row {line}: {exc}") from exc

        try:
            entry = ManualEntry(
                customer_code=_required(row, "Customer Code", line),
                customer_name=_required(row, "Customer Name", line),
                invoice_number=_required(row, "Invoice Number", line),
                invoice_date=_required(row, "Invoice Date", line),
                invoice_amount=invoice_amount,
                outstanding_amount=outstanding_amount,
                region=_required(row, "Region", line),
                year=year,
                month=month,
            )
        except ValidationError as exc:
            raise ValueError(f"Row {line}: {exc.errors()[0]['msg']}") from exc
        entries.append(entry)

    return entries

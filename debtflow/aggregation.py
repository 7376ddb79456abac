from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .aging import classify_invoice_date, empty_aging, parse_invoice_date
from .models import (
    Customer,
    CustomerData,
    EnrichedInvoice,
    EnrichedInvoiceSummary,
    FinancialRecord,
    Invoice,
    InvoiceSummary,
    Remarks,
)


logger = logging.getLogger(__name__)


def filter_records(records: Iterable[FinancialRecord], year: Optional[int] = None, month: Optional[int] = None) -> list[FinancialRecord]:
    return [
        r for r in records
        if (year is None or r.year == year) and (month is None or r.month == month)
    ]


def customer_names(customers: Iterable[Customer]) -> dict[str, str]:
    return {c.customer_code: c.customer_name for c in customers}


def enrich_invoice(invoice: Invoice) -> EnrichedInvoice:
    data = invoice.model_dump()
    data["dispute"] = invoice.dispute or "No"
    data["note"] = invoice.note or ""
    return EnrichedInvoice.model_validate(data)


def _record_region(record: FinancialRecord) -> Optional[str]:
    return next((inv.region for inv in record.invoices if inv.region), None)


def build_customer_data(records: list[FinancialRecord], customers: list[Customer], today: date) -> dict[str, CustomerData]:
    """
    Aggregate financial records into one CustomerData per customer code.

    The first record of each customer seeds remarks, notes, assignment and
    region. Every invoice of every record adds its outstanding amount to its
    aging bucket and is appended to the flattened invoice list.
    """
    grouped: dict[str, list[FinancialRecord]] = defaultdict(list)
    for record in records:
        grouped[record.customer_code].append(record)

    names = customer_names(customers)
    results: dict[str, CustomerData] = {}
    for code, group in grouped.items():
        first = group[0]
        aging = empty_aging()
        invoices: list[EnrichedInvoice] = []
        for record in group:
            for invoice in record.invoices:
                aging[classify_invoice_date(invoice.invoice_date, today)] += invoice.outstanding_amount
                invoices.append(enrich_invoice(invoice))

        results[code] = CustomerData(
            customer_code=code,
            customer_name=names.get(code, code),
            region=_record_region(first),
            aging=aging,
            invoices=invoices,
            remarks=first.remarks or Remarks.NONE,
            notes=first.notes or "",
            assigned_engineer_id=first.assigned_engineer_id,
        )

    return results


def build_invoice_summaries(records: list[FinancialRecord], customers: list[Customer]) -> list[InvoiceSummary]:
    """
    Group every invoice by the calendar month of its invoice date.

    The record's stored year/month plays no part. Recovered and increased
    outstanding are not computed and stay zero.
    """
    names = customer_names(customers)
    grouped: dict[str, list[EnrichedInvoiceSummary]] = defaultdict(list)
    first_dates: dict[str, date] = {}

    for record in records:
        for invoice in record.invoices:
            invoice_date = parse_invoice_date(invoice.invoice_date)
            if invoice_date is None:
                logger.debug("Skipping invoice %s with unreadable date %r", invoice.invoice_number, invoice.invoice_date)
                continue
            period = f"{invoice_date.year:04d}-{invoice_date.month:02d}"
            first_dates.setdefault(period, invoice_date)
            enriched = enrich_invoice(invoice).model_dump()
            grouped[period].append(
                EnrichedInvoiceSummary.model_validate(
                    {**enriched, "customer_code": record.customer_code, "customer_name": names.get(record.customer_code, record.customer_code)}
                )
            )

    counts = {period: len(invoices) for period, invoices in grouped.items()}
    summaries: list[InvoiceSummary] = []
    for period in sorted(grouped, key=lambda p: first_dates[p], reverse=True):
        invoices = grouped[period]
        summaries.append(
            InvoiceSummary(
                period=period,
                current_month_invoices_count=counts[period],
                previous_months_invoices_count=sum(n for p, n in counts.items() if p < period),
                disputed_invoices_count=sum(1 for inv in invoices if inv.dispute == "Yes"),
                current_outstanding=sum((inv.outstanding_amount for inv in invoices), Decimal("0")),
                invoices=invoices,
            )
        )

    return summaries

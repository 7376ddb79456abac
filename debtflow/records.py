from __future__ import annotations

import logging
from datetime import date

from .aggregation import build_customer_data
from .errors import DuplicateInvoiceError, RecordNotFoundError
from .models import Customer, CustomerData, EntryResult, FinancialRecord, InvoicePatch, ManualEntry, RecordKey, RecordUpdate
from .store import CUSTOMERS, RECORDS, DocumentStore, Write


logger = logging.getLogger(__name__)


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def load_customers(store: DocumentStore) -> list[Customer]:
    return [Customer.model_validate(doc) for doc in store.list(CUSTOMERS)]


def load_records(store: DocumentStore) -> list[FinancialRecord]:
    return [FinancialRecord.model_validate(doc) for doc in store.list(RECORDS)]


def load_record(store: DocumentStore, key: RecordKey) -> FinancialRecord:
    doc = store.get(RECORDS, key.doc_id)
    if doc is None:
        raise RecordNotFoundError(f"No financial record for {key.customer_code} in {key.year}-{key.month:02d}")
    return FinancialRecord.model_validate(doc)


def customer_data_for(store: DocumentStore, key: RecordKey, today: date) -> CustomerData:
    """The CustomerData row a record belongs to, built from every record of that customer in the period."""
    records = [
        r for r in load_records(store)
        if r.customer_code == key.customer_code and r.year == key.year and r.month == key.month
    ]
    if not records:
        raise RecordNotFoundError(f"No financial record for {key.customer_code} in {key.year}-{key.month:02d}")
    return build_customer_data(records, load_customers(store), today)[key.customer_code]


def apply_entries(store: DocumentStore, entries: list[ManualEntry]) -> EntryResult:
    """
    Add invoice entries to their customer-period records in one batched write.

    Unseen customer codes are upserted and missing records are created on
    first entry. A repeated invoice number within a record rejects the batch.
    """
    with store.transaction():
        known_customers = {c.customer_code for c in load_customers(store)}
        records: dict[str, FinancialRecord] = {}
        created: set[str] = set()
        writes: list[Write] = []
        customers_created = 0

        for entry in entries:
            if entry.customer_code not in known_customers:
                customer = Customer(customer_code=entry.customer_code, customer_name=entry.customer_name)
                writes.append(Write(op="set", collection=CUSTOMERS, doc_id=entry.customer_code, data=_dump(customer)))
                known_customers.add(entry.customer_code)
                customers_created += 1

            doc_id = entry.key.doc_id
            record = records.get(doc_id)
            if record is None:
                doc = store.get(RECORDS, doc_id)
                if doc is None:
                    record = FinancialRecord(customer_code=entry.customer_code, year=entry.year, month=entry.month)
                    created.add(doc_id)
                else:
                    record = FinancialRecord.model_validate(doc)
                records[doc_id] = record

            if any(inv.invoice_number == entry.invoice_number for inv in record.invoices):
                logger.warning("Rejecting duplicate invoice %s for %s", entry.invoice_number, doc_id)
                raise DuplicateInvoiceError(entry.customer_code, entry.invoice_number)
            record.invoices.append(entry.to_invoice())

        for doc_id, record in records.items():
            if doc_id in created:
                writes.append(Write(op="set", collection=RECORDS, doc_id=doc_id, data=_dump(record)))
            else:
                writes.append(Write(op="update", collection=RECORDS, doc_id=doc_id, data={"invoices": [_dump(inv) for inv in record.invoices]}))

        store.commit(writes)
    logger.info("Applied %s entries (%s new records, %s new customers)", len(entries), len(created), customers_created)
    return EntryResult(entries=len(entries), records_created=len(created), customers_created=customers_created)


def update_record_fields(store: DocumentStore, key: RecordKey, update: RecordUpdate) -> FinancialRecord:
    changes = update.model_dump(mode="json", by_alias=True, exclude_unset=True)
    load_record(store, key)
    if changes:
        store.update(RECORDS, key.doc_id, changes)
        logger.info("Updated %s on %s", sorted(changes), key.doc_id)
    return load_record(store, key)


def replace_invoices(store: DocumentStore, key: RecordKey, patches: list[InvoicePatch]) -> FinancialRecord:
    """
    Rewrite a record's invoice array with dispute/note edits applied.

    The stored invoices keep their order, numbers and amounts. A patch only
    touches the fields it sets, and must name an invoice already on the record.
    """
    seen: set[str] = set()
    for patch in patches:
        if patch.invoice_number in seen:
            raise DuplicateInvoiceError(key.customer_code, patch.invoice_number)
        seen.add(patch.invoice_number)

    with store.transaction():
        record = load_record(store, key)
        positions = {inv.invoice_number: i for i, inv in enumerate(record.invoices)}
        for patch in patches:
            if patch.invoice_number not in positions:
                raise RecordNotFoundError(f"Invoice {patch.invoice_number} is not on record {key.doc_id}")
            i = positions[patch.invoice_number]
            changes = patch.model_dump(exclude_unset=True, exclude={"invoice_number"})
            record.invoices[i] = record.invoices[i].model_copy(update=changes)

        store.update(RECORDS, key.doc_id, {"invoices": [_dump(inv) for inv in record.invoices]})
        logger.info("Edited dispute/note on %s invoices of %s", len(patches), key.doc_id)
        return load_record(store, key)

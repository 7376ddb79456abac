from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from debtflow.aggregation import build_customer_data, build_invoice_summaries, filter_records  # noqa: E402
from debtflow.records import load_customers, load_records  # noqa: E402
from debtflow.store import InMemoryStore  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print customer aging and invoice summaries from a store export.")
    parser.add_argument("--file", required=True, help="Path to JSON export ({collection: {doc_id: document}})")
    parser.add_argument("--year", type=int, help="Record year to report on")
    parser.add_argument("--month", type=int, help="Record month to report on")
    parser.add_argument("--today", help="Reference date (YYYY-MM-DD), defaults to today")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    today = date.fromisoformat(args.today) if args.today else date.today()

    store = InMemoryStore.from_file(args.file)
    records = load_records(store)
    customers = load_customers(store)

    customer_data = build_customer_data(filter_records(records, args.year, args.month), customers, today)
    summaries = build_invoice_summaries(records, customers)

    result = {
        "run_date": today.isoformat(),
        "customers": [c.model_dump(mode="json", by_alias=True) for c in customer_data.values()],
        "invoice_summaries": [s.model_dump(mode="json", by_alias=True) for s in summaries],
    }
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()

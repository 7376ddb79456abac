import json
import os
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional


CONFIG_DIR = Path(__file__).parent.parent / "config"

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
]


def load_config(config_name: str) -> dict:
    """
    Load a JSON config file from the config/ directory.

    Args:
        config_name: filename (e.g., "app_config.json")
    Returns:
        Parsed JSON as dict
    """
    config_dir = Path(os.getenv("DEBTFLOW_CONFIG_DIR") or CONFIG_DIR)
    with open(config_dir / config_name) as f:
        return json.load(f)


def none_if_blank(value: Optional[str]) -> Optional[str]:
    stripped = (value or "").strip()
    return stripped or None


def parse_date(date_str: Optional[str]) -> date | None:
    """
    Parse an invoice date as stored by the upload forms.

    Accepts ISO dates, ISO timestamps (the time part is dropped) and
    MM/DD/YYYY. Returns None for blank or unparseable input.
    """
    if not date_str:
        return None

    value = date_str.strip()
    if not value:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_decimal(value: Optional[str]) -> Decimal:
    cleaned = (value or "").replace(",", "").strip()
    if not cleaned:
        raise ValueError("Amount is required")
    try:
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc

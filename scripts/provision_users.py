"""
Usage: python scripts/provision_users.py [--role Manager] [--regions North South]

Prints the predefined demo accounts (email, role, region, password) as JSON
so they can be created in the identity provider and the users collection.
Runs offline only; the service never generates these credentials.
"""

from __future__ import annotations

import argparse
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from debtflow.models import Role  # noqa: E402
from debtflow.predefined_users import generate_predefined_users, get_users_for_role  # noqa: E402
from debtflow.utils import load_config  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the predefined seed accounts.")
    parser.add_argument("--regions", nargs="*", help="Regions to provision (defaults to config/app_config.json)")
    parser.add_argument("--role", choices=[r.value for r in Role], help="Only print accounts for this role")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    app_config = load_config("app_config.json")
    regions = args.regions or app_config["regions"]

    users = generate_predefined_users(regions, app_config.get("all_regions_option", "All Regions"))
    if args.role:
        users = get_users_for_role(users, Role(args.role))

    print(json.dumps([u.model_dump(mode="json") for u in users], indent=2))


if __name__ == "__main__":
    main()

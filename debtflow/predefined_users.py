from __future__ import annotations

from typing import Optional

from .models import PredefinedUser, Role
from .utils import load_config


def _credentials_config() -> dict:
    return load_config("predefined_users.json")


def _region_slug(region: str) -> str:
    return "".join(region.lower().split())


def generate_email(role: Role, region: Optional[str] = None, config: dict | None = None) -> str | None:
    config = config or _credentials_config()
    domain = config["email_domain"]
    if role is Role.COUNTRY_MANAGER:
        return f"country-manager@{domain}"
    if role in (Role.MANAGER, Role.ENGINEER) and region:
        return f"{role.value.lower()}-{_region_slug(region)}@{domain}"
    return None


def generate_password(role: Role, region: Optional[str] = None, config: dict | None = None) -> str | None:
    config = config or _credentials_config()
    if role is Role.COUNTRY_MANAGER:
        return config["country_manager_password"]

    if not region:
        return None

    tag = config["role_tags"].get(role.value)
    if tag is None:
        return None

    prefix = region[: config["region_prefix_length"]].lower()
    return f"{prefix}{tag}{config['password_suffix']}"


def generate_predefined_users(regions: list[str], all_regions_option: str = "All Regions", config: dict | None = None) -> list[PredefinedUser]:
    """One Country Manager, then a Manager and an Engineer for every region."""
    config = config or _credentials_config()
    users = [
        PredefinedUser(
            name="Country Manager",
            email=generate_email(Role.COUNTRY_MANAGER, config=config),
            role=Role.COUNTRY_MANAGER,
            region=all_regions_option,
            password=generate_password(Role.COUNTRY_MANAGER, config=config),
        )
    ]

    for role in (Role.MANAGER, Role.ENGINEER):
        for region in regions:
            users.append(
                PredefinedUser(
                    name=f"{role.value} - {region}",
                    email=generate_email(role, region, config=config),
                    role=role,
                    region=region,
                    password=generate_password(role, region, config=config),
                )
            )

    return users


def get_users_for_role(users: list[PredefinedUser], role: Role) -> list[PredefinedUser]:
    return [u for u in users if u.role is role]

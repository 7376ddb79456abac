from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .errors import EmailInUseError, RecordNotFoundError
from .models import NewUserForm, Role, User
from .store import USERS, DocumentStore
from .utils import load_config


logger = logging.getLogger(__name__)


def split_name(name: str) -> tuple[str, str]:
    first, _, rest = name.strip().partition(" ")
    return first, rest.strip()


def generate_user_id(store: DocumentStore, prefix: str) -> str:
    return f"{prefix}{store.increment_counter(USERS):06d}"


def default_role(email: str, admin_emails: list[str]) -> Role:
    return Role.ADMIN if email.lower() in {e.lower() for e in admin_emails} else Role.GUEST


def get_user(store: DocumentStore, user_id: str) -> User:
    doc = store.get(USERS, user_id)
    if doc is None:
        raise RecordNotFoundError(f"User {user_id} not found")
    return User.model_validate(doc)


def list_users(store: DocumentStore, role: Optional[Role] = None) -> list[User]:
    docs = store.query(USERS, "role", role.value) if role is not None else store.list(USERS)
    return [User.model_validate(doc) for doc in docs]


def email_in_use(store: DocumentStore, email: str) -> bool:
    wanted = email.strip().lower()
    return any((doc.get("email") or "").strip().lower() == wanted for doc in store.list(USERS))


def create_user(store: DocumentStore, form: NewUserForm, config: dict | None = None) -> User:
    config = config or load_config("app_config.json")
    email = form.email.lower()
    first_name, last_name = split_name(form.name)

    # the email check and the write must not interleave with another create
    with store.transaction():
        if email_in_use(store, email):
            logger.warning("Rejecting user creation, email %s already registered", email)
            raise EmailInUseError(email)

        user = User(
            id=generate_user_id(store, config["user_id_prefix"]),
            first_name=first_name,
            last_name=last_name,
            email=email,
            mobile_number=form.mobile_number,
            region=form.region,
            sign_up_date=datetime.now(timezone.utc).isoformat(),
            role=form.role or default_role(email, config.get("admin_emails", [])),
        )
        store.set(USERS, user.id, user.model_dump(mode="json", by_alias=True))
    logger.info("Created user %s with role %s", user.id, user.role.value)
    return user


def set_role(store: DocumentStore, user_id: str, role: Role) -> User:
    get_user(store, user_id)
    store.update(USERS, user_id, {"role": role.value})
    logger.info("Set role %s for user %s", role.value, user_id)
    return get_user(store, user_id)

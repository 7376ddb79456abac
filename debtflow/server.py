from __future__ import annotations

import logging
import os
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from .aggregation import build_customer_data, build_invoice_summaries, filter_records
from .errors import DebtFlowError, DuplicateInvoiceError, EmailInUseError, PermissionDeniedError, RecordNotFoundError
from .ingest import parse_csv
from .models import (
    CustomerRow,
    EntryResult,
    FinancialRecord,
    InvoicePatch,
    InvoiceSummary,
    ManualEntry,
    NewUserForm,
    RecordKey,
    RecordUpdate,
    Role,
    RoleUpdate,
    User,
    ViewerContext,
)
from .permissions import can_enter_records, is_admin, require_permission, required_for_fields, resolve_permissions
from .records import apply_entries, customer_data_for, load_customers, load_records, replace_invoices, update_record_fields
from .store import DocumentStore, InMemoryStore
from .users import create_user, get_user, list_users, set_role
from .utils import load_config


logging.basicConfig(level=os.getenv("DEBTFLOW_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

APP_CONFIG = load_config("app_config.json")
VERSION = APP_CONFIG.get("version", "0.1.0")

app = FastAPI(title="DebtFlow", version=VERSION)

_STATUS_CODES = {
    RecordNotFoundError: 404,
    DuplicateInvoiceError: 409,
    EmailInUseError: 409,
    PermissionDeniedError: 403,
}


def _build_store() -> DocumentStore:
    seed_file = os.getenv("DEBTFLOW_SEED_FILE")
    if seed_file:
        return InMemoryStore.from_file(seed_file)
    return InMemoryStore()


_store = _build_store()


def get_store() -> DocumentStore:
    return _store


def get_today() -> date:
    return date.today()


def get_viewer(x_user_id: Optional[str] = Header(default=None), store: DocumentStore = Depends(get_store)) -> ViewerContext:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    try:
        user = get_user(store, x_user_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=401, detail="Unknown user")
    return ViewerContext.from_user(user)


def _require_admin(viewer: ViewerContext) -> None:
    if not is_admin(viewer):
        raise PermissionDeniedError("Admin role required")


@app.exception_handler(DebtFlowError)
async def debtflow_error_handler(request: Request, exc: DebtFlowError) -> JSONResponse:
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 400)
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}


@app.get("/me", response_model=User)
def me(viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> User:
    return get_user(store, viewer.uid)


@app.get("/customers", response_model=list[CustomerRow])
def customers(
    year: Optional[int] = None,
    month: Optional[int] = None,
    viewer: ViewerContext = Depends(get_viewer),
    store: DocumentStore = Depends(get_store),
    today: date = Depends(get_today),
) -> list[CustomerRow]:
    records = filter_records(load_records(store), year, month)
    data = build_customer_data(records, load_customers(store), today)
    return [
        CustomerRow.model_validate({**item.model_dump(), "permissions": resolve_permissions(viewer, item)})
        for item in data.values()
    ]


@app.get("/invoice-summaries", response_model=list[InvoiceSummary])
def invoice_summaries(viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> list[InvoiceSummary]:
    return build_invoice_summaries(load_records(store), load_customers(store))


@app.post("/entries", response_model=EntryResult, status_code=201)
def manual_entry(entry: ManualEntry, viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> EntryResult:
    if not can_enter_records(viewer):
        raise PermissionDeniedError("Your role cannot enter financial data")
    return apply_entries(store, [entry])


@app.post("/entries/upload", response_model=EntryResult, status_code=201)
async def upload_entries(
    file: UploadFile = File(...),
    year: int = Form(...),
    month: int = Form(...),
    viewer: ViewerContext = Depends(get_viewer),
    store: DocumentStore = Depends(get_store),
) -> EntryResult:
    if not can_enter_records(viewer):
        raise PermissionDeniedError("Your role cannot enter financial data")

    content = await file.read()
    try:
        entries = parse_csv(content, year=year, month=month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not entries:
        raise HTTPException(status_code=400, detail="Uploaded file contains no entries")
    return apply_entries(store, entries)


@app.patch("/records/{customer_code}/{year}/{month}", response_model=FinancialRecord)
def update_record(
    customer_code: str,
    year: int,
    month: int,
    update: RecordUpdate,
    viewer: ViewerContext = Depends(get_viewer),
    store: DocumentStore = Depends(get_store),
    today: date = Depends(get_today),
) -> FinancialRecord:
    key = RecordKey(customer_code=customer_code, year=year, month=month)
    permissions = resolve_permissions(viewer, customer_data_for(store, key, today))
    for name in required_for_fields(update.model_fields_set):
        require_permission(permissions, name)
    return update_record_fields(store, key, update)


@app.put("/records/{customer_code}/{year}/{month}/invoices", response_model=FinancialRecord)
def update_invoices(
    customer_code: str,
    year: int,
    month: int,
    patches: list[InvoicePatch],
    viewer: ViewerContext = Depends(get_viewer),
    store: DocumentStore = Depends(get_store),
    today: date = Depends(get_today),
) -> FinancialRecord:
    key = RecordKey(customer_code=customer_code, year=year, month=month)
    permissions = resolve_permissions(viewer, customer_data_for(store, key, today))
    require_permission(permissions, "can_edit_invoices")
    return replace_invoices(store, key, patches)


@app.get("/users", response_model=list[User])
def users(role: Optional[Role] = None, viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> list[User]:
    _require_admin(viewer)
    return list_users(store, role)


@app.post("/users", response_model=User, status_code=201)
def add_user(form: NewUserForm, viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> User:
    _require_admin(viewer)
    return create_user(store, form, APP_CONFIG)


@app.patch("/users/{user_id}/role", response_model=User)
def change_role(user_id: str, update: RoleUpdate, viewer: ViewerContext = Depends(get_viewer), store: DocumentStore = Depends(get_store)) -> User:
    _require_admin(viewer)
    return set_role(store, user_id, update.role)

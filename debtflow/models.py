from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .utils import parse_date


class Role(str, Enum):
    """Authorization tier of a user."""

    ADMIN = "admin"
    COUNTRY_MANAGER = "Country Manager"
    MANAGER = "Manager"
    ENGINEER = "Engineer"
    GUEST = "Guest"

    @classmethod
    def parse(cls, value: Role | str | None) -> Optional[Role]:
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class Remarks(str, Enum):
    PAYMENT_RECEIVED = "Payment Received"
    PARTIAL_PAYMENT_RECEIVED = "Partial Payment Received"
    UNDER_FOLLOW_UP = "Under Follow up"
    DISPUTE = "Dispute"
    NONE = "None"


class DocumentModel(BaseModel):
    """Stored documents and API payloads use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Invoice(DocumentModel):
    invoice_number: str
    invoice_date: str = ""
    invoice_amount: Decimal
    outstanding_amount: Decimal
    region: Optional[str] = None
    dispute: Optional[Literal["Yes", "No"]] = None
    note: Optional[str] = None
    status: Optional[Literal["Paid", "Pending", "Overdue"]] = None


class FinancialRecord(DocumentModel):
    customer_code: str
    year: int
    month: int = Field(ge=1, le=12)
    invoices: list[Invoice] = Field(default_factory=list)
    remarks: Optional[Remarks] = None
    notes: Optional[str] = None
    assigned_engineer_id: Optional[str] = None


class RecordKey(BaseModel):
    customer_code: str
    year: int
    month: int

    @property
    def doc_id(self) -> str:
        return f"{self.customer_code}_{self.year}_{self.month}"


class Customer(DocumentModel):
    customer_code: str
    customer_name: str


class User(DocumentModel):
    id: str
    first_name: str
    last_name: str = ""
    email: str
    mobile_number: str = ""
    region: str = ""
    sign_up_date: str
    role: Role = Role.GUEST


class ViewerContext(BaseModel):
    """The signed-in user a request acts for."""

    uid: str
    role: Optional[Role] = None
    region: str = ""

    @classmethod
    def from_user(cls, user: User) -> ViewerContext:
        return cls(uid=user.id, role=Role.parse(user.role), region=user.region)


class Permissions(DocumentModel):
    can_edit_remarks: bool = False
    can_edit_notes: bool = False
    can_edit_invoices: bool = False
    can_assign: bool = False


class EnrichedInvoice(Invoice):
    dispute: Literal["Yes", "No"] = "No"
    note: str = ""


class CustomerData(DocumentModel):
    customer_code: str
    customer_name: str
    region: Optional[str] = None
    aging: dict[str, Decimal]
    invoices: list[EnrichedInvoice] = Field(default_factory=list)
    remarks: Remarks = Remarks.NONE
    notes: str = ""
    assigned_engineer_id: Optional[str] = None


class CustomerRow(CustomerData):
    permissions: Permissions


class EnrichedInvoiceSummary(EnrichedInvoice):
    customer_code: str
    customer_name: str


class InvoiceSummary(DocumentModel):
    period: str
    current_month_invoices_count: int = 0
    previous_months_invoices_count: int = 0
    disputed_invoices_count: int = 0
    current_outstanding: Decimal = Decimal("0")
    recovered_outstanding: Decimal = Decimal("0")
    increased_outstanding: Decimal = Decimal("0")
    invoices: list[EnrichedInvoiceSummary] = Field(default_factory=list)


class ManualEntry(DocumentModel):
    """One invoice line entered by hand or read from a bulk upload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    customer_code: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    invoice_number: str = Field(min_length=1)
    invoice_amount: Decimal
    invoice_date: str = Field(min_length=1)
    outstanding_amount: Decimal
    region: str = Field(min_length=1)
    year: int
    month: int = Field(ge=1, le=12)

    @field_validator("invoice_date")
    @classmethod
    def _invoice_date_parses(cls, value: str) -> str:
        if parse_date(value) is None:
            raise ValueError(f"Invoice date {value!r} is not a valid date")
        return value

    @property
    def key(self) -> RecordKey:
        return RecordKey(customer_code=self.customer_code, year=self.year, month=self.month)

    def to_invoice(self) -> Invoice:
        return Invoice(
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            invoice_amount=self.invoice_amount,
            outstanding_amount=self.outstanding_amount,
            region=self.region,
        )


class InvoicePatch(DocumentModel):
    """Dispute/note edit for one stored invoice. Every other invoice field is fixed once entered."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    invoice_number: str = Field(min_length=1)
    dispute: Optional[Literal["Yes", "No"]] = None
    note: Optional[str] = None


class RecordUpdate(DocumentModel):
    remarks: Optional[Remarks] = None
    notes: Optional[str] = None
    assigned_engineer_id: Optional[str] = None


class NewUserForm(DocumentModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=2)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    mobile_number: str = Field(min_length=10)
    region: str = Field(min_length=2)
    role: Optional[Role] = None


class RoleUpdate(DocumentModel):
    role: Role


class PredefinedUser(BaseModel):
    name: str
    email: str
    role: Role
    region: Optional[str] = None
    password: Optional[str] = None


class EntryResult(DocumentModel):
    entries: int
    records_created: int
    customers_created: int

"""Pydantic schemas for CRM records exchanged with the external REST API.

Defines the structured types for every page of the desk:
- Enums: DealStatus, ContactTag, TaskStatus, RelationKind
- Records read from the API: Company, Contact, Deal, Invoice, Task
- Write payloads validated client-side: CompanyCreate, ContactCreate,
  DealCreate, InvoiceCreate, TaskWrite
- Task relations: CompanyRelation | ContactRelation | DealRelation

The API identifies records with ``_id`` and may return references either as a
bare id or populated (``{"_id": ..., "name": ...}``). Read models accept both
and keep the id plus the denormalized display label. Write payloads serialize
back to the wire shape with ``to_wire()``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ── Enums ───────────────────────────────────────────────────────────────────


class DealStatus(str, Enum):
    """Board column a deal belongs to. Column order follows declaration order."""

    OPEN = "Open"
    WON = "Won"
    LOST = "Lost"


class ContactTag(str, Enum):
    """Lead temperature of a contact."""

    COLD = "Cold"
    WARM = "Warm"
    HOT = "Hot"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class RelationKind(str, Enum):
    """Collections a task can be related to."""

    COMPANY = "Company"
    CONTACT = "Contact"
    DEAL = "Deal"


# ── Helpers ─────────────────────────────────────────────────────────────────


def parse_amount(value: Any) -> Any:
    """Coerce a currency amount the way the browser pages did (``parseInt``).

    Strings and floats are truncated to whole currency units. Values that
    cannot be parsed are returned untouched so the field validator rejects them.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return value
        try:
            return int(Decimal(text))
        except (InvalidOperation, ValueError, OverflowError):
            return value
    return value


def split_reference(value: Any) -> tuple[str | None, str | None]:
    """Split a reference into ``(id, display_label)``.

    Accepts a bare id, a populated record dict, or an empty value.
    """
    if value is None or value == "":
        return None, None
    if isinstance(value, dict):
        ref_id = value.get("_id") or value.get("id")
        label = value.get("name") or value.get("title")
        return (str(ref_id) if ref_id else None), label
    return str(value), None


class _WireModel(BaseModel):
    """Base for records read from the API (``_id`` on the wire, ``id`` in Python)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class _WritePayload(BaseModel):
    """Base for payloads validated before any request is sent."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# ── Companies ───────────────────────────────────────────────────────────────


class Company(_WireModel):
    name: str = ""
    industry: str = ""
    address: str = ""
    website: str = ""


class CompanyCreate(_WritePayload):
    """Schema for creating a company."""

    name: str = Field(min_length=1)
    industry: str = ""
    address: str = ""
    website: str = ""

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


# ── Contacts ────────────────────────────────────────────────────────────────


class Contact(_WireModel):
    """Contact record; ``company`` is resolved server-side to a display name."""

    name: str = ""
    email: str = ""
    phone: str = ""
    tag: ContactTag | None = None
    company: str | None = None
    company_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_company(cls, data: Any) -> Any:
        if isinstance(data, dict) and "company" in data:
            data = dict(data)
            company_id, company_name = split_reference(data["company"])
            data["company"] = company_id
            data.setdefault("company_name", company_name)
        return data

    @field_validator("tag", mode="before")
    @classmethod
    def _empty_tag(cls, value: Any) -> Any:
        return value or None


class ContactCreate(_WritePayload):
    """Schema for creating a contact. Only the name is required."""

    name: str = Field(min_length=1)
    email: str = ""
    phone: str = ""
    tag: ContactTag | None = None
    company: str | None = None

    @field_validator("tag", "company", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return value or None

    def to_wire(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["tag"] = payload["tag"] or ""
        payload["company"] = payload["company"] or ""
        return payload


# ── Deals ───────────────────────────────────────────────────────────────────


class Deal(_WireModel):
    """A sales opportunity shown on the board.

    Attributes:
        id: Opaque identifier, stable across updates.
        title: Deal title.
        amount: Non-negative whole currency units.
        status: Board column (always exactly one of DealStatus).
        company: Company id, if linked.
        company_name: Denormalized company name for display.
        contact: Contact id, if linked.
        contact_name: Denormalized contact name for display.
    """

    title: str = ""
    amount: int = Field(default=0, ge=0)
    status: DealStatus = DealStatus.OPEN
    company: str | None = None
    company_name: str | None = None
    contact: str | None = None
    contact_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_references(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field in ("company", "contact"):
            if field in data:
                ref_id, label = split_reference(data[field])
                data[field] = ref_id
                data.setdefault(f"{field}_name", label)
        return data

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return parse_amount(value)

    def to_wire(self) -> dict[str, Any]:
        """Full record in the API's shape, as sent on update."""
        return {
            "_id": self.id,
            "title": self.title,
            "amount": self.amount,
            "status": self.status.value,
            "company": self.company or "",
            "contact": self.contact or "",
        }


class DealCreate(_WritePayload):
    """Schema for the Add Deal form.

    ``title`` must be non-empty and ``amount`` a parseable non-negative
    number. New deals always start in the Open column.
    """

    title: str = Field(min_length=1)
    amount: int = Field(ge=0)
    company: str | None = None
    contact: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return parse_amount(value)

    @field_validator("company", "contact", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return value or None

    def to_wire(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "amount": self.amount,
            "status": DealStatus.OPEN.value,
            "company": self.company or "",
            "contact": self.contact or "",
        }


# ── Invoices ────────────────────────────────────────────────────────────────


class Invoice(_WireModel):
    invoice_number: str | None = Field(default=None, alias="invoiceNumber")
    amount: int = 0
    deal: str | None = None
    deal_title: str | None = None
    date: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_deal(cls, data: Any) -> Any:
        if isinstance(data, dict) and "deal" in data:
            data = dict(data)
            deal_id, deal_title = split_reference(data["deal"])
            data["deal"] = deal_id
            data.setdefault("deal_title", deal_title)
        return data

    @field_validator("invoice_number", mode="before")
    @classmethod
    def _stringify_number(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return parse_amount(value)


class InvoiceCreate(_WritePayload):
    """Schema for creating an invoice against a deal.

    The amount must be strictly positive; zero and negative amounts are
    rejected before anything is sent.
    """

    deal: str = Field(min_length=1)
    amount: int = Field(gt=0)
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return parse_amount(value)

    def to_wire(self) -> dict[str, Any]:
        return {
            "deal": self.deal,
            "amount": self.amount,
            "date": self.date.isoformat(),
        }


# ── Tasks ───────────────────────────────────────────────────────────────────


class CompanyRelation(BaseModel):
    kind: Literal["Company"] = "Company"
    id: str


class ContactRelation(BaseModel):
    kind: Literal["Contact"] = "Contact"
    id: str


class DealRelation(BaseModel):
    kind: Literal["Deal"] = "Deal"
    id: str


TaskRelation = Annotated[
    Union[CompanyRelation, ContactRelation, DealRelation],
    Field(discriminator="kind"),
]


def relation_from_wire(relation_model: Any, related_to: Any) -> dict[str, str] | None:
    """Build the tagged relation from the API's ``(relationModel, relatedTo)`` pair."""
    related_id, _ = split_reference(related_to)
    if not relation_model or related_id is None:
        return None
    return {"kind": relation_model, "id": related_id}


def _date_only(value: Any) -> Any:
    """Trim ISO timestamps (``2025-03-01T00:00:00.000Z``) to their date part."""
    if value == "":
        return None
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    if isinstance(value, datetime):
        return value.date()
    return value


class Task(_WireModel):
    """Task record with a polymorphic relation to a company, contact or deal."""

    title: str = ""
    description: str = ""
    due_date: date | None = Field(default=None, alias="dueDate")
    status: TaskStatus = TaskStatus.PENDING
    related: TaskRelation | None = None

    @model_validator(mode="before")
    @classmethod
    def _relation_from_pair(cls, data: Any) -> Any:
        if isinstance(data, dict) and "related" not in data:
            data = dict(data)
            data["related"] = relation_from_wire(
                data.pop("relationModel", None), data.pop("relatedTo", None)
            )
        return data

    @field_validator("due_date", mode="before")
    @classmethod
    def _trim_due_date(cls, value: Any) -> Any:
        return _date_only(value)


class TaskWrite(_WritePayload):
    """Payload shared by task create and update."""

    title: str = Field(min_length=1)
    description: str = ""
    due_date: date | None = Field(default=None, alias="dueDate")
    status: TaskStatus = TaskStatus.PENDING
    related: TaskRelation | None = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _trim_due_date(cls, value: Any) -> Any:
        return _date_only(value)

    def to_wire(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat() if self.due_date else "",
            "status": self.status.value,
            "relationModel": self.related.kind if self.related else RelationKind.COMPANY.value,
            "relatedTo": self.related.id if self.related else "",
        }

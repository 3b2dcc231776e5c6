"""Tests for CRM record schemas and form validation."""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from src.crmdesk.crm.schemas import (
    CompanyCreate,
    CompanyRelation,
    Contact,
    ContactCreate,
    Deal,
    DealCreate,
    DealRelation,
    DealStatus,
    InvoiceCreate,
    Task,
    TaskRelation,
    TaskWrite,
    parse_amount,
    split_reference,
)


class TestParseAmount:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("5000", 5000),
            (" 42 ", 42),
            ("12.9", 12),
            (7.8, 7),
            (300, 300),
        ],
    )
    def test_truncates_to_whole_units(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "12abc", None])
    def test_unparseable_values_pass_through(self, raw):
        assert parse_amount(raw) == raw


class TestSplitReference:

    def test_populated(self):
        assert split_reference({"_id": "C1", "name": "Acme"}) == ("C1", "Acme")

    def test_populated_deal_uses_title(self):
        assert split_reference({"_id": "D1", "title": "Renewal"}) == ("D1", "Renewal")

    def test_bare_id(self):
        assert split_reference("C1") == ("C1", None)

    @pytest.mark.parametrize("raw", [None, ""])
    def test_empty(self, raw):
        assert split_reference(raw) == (None, None)


class TestDeal:

    def test_wire_round_trip_keeps_id(self):
        deal = Deal.model_validate(
            {"_id": "D1", "title": "Acme", "amount": 5000, "status": "Open", "company": {"_id": "C1", "name": "Acme"}}
        )

        wire = deal.to_wire()

        assert wire == {
            "_id": "D1",
            "title": "Acme",
            "amount": 5000,
            "status": "Open",
            "company": "C1",
            "contact": "",
        }

    def test_missing_amount_defaults_to_zero(self):
        assert Deal.model_validate({"_id": "D1", "title": "x", "amount": None}).amount == 0

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            Deal.model_validate({"_id": "D1", "status": "Pending"})

    def test_numeric_id_is_stringified(self):
        assert Deal.model_validate({"_id": 17}).id == "17"


class TestDealCreate:

    def test_new_deal_starts_open(self):
        payload = DealCreate.model_validate({"title": " Renewal ", "amount": "1500", "company": ""})

        assert payload.to_wire() == {
            "title": "Renewal",
            "amount": 1500,
            "status": DealStatus.OPEN.value,
            "company": "",
            "contact": "",
        }

    @pytest.mark.parametrize(
        "fields",
        [
            {"title": "", "amount": 1},
            {"title": "x", "amount": -1},
            {"title": "x", "amount": "NaNish"},
            {"amount": 1},
        ],
    )
    def test_invalid(self, fields):
        with pytest.raises(ValidationError):
            DealCreate.model_validate(fields)


class TestInvoiceCreate:

    @pytest.mark.parametrize("amount", [0, -10, "0"])
    def test_rejects_non_positive_amount(self, amount):
        with pytest.raises(ValidationError):
            InvoiceCreate.model_validate({"deal": "D1", "amount": amount})

    def test_requires_deal(self):
        with pytest.raises(ValidationError):
            InvoiceCreate.model_validate({"deal": "", "amount": 10})

    def test_wire_has_iso_date(self):
        payload = InvoiceCreate.model_validate({"deal": "D1", "amount": "250"})

        wire = payload.to_wire()

        assert wire["amount"] == 250
        assert datetime.fromisoformat(wire["date"]).tzinfo is not None


class TestCompaniesAndContacts:

    def test_company_name_required(self):
        with pytest.raises(ValidationError):
            CompanyCreate.model_validate({"name": "  "})

    def test_contact_wire_blanks(self):
        wire = ContactCreate.model_validate({"name": "Sam", "tag": "", "company": ""}).to_wire()

        assert wire["tag"] == ""
        assert wire["company"] == ""

    def test_contact_populated_company(self):
        contact = Contact.model_validate(
            {"_id": "P1", "name": "Sam", "tag": "Hot", "company": {"_id": "C1", "name": "Acme"}}
        )

        assert contact.company == "C1"
        assert contact.company_name == "Acme"

    def test_contact_empty_tag(self):
        assert Contact.model_validate({"_id": "P1", "tag": ""}).tag is None


class TestTaskRelation:

    def test_discriminates_on_kind(self):
        adapter = TypeAdapter(TaskRelation)

        assert isinstance(adapter.validate_python({"kind": "Company", "id": "C1"}), CompanyRelation)
        assert isinstance(adapter.validate_python({"kind": "Deal", "id": "D1"}), DealRelation)

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValidationError):
            TypeAdapter(TaskRelation).validate_python({"kind": "Invoice", "id": "I1"})

    def test_task_from_wire_pair(self):
        task = Task.model_validate(
            {"_id": "T1", "title": "Follow up", "relationModel": "Contact", "relatedTo": {"_id": "P1", "name": "Sam"}}
        )

        assert task.related.kind == "Contact"
        assert task.related.id == "P1"

    def test_task_without_relation(self):
        task = Task.model_validate({"_id": "T1", "title": "Loose end", "relationModel": "Company", "relatedTo": ""})

        assert task.related is None

    def test_write_payload_to_wire(self):
        payload = TaskWrite.model_validate(
            {
                "title": "Send proposal",
                "dueDate": "2025-04-02T10:00:00.000Z",
                "status": "Completed",
                "related": {"kind": "Deal", "id": "D1"},
            }
        )

        assert payload.to_wire() == {
            "title": "Send proposal",
            "description": "",
            "dueDate": "2025-04-02",
            "status": "Completed",
            "relationModel": "Deal",
            "relatedTo": "D1",
        }

    def test_write_payload_requires_title(self):
        with pytest.raises(ValidationError):
            TaskWrite.model_validate({"title": ""})

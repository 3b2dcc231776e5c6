"""Tests for the CRM REST API client.

Verifies request shapes, reference population handling, invoice downloads,
and that HTTP errors, transport failures, undecodable bodies and invalid
list records all surface as CRMApiError.
"""

from __future__ import annotations

import httpx
import pytest

from src.crmdesk.client.api import CRMApiClient, CRMApiError
from src.crmdesk.crm.schemas import DealStatus, RelationKind


class TestReads:

    async def test_list_deals_with_populated_references(self, api_client, fake_api):
        fake_api.seed("companies", _id="C1", name="Acme")
        fake_api.seed("contacts", _id="P1", name="Priya Shah")
        fake_api.seed_deal("D1", "Acme renewal", amount=5000, company="C1", contact="P1")

        deals = await api_client.list_deals()

        assert len(deals) == 1
        deal = deals[0]
        assert deal.id == "D1"
        assert deal.status == DealStatus.OPEN
        assert (deal.company, deal.company_name) == ("C1", "Acme")
        assert (deal.contact, deal.contact_name) == ("P1", "Priya Shah")

    async def test_list_deals_with_bare_references(self, api_client, fake_api):
        fake_api.seed_deal("D1", "Orphan", amount="700", company="C-gone")

        deal = (await api_client.list_deals())[0]

        assert deal.company == "C-gone"
        assert deal.company_name is None
        assert deal.amount == 700

    async def test_list_tasks_builds_relation(self, api_client, fake_api):
        fake_api.seed(
            "tasks",
            _id="T1",
            title="Call back",
            dueDate="2025-03-01T00:00:00.000Z",
            status="Pending",
            relationModel="Deal",
            relatedTo="D1",
        )

        task = (await api_client.list_tasks())[0]

        assert task.related.kind == RelationKind.DEAL.value
        assert task.related.id == "D1"
        assert task.due_date.isoformat() == "2025-03-01"

    async def test_invoice_number_is_text(self, api_client, fake_api):
        fake_api.seed_deal("D1", "Acme renewal")
        fake_api.seed("invoices", _id="I1", invoiceNumber=1001, amount=300, deal="D1")

        invoice = (await api_client.list_invoices())[0]

        assert invoice.invoice_number == "1001"
        assert invoice.deal == "D1"
        assert invoice.deal_title == "Acme renewal"


class TestWrites:

    async def test_update_deal_puts_full_record(self, api_client, fake_api):
        fake_api.seed_deal("D1", "Acme renewal", amount=5000)
        payload = {
            "_id": "D1",
            "title": "Acme renewal",
            "amount": 5000,
            "status": "Won",
            "company": "",
            "contact": "",
        }

        deal = await api_client.update_deal("D1", payload)

        put = fake_api.sent("PUT", "/deals/D1")[0]
        assert fake_api.body(put) == payload
        assert deal.status == DealStatus.WON

    async def test_update_deal_without_body_returns_none(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(204))
        client = CRMApiClient("http://crm.test/api", transport=transport)

        assert await client.update_deal("D1", {"status": "Won"}) is None

    async def test_create_returns_created_record(self, api_client, fake_api):
        created = await api_client.create_company({"name": "Initech"})

        assert created["name"] == "Initech"
        assert created["_id"] in fake_api.collections["companies"]

    async def test_delete(self, api_client, fake_api):
        fake_api.seed("contacts", _id="P1", name="Sam")

        await api_client.delete_contact("P1")

        assert fake_api.collections["contacts"] == {}

    async def test_download_invoice_filename_from_header(self, api_client, fake_api):
        fake_api.seed("invoices", _id="I1", invoiceNumber=1002, amount=10)

        content, filename = await api_client.download_invoice("I1")

        assert content.startswith(b"%PDF")
        assert filename == "invoice-1002.pdf"

    async def test_download_invoice_default_filename(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"%PDF"))
        client = CRMApiClient("http://crm.test/api", transport=transport)

        _, filename = await client.download_invoice("I9")

        assert filename == "invoice-I9.pdf"


class TestErrors:

    async def test_http_error_maps_to_crm_api_error(self, api_client, fake_api):
        fake_api.seed_deal("D1", "Acme renewal")
        fake_api.fail("PUT", "/deals/D1", 500)

        with pytest.raises(CRMApiError) as exc_info:
            await api_client.update_deal("D1", {"status": "Won"})

        assert exc_info.value.status_code == 500
        assert exc_info.value.resource == "/deals/D1"
        assert exc_info.value.detail == "Server error"

    async def test_transport_error_maps_to_crm_api_error(self, api_client, fake_api):
        fake_api.disconnect("GET", "/companies")

        with pytest.raises(CRMApiError) as exc_info:
            await api_client.list_companies()

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.detail

    async def test_not_found_is_an_error(self, api_client):
        with pytest.raises(CRMApiError) as exc_info:
            await api_client.delete_task("T-missing")

        assert exc_info.value.status_code == 404

    async def test_non_json_error_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
        client = CRMApiClient("http://crm.test/api/", transport=transport)

        with pytest.raises(CRMApiError, match="Bad Gateway"):
            await client.list_deals()

    async def test_undecodable_body_maps_to_crm_api_error(self, api_client, fake_api):
        fake_api.seed_deal("D1", "Acme renewal")
        fake_api.garble("PUT", "/deals/D1")

        with pytest.raises(CRMApiError) as exc_info:
            await api_client.update_deal("D1", {"status": "Won"})

        assert exc_info.value.status_code is None
        assert exc_info.value.resource == "/deals/D1"

    @pytest.mark.parametrize(
        "record",
        [
            {"_id": "D1", "title": "Bad status", "status": "Archived"},
            {"_id": "D2", "title": "Negative", "amount": -10},
        ],
    )
    async def test_invalid_list_record_maps_to_crm_api_error(self, api_client, fake_api, record):
        fake_api.seed("deals", **record)

        with pytest.raises(CRMApiError, match="Invalid response") as exc_info:
            await api_client.list_deals()

        assert exc_info.value.resource == "/deals"

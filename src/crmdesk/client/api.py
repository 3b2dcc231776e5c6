"""Async HTTP client wrapper for the external CRM REST API.

Provides CRMApiClient covering every resource the desk pages use:
companies, contacts, deals, invoices and tasks. All methods are async and
log with structlog for observability.

Requests are never retried: a failed call is reported once as a
CRMApiError and the user re-triggers the action. Non-2xx responses, every
other httpx failure (connection refused, timeout, undecodable body) and list
records that fail validation all map to CRMApiError.
"""

from __future__ import annotations

import re
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from src.crmdesk.crm.schemas import Company, Contact, Deal, Invoice, Task

logger = structlog.get_logger(__name__)

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')

_Record = TypeVar("_Record", bound=BaseModel)


class CRMApiError(Exception):
    """Raised when a request to the CRM API fails or returns non-success.

    Attributes:
        resource: API resource path that was called (e.g. ``/deals/D1``).
        status_code: HTTP status, or None when no response was received.
        detail: Server message or transport error text.
    """

    def __init__(self, resource: str, status_code: int | None, detail: str) -> None:
        self.resource = resource
        self.status_code = status_code
        self.detail = detail
        status = status_code if status_code is not None else "no response"
        super().__init__(f"CRM API request to {resource} failed ({status}): {detail}")


class CRMApiClient:
    """Async client for the CRM REST API.

    Opens a short-lived httpx.AsyncClient per call, mirroring how the
    browser pages issued independent requests.

    Args:
        base_url: API root, e.g. ``http://localhost:5000/api``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {"Accept": "application/json"}

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client bound to the API root."""
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send one request and translate failures into CRMApiError."""
        url = f"{self._base_url}{path}"
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=json)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = _error_detail(exc.response)
            logger.warning(
                "crm_api.request_failed",
                method=method,
                path=path,
                status_code=exc.response.status_code,
                detail=detail,
            )
            raise CRMApiError(path, exc.response.status_code, detail) from exc
        except httpx.HTTPError as exc:
            # Transport failures, undecodable bodies, redirect loops.
            logger.warning(
                "crm_api.transport_error",
                method=method,
                path=path,
                error=str(exc) or type(exc).__name__,
            )
            raise CRMApiError(path, None, str(exc) or type(exc).__name__) from exc

        logger.debug(
            "crm_api.request_ok",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def _list(self, path: str, model: type[_Record]) -> list[_Record]:
        """GET a collection and validate every record.

        A malformed body or a record that fails validation is reported as a
        CRMApiError, like any other failed read.
        """
        response = await self._request("GET", path)
        try:
            data = response.json()
            items = data if isinstance(data, list) else []
            return [model.model_validate(item) for item in items]
        except (ValueError, ValidationError) as exc:
            logger.warning("crm_api.invalid_response", path=path, error=str(exc))
            raise CRMApiError(path, response.status_code, f"Invalid response: {exc}") from exc

    async def _create(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", path, json=payload)
        data = _json_or_none(response)
        logger.info("crm_api.created", path=path, record_id=(data or {}).get("_id"))
        return data or {}

    async def _delete(self, path: str) -> None:
        await self._request("DELETE", path)
        logger.info("crm_api.deleted", path=path)

    # ── Companies ───────────────────────────────────────────────────────────

    async def list_companies(self) -> list[Company]:
        return await self._list("/companies", Company)

    async def create_company(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("/companies", payload)

    async def delete_company(self, company_id: str) -> None:
        await self._delete(f"/companies/{company_id}")

    # ── Contacts ────────────────────────────────────────────────────────────

    async def list_contacts(self) -> list[Contact]:
        return await self._list("/contacts", Contact)

    async def create_contact(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("/contacts", payload)

    async def delete_contact(self, contact_id: str) -> None:
        await self._delete(f"/contacts/{contact_id}")

    # ── Deals ───────────────────────────────────────────────────────────────

    async def list_deals(self) -> list[Deal]:
        return await self._list("/deals", Deal)

    async def create_deal(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("/deals", payload)

    async def update_deal(self, deal_id: str, payload: dict[str, Any]) -> Deal | None:
        """Replace a deal with the full updated record.

        PUT /deals/{deal_id}

        Args:
            deal_id: Deal identifier.
            payload: Every field of the deal, as produced by ``Deal.to_wire()``.

        Returns:
            The server's representation of the deal, or None when the
            response carries no usable body.
        """
        response = await self._request("PUT", f"/deals/{deal_id}", json=payload)
        data = _json_or_none(response)
        if not data:
            return None
        if "_id" not in data and "id" not in data:
            data = {**data, "_id": deal_id}
        return Deal.model_validate(data)

    # ── Invoices ────────────────────────────────────────────────────────────

    async def list_invoices(self) -> list[Invoice]:
        return await self._list("/invoices", Invoice)

    async def create_invoice(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("/invoices", payload)

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._delete(f"/invoices/{invoice_id}")

    async def download_invoice(self, invoice_id: str) -> tuple[bytes, str]:
        """Fetch the rendered invoice document.

        GET /invoices/download/{invoice_id}

        Returns:
            Tuple of (document bytes, filename). The filename comes from the
            Content-Disposition header when present.
        """
        response = await self._request("GET", f"/invoices/download/{invoice_id}")
        disposition = response.headers.get("content-disposition", "")
        match = _FILENAME_RE.search(disposition)
        filename = match.group(1) if match else f"invoice-{invoice_id}.pdf"
        logger.info(
            "crm_api.invoice_downloaded",
            invoice_id=invoice_id,
            size=len(response.content),
        )
        return response.content, filename

    # ── Tasks ───────────────────────────────────────────────────────────────

    async def list_tasks(self) -> list[Task]:
        return await self._list("/tasks", Task)

    async def create_task(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._create("/tasks", payload)

    async def update_task(self, task_id: str, payload: dict[str, Any]) -> None:
        await self._request("PUT", f"/tasks/{task_id}", json=payload)
        logger.info("crm_api.updated", path=f"/tasks/{task_id}")

    async def delete_task(self, task_id: str) -> None:
        await self._delete(f"/tasks/{task_id}")


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    """Decode a JSON object body, tolerating empty or non-object responses."""
    if not response.content:
        return None
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data.get("detail") or data)
    return str(data)

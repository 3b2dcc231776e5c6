"""Dashboard: headline counts and deal pipeline metrics.

Companies, contacts and deals are fetched concurrently; if any of the three
requests fails the whole dashboard reports a single load failure.
"""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal

import structlog
from pydantic import BaseModel

from src.crmdesk.client.api import CRMApiClient, CRMApiError
from src.crmdesk.crm.schemas import Deal, DealStatus
from src.crmdesk.notifications import Notifier

logger = structlog.get_logger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load dashboard data"


class DashboardMetrics(BaseModel):
    """Everything the dashboard cards display."""

    companies: int = 0
    contacts: int = 0
    deals: int = 0
    open: int = 0
    won: int = 0
    lost: int = 0
    total_value: int = 0
    win_rate: float = 0.0
    average_deal_value: int = 0
    total_value_display: str = ""
    average_deal_value_display: str = ""


def format_currency(amount: int | float | Decimal, symbol: str = "₹") -> str:
    """Render whole rupees with Indian digit grouping, e.g. ``₹12,34,567``."""
    value = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if value < 0 else ""
    digits = str(abs(value))

    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])

    return f"{sign}{symbol}{digits}"


def win_rate(won: int, lost: int) -> float:
    """Percentage of closed deals that were won, to one decimal (0.0 if none closed)."""
    closed = won + lost
    if closed == 0:
        return 0.0
    return round(won / closed * 100, 1)


def summarize_deals(
    deals: list[Deal],
    companies: int = 0,
    contacts: int = 0,
    currency_symbol: str = "₹",
) -> DashboardMetrics:
    """Compute dashboard metrics from a deal list and the collection sizes."""
    by_status = {status: 0 for status in DealStatus}
    for deal in deals:
        by_status[deal.status] += 1

    total_value = sum(d.amount for d in deals)
    average = total_value // len(deals) if deals else 0

    return DashboardMetrics(
        companies=companies,
        contacts=contacts,
        deals=len(deals),
        open=by_status[DealStatus.OPEN],
        won=by_status[DealStatus.WON],
        lost=by_status[DealStatus.LOST],
        total_value=total_value,
        win_rate=win_rate(by_status[DealStatus.WON], by_status[DealStatus.LOST]),
        average_deal_value=average,
        total_value_display=format_currency(total_value, currency_symbol),
        average_deal_value_display=format_currency(average, currency_symbol),
    )


class Dashboard:
    """Loads the dashboard metrics on demand.

    Args:
        client: CRM API client.
        notifier: Receives the load failure message.
        currency_symbol: Prefix for rendered amounts.
    """

    def __init__(self, client: CRMApiClient, notifier: Notifier, currency_symbol: str = "₹") -> None:
        self._client = client
        self._notifier = notifier
        self._currency_symbol = currency_symbol

    async def load(self) -> DashboardMetrics:
        try:
            companies, contacts, deals = await asyncio.gather(
                self._client.list_companies(),
                self._client.list_contacts(),
                self._client.list_deals(),
            )
        except CRMApiError as exc:
            logger.warning(
                "dashboard.load_failed",
                resource=exc.resource,
                status_code=exc.status_code,
            )
            self._notifier.error(LOAD_FAILED_MESSAGE)
            raise

        metrics = summarize_deals(
            deals,
            companies=len(companies),
            contacts=len(contacts),
            currency_symbol=self._currency_symbol,
        )
        logger.info(
            "dashboard.loaded",
            deals=metrics.deals,
            total_value=metrics.total_value,
            win_rate=metrics.win_rate,
        )
        return metrics

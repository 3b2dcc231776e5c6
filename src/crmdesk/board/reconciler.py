"""Deals board reconciler -- optimistic column moves with server reconciliation.

Owns the in-memory deal snapshot for the session and keeps the three status
columns (Open, Won, Lost) consistent with both the user's drag target and the
API's confirmed state:

1. ``move_deal`` applies the new status locally and returns immediately.
2. A commit task PUTs the full updated deal to ``/deals/{id}``.
3. Success adopts the server's copy; failure restores the status captured
   for that specific move and notifies the user.

Each move carries its own PendingMove record with the prior status captured
before the optimistic mutation. Rollbacks read that record, never the deal's
status at failure time, so overlapping moves cannot misattribute a rollback.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError

from src.crmdesk.board.schemas import (
    Applied,
    BoardColumn,
    BoardView,
    Confirmed,
    MovePhase,
    RolledBack,
    SkipReason,
    Skipped,
)
from src.crmdesk.client.api import CRMApiClient, CRMApiError
from src.crmdesk.crm.schemas import Deal, DealCreate, DealStatus
from src.crmdesk.notifications import Notifier

logger = structlog.get_logger(__name__)

MOVE_FAILED_MESSAGE = "Failed to update deal status"
ADD_FAILED_MESSAGE = "Failed to add deal"
LOAD_FAILED_MESSAGE = "Failed to load deals"

# Settled moves kept for get_move lookups; pending moves are never dropped.
MOVE_HISTORY_LIMIT = 500


class DealNotFoundError(ValueError):
    """Raised when a move references a deal missing from the snapshot."""

    def __init__(self, deal_id: str) -> None:
        self.deal_id = deal_id
        super().__init__(f"Deal not found: {deal_id}")


class InvalidColumnError(ValueError):
    """Raised when a move names a column outside Open/Won/Lost."""

    def __init__(self, column: Any) -> None:
        self.column = column
        allowed = ", ".join(s.value for s in DealStatus)
        super().__init__(f"Invalid column: {column!r}. Expected one of: {allowed}")


def _as_status(column: DealStatus | str) -> DealStatus:
    try:
        return DealStatus(column)
    except ValueError:
        raise InvalidColumnError(column) from None


@dataclass
class PendingMove:
    """Two-phase state of one column move.

    ``prior_status`` is captured before the optimistic mutation and is the
    value this move rolls back to.
    """

    move_id: str
    deal_id: str
    prior_status: DealStatus
    target_status: DealStatus
    phase: MovePhase = MovePhase.APPLIED
    server_deal: Deal | None = None
    error: str | None = None
    task: asyncio.Task | None = field(default=None, repr=False)

    def outcome(self) -> Applied | Confirmed | RolledBack:
        if self.phase == MovePhase.CONFIRMED:
            return Confirmed(
                move_id=self.move_id,
                deal_id=self.deal_id,
                to_status=self.target_status,
                deal=self.server_deal,
            )
        if self.phase == MovePhase.ROLLED_BACK:
            return RolledBack(
                move_id=self.move_id,
                deal_id=self.deal_id,
                prior_status=self.prior_status,
                error=self.error or "",
            )
        return Applied(
            move_id=self.move_id,
            deal_id=self.deal_id,
            from_status=self.prior_status,
            to_status=self.target_status,
        )


class BoardReconciler:
    """Holds the deal snapshot and reconciles column moves with the API.

    Columns are never stored: they are computed by filtering the snapshot on
    status. The snapshot only changes through ``refresh``, ``add_deal`` and
    ``move_deal`` (plus the commit of a move).

    Moves of the same deal that overlap form a burst. While a burst is open
    the visible status is the target of its newest move that was not rolled
    back, or the status the deal had before the burst when every move failed.

    Args:
        client: CRM API client used for list, create and update calls.
        notifier: Receives the user-visible failure messages.
        move_history: How many moves ``get_move`` can still find. Only
            settled moves are evicted, oldest first.
    """

    def __init__(
        self,
        client: CRMApiClient,
        notifier: Notifier,
        move_history: int = MOVE_HISTORY_LIMIT,
    ) -> None:
        self._client = client
        self._notifier = notifier
        self._move_history = move_history
        self._deals: list[Deal] = []
        self._moves: dict[str, PendingMove] = {}
        # Per deal with an open burst: its moves (oldest first) and the
        # status the deal had before the first of them.
        self._bursts: dict[str, list[PendingMove]] = {}
        self._baseline: dict[str, DealStatus] = {}

    # ── Snapshot ────────────────────────────────────────────────────────────

    @property
    def deals(self) -> list[Deal]:
        return list(self._deals)

    def get_deal(self, deal_id: str) -> Deal | None:
        index = self._index_of(deal_id)
        return self._deals[index] if index is not None else None

    def columns(self) -> list[BoardColumn]:
        """Derive the Open, Won and Lost columns from the snapshot."""
        columns = []
        for status in DealStatus:
            members = [d for d in self._deals if d.status == status]
            columns.append(BoardColumn(status=status, deals=members, count=len(members)))
        return columns

    def view(self) -> BoardView:
        return BoardView(
            columns=self.columns(),
            total_value=sum(d.amount for d in self._deals),
            pending_moves=len(self.pending()),
        )

    async def refresh(self) -> list[Deal]:
        """Replace the snapshot with the API's deal list.

        Deals with a move still in flight keep their optimistic status so the
        board never shows a stale column while a commit is pending.

        Raises:
            CRMApiError: If the list request fails. The snapshot is untouched.
        """
        try:
            deals = await self._client.list_deals()
        except CRMApiError:
            self._notifier.error(LOAD_FAILED_MESSAGE)
            raise

        self._deals = [
            deal.model_copy(update={"status": self._visible_status(deal.id)})
            if deal.id in self._bursts
            else deal
            for deal in deals
        ]
        logger.info("board.refreshed", deal_count=len(self._deals))
        return self.deals

    async def add_deal(self, fields: DealCreate | Mapping[str, Any]) -> list[Deal]:
        """Create a deal and refetch the whole board.

        Args:
            fields: Add Deal form values (title, amount, optional company and
                contact ids) or an already validated DealCreate.

        Returns:
            The refreshed deal snapshot.

        Raises:
            ValidationError: If title is empty or amount is not a
                non-negative number. Nothing is sent.
            CRMApiError: If the create request fails. The snapshot is untouched.
        """
        payload = fields if isinstance(fields, DealCreate) else DealCreate.model_validate(fields)

        try:
            created = await self._client.create_deal(payload.to_wire())
        except CRMApiError:
            self._notifier.error(ADD_FAILED_MESSAGE)
            raise

        logger.info("board.deal_created", deal_id=created.get("_id"), title=payload.title)
        return await self.refresh()

    # ── Column Moves ────────────────────────────────────────────────────────

    def move_deal(
        self,
        deal_id: str,
        from_column: DealStatus | str,
        to_column: DealStatus | str | None,
    ) -> Skipped | Applied:
        """Handle a drag release: apply the move now, commit it in the background.

        Must be called from a running event loop; the commit is scheduled as
        an asyncio task.

        Args:
            deal_id: Identifier of the dragged deal.
            from_column: Column the drag started in.
            to_column: Column the deal was dropped on, or None when dropped
                outside every column.

        Returns:
            Skipped when nothing changes (no destination, same column, or a
            duplicate of a move already applied), otherwise Applied.

        Raises:
            InvalidColumnError: If a column is not Open, Won or Lost.
            DealNotFoundError: If the deal is not in the snapshot.
        """
        if to_column is None:
            logger.debug("board.move_skipped", deal_id=deal_id, reason="no_destination")
            return Skipped(deal_id=deal_id, reason=SkipReason.NO_DESTINATION)

        source = _as_status(from_column)
        target = _as_status(to_column)
        if source == target:
            logger.debug("board.move_skipped", deal_id=deal_id, reason="same_column")
            return Skipped(deal_id=deal_id, reason=SkipReason.SAME_COLUMN)

        index = self._index_of(deal_id)
        if index is None:
            raise DealNotFoundError(deal_id)
        deal = self._deals[index]

        if deal.status == target:
            duplicate_of = next(
                (
                    m.move_id
                    for m in reversed(self._bursts.get(deal_id, []))
                    if m.phase == MovePhase.APPLIED and m.target_status == target
                ),
                None,
            )
            logger.info(
                "board.move_skipped",
                deal_id=deal_id,
                reason="already_in_column",
                in_flight_move_id=duplicate_of,
            )
            return Skipped(
                deal_id=deal_id,
                reason=SkipReason.ALREADY_IN_COLUMN,
                in_flight_move_id=duplicate_of,
            )

        if deal.status != source:
            logger.warning(
                "board.move_source_mismatch",
                deal_id=deal_id,
                from_column=source.value,
                snapshot_status=deal.status.value,
            )

        # Capture before mutating: this is the value this move rolls back to.
        move = PendingMove(
            move_id=uuid.uuid4().hex,
            deal_id=deal_id,
            prior_status=deal.status,
            target_status=target,
        )
        moved = deal.model_copy(update={"status": target})
        self._deals[index] = moved

        if deal_id not in self._bursts:
            self._baseline[deal_id] = deal.status
        self._bursts.setdefault(deal_id, []).append(move)
        self._moves[move.move_id] = move
        self._evict_settled_moves()

        logger.info(
            "board.move_applied",
            move_id=move.move_id,
            deal_id=deal_id,
            title=deal.title,
            from_status=move.prior_status.value,
            to_status=target.value,
        )

        move.task = asyncio.get_running_loop().create_task(
            self._commit(move, moved.to_wire())
        )
        return move.outcome()

    def get_move(self, move_id: str) -> PendingMove | None:
        return self._moves.get(move_id)

    def pending(self) -> list[PendingMove]:
        """Moves whose commit has not resolved yet."""
        return [
            m
            for burst in self._bursts.values()
            for m in burst
            if m.phase == MovePhase.APPLIED
        ]

    async def settle(self) -> list[Confirmed | RolledBack]:
        """Wait for every in-flight commit and return their outcomes."""
        tasks = [m.task for m in self.pending() if m.task is not None]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def _commit(self, move: PendingMove, payload: dict[str, Any]) -> Confirmed | RolledBack:
        try:
            server_deal = await self._client.update_deal(move.deal_id, payload)
        except CRMApiError as exc:
            self._roll_back(move, exc)
        except ValidationError as exc:
            # The update went through; only the echoed record was unusable.
            logger.warning(
                "board.server_copy_invalid",
                move_id=move.move_id,
                deal_id=move.deal_id,
                error=str(exc),
            )
            self._confirm(move, None)
        else:
            self._confirm(move, server_deal)
        return move.outcome()

    def _confirm(self, move: PendingMove, server_deal: Deal | None) -> None:
        move.phase = MovePhase.CONFIRMED
        move.server_deal = server_deal

        index = self._index_of(move.deal_id)
        if index is not None:
            base = server_deal if server_deal is not None else self._deals[index]
            self._deals[index] = base.model_copy(
                update={"status": self._visible_status(move.deal_id)}
            )
        self._close_burst_if_settled(move.deal_id)

        logger.info(
            "board.move_confirmed",
            move_id=move.move_id,
            deal_id=move.deal_id,
            to_status=move.target_status.value,
        )

    def _roll_back(self, move: PendingMove, exc: CRMApiError) -> None:
        move.phase = MovePhase.ROLLED_BACK
        move.error = exc.detail

        index = self._index_of(move.deal_id)
        if index is not None:
            self._deals[index] = self._deals[index].model_copy(
                update={"status": self._visible_status(move.deal_id)}
            )
        self._close_burst_if_settled(move.deal_id)

        logger.warning(
            "board.move_rolled_back",
            move_id=move.move_id,
            deal_id=move.deal_id,
            prior_status=move.prior_status.value,
            status_code=exc.status_code,
            error=exc.detail,
        )
        self._notifier.error(MOVE_FAILED_MESSAGE)

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _index_of(self, deal_id: str) -> int | None:
        for index, deal in enumerate(self._deals):
            if deal.id == deal_id:
                return index
        return None

    def _visible_status(self, deal_id: str) -> DealStatus:
        """Status of the newest surviving move, else the pre-burst status.

        A lone move that fails therefore lands back on its own captured
        ``prior_status``.
        """
        for move in reversed(self._bursts.get(deal_id, [])):
            if move.phase == MovePhase.ROLLED_BACK:
                continue
            if move.phase == MovePhase.CONFIRMED and move.server_deal is not None:
                return move.server_deal.status
            return move.target_status
        return self._baseline[deal_id]

    def _evict_settled_moves(self) -> None:
        excess = len(self._moves) - self._move_history
        if excess <= 0:
            return
        settled = [
            move_id
            for move_id, m in self._moves.items()
            if m.phase != MovePhase.APPLIED
        ]
        for move_id in settled[:excess]:
            del self._moves[move_id]

    def _close_burst_if_settled(self, deal_id: str) -> None:
        burst = self._bursts.get(deal_id, [])
        if all(m.phase != MovePhase.APPLIED for m in burst):
            self._bursts.pop(deal_id, None)
            self._baseline.pop(deal_id, None)

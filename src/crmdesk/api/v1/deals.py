"""REST endpoints for the Deals board.

Provides the board view, the Add Deal form and drag-and-drop column moves.
A move answers 202 as soon as the optimistic status is applied; the commit
outcome is read back from ``/deals/moves/{move_id}`` or the notifications
feed. Callers that need the settled outcome can pass ``wait=true``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.crmdesk.api.deps import get_board
from src.crmdesk.board.reconciler import (
    BoardReconciler,
    DealNotFoundError,
    InvalidColumnError,
)
from src.crmdesk.board.schemas import Applied, BoardView, MoveOutcome
from src.crmdesk.crm.schemas import DealCreate

router = APIRouter(prefix="/deals", tags=["deals"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class MoveRequest(BaseModel):
    """A drag release: ``to_column`` is null when dropped outside every column."""

    deal_id: str
    from_column: str
    to_column: str | None = None
    wait: bool = False


class MoveResponse(BaseModel):
    move: MoveOutcome
    board: BoardView


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/board", response_model=BoardView)
async def get_board_view(
    refresh: bool = Query(default=True, description="Refetch deals from the CRM API"),
    board: BoardReconciler = Depends(get_board),
) -> BoardView:
    """Return the three status columns."""
    if refresh:
        await board.refresh()
    return board.view()


@router.post("", response_model=BoardView, status_code=201)
async def add_deal(
    body: DealCreate,
    board: BoardReconciler = Depends(get_board),
) -> BoardView:
    """Create a deal (starts in Open) and return the refetched board."""
    await board.add_deal(body)
    return board.view()


@router.post("/moves", response_model=MoveResponse)
async def move_deal(
    body: MoveRequest,
    board: BoardReconciler = Depends(get_board),
):
    """Move a deal to another column.

    Returns 202 with the optimistic board while the update is in flight,
    or 200 when nothing had to change or ``wait`` was requested.
    """
    try:
        outcome = board.move_deal(body.deal_id, body.from_column, body.to_column)
    except DealNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidColumnError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if isinstance(outcome, Applied):
        if body.wait:
            move = board.get_move(outcome.move_id)
            if move is not None and move.task is not None:
                outcome = await move.task
        else:
            response = MoveResponse(move=outcome, board=board.view())
            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content=response.model_dump(mode="json", by_alias=True),
            )

    return MoveResponse(move=outcome, board=board.view())


@router.get("/moves/{move_id}")
async def get_move(
    move_id: str,
    board: BoardReconciler = Depends(get_board),
):
    """Current phase of a move: applied, confirmed or rolled_back."""
    move = board.get_move(move_id)
    if move is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Move not found: {move_id}",
        )
    return move.outcome()

"""Pydantic schemas for the deals board -- columns and move outcomes.

A column move is two-phase. ``move_deal`` answers synchronously with
``Applied`` (the optimistic status is already visible); the commit later
resolves the same move to ``Confirmed`` or ``RolledBack``. Drags that change
nothing answer ``Skipped``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from src.crmdesk.crm.schemas import Deal, DealStatus


class MovePhase(str, Enum):
    """Lifecycle of a single column move."""

    APPLIED = "applied"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class SkipReason(str, Enum):
    NO_DESTINATION = "no_destination"
    SAME_COLUMN = "same_column"
    ALREADY_IN_COLUMN = "already_in_column"


# ── Move Outcomes ───────────────────────────────────────────────────────────


class Skipped(BaseModel):
    """Drag that changed nothing and sent nothing."""

    outcome: Literal["skipped"] = "skipped"
    deal_id: str
    reason: SkipReason
    in_flight_move_id: str | None = None


class Applied(BaseModel):
    """Optimistic status applied locally; commit in flight."""

    outcome: Literal["applied"] = "applied"
    move_id: str
    deal_id: str
    from_status: DealStatus
    to_status: DealStatus


class Confirmed(BaseModel):
    """Server accepted the move; ``deal`` is its authoritative copy, if any."""

    outcome: Literal["confirmed"] = "confirmed"
    move_id: str
    deal_id: str
    to_status: DealStatus
    deal: Deal | None = None


class RolledBack(BaseModel):
    """Server rejected the move; the deal went back to ``prior_status``."""

    outcome: Literal["rolled_back"] = "rolled_back"
    move_id: str
    deal_id: str
    prior_status: DealStatus
    error: str


MoveOutcome = Annotated[
    Union[Skipped, Applied, Confirmed, RolledBack],
    Field(discriminator="outcome"),
]


# ── Board View ──────────────────────────────────────────────────────────────


class BoardColumn(BaseModel):
    """One status column, derived by filtering the deal snapshot."""

    status: DealStatus
    deals: list[Deal] = Field(default_factory=list)
    count: int = 0


class BoardView(BaseModel):
    """All three columns in display order (Open, Won, Lost)."""

    columns: list[BoardColumn] = Field(default_factory=list)
    total_value: int = 0
    pending_moves: int = 0

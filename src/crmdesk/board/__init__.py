"""Deals board -- Kanban columns by status with optimistic drag-and-drop moves.

Provides BoardReconciler (owner of the deal snapshot), the PendingMove
two-phase record, and the move outcome schemas (Skipped, Applied, Confirmed,
RolledBack).
"""

from src.crmdesk.board.reconciler import (
    BoardReconciler,
    DealNotFoundError,
    InvalidColumnError,
    PendingMove,
)
from src.crmdesk.board.schemas import (
    Applied,
    BoardColumn,
    BoardView,
    Confirmed,
    MovePhase,
    RolledBack,
    Skipped,
)

__all__ = [
    "BoardReconciler",
    "DealNotFoundError",
    "InvalidColumnError",
    "PendingMove",
    "Applied",
    "BoardColumn",
    "BoardView",
    "Confirmed",
    "MovePhase",
    "RolledBack",
    "Skipped",
]

"""
Ledger exception -> HTTP translation

Routers catch LedgerException and raise whatever this returns, so every
endpoint answers the same way for the same failure.
"""
from fastapi import HTTPException

from core.exceptions import (
    DuplicateConflict,
    Forbidden,
    GroupHasTables,
    InvalidInput,
    InvalidStateTransition,
    LastOwner,
    LedgerException,
    NotFound,
    PlayerInactive,
    TableClosed,
    UnbalancedTable,
)

CONFLICTS = (
    PlayerInactive,
    TableClosed,
    DuplicateConflict,
    InvalidStateTransition,
    GroupHasTables,
    LastOwner,
)


def to_http_exception(exc: LedgerException) -> HTTPException:
    if isinstance(exc, UnbalancedTable):
        return HTTPException(
            status_code=409,
            detail={
                "error": "UnbalancedTable",
                "message": str(exc),
                "total_buy_ins": float(exc.total_buy_ins),
                "settled_out": float(exc.settled_out),
                "difference": float(exc.difference),
                "active_players": exc.active_players,
            },
        )
    if isinstance(exc, Forbidden):
        # Never explain why access was denied
        return HTTPException(status_code=403, detail="Forbidden")
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidInput):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, CONFLICTS):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))

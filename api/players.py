"""
Player & ledger API endpoints

Responsibilities:
1. Seat and remove players
2. Record buy-ins and cash-outs
3. Reactivate players, update chip stacks and settlement notes

All rules live in PlayerManager; this layer only translates HTTP.
"""
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from database import get_db
from schemas import (
    AmountRequest,
    BuyInResponse,
    CashOutResponse,
    ChipsUpdate,
    PlayerAdd,
    PlayerDetailsUpdate,
    PlayerResponse,
)
from core.exceptions import LedgerException
from core.permissions import Actor
from core.player_manager import PlayerManager
from api.deps import get_actor
from api.errors import to_http_exception

router = APIRouter(prefix="/api/tables", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/{table_id}/players", response_model=PlayerResponse, status_code=201)
def add_player(
    table_id: UUID,
    player_data: PlayerAdd,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Seat a player at an open table (editor)

    Errors:
        404 table not found, 409 duplicate name/nickname or table closed
    """
    try:
        player = PlayerManager.add_player(
            db,
            actor,
            table_id,
            player_data.name,
            initial_chips=player_data.initial_chips,
            nickname=player_data.nickname
        )
        return PlayerResponse.model_validate(player)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{table_id}/players/{player_id}", status_code=204)
def remove_player(
    table_id: UUID,
    player_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Delete a player and their whole history (irreversible)"""
    try:
        PlayerManager.remove_player(db, actor, table_id, player_id)
        return Response(status_code=204)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to remove player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{table_id}/players/{player_id}", response_model=PlayerResponse)
def update_player_details(
    table_id: UUID,
    player_id: UUID,
    details: PlayerDetailsUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Update show_me and payment notes; allowed on closed tables"""
    try:
        player = PlayerManager.update_player_details(
            db, actor, table_id, player_id, details.model_dump(exclude_unset=True)
        )
        return PlayerResponse.model_validate(player)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{table_id}/players/{player_id}/buyins", response_model=BuyInResponse, status_code=201)
def add_buy_in(
    table_id: UUID,
    player_id: UUID,
    request: AmountRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Record a buy-in

    Not idempotent: every call appends a new buy-in, so clients must not
    retry blindly.

    Errors:
        400 amount <= 0, 409 player inactive or table closed
    """
    try:
        buy_in = PlayerManager.add_buy_in(db, actor, table_id, player_id, request.amount)
        return BuyInResponse.model_validate(buy_in)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add buy-in: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{table_id}/buyins/{buy_in_id}", response_model=PlayerResponse)
def delete_buy_in(
    table_id: UUID,
    buy_in_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Remove a mistaken buy-in; the owning player must still be active"""
    try:
        player = PlayerManager.delete_buy_in(db, actor, table_id, buy_in_id)
        return PlayerResponse.model_validate(player)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete buy-in: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{table_id}/players/{player_id}/cashouts", response_model=CashOutResponse, status_code=201)
def cash_out(
    table_id: UUID,
    player_id: UUID,
    request: AmountRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Record a cash-out and deactivate the player

    Errors:
        400 amount < 0, 409 player already inactive or table closed
    """
    try:
        cash_out_row = PlayerManager.cash_out(db, actor, table_id, player_id, request.amount)
        return CashOutResponse.model_validate(cash_out_row)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to cash out: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{table_id}/players/{player_id}/reactivate", response_model=PlayerResponse)
def reactivate_player(
    table_id: UUID,
    player_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Start a new stint for a cashed-out player (table must be open)"""
    try:
        player = PlayerManager.reactivate_player(db, actor, table_id, player_id)
        return PlayerResponse.model_validate(player)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to reactivate player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{table_id}/players/{player_id}/chips", response_model=PlayerResponse)
def update_chips(
    table_id: UUID,
    player_id: UUID,
    request: ChipsUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        player = PlayerManager.update_chips(db, actor, table_id, player_id, request.chips)
        return PlayerResponse.model_validate(player)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update chips: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

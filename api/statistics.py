"""
Statistics API endpoints

Group leaderboards over closed tables, plus a user's own totals through the
player names they have claimed.
"""
from typing import List
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from database import get_db
from schemas import AliasRequest, AliasResponse, PlayerStatsResponse
from core.alias_manager import AliasManager
from core.exceptions import LedgerException
from core.group_manager import GroupManager
from core.permissions import Actor
from services.statistics_service import get_group_statistics, get_user_statistics
from api.deps import get_actor
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["statistics"])
logger = logging.getLogger(__name__)


@router.get("/groups/{group_id}/statistics", response_model=List[PlayerStatsResponse])
def group_statistics(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Per-player results across the group's closed tables, best first"""
    try:
        GroupManager.get_group(db, actor, group_id)
        return [PlayerStatsResponse.model_validate(stats) for stats in get_group_statistics(db, group_id)]

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to compute group statistics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/users/me/statistics", response_model=PlayerStatsResponse)
def my_statistics(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Totals over every claimed name, in every group the caller can see"""
    try:
        group_ids = [summary.group.id for summary in GroupManager.list_groups(db, actor)]
        stats = get_user_statistics(db, actor.user_id, group_ids)
        return PlayerStatsResponse.model_validate(stats)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to compute user statistics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/users/me/aliases", response_model=List[AliasResponse])
def list_aliases(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    return [AliasResponse.model_validate(alias) for alias in AliasManager.list_aliases(db, actor)]


@router.post("/users/me/aliases", response_model=AliasResponse, status_code=201)
def add_alias(
    request: AliasRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        alias = AliasManager.add_alias(db, actor, request.player_name)
        return AliasResponse.model_validate(alias)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add alias: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/users/me/aliases/{player_name}", status_code=204)
def remove_alias(
    player_name: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        AliasManager.remove_alias(db, actor, player_name)
        return Response(status_code=204)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to remove alias: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

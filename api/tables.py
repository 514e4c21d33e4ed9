"""
Table API endpoints

Responsibilities:
1. Create and list tables inside a group
2. Read, update (including group moves) and delete a table
3. Open/close a table and preview its balance
"""
from typing import List, Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from database import get_db
from schemas import BalanceResponse, TableCreate, TableResponse, TableSummary, TableUpdate
from core.exceptions import LedgerException
from core.permissions import Actor
from core.table_manager import TableManager
from api.deps import get_actor
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["tables"])
logger = logging.getLogger(__name__)


@router.post("/groups/{group_id}/tables", response_model=TableResponse, status_code=201)
def create_table(
    group_id: UUID,
    table_data: TableCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Create an open table in a group (editor)

    minimum_buy_in defaults to twice the big blind.

    Errors:
        400 invalid blind structure, 404 group not visible
    """
    try:
        table = TableManager.create_table(
            db,
            actor,
            group_id,
            table_data.name,
            table_data.small_blind,
            table_data.big_blind,
            minimum_buy_in=table_data.minimum_buy_in,
            location=table_data.location,
            game_date=table_data.game_date
        )
        return TableResponse.model_validate(table)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create table: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/groups/{group_id}/tables", response_model=List[TableSummary])
def list_tables(
    group_id: UUID,
    is_active: Optional[bool] = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        tables = TableManager.list_tables(db, actor, group_id, is_active=is_active)
        return [TableSummary.model_validate(table) for table in tables]

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list tables: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/tables/{table_id}", response_model=TableResponse)
def get_table(
    table_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Table with every player and their buy-in/cash-out history"""
    try:
        table = TableManager.get_table(db, actor, table_id)
        return TableResponse.model_validate(table)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get table: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/tables/{table_id}", response_model=TableResponse)
def update_table(
    table_id: UUID,
    table_data: TableUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Partially update a table

    Sending a different group_id moves the table; that needs ownership of
    both groups (or admin).

    Errors:
        400 invalid blind structure, 403 move not allowed,
        404 table/food player not found
    """
    try:
        table = TableManager.update_table(
            db, actor, table_id, table_data.model_dump(exclude_unset=True)
        )
        return TableResponse.model_validate(table)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update table: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/tables/{table_id}", status_code=204)
def delete_table(
    table_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        TableManager.delete_table(db, actor, table_id)
        return Response(status_code=204)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete table: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/tables/{table_id}/status", response_model=TableResponse)
def toggle_table_status(
    table_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Close an open table, or reopen a closed one

    Closing needs every player cashed out and a zero balance difference.
    The 409 body carries total_buy_ins, settled_out and difference.
    """
    try:
        table = TableManager.toggle_table_status(db, actor, table_id)
        return TableResponse.model_validate(table)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to toggle table status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/tables/{table_id}/balance", response_model=BalanceResponse)
def preview_balance(
    table_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Read-only closing check, with active players valued at their chips"""
    try:
        validation = TableManager.preview_balance(db, actor, table_id)
        balance = validation.balance
        return BalanceResponse(
            total_buy_ins=balance.total_buy_ins,
            settled_out=balance.settled_out,
            difference=balance.difference,
            is_balanced=balance.is_balanced,
            all_players_inactive=validation.all_players_inactive,
            active_player_ids=validation.active_player_ids,
            can_close=validation.can_close
        )

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to preview balance: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

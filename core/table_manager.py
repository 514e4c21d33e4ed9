"""
Table Manager: the complete Table lifecycle

Responsibilities:
1. Create tables inside a group (blind structure validation)
2. Update tables, including moving them between groups
3. Open/close tables through the state machine (closing is guarded by the
   ledger balance)
4. Read access: single table, group listing, balance preview

Every operation authorizes through core.permissions before touching data.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import Group, Player, Table, TableStatus
from core.events import record_event
from core.exceptions import (
    GroupNotFound,
    InvalidAmount,
    InvalidTableSettings,
    PlayerNotFound,
    TableClosed,
    TableNotFound,
    UnbalancedTable,
)
from core.locks import lock_table_players, with_table_lock
from core.permissions import Actor, Operation, authorize_group, authorize_table, authorize_table_move
from core.state_machine import TableStateMachine
from services.ledger_service import ClosureValidation, validate_closure
from services.money import to_amount
from database import transactional

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "small_blind",
    "big_blind",
    "minimum_buy_in",
    "location",
    "food_player_id",
    "game_date",
    "group_id",
)


def validate_table_settings(
    small_blind: Any,
    big_blind: Any,
    minimum_buy_in: Optional[Any] = None
) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Check the blind structure invariants

    Rules:
        small_blind > 0
        big_blind >= small_blind
        minimum_buy_in >= 2 * big_blind (defaults to exactly 2 * big_blind)

    Only checked on create/update; buy-ins recorded under older blinds stay
    as they are.

    Returns:
        (small_blind, big_blind, minimum_buy_in) as Decimals

    Raises:
        InvalidTableSettings
    """
    try:
        small = to_amount(small_blind)
        big = to_amount(big_blind)
        minimum = to_amount(minimum_buy_in) if minimum_buy_in is not None else big * 2
    except InvalidAmount as e:
        raise InvalidTableSettings(str(e))

    if small <= 0:
        raise InvalidTableSettings(f"Small blind must be greater than 0, got {small}")
    if big < small:
        raise InvalidTableSettings(
            f"Big blind ({big}) must be at least the small blind ({small})"
        )
    if minimum < big * 2:
        raise InvalidTableSettings(
            f"Minimum buy-in ({minimum}) must be at least twice the big blind ({big * 2})"
        )
    return small, big, minimum


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidTableSettings("Table name is required")
    return cleaned


class TableManager:
    """Table lifecycle manager"""

    @staticmethod
    def lock_table(db: Session, actor: Actor, table_id: UUID, operation: Operation) -> Table:
        """
        Lock a table row and authorize the actor against it

        Shared by TableManager and PlayerManager so every ledger mutation
        takes the table lock first.

        Raises:
            TableNotFound: missing table, or actor outside its group
            Forbidden: role too low for the operation
        """
        table = with_table_lock(table_id, db).first()
        if not table:
            raise TableNotFound(table_id)
        authorize_table(db, actor, table, operation)
        return table

    @staticmethod
    def require_active(table: Table) -> None:
        if not table.is_active:
            raise TableClosed(table.id)

    @staticmethod
    @transactional
    def create_table(
        db: Session,
        actor: Actor,
        group_id: UUID,
        name: str,
        small_blind: Any,
        big_blind: Any,
        minimum_buy_in: Optional[Any] = None,
        location: Optional[str] = None,
        game_date: Optional[datetime] = None
    ) -> Table:
        """
        Create an Active table in a group

        Preconditions:
            - group exists and the actor is at least editor in it
            - blind structure is valid (see validate_table_settings)

        Raises:
            GroupNotFound, Forbidden, InvalidTableSettings
        """
        group = db.get(Group, group_id)
        if not group:
            raise GroupNotFound(group_id)
        authorize_group(db, actor, group_id, Operation.MANAGE_TABLES)

        small, big, minimum = validate_table_settings(small_blind, big_blind, minimum_buy_in)

        table = Table(
            group_id=group_id,
            name=_clean_name(name),
            small_blind=small,
            big_blind=big,
            minimum_buy_in=minimum,
            location=location,
            is_active=True,
            created_by=actor.user_id,
        )
        if game_date is not None:
            table.game_date = game_date
        db.add(table)
        db.flush()

        record_event(
            db,
            "TABLE_CREATED",
            table_id=table.id,
            group_id=group_id,
            actor_id=actor.user_id,
            name=table.name,
            small_blind=small,
            big_blind=big,
            minimum_buy_in=minimum,
        )
        logger.info(f"Created table {table.id} ({table.name}) in group {group_id}")
        return table

    @staticmethod
    @transactional
    def update_table(db: Session, actor: Actor, table_id: UUID, patch: Dict[str, Any]) -> Table:
        """
        Apply a partial update to a table

        Only keys present in patch are touched. Blind invariants are checked
        on the merged values. A group_id different from the current group
        moves the table, which needs ownership of both groups (or admin).

        Raises:
            TableNotFound, Forbidden, InvalidTableSettings,
            GroupNotFound (admin moving to a missing group),
            PlayerNotFound (food_player_id not seated at this table)
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_TABLES)
        changes = {key: value for key, value in patch.items() if key in UPDATABLE_FIELDS}

        if "name" in changes:
            table.name = _clean_name(changes["name"])

        if {"small_blind", "big_blind", "minimum_buy_in"} & changes.keys():
            small, big, minimum = validate_table_settings(
                changes.get("small_blind", table.small_blind),
                changes.get("big_blind", table.big_blind),
                changes.get("minimum_buy_in", table.minimum_buy_in),
            )
            table.small_blind = small
            table.big_blind = big
            table.minimum_buy_in = minimum

        if "location" in changes:
            table.location = changes["location"]

        if "game_date" in changes and changes["game_date"] is not None:
            table.game_date = changes["game_date"]

        if "food_player_id" in changes:
            food_player_id = changes["food_player_id"]
            if food_player_id is not None:
                player = db.query(Player).filter(
                    Player.id == food_player_id,
                    Player.table_id == table.id
                ).first()
                if not player:
                    raise PlayerNotFound(food_player_id)
            table.food_player_id = food_player_id

        target_group_id = changes.get("group_id")
        if target_group_id is not None and target_group_id != table.group_id:
            authorize_table_move(db, actor, table.group_id, target_group_id)
            if not db.get(Group, target_group_id):
                raise GroupNotFound(target_group_id)
            source_group_id = table.group_id
            table.group_id = target_group_id
            record_event(
                db,
                "TABLE_MOVED",
                table_id=table.id,
                group_id=target_group_id,
                actor_id=actor.user_id,
                from_group_id=source_group_id,
                to_group_id=target_group_id,
            )
            logger.info(f"Moved table {table.id} from group {source_group_id} to {target_group_id}")

        record_event(
            db,
            "TABLE_UPDATED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            fields=sorted(changes.keys()),
        )
        return table

    @staticmethod
    @transactional
    def toggle_table_status(db: Session, actor: Actor, table_id: UUID) -> Table:
        """
        Flip a table between Active and Closed

        Closing (Active -> Closed) requires:
            1. every player is inactive
            2. total buy-ins minus settled-out is exactly zero
        Both are evaluated on freshly locked player rows in this same
        transaction, so a concurrent buy-in cannot slip in between the
        check and the flip.

        Reopening (Closed -> Active) is unconditional; it is how operators
        correct mistakes after closing.

        Raises:
            TableNotFound, Forbidden
            UnbalancedTable: closing refused; carries the computed balance
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_TABLES)

        if not table.is_active:
            return TableStateMachine.transition(table, TableStatus.ACTIVE, db, actor.user_id)

        players = lock_table_players(table.id, db).all()
        validation = validate_closure(players)
        if not validation.can_close:
            balance = validation.balance
            logger.warning(
                f"Refused to close table {table.id}: "
                f"active_players={len(validation.active_player_ids)} "
                f"total_buy_ins={balance.total_buy_ins} settled_out={balance.settled_out} "
                f"difference={balance.difference}"
            )
            raise UnbalancedTable(
                table.id,
                total_buy_ins=balance.total_buy_ins,
                settled_out=balance.settled_out,
                difference=balance.difference,
                active_players=len(validation.active_player_ids),
            )

        return TableStateMachine.transition(table, TableStatus.CLOSED, db, actor.user_id)

    @staticmethod
    @transactional
    def delete_table(db: Session, actor: Actor, table_id: UUID) -> None:
        """Delete a table with all its players and their history"""
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_TABLES)
        record_event(
            db,
            "TABLE_DELETED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            name=table.name,
        )
        db.delete(table)
        logger.info(f"Deleted table {table_id}")

    @staticmethod
    def get_table(db: Session, actor: Actor, table_id: UUID) -> Table:
        table = db.get(Table, table_id)
        if not table:
            raise TableNotFound(table_id)
        authorize_table(db, actor, table, Operation.VIEW)
        return table

    @staticmethod
    def list_tables(db: Session, actor: Actor, group_id: UUID, is_active: Optional[bool] = None) -> List[Table]:
        """Tables of a group, newest game first"""
        if not db.get(Group, group_id):
            raise GroupNotFound(group_id)
        authorize_group(db, actor, group_id, Operation.VIEW)

        query = db.query(Table).filter(Table.group_id == group_id)
        if is_active is not None:
            query = query.filter(Table.is_active == is_active)
        return query.order_by(Table.game_date.desc()).all()

    @staticmethod
    def preview_balance(db: Session, actor: Actor, table_id: UUID) -> ClosureValidation:
        """
        Read-only closure check shown before an operator confirms closing

        Unlike the close itself, active players count here with their chip
        stacks, so the preview shows how far the table is from balancing.
        """
        table = TableManager.get_table(db, actor, table_id)
        return validate_closure(table.players)

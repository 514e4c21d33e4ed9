"""
Player Manager: player lifecycle and ledger entries

Responsibilities:
1. Seat and remove players
2. Record buy-ins and cash-outs (append-only)
3. Reactivate players for a new stint
4. Maintain the advisory chip stack and settlement notes

Lock order is table -> player (see core.locks). Buy-ins and cash-outs are
intentionally not idempotent: each call appends one ledger row.
"""
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import BuyIn, CashOut, Player, PlayerStatus, Table
from core.events import record_event
from core.exceptions import (
    BuyInNotFound,
    DuplicateConflict,
    InvalidInput,
    PlayerInactive,
    PlayerNotFound,
)
from core.locks import with_player_lock
from core.permissions import Actor, Operation
from core.state_machine import PlayerStateMachine
from core.table_manager import TableManager
from services.money import ZERO, clamp_at_zero, require_non_negative, require_positive, to_amount
from database import transactional

logger = logging.getLogger(__name__)

DETAIL_FIELDS = ("show_me", "payment_method", "payment_comment")


def _identity(name: Optional[str], nickname: Optional[str]):
    """Case-insensitive (name, nickname) key; a missing nickname equals ''"""
    return ((name or "").strip().casefold(), (nickname or "").strip().casefold())


def _lock_player(db: Session, table: Table, player_id: UUID) -> Player:
    player = with_player_lock(player_id, table.id, db).first()
    if not player:
        raise PlayerNotFound(player_id)
    return player


class PlayerManager:
    """Player lifecycle manager"""

    @staticmethod
    @transactional
    def add_player(
        db: Session,
        actor: Actor,
        table_id: UUID,
        name: str,
        initial_chips: Optional[Any] = None,
        nickname: Optional[str] = None
    ) -> Player:
        """
        Seat a new, active player at a table

        Flow:
        1. Lock and authorize the table (editor), table must be open
        2. Reject a duplicate (name, nickname) pair, case-insensitive
        3. Create the player with chips = initial_chips or 0 and no history

        Raises:
            TableNotFound, Forbidden, TableClosed, InvalidAmount,
            DuplicateConflict
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        TableManager.require_active(table)

        name = (name or "").strip()
        if not name:
            raise InvalidInput("Player name is required")
        nickname = (nickname or "").strip() or None
        chips = require_non_negative(initial_chips, "initial chips") if initial_chips is not None else ZERO

        key = _identity(name, nickname)
        for existing in table.players:
            if _identity(existing.name, existing.nickname) == key:
                raise DuplicateConflict(
                    f"Player '{name}' ({nickname or 'no nickname'}) already sits at table {table.id}"
                )

        player = Player(
            table_id=table.id,
            name=name,
            nickname=nickname,
            chips=chips,
            active=True,
        )
        db.add(player)
        db.flush()

        record_event(
            db,
            "PLAYER_ADDED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            name=name,
            chips=chips,
        )
        logger.info(f"Player {player.id} ({name}) joined table {table.id}")
        return player

    @staticmethod
    @transactional
    def add_buy_in(db: Session, actor: Actor, table_id: UUID, player_id: UUID, amount: Any) -> BuyIn:
        """
        Append a buy-in for an active player

        The advisory chip stack grows by the same amount.

        Raises:
            InvalidAmount: amount <= 0
            PlayerInactive: player has cashed out
            TableNotFound, PlayerNotFound, Forbidden, TableClosed
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        amount = require_positive(amount, "buy-in amount")
        TableManager.require_active(table)
        player = _lock_player(db, table, player_id)
        if not player.active:
            raise PlayerInactive(player.id)

        buy_in = BuyIn(player_id=player.id, amount=amount)
        player.buy_ins.append(buy_in)
        player.chips = to_amount(player.chips or 0) + amount
        db.flush()

        record_event(
            db,
            "BUY_IN_ADDED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            buy_in_id=buy_in.id,
            amount=amount,
        )
        logger.info(
            f"Buy-in {amount} for player {player.id} at table {table.id} "
            f"(total {player.total_buy_in})"
        )
        return buy_in

    @staticmethod
    @transactional
    def delete_buy_in(db: Session, actor: Actor, table_id: UUID, buy_in_id: UUID) -> Player:
        """
        Remove a buy-in recorded by mistake

        Only allowed while the owning player is active; once a player has
        settled up their history is frozen until reactivation.

        Returns:
            the owning player, with the buy-in gone
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        TableManager.require_active(table)

        buy_in = db.query(BuyIn).join(Player).filter(
            BuyIn.id == buy_in_id,
            Player.table_id == table.id
        ).first()
        if not buy_in:
            raise BuyInNotFound(buy_in_id)

        player = _lock_player(db, table, buy_in.player_id)
        if not player.active:
            raise PlayerInactive(player.id)

        amount = to_amount(buy_in.amount)
        player.buy_ins.remove(buy_in)
        player.chips = clamp_at_zero(to_amount(player.chips or 0) - amount)
        db.flush()

        record_event(
            db,
            "BUY_IN_DELETED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            buy_in_id=buy_in_id,
            amount=amount,
        )
        logger.info(f"Deleted buy-in {buy_in_id} ({amount}) of player {player.id}")
        return player

    @staticmethod
    @transactional
    def cash_out(db: Session, actor: Actor, table_id: UUID, player_id: UUID, amount: Any) -> CashOut:
        """
        Record a cash-out and end the player's stint

        An amount of 0 is valid (the player walked away with nothing). The
        player becomes inactive and the chip stack drops to zero; from here
        on the cash-outs represent the player's position in the balance.

        Raises:
            InvalidAmount: amount < 0
            PlayerInactive: player already cashed out in this stint
            TableNotFound, PlayerNotFound, Forbidden, TableClosed
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        amount = require_non_negative(amount, "cash-out amount")
        TableManager.require_active(table)
        player = _lock_player(db, table, player_id)
        if not player.active:
            raise PlayerInactive(player.id)

        cash_out = CashOut(player_id=player.id, amount=amount)
        player.cash_outs.append(cash_out)
        player.chips = ZERO
        PlayerStateMachine.transition(player, PlayerStatus.INACTIVE)
        db.flush()

        record_event(
            db,
            "PLAYER_CASHED_OUT",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            cash_out_id=cash_out.id,
            amount=amount,
        )
        logger.info(
            f"Player {player.id} cashed out {amount} at table {table.id} "
            f"(bought in {player.total_buy_in})"
        )
        return cash_out

    @staticmethod
    @transactional
    def reactivate_player(db: Session, actor: Actor, table_id: UUID, player_id: UUID) -> Player:
        """
        Start a new stint for a cashed-out player

        History stays; earlier cash-outs keep counting toward the balance.
        Reactivating an active player changes nothing.

        Raises:
            TableClosed: the table is closed
            TableNotFound, PlayerNotFound, Forbidden
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        TableManager.require_active(table)
        player = _lock_player(db, table, player_id)
        if player.active:
            return player

        PlayerStateMachine.transition(player, PlayerStatus.ACTIVE)
        record_event(
            db,
            "PLAYER_REACTIVATED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
        )
        logger.info(f"Player {player.id} reactivated at table {table.id}")
        return player

    @staticmethod
    @transactional
    def remove_player(db: Session, actor: Actor, table_id: UUID, player_id: UUID) -> None:
        """
        Permanently delete a player and all their buy-ins and cash-outs

        Confirmation is the caller's job. Clears the table's food reference
        when it pointed at this player.
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        TableManager.require_active(table)
        player = _lock_player(db, table, player_id)

        if table.food_player_id == player.id:
            table.food_player_id = None

        record_event(
            db,
            "PLAYER_REMOVED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            name=player.name,
            total_buy_in=player.total_buy_in,
        )
        db.delete(player)
        logger.info(f"Removed player {player_id} from table {table.id}")

    @staticmethod
    @transactional
    def update_chips(db: Session, actor: Actor, table_id: UUID, player_id: UUID, chips: Any) -> Player:
        """Set an active player's current chip stack"""
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        chips = require_non_negative(chips, "chips")
        TableManager.require_active(table)
        player = _lock_player(db, table, player_id)
        if not player.active:
            raise PlayerInactive(player.id)

        player.chips = chips
        record_event(
            db,
            "CHIPS_UPDATED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor.user_id,
            player_id=player.id,
            chips=chips,
        )
        return player

    @staticmethod
    @transactional
    def update_player_details(
        db: Session,
        actor: Actor,
        table_id: UUID,
        player_id: UUID,
        patch: Dict[str, Any]
    ) -> Player:
        """
        Update display and settlement fields (show_me, payment method/comment)

        Allowed on closed tables: payments are usually sorted out after the
        game ends. Never touches the ledger.
        """
        table = TableManager.lock_table(db, actor, table_id, Operation.MANAGE_PLAYERS)
        player = _lock_player(db, table, player_id)

        for field in DETAIL_FIELDS:
            if field in patch:
                value = patch[field]
                if field == "show_me" and value is None:
                    continue
                setattr(player, field, value)
        return player

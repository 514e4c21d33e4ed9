"""
State machines: the only place table and player status changes

Table:  ACTIVE <-> CLOSED
Player: ACTIVE <-> INACTIVE

The machines only know which transitions exist. Guards that need ledger
data (the closing balance check) live in TableManager, which calls
transition() once the guard has passed.
"""
from typing import Dict, Optional, Set
import logging

from sqlalchemy.orm import Session

from models import Table, Player, TableStatus, PlayerStatus
from core.events import record_event
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class TableStateMachine:
    """Table lifecycle: closing is guarded by the caller, reopening is not"""

    TRANSITIONS: Dict[TableStatus, Set[TableStatus]] = {
        TableStatus.ACTIVE: {TableStatus.CLOSED},
        TableStatus.CLOSED: {TableStatus.ACTIVE},
    }

    @classmethod
    def can_transition(cls, current: TableStatus, target: TableStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(
        cls,
        table: Table,
        target: TableStatus,
        db: Session,
        actor_id: Optional[str] = None
    ) -> Table:
        """
        Move a (locked) table to the target status

        Raises:
            InvalidStateTransition: target is not reachable from the
                current status (e.g. closing an already closed table)
        """
        current = table.status
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Table {table.id} cannot go from {current.value} to {target.value}"
            )

        table.is_active = target == TableStatus.ACTIVE
        record_event(
            db,
            "TABLE_STATE_CHANGED",
            table_id=table.id,
            group_id=table.group_id,
            actor_id=actor_id,
            from_status=current,
            to_status=target,
        )
        logger.info(f"Table {table.id}: {current.value} -> {target.value}")
        return table


class PlayerStateMachine:
    """Player stint: a cash-out ends it, a reactivation starts a new one"""

    TRANSITIONS: Dict[PlayerStatus, Set[PlayerStatus]] = {
        PlayerStatus.ACTIVE: {PlayerStatus.INACTIVE},
        PlayerStatus.INACTIVE: {PlayerStatus.ACTIVE},
    }

    @classmethod
    def can_transition(cls, current: PlayerStatus, target: PlayerStatus) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, player: Player, target: PlayerStatus) -> Player:
        current = player.status
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Player {player.id} cannot go from {current.value} to {target.value}"
            )
        player.active = target == PlayerStatus.ACTIVE
        return player

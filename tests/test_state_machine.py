import pytest

from models import PlayerStatus, TableStatus
from core.exceptions import InvalidStateTransition
from core.state_machine import PlayerStateMachine, TableStateMachine
from core.table_manager import TableManager
from tests.conftest import EDITOR


def test_table_transitions():
    assert TableStateMachine.can_transition(TableStatus.ACTIVE, TableStatus.CLOSED)
    assert TableStateMachine.can_transition(TableStatus.CLOSED, TableStatus.ACTIVE)
    assert not TableStateMachine.can_transition(TableStatus.CLOSED, TableStatus.CLOSED)


def test_player_transitions():
    assert PlayerStateMachine.can_transition(PlayerStatus.ACTIVE, PlayerStatus.INACTIVE)
    assert PlayerStateMachine.can_transition(PlayerStatus.INACTIVE, PlayerStatus.ACTIVE)
    assert not PlayerStateMachine.can_transition(PlayerStatus.ACTIVE, PlayerStatus.ACTIVE)


def test_closing_a_closed_table_is_rejected(db, table):
    table = TableManager.get_table(db, EDITOR, table.id)
    TableStateMachine.transition(table, TableStatus.CLOSED, db)

    with pytest.raises(InvalidStateTransition):
        TableStateMachine.transition(table, TableStatus.CLOSED, db)
    db.rollback()


def test_transition_writes_event(db, table):
    from models import EventLog

    table = TableManager.get_table(db, EDITOR, table.id)
    TableStateMachine.transition(table, TableStatus.CLOSED, db, actor_id=EDITOR.user_id)
    db.commit()

    event = db.query(EventLog).filter(EventLog.event_type == "TABLE_STATE_CHANGED").one()
    assert event.table_id == table.id
    assert event.data == {"from_status": "active", "to_status": "closed"}
    assert event.actor_id == EDITOR.user_id

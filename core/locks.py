"""
Concurrency helpers

Row-level pessimistic locks (SELECT ... FOR UPDATE) so concurrent requests
on the same table serialize. SQLite ignores FOR UPDATE; it serializes
writers on its own.

Lock order is always table -> player. The table row is the mutation
boundary: every ledger change takes it first, which keeps a close from
reading balances that a concurrent buy-in is about to change.
"""
from uuid import UUID

from sqlalchemy.orm import Session, Query

from models import Group, Table, Player


def with_table_lock(table_id: UUID, db: Session) -> Query:
    """
    Lock one Table row

    Usage:
        table = with_table_lock(table_id, db).first()
        if not table:
            raise TableNotFound(table_id)
        ...

    Notes:
        - nowait=False waits for the lock instead of failing
        - must run inside a transaction (see @transactional)
    """
    return db.query(Table).filter(
        Table.id == table_id
    ).with_for_update(nowait=False).populate_existing()


def with_player_lock(player_id: UUID, table_id: UUID, db: Session) -> Query:
    """
    Lock one Player row, scoped to its table

    A player id from another table never matches, so callers cannot touch
    a player through the wrong table's URL.
    """
    return db.query(Player).filter(
        Player.id == player_id,
        Player.table_id == table_id
    ).with_for_update(nowait=False).populate_existing()


def lock_table_players(table_id: UUID, db: Session) -> Query:
    """
    Lock every Player of a table

    Used when closing: the balance must be read from rows nobody else can
    change until the status flip commits.
    """
    return db.query(Player).filter(
        Player.table_id == table_id
    ).with_for_update(nowait=False).populate_existing()


def with_group_lock(group_id: UUID, db: Session) -> Query:
    return db.query(Group).filter(
        Group.id == group_id
    ).with_for_update(nowait=False).populate_existing()

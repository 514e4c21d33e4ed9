import pytest

from models import GroupRole
from core.exceptions import Forbidden, GroupNotFound, TableNotFound
from core.permissions import (
    Operation,
    authorize_group,
    authorize_table,
    authorize_table_move,
    has_role,
    resolve_group_role,
)
from tests.conftest import ADMIN, EDITOR, OUTSIDER, OWNER, VIEWER


def test_role_ranking():
    assert has_role(GroupRole.OWNER, GroupRole.EDITOR)
    assert has_role(GroupRole.EDITOR, GroupRole.EDITOR)
    assert not has_role(GroupRole.VIEWER, GroupRole.EDITOR)
    assert not has_role(None, GroupRole.VIEWER)


def test_resolve_group_role(db, group):
    assert resolve_group_role(db, OWNER, group.id) == GroupRole.OWNER
    assert resolve_group_role(db, EDITOR, group.id) == GroupRole.EDITOR
    assert resolve_group_role(db, VIEWER, group.id) == GroupRole.VIEWER
    assert resolve_group_role(db, OUTSIDER, group.id) is None


def test_admin_bypasses_membership(db, group):
    assert resolve_group_role(db, ADMIN, group.id) == GroupRole.OWNER
    authorize_group(db, ADMIN, group.id, Operation.MANAGE_GROUP)


@pytest.mark.parametrize("actor, operation", [
    (VIEWER, Operation.VIEW),
    (EDITOR, Operation.MANAGE_PLAYERS),
    (EDITOR, Operation.MANAGE_TABLES),
    (OWNER, Operation.MANAGE_GROUP),
])
def test_minimum_roles_pass(db, table, actor, operation):
    authorize_table(db, actor, table, operation)


@pytest.mark.parametrize("actor, operation", [
    (VIEWER, Operation.MANAGE_PLAYERS),
    (VIEWER, Operation.MANAGE_TABLES),
    (EDITOR, Operation.MANAGE_GROUP),
])
def test_members_below_required_role_are_forbidden(db, table, actor, operation):
    with pytest.raises(Forbidden):
        authorize_table(db, actor, table, operation)


def test_outsiders_cannot_tell_tables_exist(db, table):
    with pytest.raises(TableNotFound):
        authorize_table(db, OUTSIDER, table, Operation.VIEW)


def test_outsiders_cannot_tell_groups_exist(db, group):
    with pytest.raises(GroupNotFound):
        authorize_group(db, OUTSIDER, group.id, Operation.VIEW)


def test_table_move_needs_ownership_of_both_groups(db, group, other_group):
    # EDITOR owns other_group but is only editor in group
    with pytest.raises(Forbidden):
        authorize_table_move(db, EDITOR, group.id, other_group.id)
    # OWNER owns group but is not in other_group
    with pytest.raises(Forbidden):
        authorize_table_move(db, OWNER, group.id, other_group.id)

    authorize_table_move(db, ADMIN, group.id, other_group.id)


def test_owner_of_both_groups_may_move(db, group, other_group):
    from core.group_manager import GroupManager

    GroupManager.add_member(db, EDITOR, other_group.id, OWNER.user_id, GroupRole.OWNER)
    authorize_table_move(db, OWNER, group.id, other_group.id)

import uuid

import pytest

from models import Group, GroupMembership, GroupRole
from core.exceptions import (
    DuplicateConflict,
    Forbidden,
    GroupHasTables,
    GroupNotFound,
    LastOwner,
    MemberNotFound,
)
from core.group_manager import GroupManager
from core.table_manager import TableManager
from tests.conftest import ADMIN, EDITOR, OUTSIDER, OWNER, VIEWER


def test_creator_becomes_owner(db):
    group = GroupManager.create_group(db, OUTSIDER, "Tuesday Game")

    summary = GroupManager.get_group(db, OUTSIDER, group.id)
    assert summary.role == GroupRole.OWNER
    assert summary.table_count == 0


def test_group_names_are_unique_ignoring_case(db, group):
    with pytest.raises(DuplicateConflict):
        GroupManager.create_group(db, OUTSIDER, "friday night")


def test_name_claimed_concurrently_is_a_conflict(db, group, monkeypatch):
    # the other request inserted after our existence check passed
    monkeypatch.setattr("core.group_manager._ensure_unique_name", lambda *args, **kwargs: None)

    with pytest.raises(DuplicateConflict):
        GroupManager.create_group(db, OUTSIDER, "Friday Night")

    assert db.query(Group).count() == 1


def test_rename_to_taken_name_rejected(db, group, other_group):
    with pytest.raises(DuplicateConflict):
        GroupManager.update_group(db, EDITOR, other_group.id, {"name": "FRIDAY NIGHT"})

    renamed = GroupManager.update_group(db, OWNER, group.id, {"name": "Friday Night Poker"})
    assert renamed.name == "Friday Night Poker"


def test_only_owners_manage_the_group(db, group):
    with pytest.raises(Forbidden):
        GroupManager.update_group(db, EDITOR, group.id, {"description": "x"})
    with pytest.raises(Forbidden):
        GroupManager.add_member(db, EDITOR, group.id, "new-1", GroupRole.VIEWER)


def test_outsider_gets_not_found(db, group):
    with pytest.raises(GroupNotFound):
        GroupManager.get_group(db, OUTSIDER, group.id)
    with pytest.raises(GroupNotFound):
        GroupManager.list_members(db, OUTSIDER, group.id)


def test_list_groups_shows_memberships_only(db, group, other_group):
    TableManager.create_table(db, EDITOR, group.id, "Table 1", 1, 2)

    viewer_groups = GroupManager.list_groups(db, VIEWER)
    assert [s.group.name for s in viewer_groups] == ["Friday Night"]
    assert viewer_groups[0].role == GroupRole.VIEWER
    assert viewer_groups[0].table_count == 1

    editor_roles = {s.group.name: s.role for s in GroupManager.list_groups(db, EDITOR)}
    assert editor_roles == {"Friday Night": GroupRole.EDITOR, "Office League": GroupRole.OWNER}

    admin_groups = GroupManager.list_groups(db, ADMIN)
    assert len(admin_groups) == 2
    assert all(s.role is None for s in admin_groups)
    assert GroupManager.get_group(db, ADMIN, group.id).role is None
    assert GroupManager.list_groups(db, OUTSIDER) == []


def test_members_listed(db, group):
    members = {m.user_id: m.role for m in GroupManager.list_members(db, VIEWER, group.id)}
    assert members == {
        OWNER.user_id: GroupRole.OWNER,
        EDITOR.user_id: GroupRole.EDITOR,
        VIEWER.user_id: GroupRole.VIEWER,
    }


def test_add_existing_member_rejected(db, group):
    with pytest.raises(DuplicateConflict):
        GroupManager.add_member(db, OWNER, group.id, VIEWER.user_id, GroupRole.EDITOR)


def test_change_role(db, group):
    membership = GroupManager.change_member_role(db, OWNER, group.id, VIEWER.user_id, GroupRole.EDITOR)
    assert membership.role == GroupRole.EDITOR


def test_change_role_of_stranger(db, group):
    with pytest.raises(MemberNotFound):
        GroupManager.change_member_role(db, OWNER, group.id, OUTSIDER.user_id, GroupRole.EDITOR)


class TestLastOwner:

    def test_cannot_demote_only_owner(self, db, group):
        with pytest.raises(LastOwner):
            GroupManager.change_member_role(db, OWNER, group.id, OWNER.user_id, GroupRole.EDITOR)

    def test_cannot_leave_as_only_owner(self, db, group):
        with pytest.raises(LastOwner):
            GroupManager.leave_group(db, OWNER, group.id)

    def test_owner_may_leave_after_promoting_another(self, db, group):
        GroupManager.change_member_role(db, OWNER, group.id, EDITOR.user_id, GroupRole.OWNER)
        GroupManager.leave_group(db, OWNER, group.id)

        with pytest.raises(GroupNotFound):
            GroupManager.get_group(db, OWNER, group.id)


def test_member_leaves(db, group):
    GroupManager.leave_group(db, VIEWER, group.id)

    assert db.query(GroupMembership).filter(GroupMembership.user_id == VIEWER.user_id).count() == 0


def test_non_member_cannot_leave(db, group):
    with pytest.raises(GroupNotFound):
        GroupManager.leave_group(db, OUTSIDER, group.id)


def test_remove_member(db, group):
    GroupManager.remove_member(db, OWNER, group.id, EDITOR.user_id)
    with pytest.raises(MemberNotFound):
        GroupManager.remove_member(db, OWNER, group.id, EDITOR.user_id)


def test_group_with_tables_cannot_be_deleted(db, group, table):
    with pytest.raises(GroupHasTables) as exc_info:
        GroupManager.delete_group(db, OWNER, group.id)
    assert exc_info.value.table_count == 1

    TableManager.delete_table(db, OWNER, table.id)
    GroupManager.delete_group(db, OWNER, group.id)

    assert db.get(Group, group.id) is None
    assert db.query(GroupMembership).count() == 0


def test_delete_unknown_group(db):
    with pytest.raises(GroupNotFound):
        GroupManager.delete_group(db, ADMIN, uuid.uuid4())

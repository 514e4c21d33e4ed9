"""
Group Manager: groups and their memberships

Responsibilities:
1. Create, update and delete groups
2. Add, re-role and remove members; let members leave
3. Keep every group with at least one owner

Join/leave notifications are dispatched by the API layer after the
transaction commits, so a rolled-back change never announces itself.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Group, GroupMembership, GroupRole, Table
from core.events import record_event
from core.exceptions import (
    DuplicateConflict,
    GroupHasTables,
    GroupNotFound,
    InvalidInput,
    LastOwner,
    MemberNotFound,
)
from core.locks import with_group_lock
from core.permissions import Actor, Operation, authorize_group, get_membership, membership_role
from database import transactional

logger = logging.getLogger(__name__)


@dataclass
class GroupSummary:
    group: Group
    role: Optional[GroupRole]
    table_count: int


def _clean_group_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidInput("Group name is required")
    return cleaned


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(Group).filter(func.lower(Group.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Group.id != exclude_id)
    if query.first():
        raise DuplicateConflict(f"Group '{name}' already exists")


def _flush_unique_name(db: Session, name: str) -> None:
    """
    Flush a new or renamed group

    A concurrent request can claim the name between the check above and
    this insert; the unique constraint catches it.
    """
    try:
        db.flush()
    except IntegrityError:
        raise DuplicateConflict(f"Group '{name}' already exists")


def _owner_count(db: Session, group_id: UUID) -> int:
    return db.query(GroupMembership).filter(
        GroupMembership.group_id == group_id,
        GroupMembership.role == GroupRole.OWNER
    ).count()


def _lock_group(db: Session, actor: Actor, group_id: UUID, operation: Operation) -> Group:
    group = with_group_lock(group_id, db).first()
    if not group:
        raise GroupNotFound(group_id)
    authorize_group(db, actor, group_id, operation)
    return group


class GroupManager:
    """Group lifecycle manager"""

    @staticmethod
    @transactional
    def create_group(db: Session, actor: Actor, name: str, description: Optional[str] = None) -> Group:
        """
        Create a group; the creator becomes its owner

        Raises:
            DuplicateConflict: a group with this name (any case) exists
        """
        name = _clean_group_name(name)
        _ensure_unique_name(db, name)

        group = Group(name=name, description=description, created_by=actor.user_id)
        db.add(group)
        _flush_unique_name(db, name)

        db.add(GroupMembership(group_id=group.id, user_id=actor.user_id, role=GroupRole.OWNER))
        record_event(db, "GROUP_CREATED", group_id=group.id, actor_id=actor.user_id, name=name)
        logger.info(f"Created group {group.id} ({name}) owned by {actor.user_id}")
        return group

    @staticmethod
    @transactional
    def update_group(db: Session, actor: Actor, group_id: UUID, patch: Dict[str, Any]) -> Group:
        group = _lock_group(db, actor, group_id, Operation.MANAGE_GROUP)

        if "name" in patch and patch["name"] is not None:
            name = _clean_group_name(patch["name"])
            _ensure_unique_name(db, name, exclude_id=group.id)
            group.name = name
            _flush_unique_name(db, name)
        if "description" in patch:
            group.description = patch["description"]

        record_event(db, "GROUP_UPDATED", group_id=group.id, actor_id=actor.user_id, fields=sorted(patch.keys()))
        return group

    @staticmethod
    @transactional
    def delete_group(db: Session, actor: Actor, group_id: UUID) -> None:
        """
        Delete an empty group

        Raises:
            GroupHasTables: tables must be moved or deleted first
        """
        group = _lock_group(db, actor, group_id, Operation.MANAGE_GROUP)
        table_count = db.query(Table).filter(Table.group_id == group.id).count()
        if table_count:
            raise GroupHasTables(group.id, table_count)

        record_event(db, "GROUP_DELETED", group_id=group.id, actor_id=actor.user_id, name=group.name)
        db.delete(group)
        logger.info(f"Deleted group {group_id}")

    @staticmethod
    def get_group(db: Session, actor: Actor, group_id: UUID) -> GroupSummary:
        group = db.get(Group, group_id)
        if not group:
            raise GroupNotFound(group_id)
        authorize_group(db, actor, group_id, Operation.VIEW)
        role = membership_role(db, actor, group_id)
        table_count = db.query(Table).filter(Table.group_id == group_id).count()
        return GroupSummary(group=group, role=role, table_count=table_count)

    @staticmethod
    def list_groups(db: Session, actor: Actor) -> List[GroupSummary]:
        """
        Groups visible to the actor with their role and table count

        Admins see every group.
        """
        query = db.query(Group)
        if not actor.is_admin:
            query = query.join(GroupMembership).filter(GroupMembership.user_id == actor.user_id)
        groups = query.order_by(Group.name).all()

        counts = dict(
            db.query(Table.group_id, func.count(Table.id)).group_by(Table.group_id).all()
        )
        return [
            GroupSummary(
                group=group,
                role=membership_role(db, actor, group.id),
                table_count=counts.get(group.id, 0),
            )
            for group in groups
        ]

    @staticmethod
    def list_members(db: Session, actor: Actor, group_id: UUID) -> List[GroupMembership]:
        if not db.get(Group, group_id):
            raise GroupNotFound(group_id)
        authorize_group(db, actor, group_id, Operation.VIEW)
        return db.query(GroupMembership).filter(
            GroupMembership.group_id == group_id
        ).order_by(GroupMembership.joined_at).all()

    @staticmethod
    @transactional
    def add_member(db: Session, actor: Actor, group_id: UUID, user_id: str, role: GroupRole) -> GroupMembership:
        """
        Add a user to a group (owner or admin only)

        Raises:
            DuplicateConflict: user is already a member
        """
        _lock_group(db, actor, group_id, Operation.MANAGE_GROUP)
        user_id = (user_id or "").strip()
        if not user_id:
            raise InvalidInput("user_id is required")
        if get_membership(db, group_id, user_id):
            raise DuplicateConflict(f"User {user_id} is already a member of group {group_id}")

        membership = GroupMembership(group_id=group_id, user_id=user_id, role=role)
        db.add(membership)
        db.flush()
        record_event(
            db, "MEMBER_ADDED", group_id=group_id, actor_id=actor.user_id, user_id=user_id, role=role
        )
        logger.info(f"User {user_id} joined group {group_id} as {role.value}")
        return membership

    @staticmethod
    @transactional
    def change_member_role(db: Session, actor: Actor, group_id: UUID, user_id: str, role: GroupRole) -> GroupMembership:
        """
        Change a member's role

        Raises:
            MemberNotFound
            LastOwner: demoting the only owner
        """
        _lock_group(db, actor, group_id, Operation.MANAGE_GROUP)
        membership = get_membership(db, group_id, user_id)
        if not membership:
            raise MemberNotFound(group_id, user_id)

        if membership.role == GroupRole.OWNER and role != GroupRole.OWNER and _owner_count(db, group_id) <= 1:
            raise LastOwner(f"Group {group_id} needs at least one owner")

        previous = membership.role
        membership.role = role
        record_event(
            db,
            "MEMBER_ROLE_CHANGED",
            group_id=group_id,
            actor_id=actor.user_id,
            user_id=user_id,
            from_role=previous,
            to_role=role,
        )
        logger.info(f"User {user_id} in group {group_id}: {previous.value} -> {role.value}")
        return membership

    @staticmethod
    @transactional
    def remove_member(db: Session, actor: Actor, group_id: UUID, user_id: str) -> None:
        _lock_group(db, actor, group_id, Operation.MANAGE_GROUP)
        GroupManager._drop_membership(db, actor, group_id, user_id)

    @staticmethod
    @transactional
    def leave_group(db: Session, actor: Actor, group_id: UUID) -> None:
        """Any member may leave, except the last owner"""
        group = with_group_lock(group_id, db).first()
        if not group or not get_membership(db, group_id, actor.user_id):
            raise GroupNotFound(group_id)
        GroupManager._drop_membership(db, actor, group_id, actor.user_id)

    @staticmethod
    def _drop_membership(db: Session, actor: Actor, group_id: UUID, user_id: str) -> None:
        membership = get_membership(db, group_id, user_id)
        if not membership:
            raise MemberNotFound(group_id, user_id)
        if membership.role == GroupRole.OWNER and _owner_count(db, group_id) <= 1:
            raise LastOwner(f"Group {group_id} needs at least one owner")

        db.delete(membership)
        record_event(db, "MEMBER_REMOVED", group_id=group_id, actor_id=actor.user_id, user_id=user_id)
        logger.info(f"User {user_id} left group {group_id}")

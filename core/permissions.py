"""
Group role resolver

Every manager operation asks this module, and only this module, whether the
acting user may proceed. Roles are scoped to a group; a table inherits the
role its group grants. Platform admins bypass group membership entirely.

Role ranking: owner > editor > viewer

Leak rule:
    - a user who is not a member of the group gets NotFound, exactly as if
      the group or table did not exist
    - a member whose role is too low gets Forbidden
"""
import enum
from dataclasses import dataclass
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import GroupMembership, GroupRole, PlatformRole, Table
from core.exceptions import Forbidden, GroupNotFound, TableNotFound

ROLE_RANK: Dict[GroupRole, int] = {
    GroupRole.VIEWER: 1,
    GroupRole.EDITOR: 2,
    GroupRole.OWNER: 3,
}


class Operation(str, enum.Enum):
    VIEW = "view"
    MANAGE_PLAYERS = "manage_players"
    MANAGE_TABLES = "manage_tables"
    MANAGE_GROUP = "manage_group"


REQUIRED_ROLE: Dict[Operation, GroupRole] = {
    Operation.VIEW: GroupRole.VIEWER,
    Operation.MANAGE_PLAYERS: GroupRole.EDITOR,
    Operation.MANAGE_TABLES: GroupRole.EDITOR,
    Operation.MANAGE_GROUP: GroupRole.OWNER,
}


@dataclass(frozen=True)
class Actor:
    """Identity resolved upstream; this service never authenticates"""
    user_id: str
    platform_role: PlatformRole = PlatformRole.USER

    @property
    def is_admin(self) -> bool:
        return self.platform_role == PlatformRole.ADMIN


def has_role(role: Optional[GroupRole], minimum: GroupRole) -> bool:
    if role is None:
        return False
    return ROLE_RANK[role] >= ROLE_RANK[minimum]


def get_membership(db: Session, group_id: UUID, user_id: str) -> Optional[GroupMembership]:
    return db.query(GroupMembership).filter(
        GroupMembership.group_id == group_id,
        GroupMembership.user_id == user_id
    ).first()


def membership_role(db: Session, actor: Actor, group_id: UUID) -> Optional[GroupRole]:
    """Role the actor actually holds in the group; admins get no bonus here"""
    membership = get_membership(db, group_id, actor.user_id)
    return membership.role if membership else None


def resolve_group_role(db: Session, actor: Actor, group_id: UUID) -> Optional[GroupRole]:
    """
    Effective role of the actor in a group, for authorization only

    Returns:
        GroupRole.OWNER for admins, the membership role for members,
        None for everyone else
    """
    if actor.is_admin:
        return GroupRole.OWNER
    return membership_role(db, actor, group_id)


def authorize_group(db: Session, actor: Actor, group_id: UUID, operation: Operation) -> GroupRole:
    """
    Gate an operation on a group

    Raises:
        GroupNotFound: actor is not a member (same answer as a missing group)
        Forbidden: actor is a member but below the required role
    """
    role = resolve_group_role(db, actor, group_id)
    if role is None:
        raise GroupNotFound(group_id)
    if not has_role(role, REQUIRED_ROLE[operation]):
        raise Forbidden()
    return role


def authorize_table(db: Session, actor: Actor, table: Table, operation: Operation) -> GroupRole:
    """
    Gate an operation on a table through its owning group

    Raises:
        TableNotFound: actor is not a member of the table's group
        Forbidden: actor is a member but below the required role
    """
    role = resolve_group_role(db, actor, table.group_id)
    if role is None:
        raise TableNotFound(table.id)
    if not has_role(role, REQUIRED_ROLE[operation]):
        raise Forbidden()
    return role


def authorize_table_move(db: Session, actor: Actor, source_group_id: UUID, target_group_id: UUID) -> None:
    """
    Moving a table between groups needs ownership of both groups

    Admins may move any table to any group. Everyone else gets Forbidden
    unless they own the source and the destination.
    """
    if actor.is_admin:
        return
    source_role = resolve_group_role(db, actor, source_group_id)
    target_role = resolve_group_role(db, actor, target_group_id)
    if source_role != GroupRole.OWNER or target_role != GroupRole.OWNER:
        raise Forbidden()

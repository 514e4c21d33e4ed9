"""
Group API endpoints

Responsibilities:
1. Group CRUD
2. Membership management (owner/admin) and leaving a group
3. Food rotation suggestion for a group

Join/leave notifications go out as background tasks, after the response
and therefore after the commit.
"""
from typing import List, Optional
from uuid import UUID
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from database import get_db
from schemas import (
    FoodCandidateResponse,
    GroupCreate,
    GroupResponse,
    GroupUpdate,
    MemberAdd,
    MemberResponse,
    MemberRoleUpdate,
)
from core.exceptions import LedgerException, TableNotFound
from core.group_manager import GroupManager, GroupSummary
from core.permissions import Actor
from core.table_manager import TableManager
from services.food_rotation_service import get_group_food_rotation
from services.notification_service import GROUP_MEMBER_JOINED, GROUP_MEMBER_LEFT, notify
from api.deps import get_actor
from api.errors import to_http_exception

router = APIRouter(prefix="/api/groups", tags=["groups"])
logger = logging.getLogger(__name__)


def _group_response(summary: GroupSummary) -> GroupResponse:
    group = summary.group
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        created_by=group.created_by,
        created_at=group.created_at,
        role=summary.role,
        table_count=summary.table_count
    )


@router.post("", response_model=GroupResponse, status_code=201)
def create_group(
    group_data: GroupCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Create a group; the caller becomes its owner"""
    try:
        group = GroupManager.create_group(db, actor, group_data.name, group_data.description)
        return _group_response(GroupManager.get_group(db, actor, group.id))

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create group: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[GroupResponse])
def list_groups(
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Groups the caller belongs to (admins: all groups)"""
    try:
        return [_group_response(summary) for summary in GroupManager.list_groups(db, actor)]

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list groups: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{group_id}", response_model=GroupResponse)
def get_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        return _group_response(GroupManager.get_group(db, actor, group_id))

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get group: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{group_id}", response_model=GroupResponse)
def update_group(
    group_id: UUID,
    group_data: GroupUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        GroupManager.update_group(db, actor, group_id, group_data.model_dump(exclude_unset=True))
        return _group_response(GroupManager.get_group(db, actor, group_id))

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update group: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{group_id}", status_code=204)
def delete_group(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """Delete a group that no longer owns tables (owner or admin)"""
    try:
        GroupManager.delete_group(db, actor, group_id)
        return Response(status_code=204)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete group: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Members ============

@router.get("/{group_id}/members", response_model=List[MemberResponse])
def list_members(
    group_id: UUID,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        members = GroupManager.list_members(db, actor, group_id)
        return [MemberResponse.model_validate(member) for member in members]

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list members: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{group_id}/members", response_model=MemberResponse, status_code=201)
def add_member(
    group_id: UUID,
    member_data: MemberAdd,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        membership = GroupManager.add_member(db, actor, group_id, member_data.user_id, member_data.role)
        background_tasks.add_task(
            notify,
            GROUP_MEMBER_JOINED,
            group_id=str(group_id),
            user_id=membership.user_id,
            role=membership.role.value,
            added_by=actor.user_id
        )
        return MemberResponse.model_validate(membership)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add member: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{group_id}/members/{user_id}", response_model=MemberResponse)
def change_member_role(
    group_id: UUID,
    user_id: str,
    role_data: MemberRoleUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        membership = GroupManager.change_member_role(db, actor, group_id, user_id, role_data.role)
        return MemberResponse.model_validate(membership)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to change member role: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{group_id}/members/{user_id}", status_code=204)
def remove_member(
    group_id: UUID,
    user_id: str,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        GroupManager.remove_member(db, actor, group_id, user_id)
        background_tasks.add_task(
            notify, GROUP_MEMBER_LEFT, group_id=str(group_id), user_id=user_id, removed_by=actor.user_id
        )
        return Response(status_code=204, background=background_tasks)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to remove member: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{group_id}/leave", status_code=204)
def leave_group(
    group_id: UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    try:
        GroupManager.leave_group(db, actor, group_id)
        background_tasks.add_task(
            notify, GROUP_MEMBER_LEFT, group_id=str(group_id), user_id=actor.user_id, removed_by=actor.user_id
        )
        return Response(status_code=204, background=background_tasks)

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to leave group: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Food rotation ============

@router.get("/{group_id}/food-rotation", response_model=List[FoodCandidateResponse])
def food_rotation(
    group_id: UUID,
    table_id: Optional[UUID] = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db)
):
    """
    Suggest who should order food next

    History comes from the group's closed tables. With table_id, only the
    players seated at that table are ranked.
    """
    try:
        GroupManager.get_group(db, actor, group_id)

        restrict_to = None
        if table_id is not None:
            table = TableManager.get_table(db, actor, table_id)
            if table.group_id != group_id:
                raise TableNotFound(table_id)
            restrict_to = {player.name for player in table.players}

        candidates = get_group_food_rotation(db, group_id, restrict_to=restrict_to)
        return [FoodCandidateResponse.model_validate(candidate) for candidate in candidates]

    except LedgerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to rank food rotation: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

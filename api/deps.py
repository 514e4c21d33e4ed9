"""
Request identity

Authentication happens upstream (gateway/session layer). It forwards the
resolved identity as headers; this service only authorizes with it.
"""
from typing import Optional

from fastapi import Header, HTTPException

from models import PlatformRole
from core.permissions import Actor


def get_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None)
) -> Actor:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")

    try:
        role = PlatformRole((x_user_role or PlatformRole.USER.value).strip().lower())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user role")

    return Actor(user_id=user_id, platform_role=role)

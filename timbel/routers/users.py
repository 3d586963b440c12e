# timbel/routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from timbel.core.exceptions import DomainError
from timbel.database import get_db
from timbel.models.user import User
from timbel.schemas.user import CanViewOut, ProfileUpdate, UserBasic, UserOut
from timbel.services.users import UserService
from timbel.utils.access import AccessResolver
from timbel.utils.auth import get_current_user
from timbel.utils.errors import to_http_exception

router = APIRouter()

@router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the signed-in user, creating the record on first sign-in"""
    return current_user

@router.patch("/me", response_model=UserOut)
def update_my_profile(
    profile: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own name and avatar"""
    try:
        return UserService(db).update_profile(
            current_user.id,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url
        )
    except DomainError as e:
        raise to_http_exception(e)

@router.get("/visible", response_model=List[UserBasic])
def get_visible_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Users whose weekly tasks the current user can read

    - SUPER and ADMIN: everyone
    - MANAGER: same department
    - TEAM_LEADER: same team
    - MEMBER: only themselves
    """
    return AccessResolver(db).list_visible_users(current_user.id)

@router.get("/{target_id}/can-view", response_model=CanViewOut)
def can_view_user(
    target_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    allowed = AccessResolver(db).can_view(current_user.id, target_id)
    return {"viewer_id": current_user.id, "target_id": target_id, "allowed": allowed}

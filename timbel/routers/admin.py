# timbel/routers/admin.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from timbel.core.exceptions import DomainError
from timbel.database import get_db
from timbel.models.user import User
from timbel.schemas.user import AdminUserUpdate, AdminUserUpdateResult, UserOut
from timbel.services.users import UserService
from timbel.utils.auth import get_current_super_user
from timbel.utils.errors import to_http_exception

router = APIRouter()

@router.get("/users", response_model=List[UserOut])
def get_all_users(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_super_user)
):
    """All users, highest role first"""
    return UserService(db).list_users()

@router.patch("/users/{user_id}", response_model=AdminUserUpdateResult)
def update_user(
    user_id: str,
    updates: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_super_user)
):
    """Change a user's role, department or team

    Changing the department without naming a team clears the team.
    """
    try:
        user, changed = UserService(db).admin_update_user(
            admin, user_id, updates.model_dump(exclude_unset=True)
        )
    except DomainError as e:
        raise to_http_exception(e)
    return {"user": user, "changed": changed}

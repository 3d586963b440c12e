from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from timbel.models.user import UserRole

class UserBasic(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    department_id: Optional[str] = None
    team_id: Optional[str] = None

    model_config = {
        "from_attributes": True
    }

class UserOut(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    department_id: Optional[str] = None
    team_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=500)

class AdminUserUpdate(BaseModel):
    """Fields only a SUPER user may change. Explicit nulls clear the value."""
    role: Optional[UserRole] = None
    department_id: Optional[str] = None
    team_id: Optional[str] = None

class AdminUserUpdateResult(BaseModel):
    user: UserOut
    changed: bool

class CanViewOut(BaseModel):
    viewer_id: str
    target_id: str
    allowed: bool

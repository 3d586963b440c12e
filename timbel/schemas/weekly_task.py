from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from .user import UserBasic

class WeeklyTaskSave(BaseModel):
    this_week_tasks: str = ""
    next_week_plan: str = ""
    note: str = ""

class WeeklyTaskOut(BaseModel):
    id: str
    user_id: str
    year: int
    week_number: int
    this_week_tasks: str
    next_week_plan: str
    note: str
    submission_date: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }

class WeeklyTaskWithUser(WeeklyTaskOut):
    owner: UserBasic

class SaveResult(BaseModel):
    success: bool

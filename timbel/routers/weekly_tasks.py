# timbel/routers/weekly_tasks.py
import logging
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import Dict, List, Optional

from timbel.database import get_db
from timbel.models.user import User
from timbel.schemas.note import NoteCount
from timbel.schemas.weekly_task import SaveResult, WeeklyTaskOut, WeeklyTaskSave, WeeklyTaskWithUser
from timbel.services.notes import NoteStore
from timbel.services.weekly_tasks import WeeklyTaskStore
from timbel.utils.access import AccessResolver
from timbel.utils.auth import get_current_user
from timbel.utils.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[WeeklyTaskWithUser])
async def get_visible_weekly_tasks(
    year: int = Query(..., ge=2000, le=2100),
    week: Optional[int] = Query(None, ge=1, le=53),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Weekly tasks of every user the current user can see, by week"""
    viewer_id = current_user.id
    return await run_with_timeout(
        lambda session: WeeklyTaskStore(session).list_visible_tasks(viewer_id, year, week),
        default=[]
    )


@router.get("/users/{user_id}/{year}", response_model=List[WeeklyTaskOut])
async def get_user_weekly_tasks(
    user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """A user's weekly tasks for a year; empty when not visible"""
    if user_id == current_user.id:
        return WeeklyTaskStore(db).list_tasks_for_user(user_id, year)
    viewer_id = current_user.id
    return await run_with_timeout(
        lambda session: WeeklyTaskStore(session).list_tasks_for_user(user_id, year, viewer_id),
        default=[]
    )


@router.get("/users/{user_id}/{year}/note-counts", response_model=Dict[int, NoteCount])
async def get_note_counts(
    user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Note counts per week; weeks without notes are omitted"""
    if not AccessResolver(db).can_view(current_user.id, user_id):
        return {}
    if user_id == current_user.id:
        return NoteStore(db).note_counts(user_id, year, current_user.id)
    viewer_id = current_user.id
    return await run_with_timeout(
        lambda session: NoteStore(session).note_counts(user_id, year, viewer_id),
        default={}
    )


@router.get("/users/{user_id}/{year}/{week}", response_model=Optional[WeeklyTaskOut])
async def get_weekly_task(
    user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """One week's record. null means "no data": absent, not visible, or unavailable."""
    if user_id == current_user.id:
        return WeeklyTaskStore(db).get_task(user_id, year, week)
    viewer_id = current_user.id
    return await run_with_timeout(
        lambda session: WeeklyTaskStore(session).get_task(user_id, year, week, viewer_id),
        default=None
    )


@router.put("/users/{user_id}/{year}/{week}", response_model=SaveResult)
def save_weekly_task(
    payload: WeeklyTaskSave,
    user_id: str,
    year: int = Path(..., ge=2000, le=2100),
    week: int = Path(..., ge=1, le=53),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create or update own weekly task. Other users' records are never written."""
    success = WeeklyTaskStore(db).save_task(
        user_id,
        year,
        week,
        payload.this_week_tasks,
        payload.next_week_plan,
        payload.note,
        acting_user_id=current_user.id
    )
    return {"success": success}

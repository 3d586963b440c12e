# timbel/routers/notes.py
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from timbel.core.exceptions import DomainError
from timbel.database import get_db
from timbel.models.user import User
from timbel.schemas.note import NoteChanges, NoteCreate, NoteNode, NoteOut, NoteStatusUpdate
from timbel.services.notes import NoteStore
from timbel.services.websocket_manager import publish_note_change
from timbel.utils.auth import get_current_user
from timbel.utils.errors import to_http_exception
from timbel.utils.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Start a thread on a weekly task, or reply in one.

    For replies the recipient is always the sender of the parent note,
    whatever recipient_id says.
    """
    try:
        note = NoteStore(db).create_note(
            payload.weekly_task_id,
            payload.recipient_id,
            payload.content,
            acting_user_id=current_user.id,
            parent_note_id=payload.parent_note_id
        )
    except DomainError as e:
        raise to_http_exception(e)

    await publish_note_change(note, "created")
    return note

@router.get("/tasks/{weekly_task_id}", response_model=List[NoteNode])
async def get_task_notes(
    weekly_task_id: str,
    mark_read: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Notes of a weekly task as reply trees, oldest first.

    With mark_read, notes addressed to the current user are marked read once
    they have been delivered; the returned trees show them as they were.
    """
    viewer_id = current_user.id
    forest = await run_with_timeout(
        lambda session: NoteStore(session).list_notes(weekly_task_id, viewer_id),
        default=[]
    )
    if mark_read and forest:
        NoteStore(db).mark_task_notes_read(weekly_task_id, viewer_id)
    return forest

@router.get("/tasks/{weekly_task_id}/changes", response_model=NoteChanges)
def get_task_note_changes(
    weekly_task_id: str,
    since: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cheap poll: has anything in this task's notes changed after `since`?"""
    store = NoteStore(db)
    if not store.can_view_notes(weekly_task_id, current_user.id):
        return {"weekly_task_id": weekly_task_id, "changed": False, "latest": None}
    return store.notes_changed_since(weekly_task_id, since)

@router.patch("/{note_id}/read", response_model=NoteOut)
async def mark_note_read(
    note_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Mark a note as read"""
    store = NoteStore(db)
    note = store.get_note(note_id)
    # Non-participants get the same answer as for a missing note
    if not note or current_user.id not in (note.sender_id, note.recipient_id):
        raise HTTPException(status_code=404, detail="Note not found")

    was_read = note.is_read
    note = store.mark_read(note_id)
    if not was_read:
        await publish_note_change(note, "read")
    return note

@router.patch("/{note_id}/status", response_model=NoteOut)
async def update_note_status(
    note_id: str,
    payload: NoteStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change a note's status; resolving or reopening is for the thread's author"""
    try:
        note = NoteStore(db).set_status(note_id, payload.status, acting_user_id=current_user.id)
    except DomainError as e:
        raise to_http_exception(e)

    await publish_note_change(note, "status")
    return note

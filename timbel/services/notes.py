# timbel/services/notes.py
"""
Threaded notes on weekly tasks.

Validation rules raise typed errors from timbel.core.exceptions. Read paths
(list_notes, note_counts, notes_changed_since) never raise on backend faults;
they log and return the empty result.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timbel.config.settings import Settings
from timbel.core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    NoteNotFoundError,
    NotOwnerError,
    NotRecipientError,
    NotSenderError,
    SelfRecipientError,
)
from timbel.models import TaskNote, NoteStatus, User, UserRole, WeeklyTask, ELEVATED_ROLES
from timbel.schemas.note import NoteNode
from timbel.utils.access import AccessResolver

logger = logging.getLogger(__name__)

# Only consulted when STRICT_NOTE_STATUS is on; otherwise status is a free-form label
ALLOWED_TRANSITIONS = {
    NoteStatus.PENDING: {NoteStatus.READ, NoteStatus.REPLIED, NoteStatus.RESOLVED},
    NoteStatus.READ: {NoteStatus.REPLIED, NoteStatus.RESOLVED},
    NoteStatus.REPLIED: {NoteStatus.READ, NoteStatus.RESOLVED},
    NoteStatus.RESOLVED: {NoteStatus.PENDING},
}

# Statuses that open or close a thread
THREAD_STATUSES = {NoteStatus.RESOLVED, NoteStatus.PENDING}


def build_note_forest(notes: List[TaskNote]) -> List[NoteNode]:
    """Arrange a flat list of notes into reply trees.

    A note whose parent is in the list becomes that parent's child; every
    other note, including one whose parent is missing, is a root. Each level
    is ordered by creation time.
    """
    nodes = {note.id: NoteNode.model_validate(note) for note in notes}
    roots: List[NoteNode] = []

    for note in notes:
        node = nodes[note.id]
        parent_id = note.parent_note_id
        if parent_id and parent_id != note.id and parent_id in nodes:
            nodes[parent_id].children.append(node)
        else:
            roots.append(node)

    def sort_by_date(level: List[NoteNode]) -> List[NoteNode]:
        level.sort(key=lambda n: n.created_at)
        for child in level:
            if child.children:
                sort_by_date(child.children)
        return level

    return sort_by_date(roots)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class NoteStore:
    def __init__(self, db: Session, resolver: Optional[AccessResolver] = None):
        self.db = db
        self.resolver = resolver or AccessResolver(db)

    def get_note(self, note_id: str) -> Optional[TaskNote]:
        return self.db.query(TaskNote).filter(TaskNote.id == note_id).first()

    def _get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def create_note(
        self,
        weekly_task_id: str,
        recipient_id: str,
        content: str,
        acting_user_id: str,
        parent_note_id: Optional[str] = None
    ) -> TaskNote:
        """Create a note, either opening a thread or replying in one"""
        sender = self._get_user(acting_user_id)
        if not sender:
            raise NotFoundError("Sender not found")

        task = self.db.query(WeeklyTask).filter(WeeklyTask.id == weekly_task_id).first()
        if not task:
            raise NotFoundError("Weekly task not found")

        parent = None
        if parent_note_id:
            parent = self.get_note(parent_note_id)
            if not parent or parent.weekly_task_id != weekly_task_id:
                raise NoteNotFoundError("The note being replied to does not exist on this weekly task")
            if parent.recipient_id != sender.id:
                raise NotRecipientError()
            # Replies always go back to whoever wrote the note being answered
            recipient_id = parent.sender_id
        else:
            if recipient_id == sender.id and sender.role not in ELEVATED_ROLES:
                raise SelfRecipientError()
            if sender.role == UserRole.MEMBER and task.user_id != sender.id:
                raise NotOwnerError()

        if not self._get_user(recipient_id):
            raise NotFoundError("Recipient not found")

        note = TaskNote(
            weekly_task_id=weekly_task_id,
            sender_id=sender.id,
            recipient_id=recipient_id,
            content=content,
            parent_note_id=parent.id if parent else None,
            status=NoteStatus.PENDING.value,
            is_read=False
        )

        try:
            self.db.add(note)
            if parent:
                parent.status = NoteStatus.REPLIED.value
            self.db.commit()
            self.db.refresh(note)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error creating note on weekly task {weekly_task_id}")
            raise

        logger.info(f"Note {note.id} created by {sender.id} for {recipient_id} on task {weekly_task_id}")
        return note

    def mark_read(self, note_id: str) -> Optional[TaskNote]:
        """Mark a note read. Repeating the call changes nothing."""
        note = self.get_note(note_id)
        if not note:
            return None

        if note.is_read and note.status == NoteStatus.READ:
            return note

        note.is_read = True
        note.status = NoteStatus.READ.value
        try:
            self.db.commit()
            self.db.refresh(note)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error marking note {note_id} as read")
            raise
        return note

    def set_status(self, note_id: str, status: NoteStatus, acting_user_id: str) -> TaskNote:
        """Change a note's status.

        Any participant may set read/replied. Resolving or reopening a thread
        is reserved for the sender of its opening note.
        """
        note = self.get_note(note_id)
        if not note:
            raise NoteNotFoundError()

        status = NoteStatus(status)
        if acting_user_id not in (note.sender_id, note.recipient_id):
            raise NoteNotFoundError()

        if status in THREAD_STATUSES and not (note.is_root and note.sender_id == acting_user_id):
            raise NotSenderError()

        if Settings.STRICT_NOTE_STATUS:
            current = NoteStatus(note.status)
            if status != current and status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransitionError(
                    f"Cannot change a note from '{current.value}' to '{status.value}'"
                )

        note.status = status.value
        try:
            self.db.commit()
            self.db.refresh(note)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error updating status of note {note_id}")
            raise
        return note

    def can_view_notes(self, weekly_task_id: str, viewer_id: str) -> bool:
        task = self.db.query(WeeklyTask).filter(WeeklyTask.id == weekly_task_id).first()
        if not task:
            return False
        if self.resolver.can_view(viewer_id, task.user_id):
            return True
        # Participants keep access to their own threads
        return self.db.query(TaskNote.id).filter(
            TaskNote.weekly_task_id == weekly_task_id,
            or_(TaskNote.sender_id == viewer_id, TaskNote.recipient_id == viewer_id)
        ).first() is not None

    def list_notes(self, weekly_task_id: str, viewer_id: str) -> List[NoteNode]:
        """Get the note forest of a weekly task, empty when not visible or on error"""
        try:
            if not self.can_view_notes(weekly_task_id, viewer_id):
                return []

            notes = self.db.query(TaskNote).filter(
                TaskNote.weekly_task_id == weekly_task_id
            ).all()
            return build_note_forest(notes)
        except SQLAlchemyError as e:
            logger.error(f"Error loading notes of weekly task {weekly_task_id}: {e}")
            self.db.rollback()
            return []

    def mark_task_notes_read(self, weekly_task_id: str, viewer_id: str) -> int:
        """Mark every unread note of a task addressed to the viewer as read"""
        try:
            unread = self.db.query(TaskNote).filter(
                TaskNote.weekly_task_id == weekly_task_id,
                TaskNote.recipient_id == viewer_id,
                TaskNote.is_read == False
            ).all()
            for note in unread:
                note.is_read = True
                note.status = NoteStatus.READ.value
            if unread:
                self.db.commit()
                logger.info(f"Marked {len(unread)} notes read for {viewer_id}")
            return len(unread)
        except SQLAlchemyError as e:
            logger.error(f"Error marking notes of weekly task {weekly_task_id} read: {e}")
            self.db.rollback()
            return 0

    def note_counts(self, user_id: str, year: int, viewer_id: str) -> Dict[int, Dict]:
        """Per-week note counts for a user's year; weeks without notes are left out.

        `unread` counts notes addressed to the viewer, not to the task owner.
        """
        try:
            tasks = self.db.query(WeeklyTask.id, WeeklyTask.week_number).filter(
                WeeklyTask.user_id == user_id,
                WeeklyTask.year == year
            ).all()
            if not tasks:
                return {}

            week_by_task = {task_id: week for task_id, week in tasks}
            rows = self.db.query(
                TaskNote.weekly_task_id,
                TaskNote.recipient_id,
                TaskNote.is_read,
                TaskNote.status
            ).filter(TaskNote.weekly_task_id.in_(list(week_by_task))).all()

            counts: Dict[int, Dict] = {}
            for task_id, recipient_id, is_read, status in rows:
                entry = counts.setdefault(
                    week_by_task[task_id],
                    {"total": 0, "unread": 0, "has_unresolved": False}
                )
                entry["total"] += 1
                if recipient_id == viewer_id and not is_read:
                    entry["unread"] += 1
                if status == NoteStatus.PENDING:
                    entry["has_unresolved"] = True
            return counts
        except SQLAlchemyError as e:
            logger.error(f"Error counting notes of {user_id} for {year}: {e}")
            self.db.rollback()
            return {}

    def notes_changed_since(self, weekly_task_id: str, since: Optional[datetime] = None) -> Dict:
        """Pollable change check: has any note of the task been written after `since`?"""
        try:
            latest = self.db.query(func.max(TaskNote.updated_at)).filter(
                TaskNote.weekly_task_id == weekly_task_id
            ).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error checking note changes of weekly task {weekly_task_id}: {e}")
            self.db.rollback()
            return {"weekly_task_id": weekly_task_id, "changed": False, "latest": None}

        if latest is None:
            changed = False
        elif since is None:
            changed = True
        else:
            changed = latest > _as_naive_utc(since)
        return {"weekly_task_id": weekly_task_id, "changed": changed, "latest": latest}

# timbel/models/note.py
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from timbel.database import Base
from timbel.models.organization import _new_id
from datetime import datetime
import enum

class NoteStatus(str, enum.Enum):
    PENDING = "pending"
    READ = "read"
    REPLIED = "replied"
    RESOLVED = "resolved"

class TaskNote(Base):
    __tablename__ = "task_notes"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'read', 'replied', 'resolved')", name="ck_task_notes_status"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    weekly_task_id = Column(String(36), ForeignKey("weekly_tasks.id"), nullable=False, index=True)
    sender_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    parent_note_id = Column(String(36), ForeignKey("task_notes.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=NoteStatus.PENDING.value)
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    weekly_task = relationship("WeeklyTask", back_populates="notes")
    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    @property
    def is_root(self) -> bool:
        return self.parent_note_id is None

    def __repr__(self):
        return f"<TaskNote(id={self.id}, task={self.weekly_task_id}, status='{self.status}')>"

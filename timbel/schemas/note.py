from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from timbel.models.note import NoteStatus

class NoteCreate(BaseModel):
    weekly_task_id: str
    recipient_id: str
    content: str = Field(..., min_length=1)
    parent_note_id: Optional[str] = None

    @field_validator('content')
    @classmethod
    def content_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('Note content cannot be empty')
        return v

class NoteOut(BaseModel):
    id: str
    weekly_task_id: str
    sender_id: str
    recipient_id: str
    content: str
    parent_note_id: Optional[str] = None
    status: NoteStatus
    is_read: bool
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }

class NoteNode(NoteOut):
    """A note with its replies, oldest first"""
    children: List["NoteNode"] = Field(default_factory=list)

class NoteStatusUpdate(BaseModel):
    status: NoteStatus

class NoteCount(BaseModel):
    total: int = 0
    unread: int = 0
    has_unresolved: bool = False

class NoteChanges(BaseModel):
    weekly_task_id: str
    changed: bool
    latest: Optional[datetime] = None
NoteNode.model_rebuild()

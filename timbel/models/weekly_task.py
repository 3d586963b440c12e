# timbel/models/weekly_task.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from timbel.database import Base
from timbel.models.organization import _new_id
from datetime import datetime

class WeeklyTask(Base):
    __tablename__ = "weekly_tasks"
    __table_args__ = (
        # One record per user and week; the upsert conflicts on this key
        UniqueConstraint("user_id", "year", "week_number", name="uq_weekly_tasks_user_week"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    week_number = Column(Integer, nullable=False)

    this_week_tasks = Column(Text, nullable=False, default="")
    next_week_plan = Column(Text, nullable=False, default="")
    note = Column(Text, nullable=False, default="")
    submission_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="weekly_tasks")
    notes = relationship("TaskNote", back_populates="weekly_task", cascade="all, delete-orphan")

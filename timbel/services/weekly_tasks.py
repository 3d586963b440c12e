# timbel/services/weekly_tasks.py
"""
Weekly task reads and writes.

Reads of another user's records go through the AccessResolver; a denial looks
exactly like "no data". Backend faults are logged and downgraded to the empty
result so the UI can keep rendering.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from timbel.models import WeeklyTask
from timbel.utils.access import AccessResolver

logger = logging.getLogger(__name__)


def _dialect_insert(db: Session):
    """Pick the INSERT construct that supports an atomic upsert on this backend"""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
    else:
        raise NotImplementedError(f"Upsert is not supported on '{dialect}'")
    return dialect, insert


class WeeklyTaskStore:
    def __init__(self, db: Session, resolver: Optional[AccessResolver] = None):
        self.db = db
        self.resolver = resolver or AccessResolver(db)

    def _allowed(self, user_id: str, viewer_id: Optional[str]) -> bool:
        if not viewer_id or viewer_id == user_id:
            return True
        return self.resolver.can_view(viewer_id, user_id)

    def get_task(self, user_id: str, year: int, week: int, viewer_id: Optional[str] = None) -> Optional[WeeklyTask]:
        """Get one week's record, or None when absent, not visible, or on error"""
        if not self._allowed(user_id, viewer_id):
            logger.info(f"User {viewer_id} may not view tasks of {user_id}")
            return None

        try:
            return self.db.query(WeeklyTask).filter(
                WeeklyTask.user_id == user_id,
                WeeklyTask.year == year,
                WeeklyTask.week_number == week
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading weekly task {user_id}/{year}/{week}: {e}")
            self.db.rollback()
            return None

    def list_tasks_for_user(self, user_id: str, year: int, viewer_id: Optional[str] = None) -> List[WeeklyTask]:
        """Get a user's records for a year ordered by week"""
        if not self._allowed(user_id, viewer_id):
            return []

        try:
            return self.db.query(WeeklyTask).filter(
                WeeklyTask.user_id == user_id,
                WeeklyTask.year == year
            ).order_by(WeeklyTask.week_number.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading weekly tasks of {user_id} for {year}: {e}")
            self.db.rollback()
            return []

    def list_visible_tasks(self, viewer_id: str, year: int, week: Optional[int] = None) -> List[WeeklyTask]:
        """Get the records of every user the viewer can see"""
        user_ids = self.resolver.get_visible_user_ids(viewer_id)
        if not user_ids:
            return []

        try:
            query = self.db.query(WeeklyTask).options(
                joinedload(WeeklyTask.owner)
            ).filter(
                WeeklyTask.year == year,
                WeeklyTask.user_id.in_(user_ids)
            )
            if week:
                query = query.filter(WeeklyTask.week_number == week)
            return query.order_by(WeeklyTask.week_number.asc(), WeeklyTask.user_id.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading weekly tasks visible to {viewer_id}: {e}")
            self.db.rollback()
            return []

    def save_task(
        self,
        user_id: str,
        year: int,
        week: int,
        this_week_tasks: str,
        next_week_plan: str,
        note: str = "",
        acting_user_id: Optional[str] = None
    ) -> bool:
        """Create or update the (user, year, week) record.

        Writes are self-only regardless of role. The write is a single
        insert-or-update on the natural key, so concurrent saves for the
        same week never produce two rows.
        """
        if acting_user_id and acting_user_id != user_id:
            logger.warning(f"User {acting_user_id} tried to save the weekly task of {user_id}")
            return False

        now = datetime.utcnow()
        values = {
            "this_week_tasks": this_week_tasks,
            "next_week_plan": next_week_plan,
            "note": note,
            "submission_date": now,
        }

        try:
            dialect, insert = _dialect_insert(self.db)
            stmt = insert(WeeklyTask).values(
                user_id=user_id,
                year=year,
                week_number=week,
                **values
            )
            if dialect in ("mysql", "mariadb"):
                stmt = stmt.on_duplicate_key_update(updated_at=now, **values)
            else:
                stmt = stmt.on_conflict_do_update(
                    index_elements=[WeeklyTask.user_id, WeeklyTask.year, WeeklyTask.week_number],
                    set_=dict(updated_at=now, **values)
                )
            self.db.execute(stmt)
            self.db.commit()
            logger.info(f"Saved weekly task {user_id}/{year}/{week}")
            return True
        except NotImplementedError as e:
            logger.error(f"Cannot save weekly task {user_id}/{year}/{week}: {e}")
            return False
        except SQLAlchemyError as e:
            logger.error(f"Error saving weekly task {user_id}/{year}/{week}: {e}")
            self.db.rollback()
            return False

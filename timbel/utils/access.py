# timbel/utils/access.py
import logging
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timbel.config.settings import Settings
from timbel.models.user import User, UserRole, GLOBAL_READ_ROLES

logger = logging.getLogger(__name__)


def same_group(viewer_value: Optional[str], target_value: Optional[str]) -> bool:
    """Department/team match. Two unassigned users match unless MATCH_UNASSIGNED_ORG is off."""
    if viewer_value is None and target_value is None:
        return Settings.MATCH_UNASSIGNED_ORG
    return viewer_value == target_value


class AccessResolver:
    """Read-permission decisions based on role and department/team membership.

    Every lookup failure resolves to "no access": can_view returns False and
    list_visible_users returns an empty list.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def can_view(self, viewer_id: str, target_id: str) -> bool:
        """Check if viewer may read target's weekly tasks"""
        # Own data is always visible
        if viewer_id == target_id:
            return True

        try:
            viewer = self._get_user(viewer_id)
            if not viewer:
                logger.warning(f"Access check: viewer {viewer_id} not found")
                return False

            target = self._get_user(target_id)
            if not target:
                logger.warning(f"Access check: target {target_id} not found")
                return False

            if viewer.role in GLOBAL_READ_ROLES:
                return True

            if viewer.role == UserRole.MANAGER:
                return same_group(viewer.department_id, target.department_id)

            if viewer.role == UserRole.TEAM_LEADER:
                return same_group(viewer.team_id, target.team_id)

            return False
        except SQLAlchemyError as e:
            logger.error(f"Access check failed for {viewer_id} -> {target_id}: {e}")
            self.db.rollback()
            return False

    def list_visible_users(self, viewer_id: str) -> List[User]:
        """Get the users whose weekly tasks the viewer can read, viewer included"""
        try:
            viewer = self._get_user(viewer_id)
            if not viewer:
                logger.warning(f"Visible users: viewer {viewer_id} not found")
                return []

            query = self.db.query(User)

            if viewer.role in GLOBAL_READ_ROLES:
                pass
            elif viewer.role == UserRole.MANAGER:
                query = self._filter_group(query, User.department_id, viewer.department_id, viewer_id)
            elif viewer.role == UserRole.TEAM_LEADER:
                query = self._filter_group(query, User.team_id, viewer.team_id, viewer_id)
            else:
                query = query.filter(User.id == viewer_id)

            return query.order_by(User.full_name).all()
        except SQLAlchemyError as e:
            logger.error(f"Listing visible users failed for {viewer_id}: {e}")
            self.db.rollback()
            return []

    def get_visible_user_ids(self, viewer_id: str) -> Set[str]:
        return {user.id for user in self.list_visible_users(viewer_id)}

    @staticmethod
    def _filter_group(query, column, value, viewer_id: str):
        if value is not None:
            return query.filter(column == value)
        if Settings.MATCH_UNASSIGNED_ORG:
            return query.filter(column.is_(None))
        return query.filter(User.id == viewer_id)

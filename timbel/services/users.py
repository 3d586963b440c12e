# timbel/services/users.py
import logging
import time
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from timbel.config.settings import Settings
from timbel.core.exceptions import AuthorizationError, ProvisioningError, ValidationError
from timbel.models import Department, Team, User, UserRole

logger = logging.getLogger(__name__)

# Errors worth another attempt: duplicate key from a concurrent first sign-in,
# foreign key races, dropped connections
RETRYABLE_ERRORS = (IntegrityError, OperationalError)


class UserService:
    """User records: provisioning on first sign-in, profile edits, admin edits"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading user {user_id}: {e}")
            self.db.rollback()
            return None

    def ensure_user(self, user_id: str, email: str = "", full_name: Optional[str] = None) -> User:
        """Return the user record, creating a MEMBER record if there is none yet.

        Insert failures are retried with exponential backoff. Unlike the
        read paths, a failure after the last attempt is raised.
        """
        max_retries = max(1, Settings.PROVISION_MAX_RETRIES)

        for attempt in range(1, max_retries + 1):
            existing = self.get_user(user_id)
            if existing:
                return existing

            logger.info(f"No user record for {user_id}, creating one (attempt {attempt}/{max_retries})")
            user = User(
                id=user_id,
                email=email or "",
                full_name=full_name or Settings.DEFAULT_FULL_NAME,
                role=UserRole.MEMBER.value,
                department_id=None,
                team_id=None,
                avatar_url=None
            )
            try:
                self.db.add(user)
                self.db.commit()
                self.db.refresh(user)
                logger.info(f"Created user record for {user_id}")
                return user
            except RETRYABLE_ERRORS as e:
                self.db.rollback()
                logger.warning(f"Creating user {user_id} failed on attempt {attempt}/{max_retries}: {e}")
                if attempt < max_retries:
                    time.sleep(Settings.PROVISION_BACKOFF_SECONDS * (2 ** (attempt - 1)))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Creating user {user_id} failed: {e}")
                raise ProvisioningError(f"Could not create the user record: {e}") from e

        # A concurrent request may have won the race on the last attempt
        existing = self.get_user(user_id)
        if existing:
            return existing
        logger.error(f"Giving up creating user {user_id} after {max_retries} attempts")
        raise ProvisioningError(f"Could not create the user record after {max_retries} attempts")

    def update_profile(self, user_id: str, full_name: Optional[str] = None, avatar_url: Optional[str] = None) -> User:
        """Self-service profile update: name and avatar only"""
        user = self.get_user(user_id)
        if not user:
            raise ValidationError("User not found")

        if full_name is not None:
            full_name = full_name.strip()
            if not full_name:
                raise ValidationError("Name cannot be empty")
            user.full_name = full_name
        if avatar_url is not None:
            user.avatar_url = avatar_url or None

        try:
            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error updating profile of {user_id}")
            raise
        return user

    def list_users(self) -> List[User]:
        """All users for the admin console, highest role first then by name"""
        try:
            users = self.db.query(User).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing users: {e}")
            self.db.rollback()
            return []
        return sorted(users, key=lambda u: (-u.rank, u.full_name.lower()))

    def admin_update_user(self, actor: User, user_id: str, changes: dict) -> Tuple[User, bool]:
        """Change a user's role, department or team. SUPER only.

        `changes` holds only the fields the caller set; an explicit None
        clears the value. Moving a user to another department without naming
        a team clears the team.
        """
        if actor.role != UserRole.SUPER:
            raise AuthorizationError("Only SUPER users can manage users")

        user = self.get_user(user_id)
        if not user:
            raise ValidationError("User not found")

        updates = {}

        if "role" in changes:
            role = changes["role"]
            if role is None:
                raise ValidationError("Role cannot be empty")
            try:
                updates["role"] = UserRole(role).value
            except ValueError:
                raise ValidationError(f"Unknown role '{role}'")

        department_id = user.department_id
        if "department_id" in changes:
            department_id = changes["department_id"]
            if department_id is not None and not self.db.get(Department, department_id):
                raise ValidationError("Department not found")
            updates["department_id"] = department_id
            if department_id != user.department_id and "team_id" not in changes:
                updates["team_id"] = None

        if "team_id" in changes:
            team_id = changes["team_id"]
            if team_id is not None:
                team = self.db.get(Team, team_id)
                if not team:
                    raise ValidationError("Team not found")
                if team.department_id != department_id:
                    raise ValidationError("The team does not belong to the user's department")
            updates["team_id"] = team_id

        changed = any(getattr(user, field) != value for field, value in updates.items())
        if not changed:
            return user, False

        for field, value in updates.items():
            setattr(user, field, value)

        try:
            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error updating user {user_id}")
            raise

        logger.info(f"User {user_id} updated by {actor.id}: {updates}")
        return user, True


class OrganizationService:
    """Read-only department and team reference data"""

    def __init__(self, db: Session):
        self.db = db

    def list_departments(self) -> List[Department]:
        try:
            return self.db.query(Department).order_by(Department.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing departments: {e}")
            self.db.rollback()
            return []

    def list_teams(self) -> List[Team]:
        try:
            return self.db.query(Team).order_by(Team.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing teams: {e}")
            self.db.rollback()
            return []

    def list_teams_by_department(self, department_id: str) -> List[Team]:
        try:
            return self.db.query(Team).filter(
                Team.department_id == department_id
            ).order_by(Team.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing teams of department {department_id}: {e}")
            self.db.rollback()
            return []

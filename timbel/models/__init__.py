from .user import User, UserRole, ROLE_RANK, ELEVATED_ROLES, GLOBAL_READ_ROLES
from .organization import Department, Team
from .weekly_task import WeeklyTask
from .note import TaskNote, NoteStatus

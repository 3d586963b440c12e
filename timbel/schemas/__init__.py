from .user import UserOut, UserBasic, ProfileUpdate, AdminUserUpdate, AdminUserUpdateResult, CanViewOut
from .organization import DepartmentOut, TeamOut
from .weekly_task import WeeklyTaskOut, WeeklyTaskWithUser, WeeklyTaskSave, SaveResult
from .note import NoteCreate, NoteOut, NoteNode, NoteStatusUpdate, NoteCount, NoteChanges

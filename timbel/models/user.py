# timbel/models/user.py
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from timbel.database import Base
from datetime import datetime
import enum

class UserRole(str, enum.Enum):
    SUPER = "SUPER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TEAM_LEADER = "TEAM_LEADER"
    MEMBER = "MEMBER"

# Privilege order, highest first
ROLE_RANK = {
    UserRole.SUPER: 5,
    UserRole.ADMIN: 4,
    UserRole.MANAGER: 3,
    UserRole.TEAM_LEADER: 2,
    UserRole.MEMBER: 1,
}

GLOBAL_READ_ROLES = {UserRole.SUPER.value, UserRole.ADMIN.value}

# Roles allowed to open a note thread addressed to themselves
ELEVATED_ROLES = {
    UserRole.SUPER.value, UserRole.ADMIN.value, UserRole.MANAGER.value, UserRole.TEAM_LEADER.value,
}

class User(Base):
    __tablename__ = "users"

    # Subject of the identity provider's token
    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True, default="")
    full_name = Column(String(255), nullable=False)
    # Kept as a plain string so unknown roles can be stored and read back
    role = Column(String(20), nullable=False, default=UserRole.MEMBER.value)
    department_id = Column(String(36), ForeignKey("departments.id"), nullable=True, index=True)
    team_id = Column(String(36), ForeignKey("teams.id"), nullable=True, index=True)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    department = relationship("Department", back_populates="users")
    team = relationship("Team", back_populates="users")
    weekly_tasks = relationship("WeeklyTask", back_populates="owner")

    @property
    def rank(self) -> int:
        try:
            return ROLE_RANK[UserRole(self.role)]
        except ValueError:
            return 0

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

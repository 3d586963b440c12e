# timbel/models/organization.py
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from timbel.database import Base
import uuid

def _new_id() -> str:
    return str(uuid.uuid4())

class Department(Base):
    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, index=True)

    teams = relationship("Team", back_populates="department")
    users = relationship("User", back_populates="department")

class Team(Base):
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, index=True)
    department_id = Column(String(36), ForeignKey("departments.id"), nullable=False, index=True)

    department = relationship("Department", back_populates="teams")
    users = relationship("User", back_populates="team")

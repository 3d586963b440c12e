from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from timbel.database import get_db
from timbel.models.user import User
from timbel.schemas.organization import DepartmentOut, TeamOut
from timbel.services.users import OrganizationService
from timbel.utils.auth import get_current_user

departments_router = APIRouter()
teams_router = APIRouter()


@departments_router.get("/", response_model=List[DepartmentOut])
def get_departments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return OrganizationService(db).list_departments()


@departments_router.get("/{department_id}/teams", response_model=List[TeamOut])
def get_department_teams(
    department_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return OrganizationService(db).list_teams_by_department(department_id)


@teams_router.get("/", response_model=List[TeamOut])
def get_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return OrganizationService(db).list_teams()

"""
Departments API Endpoints
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_admin, get_current_user
from ..db.database import get_db
from ..models.models import Department, Project, User, project_departments
from ..schemas import UserRef
from ..validators import is_hex_color

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class DepartmentCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = " ".join(v.split()).lower()
        if not v:
            raise ValueError("must not be empty")
        return v


class DepartmentUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = " ".join(v.split()).lower()
        if not v:
            raise ValueError("must not be empty")
        return v


class DepartmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    color: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DepartmentDetail(DepartmentResponse):
    members: List[UserRef]


def _check_color(color: Optional[str]) -> None:
    if color is not None and not is_hex_color(color):
        raise HTTPException(status_code=400, detail="Color must be a valid hex code like #1A2B3C.")


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Department).filter(func.lower(Department.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Department.id != exclude_id)
    return db.query(query.exists()).scalar()


def _get_or_404(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found.")
    return department


# API Endpoints
@router.post("", response_model=DepartmentResponse, status_code=201)
async def create_department(
    data: DepartmentCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    _check_color(data.color)
    if _name_taken(db, data.name):
        raise HTTPException(status_code=400, detail="Department name must be unique.")

    department = Department(
        name=data.name,
        description=data.description,
        color=data.color or "#000000",
    )
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info(f"Created department {department.id} '{department.name}'")
    return department


@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return db.query(Department).order_by(Department.name).all()


@router.get("/{department_id}", response_model=DepartmentDetail)
async def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Department with its members"""
    department = _get_or_404(db, department_id)
    return DepartmentDetail(
        **DepartmentResponse.model_validate(department).model_dump(),
        members=[UserRef.model_validate(u) for u in department.users],
    )


@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    data: DepartmentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    department = _get_or_404(db, department_id)
    _check_color(data.color)

    if data.name is not None:
        if _name_taken(db, data.name, exclude_id=department.id):
            raise HTTPException(status_code=400, detail="Department name must be unique.")
        department.name = data.name
    if data.description is not None:
        department.description = data.description
    if data.color is not None:
        department.color = data.color

    db.commit()
    db.refresh(department)
    return department


@router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Delete a department that no user or project references"""
    department = _get_or_404(db, department_id)

    users = db.query(User).filter(User.department_id == department.id).count()
    projects = (
        db.query(Project)
        .join(project_departments, project_departments.c.project_id == Project.id)
        .filter(project_departments.c.department_id == department.id)
        .count()
    )
    if users or projects:
        raise HTTPException(
            status_code=400,
            detail=f"Department is in use by {users} user(s) and {projects} project(s).",
        )

    db.delete(department)
    db.commit()
    logger.info(f"Deleted department {department_id}")
    return {"message": "Department deleted successfully.", "department_id": department_id}

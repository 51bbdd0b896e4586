"""
Projects API Endpoints
"""

import logging
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..auth.jwt import get_current_admin, get_current_user
from ..db.database import get_db
from ..models.models import Client, Department, Project, User, project_departments
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..schemas import ProjectResponse
from ..services.lifecycle import (
    PROJECT_STATUSES,
    apply_project_rules,
    open_task_count,
    record_project_activity,
)
from ..services.views import paginate, project_view
from ..timeutil import to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class ProjectCreate(BaseModel):
    name: str
    client_id: int
    department_ids: List[int] = Field(min_length=1)
    member_ids: List[int] = []
    start_date: datetime
    due_date: datetime
    budget: float = Field(default=0, ge=0)
    priority: Literal["low", "medium", "high"] = "medium"

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("start_date", "due_date")
    @classmethod
    def check_dates(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    client_id: Optional[int] = None
    department_ids: Optional[Annotated[List[int], Field(min_length=1)]] = None
    member_ids: Optional[List[int]] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    budget: Optional[Annotated[float, Field(ge=0)]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    status: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("start_date", "due_date")
    @classmethod
    def check_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if v not in PROJECT_STATUSES:
            raise ValueError(f"must be one of {', '.join(PROJECT_STATUSES)}")
        return v


class ProjectIds(BaseModel):
    ids: List[int]


class ProjectMessage(BaseModel):
    message: str
    project: ProjectResponse


class ProjectPagination(BaseModel):
    total: int
    current_page: int
    total_pages: int


class ProjectList(BaseModel):
    projects: List[ProjectResponse]
    pagination: ProjectPagination


class ProjectActivityResponse(BaseModel):
    id: int
    description: str
    user_id: Optional[int]
    user: Optional[str]
    created_at: datetime


def _get_or_404(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found.")
    return project


def _load_departments(db: Session, ids: List[int]) -> List[Department]:
    departments = db.query(Department).filter(Department.id.in_(ids)).all()
    missing = sorted(set(ids) - {d.id for d in departments})
    if missing:
        raise HTTPException(status_code=400, detail=f"Department not found: {missing[0]}")
    return departments


def _load_members(db: Session, ids: List[int]) -> List[User]:
    if not ids:
        return []
    users = db.query(User).filter(User.id.in_(ids)).all()
    missing = sorted(set(ids) - {u.id for u in users})
    if missing:
        raise HTTPException(status_code=400, detail=f"Invalid member ID: {missing[0]}")
    return users


def _member_emails(project: Project) -> List[str]:
    return [m.email for m in project.members if m.email]


# API Endpoints
@router.post("", response_model=ProjectMessage, status_code=201)
async def create_project(
    data: ProjectCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    """Create a project (admin only); members are notified"""
    if db.get(Client, data.client_id) is None:
        raise HTTPException(status_code=400, detail="A valid client ID is required.")
    departments = _load_departments(db, data.department_ids)
    members = _load_members(db, data.member_ids)
    if data.due_date <= data.start_date:
        raise HTTPException(status_code=400, detail="Due date must be after the start date.")

    project = Project(
        name=data.name,
        client_id=data.client_id,
        start_date=data.start_date,
        due_date=data.due_date,
        budget=data.budget,
        priority=data.priority,
        status="pending",
    )
    project.departments = departments
    project.members = members
    apply_project_rules(project)
    record_project_activity(project, f'Project "{project.name}" created', admin)

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Created project {project.id} '{project.name}' ({project.status})")

    background_tasks.add_task(
        emails.send_project_assigned, mailer, _member_emails(project), project.name, project.due_date
    )
    return {"message": "Project created successfully", "project": project_view(project)}


@router.get("", response_model=ProjectList)
async def list_projects(
    status: Optional[List[str]] = Query(None),
    department: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List projects with optional status and department filters"""
    query = db.query(Project).options(
        selectinload(Project.client),
        selectinload(Project.departments),
        selectinload(Project.members),
        selectinload(Project.tasks),
    )

    wanted = [s.strip().lower() for s in (status or []) if s and s.strip()]
    if wanted:
        query = query.filter(func.lower(Project.status).in_(wanted))
    if department:
        query = query.filter(
            Project.id.in_(
                select(project_departments.c.project_id)
                .where(project_departments.c.department_id == department)
            )
        )

    query = query.order_by(Project.created_at.desc(), Project.id.desc())
    projects, total, total_pages = paginate(query, page, limit)
    return {
        "projects": [project_view(p) for p in projects],
        "pagination": {"total": total, "current_page": page, "total_pages": total_pages},
    }


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return project_view(_get_or_404(db, project_id))


@router.put("/{project_id}", response_model=ProjectMessage)
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    """Partial update (admin only)"""
    project = _get_or_404(db, project_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields provided for update.")

    if data.name is not None:
        project.name = data.name
    if data.client_id is not None:
        if db.get(Client, data.client_id) is None:
            raise HTTPException(status_code=400, detail="Invalid client ID.")
        project.client_id = data.client_id
    if data.department_ids is not None:
        project.departments = _load_departments(db, data.department_ids)
    if data.member_ids is not None:
        project.members = _load_members(db, data.member_ids)
    if data.budget is not None:
        project.budget = data.budget
    if data.priority is not None:
        project.priority = data.priority

    start_date = data.start_date or project.start_date
    due_date = data.due_date or project.due_date
    if (data.start_date or data.due_date) and due_date <= start_date:
        raise HTTPException(status_code=400, detail="Due date must be after the start date.")
    project.start_date = start_date
    project.due_date = due_date

    completed_now = False
    if data.status is not None:
        if data.status == "completed":
            if open_task_count(project.tasks):
                raise HTTPException(
                    status_code=400,
                    detail="Cannot mark project as completed. There are still open tasks.",
                )
            completed_now = project.status != "completed"
        project.status = data.status

    apply_project_rules(project)
    record_project_activity(
        project,
        f"Project updated: {', '.join(sorted(changes))}",
        admin,
    )
    db.commit()
    db.refresh(project)

    if completed_now:
        logger.info(f"Project {project.id} completed")
        background_tasks.add_task(
            emails.send_project_completed, mailer, _member_emails(project), project.name
        )
    return {"message": "Project updated successfully.", "project": project_view(project)}


def _delete_projects(db: Session, projects: List[Project]) -> List[tuple]:
    """Delete projects with their tasks, comments and activities; returns (emails, name) pairs."""
    notices = [(_member_emails(p), p.name) for p in projects]
    for project in projects:
        db.delete(project)
    db.commit()
    return notices


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    project = _get_or_404(db, project_id)
    for recipients, name in _delete_projects(db, [project]):
        background_tasks.add_task(emails.send_project_removed, mailer, recipients, name)
    logger.info(f"Deleted project {project_id}")
    return {"message": "Project deleted successfully."}


@router.delete("")
async def delete_projects(
    data: ProjectIds,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    """Bulk delete (admin only)"""
    if not data.ids:
        raise HTTPException(status_code=400, detail="A valid array of project IDs is required.")

    projects = db.query(Project).filter(Project.id.in_(data.ids)).all()
    if not projects:
        raise HTTPException(status_code=404, detail="No projects found to delete.")

    notices = _delete_projects(db, projects)
    for recipients, name in notices:
        background_tasks.add_task(emails.send_project_removed, mailer, recipients, name)
    logger.info(f"Deleted {len(notices)} project(s)")
    return {"message": f"Successfully deleted {len(notices)} project(s)."}


@router.get("/{project_id}/activities", response_model=List[ProjectActivityResponse])
async def list_project_activities(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Project activity log, newest first"""
    project = _get_or_404(db, project_id)
    activities = sorted(project.activities, key=lambda a: (a.created_at, a.id), reverse=True)
    return [
        {
            "id": a.id,
            "description": a.description,
            "user_id": a.user_id,
            "user": a.user.full_name if a.user else None,
            "created_at": a.created_at,
        }
        for a in activities
    ]

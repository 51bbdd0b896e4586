"""
Tasks API Endpoints
"""

import calendar
import logging
from datetime import datetime, timedelta
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import Department, Project, Task, User, task_departments
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..schemas import TaskResponse
from ..services.lifecycle import (
    TASK_STATUSES,
    add_task_activity,
    apply_task_rules,
    refresh_project,
)
from ..services.views import paginate, task_view
from ..timeutil import start_of_day, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def _normalize_status(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in TASK_STATUSES:
        raise ValueError(f"must be one of {', '.join(TASK_STATUSES)}")
    return v


# Pydantic schemas
class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    project_id: int
    department_ids: List[int] = Field(min_length=1)
    assigned_to: List[int] = Field(min_length=1)
    priority: Literal["low", "medium", "high"]
    due_date: datetime
    status: str = "pending"

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        return _normalize_status(v)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[int] = None
    department_ids: Optional[List[int]] = None
    assigned_to: Optional[List[int]] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    due_date: Optional[datetime] = None
    status: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_status(v)


class TaskIds(BaseModel):
    ids: List[int]


class TaskMessage(BaseModel):
    message: str
    tasks: List[TaskResponse]


class TaskPagination(BaseModel):
    total_tasks: int
    current_page: int
    total_pages: int


class TaskList(BaseModel):
    tasks: List[TaskResponse]
    pagination: TaskPagination


def _get_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _load_departments(db: Session, ids: List[int]) -> List[Department]:
    departments = db.query(Department).filter(Department.id.in_(ids)).all()
    if len(departments) != len(set(ids)):
        raise HTTPException(status_code=400, detail="One or more departments are invalid")
    return departments


def _users_in(db: Session, departments: List[Department]) -> dict[int, User]:
    ids = [d.id for d in departments]
    return {u.id: u for u in db.query(User).filter(User.department_id.in_(ids)).all()}


def _add_month(day: datetime) -> datetime:
    year = day.year + day.month // 12
    month = day.month % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def _due_window(date: str) -> tuple[datetime, datetime]:
    today = start_of_day(utcnow().date())
    if date == "today":
        return today, today + timedelta(days=1)
    if date == "week":
        return today, today + timedelta(weeks=1)
    return today, _add_month(today)


def _save(db: Session, task: Task, *project_ids: int) -> None:
    """Apply the task rules, then re-derive every affected project."""
    apply_task_rules(task)
    db.flush()
    for project_id in dict.fromkeys(project_ids):
        refresh_project(db, project_id)
    db.commit()
    db.refresh(task)


# API Endpoints
@router.post("", response_model=TaskMessage, status_code=201)
async def create_task(
    data: TaskCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    """Create a task; assignees must belong to the task's departments"""
    project = db.get(Project, data.project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Associated project not found")
    if data.due_date > project.due_date:
        raise HTTPException(status_code=400, detail="Task due date cannot exceed the project's due date")

    departments = _load_departments(db, data.department_ids)
    in_departments = _users_in(db, departments)
    if not in_departments:
        raise HTTPException(status_code=400, detail="No users found in the selected departments")

    assignees = [in_departments[uid] for uid in dict.fromkeys(data.assigned_to) if uid in in_departments]
    if not assignees:
        raise HTTPException(status_code=400, detail="Cannot assign task to users outside chosen departments")
    if len(assignees) != len(set(data.assigned_to)):
        raise HTTPException(status_code=400, detail="Some assigned users do not belong to the selected departments.")

    task = Task(
        title=data.title,
        description=data.description,
        project_id=project.id,
        priority=data.priority,
        due_date=data.due_date,
        status=data.status,
    )
    task.departments = departments
    task.assignees = assignees
    add_task_activity(task, "Task Created", current_user.full_name, f'Task "{task.title}" created.')
    db.add(task)
    _save(db, task, project.id)
    logger.info(f"Task {task.id} created in project {project.id}")

    for user in assignees:
        background_tasks.add_task(emails.send_task_assigned, mailer, user.email, task.title, task.due_date)
    return {"message": "Task created successfully", "tasks": [task_view(task)]}


@router.get("", response_model=TaskList)
async def list_tasks(
    status: Optional[List[str]] = Query(None),
    project: Optional[int] = None,
    department: Optional[int] = None,
    date: Optional[Literal["today", "week", "month"]] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List tasks with status, project, department and due-window filters"""
    query = db.query(Task).options(
        selectinload(Task.project),
        selectinload(Task.assignees),
        selectinload(Task.departments),
        selectinload(Task.activities),
    )

    wanted = [s.strip().lower() for s in (status or []) if s and s.strip()]
    if wanted and "all" not in wanted:
        query = query.filter(func.lower(Task.status).in_(wanted))
    if project:
        query = query.filter(Task.project_id == project)
    if department:
        query = query.filter(
            Task.id.in_(
                select(task_departments.c.task_id)
                .where(task_departments.c.department_id == department)
            )
        )
    if date:
        start, end = _due_window(date)
        query = query.filter(Task.due_date >= start, Task.due_date < end)

    query = query.order_by(Task.created_at.desc(), Task.id.desc())
    tasks, total, total_pages = paginate(query, page, limit)
    return {
        "tasks": [task_view(t) for t in tasks],
        "pagination": {"total_tasks": total, "current_page": page, "total_pages": total_pages},
    }


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return task_view(_get_or_404(db, task_id))


@router.put("/{task_id}", response_model=TaskMessage)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    """Partial update"""
    task = _get_or_404(db, task_id)
    changes = data.model_dump(exclude_unset=True)
    previous_project_id = task.project_id
    previous_status = task.status
    previous_assignees = {u.id for u in task.assignees}

    if data.project_id is not None and data.project_id != task.project_id:
        new_project = db.get(Project, data.project_id)
        if new_project is None:
            raise HTTPException(status_code=404, detail="New associated project not found")
        due_date = data.due_date or task.due_date
        if due_date > new_project.due_date:
            raise HTTPException(status_code=400, detail="Task due date cannot exceed the new project's due date")
        task.project_id = new_project.id
        task.project = new_project

    if data.department_ids is not None:
        if not data.department_ids:
            raise HTTPException(status_code=400, detail="One or more departments are invalid")
        task.departments = _load_departments(db, data.department_ids)

    if data.title is not None:
        task.title = data.title
    if "description" in changes:
        task.description = data.description
    if data.due_date is not None:
        task.due_date = data.due_date
    if data.priority is not None:
        task.priority = data.priority
    if data.status is not None:
        task.status = data.status

    if data.assigned_to is not None:
        if not data.assigned_to:
            raise HTTPException(status_code=400, detail="assigned_to must be a non-empty list")
        in_departments = _users_in(db, list(task.departments))
        valid = [in_departments[uid] for uid in dict.fromkeys(data.assigned_to) if uid in in_departments]
        if not valid:
            raise HTTPException(
                status_code=400,
                detail="None of the assigned users belong to the selected departments.",
            )
        task.assignees = valid

    actor = current_user.full_name
    if changes:
        add_task_activity(task, "Task Updated", actor, f"Updated: {', '.join(sorted(changes))}")
    if task.status != previous_status:
        add_task_activity(task, "Status Changed", actor, f"Status changed from {previous_status} to {task.status}.")

    _save(db, task, previous_project_id, task.project_id)

    for user in task.assignees:
        if user.id not in previous_assignees:
            background_tasks.add_task(emails.send_task_assigned, mailer, user.email, task.title, task.due_date)
    return {"message": "Task updated successfully", "tasks": [task_view(task)]}


@router.patch("/{task_id}/complete", response_model=TaskMessage)
async def complete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task = _get_or_404(db, task_id)
    if task.status == "completed":
        raise HTTPException(status_code=400, detail="Task is already completed.")

    task.status = "completed"
    add_task_activity(task, "Task Completed", current_user.full_name, "Task marked as completed.")
    _save(db, task, task.project_id)
    return {"message": "Task marked as completed", "tasks": [task_view(task)]}


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    task = _get_or_404(db, task_id)
    project_id = task.project_id
    db.delete(task)
    refresh_project(db, project_id)
    db.commit()
    logger.info(f"Task {task_id} deleted by user {current_user.id}")
    return {"message": "Task deleted successfully."}


@router.delete("")
async def delete_tasks(
    data: TaskIds,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Bulk delete"""
    if not data.ids:
        raise HTTPException(status_code=400, detail="A valid array of task IDs is required.")

    tasks = db.query(Task).filter(Task.id.in_(data.ids)).all()
    if not tasks:
        raise HTTPException(status_code=404, detail="No tasks found to delete.")

    project_ids = {t.project_id for t in tasks}
    for task in tasks:
        db.delete(task)
    for project_id in project_ids:
        refresh_project(db, project_id)
    db.commit()
    logger.info(f"Deleted {len(tasks)} task(s) by user {current_user.id}")
    return {"message": f"Successfully deleted {len(tasks)} task(s)."}

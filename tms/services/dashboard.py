"""Dashboard aggregation.

Counts, group-by-status summaries, per-user task statistics, client
engagement and budget totals, computed with SQL aggregates.
"""

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import case, distinct, func
from sqlalchemy.orm import Session, selectinload

from ..models.models import Client, Project, Report, Task, User, task_assignees
from .views import task_view

RECENT_TASKS_LIMIT = 10


def build_task_filters(
    statuses: Optional[Sequence[str]] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
) -> list:
    """SQL conditions for the task filter; ``all`` disables status filtering."""
    conditions = []
    wanted = [s.strip().lower() for s in (statuses or []) if s and s.strip()]
    if wanted and "all" not in wanted:
        conditions.append(func.lower(Task.status).in_(wanted))
    if due_from is not None:
        conditions.append(Task.due_date >= due_from)
    if due_to is not None:
        conditions.append(Task.due_date <= due_to)
    return conditions


def _status_summary(db: Session, status_column, conditions: list) -> list[dict]:
    status = func.lower(status_column)
    query = db.query(status.label("status"), func.count().label("count"))
    for condition in conditions:
        query = query.filter(condition)
    rows = query.group_by(status).order_by(status).all()
    return [{"status": row.status, "count": row.count} for row in rows]


def user_summary(db: Session, user_id: Optional[int] = None) -> list[dict]:
    """Per-user counts of completed, pending and overdue assigned tasks."""

    def _count(status: str):
        return func.count(case((Task.status == status, 1)))

    query = (
        db.query(
            User.id,
            User.first_name,
            User.last_name,
            User.email,
            _count("completed").label("completed_tasks"),
            _count("pending").label("pending_tasks"),
            _count("overdue").label("overdue_tasks"),
        )
        .outerjoin(task_assignees, task_assignees.c.user_id == User.id)
        .outerjoin(Task, Task.id == task_assignees.c.task_id)
        .group_by(User.id, User.first_name, User.last_name, User.email)
        .order_by(User.id)
    )
    if user_id is not None:
        query = query.filter(User.id == user_id)

    return [
        {
            "id": row.id,
            "first_name": row.first_name,
            "last_name": row.last_name,
            "email": row.email,
            "completed_tasks": row.completed_tasks,
            "pending_tasks": row.pending_tasks,
            "overdue_tasks": row.overdue_tasks,
        }
        for row in query.all()
    ]


def _clients_with_project_status(db: Session, status: str) -> int:
    return (
        db.query(func.count(distinct(Project.client_id)))
        .filter(Project.status == status)
        .scalar()
        or 0
    )


def budget_summary(db: Session) -> dict:
    total, completed = db.query(
        func.coalesce(func.sum(Project.budget), 0),
        func.coalesce(func.sum(case((Project.status == "completed", Project.budget), else_=0)), 0),
    ).one()
    total = float(total)
    completed = float(completed)
    return {
        "total_budget": total,
        "completed_budget": completed,
        "remaining_budget": total - completed,
    }


def get_dashboard(
    db: Session,
    statuses: Optional[Sequence[str]] = None,
    due_from: Optional[datetime] = None,
    due_to: Optional[datetime] = None,
    user_id: Optional[int] = None,
) -> dict:
    conditions = build_task_filters(statuses, due_from, due_to)

    tasks_query = db.query(Task)
    for condition in conditions:
        tasks_query = tasks_query.filter(condition)

    recent_tasks = (
        tasks_query.options(
            selectinload(Task.assignees),
            selectinload(Task.departments),
            selectinload(Task.activities),
        )
        .order_by(Task.created_at.desc(), Task.id.desc())
        .limit(RECENT_TASKS_LIMIT)
        .all()
    )

    not_in_project = (
        db.query(func.count(Client.id))
        .filter(~Client.projects.any())
        .scalar()
        or 0
    )

    return {
        "clients_count": db.query(func.count(Client.id)).scalar() or 0,
        "projects_count": db.query(func.count(Project.id)).scalar() or 0,
        "tasks_count": tasks_query.count(),
        "reports_count": db.query(func.count(Report.id)).scalar() or 0,
        "project_summary": _status_summary(db, Project.status, []),
        "task_summary": _status_summary(db, Task.status, conditions),
        "user_summary": user_summary(db, user_id),
        "ongoing_clients": _clients_with_project_status(db, "in progress"),
        "verified_clients": _clients_with_project_status(db, "completed"),
        "not_in_project_clients": not_in_project,
        "budget_summary": budget_summary(db),
        "recent_tasks": [task_view(t) for t in recent_tasks],
    }

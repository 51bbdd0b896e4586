"""Builders for the composite API views (projects, tasks, comments)."""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query

from ..models.models import Comment, Project, Task
from ..schemas import (
    ClientRef,
    CommentResponse,
    DepartmentRef,
    ProjectResponse,
    TaskActivityResponse,
    TaskResponse,
    UserRef,
)
from ..timeutil import utcnow
from .lifecycle import project_display_status, task_display_status


def paginate(query: Query, page: int, limit: int) -> tuple[list, int, int]:
    """Return (items, total, total_pages) for a 1-based page."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if limit else 0
    return items, total, total_pages


def project_view(project: Project, now: Optional[datetime] = None) -> ProjectResponse:
    now = now or utcnow()
    tasks = list(project.tasks)
    return ProjectResponse(
        id=project.id,
        name=project.name,
        client=ClientRef.model_validate(project.client) if project.client else None,
        departments=[DepartmentRef.model_validate(d) for d in project.departments],
        members=[UserRef.model_validate(u) for u in project.members],
        start_date=project.start_date,
        due_date=project.due_date,
        budget=project.budget or 0,
        status=project_display_status(project, now),
        progress=project.progress,
        priority=project.priority,
        total_tasks=len(tasks),
        completed_tasks=sum(1 for t in tasks if t.status == "completed"),
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def task_view(task: Task, now: Optional[datetime] = None) -> TaskResponse:
    now = now or utcnow()
    members = [u.full_name for u in task.assignees] or ["None"]
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task_display_status(task, now),
        due_date=task.due_date,
        start_date=task.start_date,
        members=members,
        assignees=[UserRef.model_validate(u) for u in task.assignees],
        project=task.project.name if task.project else None,
        project_id=task.project_id,
        created_at=task.created_at,
        priority=task.priority,
        departments=[DepartmentRef.model_validate(d) for d in task.departments],
        activities=[TaskActivityResponse.model_validate(a) for a in task.activities],
    )


def comment_view(comment: Comment, with_replies: bool = True) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        author=UserRef.model_validate(comment.author) if comment.author else None,
        project_id=comment.project_id,
        task_id=comment.task_id,
        parent_id=comment.parent_id,
        attachments=list(comment.attachments or []),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        replies=[comment_view(r) for r in comment.replies] if with_replies else [],
    )

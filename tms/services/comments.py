"""Comment threads on projects and tasks, plus notification fan-out."""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ..errors import NotFoundError, ServiceError
from ..models.models import Comment, Project, Task, User

logger = logging.getLogger(__name__)


def _load_target(db: Session, project_id: Optional[int], task_id: Optional[int]):
    if (project_id is None) == (task_id is None):
        raise ServiceError("A comment belongs to exactly one project or task.")
    if project_id is not None:
        project = db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project
    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found.")
    return task


def create_comment(
    db: Session,
    author: User,
    content: str,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    parent_id: Optional[int] = None,
    attachments: Optional[list[str]] = None,
) -> Comment:
    content = (content or "").strip()
    if not content:
        raise ServiceError("Comment content cannot be empty.")

    _load_target(db, project_id, task_id)

    if parent_id is not None:
        parent = db.get(Comment, parent_id)
        if parent is None or parent.project_id != project_id or parent.task_id != task_id:
            raise ServiceError("Parent comment not found.")

    comment = Comment(
        content=content,
        author=author,
        project_id=project_id,
        task_id=task_id,
        parent_id=parent_id,
        attachments=list(attachments or []),
    )
    db.add(comment)
    db.flush()
    return comment


def list_comments(db: Session, project_id: Optional[int] = None, task_id: Optional[int] = None) -> list[Comment]:
    """Top-level comments, newest first; replies hang off each comment."""
    _load_target(db, project_id, task_id)
    query = db.query(Comment).filter(Comment.parent_id.is_(None))
    if project_id is not None:
        query = query.filter(Comment.project_id == project_id)
    else:
        query = query.filter(Comment.task_id == task_id)
    return (
        query.options(selectinload(Comment.author), selectinload(Comment.replies))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def comment_recipients(db: Session, comment: Comment) -> list[str]:
    """Members (project) or assignees (task) plus every admin, minus the author."""
    if comment.project_id is not None:
        people = db.get(Project, comment.project_id).members
    else:
        people = db.get(Task, comment.task_id).assignees

    emails = [u.email for u in people]
    emails += [email for (email,) in db.query(User.email).filter(User.role == "Admin").all()]

    author_email = comment.author.email if comment.author else None
    recipients: list[str] = []
    for email in emails:
        if email and email != author_email and email not in recipients:
            recipients.append(email)
    logger.debug(f"Comment {comment.id}: {len(recipients)} recipient(s)")
    return recipients


def comment_target_label(db: Session, comment: Comment) -> str:
    if comment.project_id is not None:
        return f'project "{db.get(Project, comment.project_id).name}"'
    return f'task "{db.get(Task, comment.task_id).title}"'

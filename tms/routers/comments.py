"""
Comments API Endpoints (nested under projects and tasks)
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import User
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..schemas import CommentResponse
from ..services import comments as comment_service
from ..services.views import comment_view

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class CommentCreate(BaseModel):
    content: str
    parent_id: Optional[int] = None
    attachments: List[str] = []


class CommentCreated(BaseModel):
    comment: CommentResponse


def _post(
    db: Session,
    background_tasks: BackgroundTasks,
    mailer: Mailer,
    author: User,
    data: CommentCreate,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
) -> dict:
    comment = comment_service.create_comment(
        db,
        author,
        data.content,
        project_id=project_id,
        task_id=task_id,
        parent_id=data.parent_id,
        attachments=data.attachments,
    )
    recipients = comment_service.comment_recipients(db, comment)
    target = comment_service.comment_target_label(db, comment)
    db.commit()
    db.refresh(comment)

    if recipients:
        author_info = {"full_name": author.full_name, "email": author.email, "role": author.role}
        background_tasks.add_task(emails.send_comment, mailer, recipients, comment.content, author_info, target)
    logger.info(f"Comment {comment.id} posted on {target}, notifying {len(recipients)}")
    return {"comment": comment_view(comment)}


# API Endpoints
@router.post("/projects/{project_id}/comments", response_model=CommentCreated, status_code=201)
async def create_project_comment(
    project_id: int,
    data: CommentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    return _post(db, background_tasks, mailer, current_user, data, project_id=project_id)


@router.get("/projects/{project_id}/comments", response_model=List[CommentResponse])
async def list_project_comments(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return [comment_view(c) for c in comment_service.list_comments(db, project_id=project_id)]


@router.post("/tasks/{task_id}/comments", response_model=CommentCreated, status_code=201)
async def create_task_comment(
    task_id: int,
    data: CommentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    return _post(db, background_tasks, mailer, current_user, data, task_id=task_id)


@router.get("/tasks/{task_id}/comments", response_model=List[CommentResponse])
async def list_task_comments(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return [comment_view(c) for c in comment_service.list_comments(db, task_id=task_id)]

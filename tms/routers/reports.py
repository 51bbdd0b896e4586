"""
Reports API Endpoints
"""

import logging
import math
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import Client, Department, Project, Report, Task, User
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..timeutil import utcnow
from .. import validators

logger = logging.getLogger(__name__)

router = APIRouter()

Scope = Literal["project", "client", "department", "task", "user"]
ReportStatus = Literal["draft", "submitted", "reviewed", "approved"]

# scope -> (link column, model)
SCOPE_LINKS = {
    "project": ("project_id", Project),
    "client": ("client_id", Client),
    "department": ("department_id", Department),
    "task": ("task_id", Task),
    "user": ("user_id", User),
}


def _recipients(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    cleaned = []
    for address in v:
        address = validators.email_address(address)
        if address not in cleaned:
            cleaned.append(address)
    return cleaned


# Pydantic schemas
class ReportCreate(BaseModel):
    title: str
    content: str
    scope: Scope
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    department_id: Optional[int] = None
    task_id: Optional[int] = None
    user_id: Optional[int] = None
    email_recipients: List[str] = []
    status: ReportStatus = "draft"

    @field_validator("email_recipients")
    @classmethod
    def check_recipients(cls, v: List[str]) -> List[str]:
        return _recipients(v)


class ReportUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    scope: Optional[Scope] = None
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    department_id: Optional[int] = None
    task_id: Optional[int] = None
    user_id: Optional[int] = None
    email_recipients: Optional[List[str]] = None
    status: Optional[ReportStatus] = None

    @field_validator("email_recipients")
    @classmethod
    def check_recipients(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _recipients(v)


class ReportResponse(BaseModel):
    id: int
    title: str
    content: str
    scope: str
    project_id: Optional[int]
    client_id: Optional[int]
    department_id: Optional[int]
    task_id: Optional[int]
    user_id: Optional[int]
    created_by_id: Optional[int]
    email_recipients: List[str]
    status: str
    sent_at: Optional[datetime]
    reviewed_at: Optional[datetime]
    approved_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReportList(BaseModel):
    reports: List[ReportResponse]
    total_pages: int
    current_page: int


def _check_links(db: Session, scope: str, links: dict) -> None:
    """At least one link, the scope's link present, every given link existing."""
    if not any(links.values()):
        raise HTTPException(
            status_code=400,
            detail="At least one linked entity (project, client, department, task, or user) is required.",
        )
    scope_column, _ = SCOPE_LINKS[scope]
    if not links.get(scope_column):
        raise HTTPException(
            status_code=400,
            detail=f"{scope.capitalize()} must be specified for {scope} reports.",
        )
    for name, (column, model) in SCOPE_LINKS.items():
        value = links.get(column)
        if value and db.get(model, value) is None:
            raise HTTPException(status_code=404, detail=f"{name.capitalize()} not found.")


def _stamp_status(report: Report, status: str) -> None:
    if status == report.status:
        return
    report.status = status
    if status == "reviewed":
        report.reviewed_at = utcnow()
    elif status == "approved":
        report.approved_at = utcnow()


def _get_or_404(db: Session, report_id: int) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found.")
    return report


# API Endpoints
@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    data: ReportCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    """File a report and mail it to its recipients"""
    if not data.title.strip() or not data.content.strip():
        raise HTTPException(status_code=400, detail="Title, content and scope are required.")
    links = {column: getattr(data, column) for column, _ in SCOPE_LINKS.values()}
    _check_links(db, data.scope, links)

    report = Report(
        title=data.title.strip(),
        content=data.content,
        scope=data.scope,
        created_by_id=current_user.id,
        email_recipients=data.email_recipients,
        **links,
    )
    report.status = "draft"
    _stamp_status(report, data.status)
    if data.email_recipients:
        report.sent_at = utcnow()
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(f"Report {report.id} ({report.scope}) created by user {current_user.id}")

    if data.email_recipients:
        background_tasks.add_task(
            emails.send_report,
            mailer,
            list(data.email_recipients),
            report.title,
            report.scope,
            report.content,
            current_user.full_name,
        )
    return report


@router.get("", response_model=ReportList)
async def list_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Report)
    total = query.count()
    reports = (
        query.order_by(Report.created_at.desc(), Report.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"reports": reports, "total_pages": math.ceil(total / limit), "current_page": page}


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _get_or_404(db, report_id)


@router.put("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: int,
    data: ReportUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Partial update; the scope rule is re-checked only when scope or links change"""
    report = _get_or_404(db, report_id)
    changes = data.model_dump(exclude_unset=True)

    scope = changes.get("scope") or report.scope
    links = {column: changes.get(column, getattr(report, column)) for column, _ in SCOPE_LINKS.values()}
    # Links go NULL when the linked row is deleted; such reports stay editable
    if "scope" in changes or any(column in changes for column in links):
        _check_links(db, scope, links)

    if "title" in changes:
        if not (data.title or "").strip():
            raise HTTPException(status_code=400, detail="Title cannot be empty.")
        report.title = data.title.strip()
    if "content" in changes:
        if not (data.content or "").strip():
            raise HTTPException(status_code=400, detail="Content cannot be empty.")
        report.content = data.content
    if data.email_recipients is not None:
        report.email_recipients = data.email_recipients
    report.scope = scope
    for column, value in links.items():
        setattr(report, column, value)
    if data.status is not None:
        _stamp_status(report, data.status)

    db.commit()
    db.refresh(report)
    return report


@router.delete("/{report_id}")
async def delete_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    report = _get_or_404(db, report_id)
    db.delete(report)
    db.commit()
    return {"message": "Report deleted successfully.", "report_id": report_id}

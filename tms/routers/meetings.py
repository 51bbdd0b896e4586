"""
Meetings API Endpoints
"""

import logging
from datetime import date as date_type, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import Department, Meeting, Project, Task, User, meeting_departments
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..schemas import DepartmentRef, UserRef
from ..services.calendar import check_not_past, slot_times
from ..validators import is_hex_color

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class MeetingCreate(BaseModel):
    title: str
    description: Optional[str] = None
    agenda: str
    date: date_type
    start_time: str
    end_time: str
    project_id: Optional[int] = None
    task_ids: List[int] = []
    department_ids: List[int] = []
    invited_user_ids: List[int] = []
    color: Optional[str] = None


class MeetingUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    agenda: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    project_id: Optional[int] = None
    task_ids: Optional[List[int]] = None
    department_ids: Optional[List[int]] = None
    invited_user_ids: Optional[List[int]] = None
    status: Optional[Literal["Scheduled", "Completed", "Canceled"]] = None
    color: Optional[str] = None


class MeetingResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    agenda: str
    date: date_type
    start_time: datetime
    end_time: datetime
    project_id: Optional[int]
    task_ids: List[int]
    departments: List[DepartmentRef]
    invited_users: List[UserRef]
    status: str
    color: str
    created_at: datetime
    updated_at: datetime


class MeetingEnvelope(BaseModel):
    success: bool
    message: Optional[str] = None
    data: MeetingResponse


class MeetingListEnvelope(BaseModel):
    success: bool
    data: List[MeetingResponse]


def _view(meeting: Meeting) -> MeetingResponse:
    return MeetingResponse(
        id=meeting.id,
        title=meeting.title,
        description=meeting.description,
        agenda=meeting.agenda,
        date=meeting.date,
        start_time=meeting.start_time,
        end_time=meeting.end_time,
        project_id=meeting.project_id,
        task_ids=[t.id for t in meeting.tasks],
        departments=[DepartmentRef.model_validate(d) for d in meeting.departments],
        invited_users=[UserRef.model_validate(u) for u in meeting.invited_users],
        status=meeting.status,
        color=meeting.color,
        created_at=meeting.created_at,
        updated_at=meeting.updated_at,
    )


def _get_or_404(db: Session, meeting_id: int) -> Meeting:
    meeting = db.get(Meeting, meeting_id)
    if meeting is None:
        raise HTTPException(status_code=404, detail="Meeting not found.")
    return meeting


def _load(db: Session, model, ids: List[int], label: str) -> list:
    if not ids:
        return []
    rows = db.query(model).filter(model.id.in_(ids)).all()
    if len(rows) != len(set(ids)):
        raise HTTPException(status_code=400, detail=f"One or more {label} are invalid.")
    return rows


def _check_project(db: Session, project_id: Optional[int]) -> None:
    if project_id is not None and db.get(Project, project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found.")


# API Endpoints
@router.post("", response_model=MeetingEnvelope, status_code=201)
async def create_meeting(
    data: MeetingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    """Schedule a meeting and invite users directly or by department"""
    if not data.title.strip() or not (data.invited_user_ids or data.department_ids):
        raise HTTPException(
            status_code=400,
            detail="Title, date, and either invited users or departments are required.",
        )
    if not data.agenda.strip():
        raise HTTPException(status_code=400, detail="Agenda is required.")
    start_time, end_time = slot_times(data.date, data.start_time, data.end_time)
    check_not_past(data.date, "Meeting")
    if data.color is not None and not is_hex_color(data.color):
        raise HTTPException(status_code=400, detail="Invalid color code.")
    _check_project(db, data.project_id)

    departments = _load(db, Department, data.department_ids, "departments")
    if data.invited_user_ids:
        invitees = _load(db, User, data.invited_user_ids, "invited users")
    else:
        invitees = db.query(User).filter(User.department_id.in_(data.department_ids)).all()

    meeting = Meeting(
        title=data.title.strip(),
        description=data.description,
        agenda=data.agenda.strip(),
        date=data.date,
        start_time=start_time,
        end_time=end_time,
        project_id=data.project_id,
        color=data.color or "#FF0000",
    )
    meeting.tasks = _load(db, Task, data.task_ids, "tasks")
    meeting.departments = departments
    meeting.invited_users = invitees
    db.add(meeting)
    db.commit()
    db.refresh(meeting)
    logger.info(f"Meeting {meeting.id} scheduled with {len(invitees)} invitee(s)")

    background_tasks.add_task(
        emails.send_meeting_invitation,
        mailer,
        [u.email for u in invitees],
        meeting.title,
        meeting.date,
        meeting.start_time,
        meeting.end_time,
        meeting.agenda,
    )
    return {"success": True, "message": "Meeting created successfully.", "data": _view(meeting)}


@router.get("", response_model=MeetingListEnvelope)
async def list_meetings(
    date: Optional[date_type] = None,
    department_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Meeting).options(
        selectinload(Meeting.tasks),
        selectinload(Meeting.departments),
        selectinload(Meeting.invited_users),
    )
    if date:
        query = query.filter(Meeting.date == date)
    if department_id:
        query = query.filter(
            Meeting.id.in_(
                select(meeting_departments.c.meeting_id)
                .where(meeting_departments.c.department_id == department_id)
            )
        )
    meetings = query.order_by(Meeting.start_time).all()
    return {"success": True, "data": [_view(m) for m in meetings]}


@router.get("/{meeting_id}", response_model=MeetingEnvelope)
async def get_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"success": True, "data": _view(_get_or_404(db, meeting_id))}


@router.put("/{meeting_id}", response_model=MeetingEnvelope)
async def update_meeting(
    meeting_id: int,
    data: MeetingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Partial update; times are re-validated against the (new) date"""
    meeting = _get_or_404(db, meeting_id)

    if data.date is not None and data.date != meeting.date:
        check_not_past(data.date, "Meeting")
    if data.date is not None or data.start_time is not None or data.end_time is not None:
        day = data.date or meeting.date
        start = data.start_time or meeting.start_time.strftime("%H:%M:%S")
        end = data.end_time or meeting.end_time.strftime("%H:%M:%S")
        meeting.start_time, meeting.end_time = slot_times(day, start, end)
        meeting.date = day

    if data.color is not None:
        if not is_hex_color(data.color):
            raise HTTPException(status_code=400, detail="Invalid color code.")
        meeting.color = data.color
    if data.title is not None:
        if not data.title.strip():
            raise HTTPException(status_code=400, detail="Title cannot be empty.")
        meeting.title = data.title.strip()
    if data.agenda is not None:
        if not data.agenda.strip():
            raise HTTPException(status_code=400, detail="Agenda is required.")
        meeting.agenda = data.agenda.strip()
    if data.description is not None:
        meeting.description = data.description
    if data.project_id is not None:
        _check_project(db, data.project_id)
        meeting.project_id = data.project_id
    if data.status is not None:
        meeting.status = data.status
    if data.task_ids is not None:
        meeting.tasks = _load(db, Task, data.task_ids, "tasks")
    if data.department_ids is not None:
        meeting.departments = _load(db, Department, data.department_ids, "departments")
    if data.invited_user_ids is not None:
        meeting.invited_users = _load(db, User, data.invited_user_ids, "invited users")

    db.commit()
    db.refresh(meeting)
    return {"success": True, "message": "Meeting updated successfully.", "data": _view(meeting)}


@router.delete("/{meeting_id}")
async def delete_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    meeting = _get_or_404(db, meeting_id)
    db.delete(meeting)
    db.commit()
    logger.info(f"Meeting {meeting_id} deleted")
    return {"success": True, "message": "Meeting deleted successfully."}

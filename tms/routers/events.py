"""
Calendar Events API Endpoints
"""

import logging
from datetime import date as date_type, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import Event, User
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..services.calendar import check_not_past, slot_times
from ..validators import is_hex_color

logger = logging.getLogger(__name__)

router = APIRouter()

EventType = Literal["Meeting", "Holiday", "Event", "Other"]


# Pydantic schemas
class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    date: date_type
    start_time: str
    end_time: str
    color: Optional[str] = None
    type: EventType
    notify_admins: bool = False


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    color: Optional[str] = None
    type: Optional[EventType] = None


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: date_type
    start_time: datetime
    end_time: datetime
    color: str
    type: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EventEnvelope(BaseModel):
    success: bool
    message: Optional[str] = None
    data: EventResponse


class EventListEnvelope(BaseModel):
    success: bool
    data: List[EventResponse]


def _get_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found.")
    return event


def _check_color(color: Optional[str]) -> None:
    if color is not None and not is_hex_color(color):
        raise HTTPException(status_code=400, detail="Invalid color code.")


# API Endpoints
@router.post("", response_model=EventEnvelope, status_code=201)
async def create_event(
    data: EventCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(get_current_user)
):
    """Create an event; admins (notify_admins) or everyone get an e-mail"""
    if not data.title.strip():
        raise HTTPException(
            status_code=400,
            detail="Title, date, start time, end time, and type are required.",
        )
    start_time, end_time = slot_times(data.date, data.start_time, data.end_time)
    check_not_past(data.date, "Event")
    _check_color(data.color)

    event = Event(
        title=data.title.strip(),
        description=data.description,
        date=data.date,
        start_time=start_time,
        end_time=end_time,
        color=data.color or "#FF5733",
        type=data.type,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info(f"Event {event.id} '{event.title}' created")

    query = db.query(User.email)
    if data.notify_admins:
        query = query.filter(User.role == "Admin")
    recipients = [email for (email,) in query.all()]
    background_tasks.add_task(
        emails.send_event_created,
        mailer,
        recipients,
        event.title,
        event.date,
        event.start_time,
        event.end_time,
        event.type,
        event.description,
    )
    return {"success": True, "message": "Event created successfully.", "data": event}


@router.get("", response_model=EventListEnvelope)
async def list_events(
    date: Optional[date_type] = None,
    type: Optional[EventType] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Event)
    if date:
        query = query.filter(Event.date == date)
    if type:
        query = query.filter(Event.type == type)
    return {"success": True, "data": query.order_by(Event.start_time).all()}


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"success": True, "data": _get_or_404(db, event_id)}


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event(
    event_id: int,
    data: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    event = _get_or_404(db, event_id)

    if data.date is not None and data.date != event.date:
        check_not_past(data.date, "Event")
    day = data.date or event.date
    start = data.start_time or event.start_time.strftime("%H:%M:%S")
    end = data.end_time or event.end_time.strftime("%H:%M:%S")
    event.start_time, event.end_time = slot_times(day, start, end)
    event.date = day

    _check_color(data.color)
    if data.color is not None:
        event.color = data.color
    if data.title is not None:
        if not data.title.strip():
            raise HTTPException(status_code=400, detail="Title cannot be empty.")
        event.title = data.title.strip()
    if data.description is not None:
        event.description = data.description
    if data.type is not None:
        event.type = data.type

    db.commit()
    db.refresh(event)
    return {"success": True, "message": "Event updated successfully.", "data": event}


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    event = _get_or_404(db, event_id)
    db.delete(event)
    db.commit()
    logger.info(f"Event {event_id} deleted")
    return {"success": True, "message": "Event deleted successfully."}

"""Daily reminder job.

Sweeps, in order:
  1. status refresh: overdue tasks and projects, with overdue alerts
  2. project due reminders (due tomorrow)
  3. task due reminders (due tomorrow, one mail per assignee)
  4. event reminders (starting tomorrow), when enabled

Every sweep runs in its own transaction and returns how many mails it
sent. A failing sweep is logged and the remaining sweeps still run.
Mail goes out after the sweep's transaction committed.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..config import get_config
from ..db.database import session_scope
from ..models.models import Event, Project, Task, User
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..timeutil import tomorrow_bounds, utcnow
from .lifecycle import SYSTEM_ACTOR, add_task_activity, apply_project_rules

logger = logging.getLogger(__name__)

TASK_REMINDER_HOURS = 24

# (sender, args) pairs collected inside a transaction and sent after commit
Outbox = list[tuple[Callable[..., bool], tuple]]


def _deliver(mailer: Mailer, outbox: Outbox) -> int:
    sent = 0
    for send, args in outbox:
        if send(mailer, *args):
            sent += 1
    return sent


def refresh_statuses(db: Session, now: datetime) -> Outbox:
    """Mark overdue tasks/projects; queue alerts for the people involved."""
    outbox: Outbox = []

    overdue_tasks = (
        db.query(Task)
        .filter(Task.status.notin_(("completed", "overdue")), Task.due_date < now)
        .all()
    )
    touched_projects = set()
    for task in overdue_tasks:
        task.status = "overdue"
        add_task_activity(task, "Status Changed", SYSTEM_ACTOR, "Task status automatically set to overdue.")
        touched_projects.add(task.project_id)
        for user in task.assignees:
            outbox.append((emails.send_task_overdue, (user.email, task.title, task.due_date)))
    if overdue_tasks:
        logger.info(f"Marked {len(overdue_tasks)} task(s) overdue")
    db.flush()

    projects = db.query(Project).filter(Project.status != "completed").all()
    newly_overdue = 0
    for project in projects:
        previous = project.status
        if project.id in touched_projects:
            db.expire(project, ["tasks"])
        apply_project_rules(project, now)
        if project.status == "overdue" and previous != "overdue":
            newly_overdue += 1
            recipients = [m.email for m in project.members if m.email]
            outbox.append((emails.send_project_overdue, (recipients, project.name, project.due_date)))
    if newly_overdue:
        logger.info(f"Marked {newly_overdue} project(s) overdue")
    return outbox


def project_due_reminders(db: Session, now: datetime) -> Outbox:
    start, end = tomorrow_bounds(now)
    projects = (
        db.query(Project)
        .filter(Project.status != "completed", Project.due_date >= start, Project.due_date < end)
        .all()
    )
    outbox: Outbox = []
    for project in projects:
        recipients = [m.email for m in project.members if m.email]
        if not recipients:
            logger.info(f"Project {project.id} due tomorrow has no members to remind")
            continue
        outbox.append((emails.send_project_due_reminder, (recipients, project.name, project.due_date)))
    return outbox


def task_due_reminders(db: Session, now: datetime) -> Outbox:
    start, end = tomorrow_bounds(now)
    tasks = (
        db.query(Task)
        .filter(Task.status != "completed", Task.due_date >= start, Task.due_date < end)
        .all()
    )
    outbox: Outbox = []
    for task in tasks:
        for user in task.assignees:
            outbox.append((emails.send_task_reminder, (user.email, task.title, TASK_REMINDER_HOURS)))
    return outbox


def event_reminders(db: Session, now: datetime) -> Outbox:
    start, end = tomorrow_bounds(now)
    events = db.query(Event).filter(Event.start_time >= start, Event.start_time < end).all()
    if not events:
        return []
    everyone = [email for (email,) in db.query(User.email).all()]
    return [(emails.send_event_reminder, (everyone, e.title, e.start_time)) for e in events]


SWEEPS: list[tuple[str, Callable[[Session, datetime], Outbox]]] = [
    ("status_refresh", refresh_statuses),
    ("project_reminders", project_due_reminders),
    ("task_reminders", task_due_reminders),
]


def run_daily_job(
    session_factory: Optional[sessionmaker] = None,
    mailer: Optional[Mailer] = None,
    include_events: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> dict[str, int]:
    """Run every sweep once; returns mails sent per sweep (-1 when it failed)."""
    now = now or utcnow()
    mailer = mailer or get_mailer()
    if include_events is None:
        include_events = get_config().reminders.include_events

    sweeps = list(SWEEPS)
    if include_events:
        sweeps.append(("event_reminders", event_reminders))

    results: dict[str, int] = {}
    for name, sweep in sweeps:
        try:
            with session_scope(session_factory) as db:
                outbox = sweep(db, now)
            results[name] = _deliver(mailer, outbox)
            logger.info(f"Reminder sweep {name}: {results[name]} mail(s) sent")
        except Exception:
            logger.exception(f"Reminder sweep {name} failed")
            results[name] = -1
    return results

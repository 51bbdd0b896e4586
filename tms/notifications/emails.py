"""Notification e-mails.

Each ``send_*`` helper renders ``templates/email/<name>.txt`` (plus the
shared HTML layout, or a dedicated ``<name>.html`` where one exists) and
hands the result to a ``Mailer``. Helpers take plain values, never ORM
objects, so they are safe to run from BackgroundTasks after the session
closed.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from .mailer import Mailer, Recipients, normalize_recipients

logger = logging.getLogger(__name__)

# Template directory
TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "email"

_jinja = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "-"
    return value.strftime("%B %d, %Y")


def format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%H:%M")


_jinja.filters["date"] = format_date
_jinja.filters["time"] = format_time


def render(name: str, **context) -> tuple[str, str]:
    """Render the plain text and HTML bodies of a notification."""
    text = _jinja.get_template(f"{name}.txt").render(**context)
    try:
        html = _jinja.get_template(f"{name}.html").render(**context)
    except TemplateNotFound:
        html = _jinja.get_template("layout.html").render(body=text, **context)
    return text, html


def _send(mailer: Mailer, to: Recipients, subject: str, template: str, **context) -> bool:
    recipients = normalize_recipients(to)
    if not recipients:
        logger.debug(f"Skipping '{subject}': no recipients")
        return False
    text, html = render(template, subject=subject, **context)
    return mailer.send(recipients, subject, text, html)


# --- Users ---


def send_welcome(mailer: Mailer, to: str, first_name: str, email: str, password: Optional[str] = None) -> bool:
    """Welcome mail; includes credentials only when an admin created the account."""
    return _send(
        mailer, to, "Welcome to TMS!", "welcome",
        first_name=first_name, email=email, password=password,
    )


def send_password_changed(mailer: Mailer, to: str, first_name: str) -> bool:
    return _send(mailer, to, "Your TMS password was changed", "password_changed", first_name=first_name)


def send_department_change(
    mailer: Mailer,
    recipients: Iterable[str],
    first_name: str,
    last_name: str,
    email: str,
    role: str,
    department_name: str,
) -> int:
    """One mail per department member; returns how many were sent."""
    sent = 0
    for recipient in normalize_recipients(recipients):
        if _send(
            mailer, recipient, "Department Update Notification", "department_change",
            first_name=first_name, last_name=last_name, email=email,
            role=role, department_name=department_name,
        ):
            sent += 1
    logger.info(f"Department change notification sent to {sent} user(s)")
    return sent


# --- Tasks ---


def send_task_assigned(mailer: Mailer, to: str, task_title: str, due_date: Optional[datetime]) -> bool:
    return _send(mailer, to, "New Task Assigned!", "task_assigned", task_title=task_title, due_date=due_date)


def send_task_reminder(mailer: Mailer, to: str, task_title: str, hours_remaining: int) -> bool:
    return _send(
        mailer, to, "Task Reminder", "task_reminder",
        task_title=task_title, hours_remaining=hours_remaining,
    )


def send_task_overdue(mailer: Mailer, to: str, task_title: str, due_date: Optional[datetime]) -> bool:
    return _send(mailer, to, "Overdue Task Alert", "task_overdue", task_title=task_title, due_date=due_date)


# --- Projects ---


def send_project_assigned(mailer: Mailer, to: Recipients, project_name: str, due_date: Optional[datetime]) -> bool:
    return _send(
        mailer, to, "New Project Assignment", "project_assigned",
        project_name=project_name, due_date=due_date,
    )


def send_project_completed(mailer: Mailer, to: Recipients, project_name: str) -> bool:
    return _send(mailer, to, "Project Completed!", "project_completed", project_name=project_name)


def send_project_removed(mailer: Mailer, to: Recipients, project_name: str) -> bool:
    return _send(mailer, to, "Project Removed", "project_removed", project_name=project_name)


def send_project_overdue(mailer: Mailer, to: Recipients, project_name: str, due_date: Optional[datetime]) -> bool:
    return _send(
        mailer, to, "Overdue Project Alert", "project_overdue",
        project_name=project_name, due_date=due_date,
    )


def send_project_due_reminder(mailer: Mailer, to: Recipients, project_name: str, due_date: Optional[datetime]) -> bool:
    return _send(
        mailer, to, "Project Due Reminder", "project_due_reminder",
        project_name=project_name, due_date=due_date,
    )


# --- Collaboration ---


def send_comment(mailer: Mailer, recipients: Recipients, content: str, author: dict, target: str) -> bool:
    """``author`` carries full_name, email and role; ``target`` names what was commented on."""
    return _send(
        mailer, recipients, f"New Comment by {author['full_name']}", "comment",
        content=content, author=author, target=target,
    )


def send_meeting_invitation(
    mailer: Mailer,
    to: Recipients,
    title: str,
    day: date,
    start_time: datetime,
    end_time: datetime,
    agenda: str,
) -> bool:
    return _send(
        mailer, to, f"Meeting Invitation: {title}", "meeting_invitation",
        title=title, day=day, start_time=start_time, end_time=end_time, agenda=agenda,
    )


def send_event_created(
    mailer: Mailer,
    to: Recipients,
    title: str,
    day: date,
    start_time: datetime,
    end_time: datetime,
    event_type: str,
    description: Optional[str] = None,
) -> bool:
    return _send(
        mailer, to, f"New {event_type}: {title}", "event_created",
        title=title, day=day, start_time=start_time, end_time=end_time,
        event_type=event_type, description=description,
    )


def send_event_reminder(mailer: Mailer, to: Recipients, title: str, start_time: datetime) -> bool:
    return _send(mailer, to, f"Event Reminder: {title}", "event_reminder", title=title, start_time=start_time)


# --- Reports ---


def send_report(mailer: Mailer, to: Recipients, title: str, scope: str, content: str, author: Optional[str] = None) -> bool:
    return _send(
        mailer, to, f"{scope.capitalize()} Report: {title}", "report",
        title=title, scope=scope, content=content, author=author,
    )

"""Task and project status rules.

Tasks and projects carry a stored ``status`` that is re-derived on every
save. The rules live here so that routers, the reminder job and tests all
apply them the same way:

Task (in order):
  1. pending / in progress without a start date -> start now, log it
  2. past due and not completed / overdue       -> overdue, log it
  3. start date after due date                  -> rejected

Project (unless completed):
  now < start -> pending, start <= now <= due -> in progress, now > due -> overdue
  progress text counts the tasks that are not completed.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..errors import ServiceError
from ..models.models import Project, ProjectActivity, Task, TaskActivity, User
from ..timeutil import utcnow

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")
TASK_STATUSES = ("pending", "in progress", "completed", "overdue")
PROJECT_STATUSES = ("pending", "in progress", "completed", "overdue")

TASK_ACTIONS = (
    "Task Created",
    "Task Updated",
    "Status Changed",
    "Task Completed",
    "Task Deleted",
    "Task Started",
    "Task Pending",
)

SYSTEM_ACTOR = "System"


# --- Tasks ---


def add_task_activity(task: Task, action: str, performed_by: str, details: str = "") -> TaskActivity:
    if action not in TASK_ACTIONS:
        raise ValueError(f"Unknown task action: {action}")
    activity = TaskActivity(action=action, performed_by=performed_by, details=details, date=utcnow())
    task.activities.append(activity)
    return activity


def apply_task_rules(task: Task, now: Optional[datetime] = None) -> None:
    """Run the save rules on ``task``; raises ServiceError on bad dates."""
    now = now or utcnow()

    if task.status in ("pending", "in progress") and task.start_date is None:
        task.start_date = now
        add_task_activity(
            task,
            "Task Started" if task.status == "in progress" else "Task Pending",
            SYSTEM_ACTOR,
            f"Task has been set to {task.status}.",
        )

    if task.due_date is not None and now > task.due_date and task.status not in ("completed", "overdue"):
        task.status = "overdue"
        add_task_activity(task, "Status Changed", SYSTEM_ACTOR, "Task status automatically set to overdue.")

    if task.start_date and task.due_date and task.start_date > task.due_date:
        raise ServiceError("start_date cannot be after due_date for this task.")


def task_display_status(task: Task, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    if task.status != "completed" and task.due_date and task.due_date < now:
        return "overdue"
    return task.status


# --- Projects ---


def derive_project_status(start_date: datetime, due_date: datetime, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    if now < start_date:
        return "pending"
    if now <= due_date:
        return "in progress"
    return "overdue"


def open_task_count(tasks: Iterable[Task]) -> int:
    return sum(1 for task in tasks if task.status != "completed")


def project_progress(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks assigned"
    count = open_task_count(tasks)
    return f"{count} open task{'' if count == 1 else 's'}"


def project_display_status(project: Project, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    if project.status != "completed" and project.due_date and project.due_date < now:
        return "overdue"
    return project.status


def apply_project_rules(project: Project, now: Optional[datetime] = None) -> None:
    """Recompute progress and, unless completed, the date-derived status."""
    project.progress = project_progress(list(project.tasks))
    if project.status != "completed":
        project.status = derive_project_status(project.start_date, project.due_date, now)


def refresh_project(db: Session, project_id: int, now: Optional[datetime] = None) -> Optional[Project]:
    """Re-derive a project after one of its tasks was saved or deleted."""
    db.flush()
    project = db.get(Project, project_id)
    if project is None:
        logger.warning(f"Project {project_id} not found while refreshing")
        return None
    db.expire(project, ["tasks"])
    previous = (project.status, project.progress)
    apply_project_rules(project, now)
    if (project.status, project.progress) != previous:
        logger.info(f"Project {project.id} now '{project.status}', {project.progress}")
    return project


def record_project_activity(project: Project, description: str, user: Optional[User] = None) -> ProjectActivity:
    activity = ProjectActivity(description=description, user=user, created_at=utcnow())
    project.activities.append(activity)
    return activity

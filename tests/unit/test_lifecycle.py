"""Tests for task and project status rules.

Covers:
  - Task save rules (auto start, auto overdue, date ordering)
  - Display status of overdue-but-stored tasks and projects
  - Project status derivation from dates and progress text
  - refresh_project after task changes
"""
from datetime import datetime, timedelta

import pytest

from tms.errors import ServiceError
from tms.models.models import Project, Task
from tms.services.lifecycle import (
    add_task_activity,
    apply_project_rules,
    apply_task_rules,
    derive_project_status,
    project_display_status,
    project_progress,
    refresh_project,
    task_display_status,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


def _task(status="pending", due_in_days=3, start_date=None) -> Task:
    return Task(
        title="Write docs",
        project_id=1,
        priority="medium",
        status=status,
        due_date=NOW + timedelta(days=due_in_days),
        start_date=start_date,
    )


# ---------------------------------------------------------------------------
# TestTaskRules
# ---------------------------------------------------------------------------

class TestTaskRules:
    """Test apply_task_rules on unsaved tasks."""

    def test_pending_without_start_gets_started(self):
        task = _task()
        apply_task_rules(task, NOW)
        assert task.start_date == NOW
        assert task.activities[-1].action == "Task Pending"
        assert task.activities[-1].performed_by == "System"

    def test_in_progress_logs_task_started(self):
        task = _task(status="in progress")
        apply_task_rules(task, NOW)
        assert task.activities[-1].action == "Task Started"
        assert task.activities[-1].details == "Task has been set to in progress."

    def test_existing_start_date_is_kept(self):
        start = NOW - timedelta(days=2)
        task = _task(start_date=start)
        apply_task_rules(task, NOW)
        assert task.start_date == start
        assert task.activities == []

    def test_past_due_becomes_overdue(self):
        task = _task(due_in_days=-1, start_date=NOW - timedelta(days=5))
        apply_task_rules(task, NOW)
        assert task.status == "overdue"
        assert task.activities[-1].action == "Status Changed"
        assert task.activities[-1].details == "Task status automatically set to overdue."

    def test_completed_task_never_becomes_overdue(self):
        task = _task(status="completed", due_in_days=-1, start_date=NOW - timedelta(days=5))
        apply_task_rules(task, NOW)
        assert task.status == "completed"

    def test_new_task_with_past_due_date_is_rejected(self):
        # start_date is set to now, which then lies after the due date
        task = _task(due_in_days=-1)
        with pytest.raises(ServiceError, match="start_date cannot be after due_date"):
            apply_task_rules(task, NOW)

    def test_unknown_activity_action_rejected(self):
        with pytest.raises(ValueError):
            add_task_activity(_task(), "Task Exploded", "System")


class TestDisplayStatus:
    def test_task_shown_overdue_when_past_due(self):
        task = _task(status="in progress", due_in_days=-1)
        assert task_display_status(task, NOW) == "overdue"

    def test_completed_task_keeps_status(self):
        task = _task(status="completed", due_in_days=-1)
        assert task_display_status(task, NOW) == "completed"

    def test_project_shown_overdue_when_past_due(self):
        project = Project(status="in progress", due_date=NOW - timedelta(hours=1))
        assert project_display_status(project, NOW) == "overdue"


# ---------------------------------------------------------------------------
# TestProjectRules
# ---------------------------------------------------------------------------

class TestProjectRules:
    """Test date-derived project status and progress text."""

    @pytest.mark.parametrize("start_offset,due_offset,expected", [
        (1, 10, "pending"),
        (-1, 10, "in progress"),
        (-10, -1, "overdue"),
    ])
    def test_derive_project_status(self, start_offset, due_offset, expected):
        start = NOW + timedelta(days=start_offset)
        due = NOW + timedelta(days=due_offset)
        assert derive_project_status(start, due, NOW) == expected

    def test_due_boundary_is_still_in_progress(self):
        assert derive_project_status(NOW - timedelta(days=1), NOW, NOW) == "in progress"

    def test_progress_without_tasks(self):
        assert project_progress([]) == "No tasks assigned"

    def test_progress_counts_open_tasks(self):
        tasks = [_task(), _task(status="completed"), _task(status="overdue")]
        assert project_progress(tasks) == "2 open tasks"

    def test_progress_singular(self):
        assert project_progress([_task()]) == "1 open task"

    def test_completed_project_status_is_kept(self):
        project = Project(
            status="completed",
            start_date=NOW - timedelta(days=10),
            due_date=NOW - timedelta(days=1),
        )
        apply_project_rules(project, NOW)
        assert project.status == "completed"
        assert project.progress == "No tasks assigned"


class TestRefreshProject:
    def test_refresh_after_task_added(self, db, factory):
        project = factory.project()
        factory.task(project, status="pending")
        factory.task(project, status="completed")

        refreshed = refresh_project(db, project.id)
        assert refreshed.progress == "1 open task"
        assert refreshed.status == "in progress"

    def test_refresh_missing_project_returns_none(self, db):
        assert refresh_project(db, 999) is None

"""
Dashboard API Endpoint
"""

from datetime import date, datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_admin
from ..db.database import get_db
from ..models.models import User
from ..schemas import TaskResponse
from ..services.dashboard import get_dashboard
from ..timeutil import start_of_day

router = APIRouter()


# Pydantic schemas
class StatusCount(BaseModel):
    status: str
    count: int


class UserTaskSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    completed_tasks: int
    pending_tasks: int
    overdue_tasks: int


class BudgetSummary(BaseModel):
    total_budget: float
    completed_budget: float
    remaining_budget: float


class DashboardResponse(BaseModel):
    clients_count: int
    projects_count: int
    tasks_count: int
    reports_count: int
    project_summary: List[StatusCount]
    task_summary: List[StatusCount]
    user_summary: List[UserTaskSummary]
    ongoing_clients: int
    verified_clients: int
    not_in_project_clients: int
    budget_summary: BudgetSummary
    recent_tasks: List[TaskResponse]


# API Endpoints
@router.get("", response_model=DashboardResponse)
async def dashboard(
    task_status: Optional[List[str]] = Query(None),
    task_start_date: Optional[date] = None,
    task_end_date: Optional[date] = None,
    user_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin)
):
    """Aggregated counts and summaries; the task filters narrow task figures"""
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    if task_start_date:
        due_from = start_of_day(task_start_date)
    if task_end_date:
        due_to = datetime.combine(task_end_date, time.max)
    return get_dashboard(db, task_status, due_from, due_to, user_id)

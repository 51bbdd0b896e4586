"""
Response schemas shared across routers
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class DepartmentRef(BaseModel):
    id: int
    name: str
    color: Optional[str] = None

    class Config:
        from_attributes = True


class ClientRef(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class UserRef(BaseModel):
    id: int
    full_name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    role: str
    department_id: Optional[int]
    department: Optional[DepartmentRef]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskActivityResponse(BaseModel):
    action: str
    performed_by: str
    details: str
    date: datetime

    class Config:
        from_attributes = True


class ProjectResponse(BaseModel):
    id: int
    name: str
    client: Optional[ClientRef]
    departments: List[DepartmentRef]
    members: List[UserRef]
    start_date: datetime
    due_date: datetime
    budget: float
    status: str
    progress: str
    priority: str
    total_tasks: int
    completed_tasks: int
    created_at: datetime
    updated_at: datetime


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: str
    due_date: datetime
    start_date: Optional[datetime]
    members: List[str]
    assignees: List[UserRef]
    project: Optional[str]
    project_id: int
    created_at: datetime
    priority: str
    departments: List[DepartmentRef]
    activities: List[TaskActivityResponse]


class CommentResponse(BaseModel):
    id: int
    content: str
    author: Optional[UserRef]
    project_id: Optional[int]
    task_id: Optional[int]
    parent_id: Optional[int]
    attachments: List[str]
    created_at: datetime
    updated_at: datetime
    replies: List["CommentResponse"] = []


class MessageResponse(BaseModel):
    message: str


CommentResponse.model_rebuild()

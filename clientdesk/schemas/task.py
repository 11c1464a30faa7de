from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clientdesk.models.task import TaskStatus, TaskPriority


class TaskBase(BaseModel):
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    assignee_id: Optional[int] = None


class TaskCreate(TaskBase):
    project_id: int


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    assignee_id: Optional[int] = None
    # Range checked by TaskService so it reports InvalidProgress
    progress: Optional[int] = None
    is_archived: Optional[bool] = None


class TaskStatusUpdate(BaseModel):
    # Checked by TaskService so unknown values report InvalidStatus
    status: str
    comment: Optional[str] = None


class TaskInDBBase(TaskBase):
    id: int
    task_code: str
    project_id: int
    status: TaskStatus
    progress: int
    completion_date: Optional[datetime] = None
    last_update: Optional[str] = None
    is_archived: bool
    created_by_id: int
    created_by_name: str
    version_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Task(TaskInDBBase):
    pass


class TaskFilter(BaseModel):
    project_id: Optional[int] = None
    assignee_id: Optional[int] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None
    include_archived: bool = False
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1, le=500)


class TaskList(BaseModel):
    items: List[Task]
    total: int

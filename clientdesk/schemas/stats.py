from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel

from clientdesk.models.project import ProjectStatus


class StatsFilter(BaseModel):
    """Per-request filter; combined with the caller's visibility scope"""

    search: Optional[str] = None
    status: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    project_id: Optional[int] = None


class RecentProjectUpdate(BaseModel):
    project_id: int
    project_code: str
    title: str
    status: ProjectStatus
    progress: int
    last_updated_by_name: Optional[str] = None


class ProjectStats(BaseModel):
    total: int = 0
    planned: int = 0
    in_progress: int = 0
    delayed: int = 0
    completed: int = 0
    on_hold: int = 0
    total_budget: int = 0  # in cents
    total_estimated_hours: int = 0
    average_progress: int = 0
    active_percentage: int = 0
    recent_updates: List[RecentProjectUpdate] = []


class TaskStats(BaseModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0
    overdue: int = 0
    completion_rate: int = 0


class ClientStats(BaseModel):
    total_clients: int = 0
    active_clients: int = 0
    inactive_clients: int = 0
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_revenue: int = 0  # in cents
    paid_revenue: int = 0  # in cents
    outstanding_revenue: int = 0  # in cents
    active_percentage: int = 0


class EmployeeStats(BaseModel):
    total: int = 0
    active: int = 0
    inactive: int = 0
    active_percentage: int = 0
    by_department: Dict[str, int] = {}
    by_role: Dict[str, int] = {}


class InvoiceStats(BaseModel):
    total: int = 0
    draft: int = 0
    sent: int = 0
    paid: int = 0
    overdue: int = 0
    total_amount: int = 0  # in cents
    paid_amount: int = 0  # in cents
    pending_amount: int = 0  # in cents
    overdue_amount: int = 0  # in cents
    paid_percentage: int = 0


class TeamMemberLoad(BaseModel):
    user_id: int
    name: str
    open_tasks: int = 0
    overdue_tasks: int = 0
    projects: List[str] = []

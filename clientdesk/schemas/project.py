from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clientdesk.models.project import ProjectStatus, ProjectPriority
from clientdesk.models.project_member import TeamRole


class ProjectMemberBase(BaseModel):
    user_id: int
    role: TeamRole = TeamRole.DEVELOPER


class ProjectMemberCreate(ProjectMemberBase):
    pass


class ProjectMemberInDBBase(ProjectMemberBase):
    id: int
    project_id: int
    is_active: bool
    added_by_id: int
    assigned_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProjectMember(ProjectMemberInDBBase):
    pass


class ProjectBase(BaseModel):
    title: str
    description: Optional[str] = None
    priority: ProjectPriority = ProjectPriority.MEDIUM
    start_date: date
    deadline: date
    budget: Optional[int] = Field(default=None, ge=0)  # in cents
    estimated_hours: Optional[int] = Field(default=None, ge=0)


class ProjectCreate(ProjectBase):
    client_id: int
    manager_id: int
    team_members: List[ProjectMemberCreate] = []


class ProjectUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[ProjectPriority] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    budget: Optional[int] = Field(default=None, ge=0)
    estimated_hours: Optional[int] = Field(default=None, ge=0)
    client_id: Optional[int] = None
    manager_id: Optional[int] = None


class ProjectInDBBase(ProjectBase):
    id: int
    project_code: str
    client_id: int
    manager_id: int
    created_by_id: int
    status: ProjectStatus
    progress: int
    actual_end_date: Optional[datetime] = None
    delay_reason: Optional[str] = None
    delay_date: Optional[datetime] = None
    status_description: Optional[str] = None
    remarks: Optional[str] = None
    last_updated_by_id: Optional[int] = None
    last_updated_by_name: Optional[str] = None
    is_active: bool
    version_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Project(ProjectInDBBase):
    pass


class ProjectWithDetails(Project):
    days_left: int
    actual_status: ProjectStatus
    client_name: Optional[str] = None
    manager_name: Optional[str] = None
    members: List[ProjectMember] = []

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from clientdesk.models.project import ProjectStatus


class StatusUpdateRequest(BaseModel):
    """Body of ``PUT /project-status/{id}/status``.

    ``status`` and ``progressPercentage`` are left loosely typed so the
    transition engine can report ``InvalidStatus`` and ``InvalidProgress``
    in its own order instead of a generic 422.
    """

    status: str
    progress_percentage: Any = Field(alias="progressPercentage")
    delay_reason: Optional[str] = Field(default=None, alias="delayReason")
    description: Optional[str] = None
    remarks: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class UpdatedStatus(BaseModel):
    project_id: int
    project_code: str
    title: str
    status: ProjectStatus
    progress: int
    delay_reason: Optional[str] = None
    delay_date: Optional[datetime] = None
    status_description: Optional[str] = None
    remarks: Optional[str] = None
    actual_end_date: Optional[datetime] = None
    last_updated_by_id: Optional[int] = None
    last_updated_by_name: Optional[str] = None
    days_left: int
    actual_status: ProjectStatus
    history_length: int


class StatusHistoryEntry(BaseModel):
    id: int
    project_id: int
    status: ProjectStatus
    progress: int
    delay_reason: Optional[str] = None
    updated_by_id: int
    updated_by_name: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

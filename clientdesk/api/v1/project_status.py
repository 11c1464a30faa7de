from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_manager_or_admin, stats_filter
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.project import ProjectWithDetails
from clientdesk.schemas.project_status import StatusHistoryEntry, StatusUpdateRequest, UpdatedStatus
from clientdesk.schemas.stats import ProjectStats, StatsFilter, TeamMemberLoad
from clientdesk.services.project_status import ProjectStatusService
from clientdesk.services.stats import StatsService

router = APIRouter()


@router.get("/pm", response_model=ApiResponse[List[ProjectWithDetails]])
async def read_manager_projects(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Get the projects the caller manages (all projects for admins)"""
    projects = ProjectStatusService.list_manager_projects(db, current_user)
    return ApiResponse(message="Projects fetched successfully", data=projects)


@router.get("/stats", response_model=ApiResponse[ProjectStats])
async def read_project_stats(
    filters: StatsFilter = Depends(stats_filter),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get project status statistics for the caller's projects"""
    stats = StatsService.project_stats(db, current_user, filters)
    return ApiResponse(message="Project statistics fetched successfully", data=stats)


@router.get("/team-load", response_model=ApiResponse[List[TeamMemberLoad]])
async def read_team_load(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Get open and overdue task counts per team member"""
    load = StatsService.team_load(db, current_user)
    return ApiResponse(message="Team load fetched successfully", data=load)


@router.get("/{project_id}", response_model=ApiResponse[ProjectWithDetails])
async def read_project_status(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get the current status of a project"""
    project = ProjectStatusService.get_status(db, project_id, current_user)
    return ApiResponse(message="Project status fetched successfully", data=project)


@router.get("/{project_id}/history", response_model=ApiResponse[List[StatusHistoryEntry]])
async def read_project_status_history(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get the status history of a project, oldest first"""
    history = ProjectStatusService.get_history(db, project_id, current_user)
    return ApiResponse(
        message="Project status history fetched successfully",
        data=[StatusHistoryEntry.model_validate(entry) for entry in history],
    )


@router.put("/{project_id}/status", response_model=ApiResponse[UpdatedStatus])
async def update_project_status(
    project_id: int,
    status_in: StatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Update project status and progress"""
    updated = ProjectStatusService.apply_status_update(
        db,
        project_id,
        current_user,
        status=status_in.status,
        progress=status_in.progress_percentage,
        delay_reason=status_in.delay_reason,
        description=status_in.description,
        remarks=status_in.remarks,
    )
    return ApiResponse(message="Project status updated successfully", data=updated)

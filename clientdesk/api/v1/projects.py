from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_admin, require_manager_or_admin
from clientdesk.models.project import ProjectStatus
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.project import (
    Project, ProjectCreate, ProjectUpdate, ProjectWithDetails,
    ProjectMember, ProjectMemberCreate
)
from clientdesk.services.project import ProjectService
from clientdesk.services.project_status import project_details

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[Project]])
async def read_projects(
    skip: int = 0,
    limit: int = 100,
    status: Optional[ProjectStatus] = None,
    client_id: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get projects visible to the caller with optional filtering"""
    projects = ProjectService.get_projects(
        db,
        current_user,
        skip=skip,
        limit=limit,
        status=status,
        client_id=client_id,
        search=search,
    )
    return ApiResponse(message="Projects fetched successfully", data=[Project.model_validate(p) for p in projects])


@router.post("/", response_model=ApiResponse[Project], status_code=status.HTTP_201_CREATED)
async def create_project(
    project: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Create new project"""
    db_project = ProjectService.create_project(db, project, current_user)
    return ApiResponse(message="Project created successfully", data=Project.model_validate(db_project))


@router.get("/{project_id}", response_model=ApiResponse[ProjectWithDetails])
async def read_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get project by ID with details"""
    project = ProjectService.get_project_for(db, project_id, current_user)
    return ApiResponse(message="Project fetched successfully", data=project_details(project))


@router.put("/{project_id}", response_model=ApiResponse[Project])
async def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Update project details"""
    project = ProjectService.update_project(db, project_id, project_update, current_user)
    return ApiResponse(message="Project updated successfully", data=Project.model_validate(project))


@router.delete("/{project_id}", response_model=ApiResponse[Project])
async def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Deactivate project"""
    project = ProjectService.delete_project(db, project_id, current_user)
    return ApiResponse(message="Project deleted successfully", data=Project.model_validate(project))


@router.get("/{project_id}/members", response_model=ApiResponse[List[ProjectMember]])
async def read_project_members(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get project team members"""
    members = ProjectService.get_project_members(db, project_id, current_user)
    return ApiResponse(message="Team members fetched successfully", data=[ProjectMember.model_validate(m) for m in members])


@router.post("/{project_id}/members", response_model=ApiResponse[ProjectMember], status_code=status.HTTP_201_CREATED)
async def add_project_member(
    project_id: int,
    member: ProjectMemberCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Add member to project"""
    db_member = ProjectService.add_project_member(db, project_id, member, current_user)
    return ApiResponse(message="Team member added successfully", data=ProjectMember.model_validate(db_member))


@router.delete("/{project_id}/members/{user_id}", response_model=ApiResponse[None])
async def remove_project_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Remove member from project"""
    ProjectService.remove_project_member(db, project_id, user_id, current_user)
    return ApiResponse(message="Team member removed successfully")

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, stats_filter
from clientdesk.models.user import User as UserModel
from clientdesk.models.task import TaskStatus, TaskPriority
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.stats import StatsFilter, TaskStats
from clientdesk.schemas.task import Task, TaskCreate, TaskFilter, TaskList, TaskStatusUpdate, TaskUpdate
from clientdesk.schemas.task_comment import TaskComment, TaskCommentCreate, TaskCommentUpdate
from clientdesk.schemas.task_history import TaskHistoryEntry
from clientdesk.services.stats import StatsService
from clientdesk.services.task import TaskService

router = APIRouter()


@router.get("/", response_model=ApiResponse[TaskList])
async def read_tasks(
    skip: int = 0,
    limit: int = 100,
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    assignee_id: Optional[int] = None,
    project_id: Optional[int] = None,
    search: Optional[str] = None,
    include_archived: bool = False,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get tasks visible to the caller with optional filtering"""
    filters = TaskFilter(
        skip=skip,
        limit=limit,
        status=status,
        priority=priority,
        assignee_id=assignee_id,
        project_id=project_id,
        search=search,
        include_archived=include_archived,
    )
    items, total = TaskService.get_tasks(db, current_user, filters)
    return ApiResponse(
        message="Tasks fetched successfully",
        data=TaskList(items=[Task.model_validate(t) for t in items], total=total),
    )


@router.get("/stats", response_model=ApiResponse[TaskStats])
async def read_task_stats(
    filters: StatsFilter = Depends(stats_filter),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get task statistics for the caller's tasks"""
    stats = StatsService.task_stats(db, current_user, filters)
    return ApiResponse(message="Task statistics fetched successfully", data=stats)


@router.post("/", response_model=ApiResponse[Task], status_code=status.HTTP_201_CREATED)
async def create_task(
    task: TaskCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Create new task"""
    db_task = TaskService.create_task(db, task, current_user)
    return ApiResponse(message="Task created successfully", data=Task.model_validate(db_task))


@router.get("/{task_id}", response_model=ApiResponse[Task])
async def read_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get task by ID"""
    task = TaskService.get_task_for(db, task_id, current_user)
    return ApiResponse(message="Task fetched successfully", data=Task.model_validate(task))


@router.put("/{task_id}", response_model=ApiResponse[Task])
async def update_task(
    task_id: int,
    task_update: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Update task fields"""
    task = TaskService.update_task(db, task_id, task_update, current_user)
    return ApiResponse(message="Task updated successfully", data=Task.model_validate(task))


@router.patch("/{task_id}/status", response_model=ApiResponse[Task])
async def update_task_status(
    task_id: int,
    status_in: TaskStatusUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Update task status"""
    task = TaskService.update_task_status(
        db, task_id, current_user, status=status_in.status, comment=status_in.comment
    )
    return ApiResponse(message="Task status updated successfully", data=Task.model_validate(task))


@router.post("/{task_id}/comment", response_model=ApiResponse[TaskComment], status_code=status.HTTP_201_CREATED)
async def add_task_comment(
    task_id: int,
    comment: TaskCommentCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Add a comment to a task"""
    db_comment = TaskService.add_comment(db, task_id, current_user, comment)
    return ApiResponse(message="Comment added successfully", data=TaskComment.model_validate(db_comment))


@router.get("/{task_id}/comments", response_model=ApiResponse[List[TaskComment]])
async def read_task_comments(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get task comments, oldest first"""
    comments = TaskService.get_comments(db, task_id, current_user)
    return ApiResponse(message="Comments fetched successfully", data=[TaskComment.model_validate(c) for c in comments])


@router.put("/{task_id}/comments/{comment_id}", response_model=ApiResponse[TaskComment])
async def edit_task_comment(
    task_id: int,
    comment_id: int,
    comment: TaskCommentUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Edit a comment"""
    db_comment = TaskService.edit_comment(db, task_id, comment_id, current_user, comment.content)
    return ApiResponse(message="Comment updated successfully", data=TaskComment.model_validate(db_comment))


@router.get("/{task_id}/history", response_model=ApiResponse[List[TaskHistoryEntry]])
async def read_task_history(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get the change history of a task, oldest first"""
    history = TaskService.get_history(db, task_id, current_user)
    return ApiResponse(
        message="Task history fetched successfully",
        data=[TaskHistoryEntry.model_validate(entry) for entry in history],
    )

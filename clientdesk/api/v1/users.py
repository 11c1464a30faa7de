from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_admin
from clientdesk.core.errors import NotFound
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.user import User, UserCreate, UserUpdate
from clientdesk.services.authorization import AccessPolicy
from clientdesk.services.user import UserService

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[User]])
async def read_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Get all users (Admin only)"""
    users = UserService.get_users(db, current_user, skip=skip, limit=limit)
    return ApiResponse(message="Users fetched successfully", data=[User.model_validate(u) for u in users])


@router.get("/me", response_model=ApiResponse[User])
async def read_current_user(
    current_user: UserModel = Depends(get_current_user),
):
    """Get the authenticated user's profile"""
    return ApiResponse(message="Profile fetched successfully", data=User.model_validate(current_user))


@router.get("/{user_id}", response_model=ApiResponse[User])
async def read_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get user by ID (users can view their own profile, admins can view any)"""
    user = UserService.get_user(db, user_id=user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    AccessPolicy.ensure_can_view(current_user, user)
    return ApiResponse(message="User fetched successfully", data=User.model_validate(user))


@router.post("/", response_model=ApiResponse[User], status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Create new user (Admin only)"""
    db_user = UserService.create_user(db, user, current_user)
    return ApiResponse(message="User created successfully", data=User.model_validate(db_user))


@router.put("/{user_id}", response_model=ApiResponse[User])
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Update user (Admin only)"""
    db_user = UserService.update_user(db, user_id, user_update, current_user)
    return ApiResponse(message="User updated successfully", data=User.model_validate(db_user))

from datetime import date
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.security import verify_token
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.stats import StatsFilter
from clientdesk.services.authorization import AccessPolicy
from clientdesk.services.user import UserService

security = HTTPBearer()


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    """Get current authenticated user"""
    token = credentials.credentials
    user_id = verify_token(token)

    if user_id is None or not str(user_id).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = UserService.get_user(db, user_id=int(user_id))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Require admin role"""
    AccessPolicy.ensure_role(current_user, [UserRole.ADMIN])
    return current_user


def require_manager_or_admin(current_user: User = Depends(get_current_user)) -> User:
    """Require project manager or admin role"""
    AccessPolicy.ensure_role(current_user, [UserRole.ADMIN, UserRole.PROJECT_MANAGER])
    return current_user


def stats_filter(
    search: Optional[str] = None,
    status: Optional[str] = None,
    department: Optional[str] = None,
    role: Optional[str] = None,
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    project_id: Optional[int] = Query(default=None, alias="projectId"),
) -> StatsFilter:
    """Collect dashboard filters from the query string"""
    return StatsFilter(
        search=search,
        status=status,
        department=department,
        role=role,
        start_date=start_date,
        end_date=end_date,
        project_id=project_id,
    )

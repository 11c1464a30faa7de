from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_admin, require_manager_or_admin, stats_filter
from clientdesk.models.employee import EmployeeStatus
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.employee import Employee, EmployeeCreate, EmployeeUpdate
from clientdesk.schemas.stats import EmployeeStats, StatsFilter
from clientdesk.services.employee import EmployeeService
from clientdesk.services.stats import StatsService

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[Employee]])
async def read_employees(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    department: Optional[str] = None,
    status: Optional[EmployeeStatus] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get employees visible to the caller"""
    employees = EmployeeService.get_employees(
        db, current_user, skip=skip, limit=limit, search=search, department=department, status=status
    )
    return ApiResponse(
        message="Employees fetched successfully",
        data=[Employee.model_validate(e) for e in employees],
    )


@router.get("/stats", response_model=ApiResponse[EmployeeStats])
async def read_employee_stats(
    filters: StatsFilter = Depends(stats_filter),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_manager_or_admin),
):
    """Get employee statistics"""
    stats = StatsService.employee_stats(db, current_user, filters)
    return ApiResponse(message="Employee statistics fetched successfully", data=stats)


@router.post("/", response_model=ApiResponse[Employee], status_code=status.HTTP_201_CREATED)
async def create_employee(
    employee: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Create new employee"""
    db_employee = EmployeeService.create_employee(db, employee, current_user)
    return ApiResponse(message="Employee created successfully", data=Employee.model_validate(db_employee))


@router.get("/{employee_id}", response_model=ApiResponse[Employee])
async def read_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get employee by ID"""
    db_employee = EmployeeService.get_employee(db, employee_id, current_user)
    return ApiResponse(message="Employee fetched successfully", data=Employee.model_validate(db_employee))


@router.put("/{employee_id}", response_model=ApiResponse[Employee])
async def update_employee(
    employee_id: int,
    employee_update: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Update employee"""
    db_employee = EmployeeService.update_employee(db, employee_id, employee_update, current_user)
    return ApiResponse(message="Employee updated successfully", data=Employee.model_validate(db_employee))


@router.delete("/{employee_id}", response_model=ApiResponse[Employee])
async def delete_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Deactivate employee"""
    db_employee = EmployeeService.delete_employee(db, employee_id, current_user)
    return ApiResponse(message="Employee deleted successfully", data=Employee.model_validate(db_employee))

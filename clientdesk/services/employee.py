import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clientdesk.core.database import atomic
from clientdesk.core.errors import NotFound
from clientdesk.models.employee import Employee, EmployeeStatus
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.employee import EmployeeCreate, EmployeeUpdate
from clientdesk.services.authorization import AccessPolicy

logger = logging.getLogger(__name__)


class EmployeeService:
    @staticmethod
    def get_employee(db: Session, employee_id: int, caller: User) -> Employee:
        """Get employee by ID"""
        employee = db.query(Employee).filter(Employee.id == employee_id, Employee.is_active == True).first()
        if employee is None:
            raise NotFound(f"Employee {employee_id} not found")
        AccessPolicy.ensure_can_view(caller, employee)
        return employee

    @staticmethod
    def get_employees(
        db: Session,
        caller: User,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        department: Optional[str] = None,
        status: Optional[EmployeeStatus] = None,
    ) -> List[Employee]:
        """Get active employees visible to the caller"""
        query = AccessPolicy.scope_employees(caller, db.query(Employee).filter(Employee.is_active == True))
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Employee.first_name.ilike(pattern),
                    Employee.last_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                    Employee.employee_code.ilike(pattern),
                )
            )
        if department:
            query = query.filter(Employee.department == department)
        if status:
            query = query.filter(Employee.status == status)
        return query.order_by(Employee.last_name, Employee.first_name).offset(skip).limit(limit).all()

    @staticmethod
    def create_employee(db: Session, employee: EmployeeCreate, caller: User) -> Employee:
        """Create new employee"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_employee = Employee(**employee.model_dump())
        with atomic(db):
            db.add(db_employee)
        db.refresh(db_employee)
        logger.info(f"Employee {db_employee.employee_code} created by user {caller.id}")
        return db_employee

    @staticmethod
    def update_employee(db: Session, employee_id: int, employee_update: EmployeeUpdate, caller: User) -> Employee:
        """Update employee"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_employee = EmployeeService.get_employee(db, employee_id, caller)

        update_data = employee_update.model_dump(exclude_unset=True)
        with atomic(db):
            for field, value in update_data.items():
                setattr(db_employee, field, value)

        db.refresh(db_employee)
        return db_employee

    @staticmethod
    def delete_employee(db: Session, employee_id: int, caller: User) -> Employee:
        """Soft delete employee"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_employee = EmployeeService.get_employee(db, employee_id, caller)
        with atomic(db):
            db_employee.is_active = False
            db_employee.status = EmployeeStatus.INACTIVE
        logger.info(f"Employee {db_employee.employee_code} deactivated by user {caller.id}")
        return db_employee

from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values


class EmployeeRole(str, enum.Enum):
    PROJECT_MANAGER = "project_manager"
    EMPLOYEE = "employee"


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    employee_code = Column(String(50), unique=True, index=True, nullable=False)
    designation = Column(String(100), nullable=True)
    department = Column(String(100), nullable=False, index=True)
    role = Column(Enum(EmployeeRole, values_callable=enum_values), default=EmployeeRole.EMPLOYEE, nullable=False)
    status = Column(Enum(EmployeeStatus, values_callable=enum_values), default=EmployeeStatus.ACTIVE, nullable=False)
    hire_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Login account, when the employee has one
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    user = relationship("User", back_populates="employee")

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

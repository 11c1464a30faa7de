from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base
from clientdesk.core.errors import UnknownRole


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    PROJECT_MANAGER = "project_manager"
    EMPLOYEE = "employee"
    CLIENT = "client"

    @classmethod
    def normalize(cls, value) -> "UserRole":
        """Map stored or legacy role values (including numeric ids 1-4) to a role"""
        if isinstance(value, cls):
            return value
        if value is None:
            raise UnknownRole("Caller has no role")
        raw = str(value).strip().lower()
        if raw in LEGACY_ROLE_IDS:
            return LEGACY_ROLE_IDS[raw]
        try:
            return cls(raw.replace(" ", "_").replace("-", "_"))
        except ValueError:
            raise UnknownRole(f"Unknown role: {value}") from None


LEGACY_ROLE_IDS = {
    "1": UserRole.ADMIN,
    "2": UserRole.PROJECT_MANAGER,
    "3": UserRole.EMPLOYEE,
    "4": UserRole.CLIENT,
}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    # Stored as text so rows carrying legacy or unknown values still load;
    # the access policy normalizes and rejects them.
    role = Column(String(32), default=UserRole.EMPLOYEE.value, nullable=False)
    is_active = Column(Boolean, default=True)

    # Client logins are linked to their client record
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    client = relationship("Client", foreign_keys=[client_id])

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    managed_projects = relationship(
        "Project", back_populates="manager", foreign_keys="Project.manager_id"
    )
    project_memberships = relationship(
        "ProjectMember", back_populates="user", foreign_keys="ProjectMember.user_id"
    )
    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="Task.assignee_id")
    employee = relationship("Employee", back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

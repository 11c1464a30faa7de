from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values


class ProjectStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    DELAYED = "delayed"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class ProjectPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    project_code = Column(String(32), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    priority = Column(Enum(ProjectPriority, values_callable=enum_values), default=ProjectPriority.MEDIUM, nullable=False)
    start_date = Column(Date, nullable=False)
    deadline = Column(Date, nullable=False)
    actual_end_date = Column(DateTime(timezone=True), nullable=True)
    budget = Column(Integer, nullable=True)  # in cents
    estimated_hours = Column(Integer, nullable=True)

    # Status tracking
    status = Column(Enum(ProjectStatus, values_callable=enum_values), default=ProjectStatus.PLANNED, nullable=False)
    progress = Column(Integer, default=0, nullable=False)  # 0-100
    delay_reason = Column(Text, nullable=True)
    delay_date = Column(DateTime(timezone=True), nullable=True)
    status_description = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    last_updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    last_updated_by_name = Column(String(255), nullable=True)

    # Soft delete
    is_active = Column(Boolean, default=True, nullable=False)

    # Optimistic concurrency
    version_id = Column(Integer, nullable=False)

    # Relationships
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    client = relationship("Client", back_populates="projects")

    manager_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    manager = relationship("User", back_populates="managed_projects", foreign_keys=[manager_id])

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    tasks = relationship("Task", back_populates="project")
    project_members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    status_history = relationship(
        "ProjectStatusHistory",
        back_populates="project",
        order_by="[ProjectStatusHistory.timestamp, ProjectStatusHistory.id]",
    )
    invoices = relationship("Invoice", back_populates="project")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def team_user_ids(self) -> set:
        return {member.user_id for member in self.project_members if member.is_active}

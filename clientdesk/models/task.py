from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    task_code = Column(String(48), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus, values_callable=enum_values), default=TaskStatus.TODO, nullable=False)
    priority = Column(Enum(TaskPriority, values_callable=enum_values), default=TaskPriority.MEDIUM, nullable=False)
    progress = Column(Integer, default=0, nullable=False)  # 0-100
    start_date = Column(Date, nullable=True)
    deadline = Column(Date, nullable=True)
    completion_date = Column(DateTime(timezone=True), nullable=True)
    last_update = Column(Text, nullable=True)
    is_archived = Column(Boolean, default=False, nullable=False)

    # Optimistic concurrency
    version_id = Column(Integer, nullable=False)

    # Relationships
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    project = relationship("Project", back_populates="tasks")

    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    assignee = relationship("User", back_populates="assigned_tasks", foreign_keys=[assignee_id])

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_by_name = Column(String(255), nullable=False)

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    comments = relationship(
        "TaskComment", back_populates="task", order_by="[TaskComment.created_at, TaskComment.id]"
    )
    history = relationship(
        "TaskHistory", back_populates="task", order_by="[TaskHistory.created_at, TaskHistory.id]"
    )

    __mapper_args__ = {"version_id_col": version_id}

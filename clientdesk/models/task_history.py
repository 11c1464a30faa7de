from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, JSON, event
from sqlalchemy.orm import relationship
import enum

from clientdesk.core.database import Base, enum_values, utcnow


class HistoryAction(str, enum.Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    PRIORITY_CHANGED = "priority_changed"
    PROGRESS_UPDATED = "progress_updated"
    DEADLINE_UPDATED = "deadline_updated"
    COMMENT_ADDED = "comment_added"
    ATTACHMENT_ADDED = "attachment_added"
    DESCRIPTION_UPDATED = "description_updated"
    TITLE_UPDATED = "title_updated"


class TaskHistory(Base):
    """Append-only record of a single change to a task"""

    __tablename__ = "task_history"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    task = relationship("Task", back_populates="history")

    changed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    changed_by_name = Column(String(255), nullable=False)
    action = Column(Enum(HistoryAction, values_callable=enum_values), nullable=False)
    field = Column(String(64), nullable=True)
    # Tagged values: {"kind": "string" | "number" | "date" | "enum" | "json", "value": ...}
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    details = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


@event.listens_for(TaskHistory, "before_update")
@event.listens_for(TaskHistory, "before_delete")
def _reject_history_change(mapper, connection, target):
    raise ValueError("Task history is append-only")

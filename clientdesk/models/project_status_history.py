from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, event
from sqlalchemy.orm import relationship

from clientdesk.core.database import Base, enum_values, utcnow
from clientdesk.models.project import ProjectStatus


class ProjectStatusHistory(Base):
    """One row per accepted project status update. Rows are never changed."""

    __tablename__ = "project_status_history"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    project = relationship("Project", back_populates="status_history")

    status = Column(Enum(ProjectStatus, values_callable=enum_values), nullable=False)
    progress = Column(Integer, nullable=False)
    delay_reason = Column(Text, nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by_name = Column(String(255), nullable=False)
    # Set in Python so rows written in one transaction keep their order
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


@event.listens_for(ProjectStatusHistory, "before_update")
@event.listens_for(ProjectStatusHistory, "before_delete")
def _reject_history_change(mapper, connection, target):
    raise ValueError("Project status history is append-only")

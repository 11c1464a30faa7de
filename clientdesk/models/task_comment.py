from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship

from clientdesk.core.database import Base, utcnow


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    # [{"file_name", "file_url", "file_type", "file_size"}]
    attachments = Column(JSON, nullable=False, default=list)
    # [{"user_id", "name"}]
    mentions = Column(JSON, nullable=False, default=list)
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime(timezone=True), nullable=True)

    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    task = relationship("Task", back_populates="comments")

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    author_name = Column(String(255), nullable=False)
    author_role = Column(String(32), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values


class TeamRole(str, enum.Enum):
    DEVELOPER = "developer"
    DESIGNER = "designer"
    TESTER = "tester"
    ANALYST = "analyst"
    MANAGER = "manager"


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name='unique_project_member'),
    )

    id = Column(Integer, primary_key=True, index=True)
    role = Column(Enum(TeamRole, values_callable=enum_values), default=TeamRole.DEVELOPER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_date = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    project = relationship("Project", back_populates="project_members")

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user = relationship("User", back_populates="project_memberships", foreign_keys=[user_id])

    # Who added this member
    added_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    added_by = relationship("User", foreign_keys=[added_by_id])

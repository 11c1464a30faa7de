"""
Project status transitions.

``apply_status_update`` validates the request, checks the caller, then writes
the new status fields and one history row in a single transaction. The
project's ``version_id`` turns a lost update into ``ConcurrentUpdateConflict``.
"""
import logging
from datetime import date
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from clientdesk.core.database import atomic, utcnow
from clientdesk.core.errors import Forbidden, InvalidProgress, InvalidStatus, MissingDelayReason, NotFound
from clientdesk.models.project import Project, ProjectStatus
from clientdesk.models.project_status_history import ProjectStatusHistory
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.project import ProjectWithDetails, ProjectMember as ProjectMemberSchema
from clientdesk.schemas.project_status import UpdatedStatus
from clientdesk.services.audit import AuditLog
from clientdesk.services.authorization import STATUS_EDITORS, AccessPolicy
from clientdesk.services.client import ClientService

logger = logging.getLogger(__name__)


def validate_progress(value: Any) -> int:
    """Accept whole numbers in [0, 100]; integral floats are allowed, booleans are not"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidProgress("Progress must be a whole number between 0 and 100")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidProgress("Progress must be a whole number between 0 and 100")
        value = int(value)
    if value < 0 or value > 100:
        raise InvalidProgress(f"Progress must be between 0 and 100, got {value}")
    return value


def parse_status(value: Any) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ProjectStatus)
        raise InvalidStatus(f"Invalid status '{value}', expected one of: {allowed}") from None


def project_metrics(project: Project, today: Optional[date] = None) -> dict:
    """Days until the deadline and the status adjusted for an overrun deadline"""
    today = today or date.today()
    days_left = (project.deadline - today).days
    actual_status = project.status
    if days_left < 0 and project.status == ProjectStatus.IN_PROGRESS:
        actual_status = ProjectStatus.DELAYED
    return {"days_left": days_left, "actual_status": actual_status}


def project_details(project: Project, today: Optional[date] = None) -> ProjectWithDetails:
    details = ProjectWithDetails.model_validate(
        {
            **{c.name: getattr(project, c.name) for c in Project.__table__.columns},
            **project_metrics(project, today),
            "client_name": project.client.company_name if project.client else None,
            "manager_name": project.manager.display_name if project.manager else None,
            "members": [
                ProjectMemberSchema.model_validate(m) for m in project.project_members if m.is_active
            ],
        }
    )
    return details


class ProjectStatusService:
    @staticmethod
    def apply_status_update(
        db: Session,
        project_id: int,
        caller: User,
        status: Any,
        progress: Any,
        delay_reason: Optional[str] = None,
        description: Optional[str] = None,
        remarks: Optional[str] = None,
        today: Optional[date] = None,
    ) -> UpdatedStatus:
        """Validate and apply a status update, appending one history row"""
        progress = validate_progress(progress)
        new_status = parse_status(status)
        if new_status == ProjectStatus.DELAYED and not (delay_reason or "").strip():
            raise MissingDelayReason("A delay reason is required when status is 'delayed'")

        role = AccessPolicy.ensure_role(caller, STATUS_EDITORS)

        project = (
            db.query(Project)
            .filter(Project.id == project_id, Project.is_active == True)
            .first()
        )
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        if role == UserRole.PROJECT_MANAGER and project.manager_id != caller.id:
            logger.warning(f"User {caller.id} is not the manager of project {project_id}")
            raise Forbidden("Only the assigned project manager can update this project")

        now = utcnow()
        previous = project.status
        reason = delay_reason.strip() if new_status == ProjectStatus.DELAYED else None

        with atomic(db):
            db.add(
                ProjectStatusHistory(
                    project_id=project.id,
                    status=new_status,
                    progress=progress,
                    delay_reason=reason,
                    updated_by_id=caller.id,
                    updated_by_name=caller.display_name,
                    timestamp=now,
                )
            )
            project.status = new_status
            project.progress = progress
            if description is not None:
                project.status_description = description
            if remarks is not None:
                project.remarks = remarks
            project.last_updated_by_id = caller.id
            project.last_updated_by_name = caller.display_name

            if new_status == ProjectStatus.DELAYED:
                project.delay_reason = reason
                project.delay_date = now
            else:
                # The reason stays on the history row
                project.delay_reason = None
                project.delay_date = None

            if new_status == ProjectStatus.COMPLETED and previous != ProjectStatus.COMPLETED:
                project.actual_end_date = now
            elif new_status != ProjectStatus.COMPLETED:
                project.actual_end_date = None

            db.flush()
            ClientService.refresh_financials(db, project.client_id)

        logger.info(
            f"Project {project.project_code} status {previous.value} -> {new_status.value} "
            f"({progress}%) by user {caller.id}"
        )

        metrics = project_metrics(project, today)
        return UpdatedStatus(
            project_id=project.id,
            project_code=project.project_code,
            title=project.title,
            status=project.status,
            progress=project.progress,
            delay_reason=project.delay_reason,
            delay_date=project.delay_date,
            status_description=project.status_description,
            remarks=project.remarks,
            actual_end_date=project.actual_end_date,
            last_updated_by_id=project.last_updated_by_id,
            last_updated_by_name=project.last_updated_by_name,
            history_length=AuditLog.project_history_length(db, project.id),
            **metrics,
        )

    @staticmethod
    def get_status(db: Session, project_id: int, caller: User, today: Optional[date] = None) -> ProjectWithDetails:
        """Current status of one project with derived metrics"""
        project = (
            db.query(Project)
            .filter(Project.id == project_id, Project.is_active == True)
            .first()
        )
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        AccessPolicy.ensure_can_view(caller, project)
        return project_details(project, today)

    @staticmethod
    def get_history(db: Session, project_id: int, caller: User) -> List[ProjectStatusHistory]:
        """Status history of one project, oldest first"""
        project = db.query(Project).filter(Project.id == project_id).first()
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        AccessPolicy.ensure_can_view(caller, project)
        return AuditLog.project_timeline(db, project_id)

    @staticmethod
    def list_manager_projects(db: Session, caller: User, today: Optional[date] = None) -> List[ProjectWithDetails]:
        """Active projects visible to an admin or project manager, newest first"""
        AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        query = db.query(Project).filter(Project.is_active == True)
        query = AccessPolicy.scope_projects(caller, query)
        projects = query.order_by(Project.created_at.desc(), Project.id.desc()).all()
        return [project_details(p, today) for p in projects]

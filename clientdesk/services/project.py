import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from clientdesk.core.database import atomic
from clientdesk.core.errors import Forbidden, InvalidDateRange, NotFound
from clientdesk.models.client import Client
from clientdesk.models.project import Project, ProjectStatus
from clientdesk.models.project_member import ProjectMember
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.project import ProjectCreate, ProjectUpdate, ProjectMemberCreate
from clientdesk.services.authorization import STATUS_EDITORS, AccessPolicy, role_of
from clientdesk.services.client import ClientService
from clientdesk.services.code_generator import CodeGenerator

logger = logging.getLogger(__name__)

# Columns that cannot be cleared; an explicit null leaves them unchanged
REQUIRED_FIELDS = {"title", "priority", "start_date", "deadline", "client_id", "manager_id"}


class ProjectService:
    @staticmethod
    def get_project(db: Session, project_id: int) -> Optional[Project]:
        """Get project by ID"""
        return db.query(Project).filter(Project.id == project_id).first()

    @staticmethod
    def get_project_for(db: Session, project_id: int, caller: User) -> Project:
        """Get an active project the caller may see"""
        project = (
            db.query(Project)
            .options(joinedload(Project.project_members), joinedload(Project.client))
            .filter(Project.id == project_id, Project.is_active == True)
            .first()
        )
        if project is None:
            raise NotFound(f"Project {project_id} not found")
        AccessPolicy.ensure_can_view(caller, project)
        return project

    @staticmethod
    def get_projects(
        db: Session,
        caller: User,
        skip: int = 0,
        limit: int = 100,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[Project]:
        """Get active projects visible to the caller with optional filtering"""
        query = AccessPolicy.scope_projects(caller, db.query(Project).filter(Project.is_active == True))

        if status:
            query = query.filter(Project.status == status)
        if client_id:
            query = query.filter(Project.client_id == client_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(Project.title.ilike(pattern) | Project.project_code.ilike(pattern))

        return query.order_by(Project.created_at.desc(), Project.id.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def _check_manager(db: Session, manager_id: int) -> User:
        manager = db.query(User).filter(User.id == manager_id, User.is_active == True).first()
        if manager is None:
            raise NotFound(f"User {manager_id} not found")
        if role_of(manager) not in STATUS_EDITORS:
            raise Forbidden("The assigned manager must be a project manager or admin")
        return manager

    @staticmethod
    def _check_client(db: Session, client_id: int) -> Client:
        client = db.query(Client).filter(Client.id == client_id, Client.is_active == True).first()
        if client is None:
            raise NotFound(f"Client {client_id} not found")
        return client

    @staticmethod
    def create_project(db: Session, project: ProjectCreate, caller: User) -> Project:
        """Create new project with a generated code"""
        role = AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        if project.deadline < project.start_date:
            raise InvalidDateRange("Deadline cannot be before the start date")
        if role == UserRole.PROJECT_MANAGER and project.manager_id != caller.id:
            raise Forbidden("Project managers can only create projects they manage")

        client = ProjectService._check_client(db, project.client_id)
        ProjectService._check_manager(db, project.manager_id)

        def build(code: str) -> Project:
            db_project = Project(
                **project.model_dump(exclude={"team_members"}),
                project_code=code,
                status=ProjectStatus.PLANNED,
                progress=0,
                created_by_id=caller.id,
            )
            for member in project.team_members:
                db_project.project_members.append(
                    ProjectMember(user_id=member.user_id, role=member.role, added_by_id=caller.id)
                )
            return db_project

        db_project = CodeGenerator.create_with_code(
            db, lambda session: CodeGenerator.next_code(session, "project"), build
        )
        logger.info(f"Project {db_project.project_code} created by user {caller.id}")

        with atomic(db):
            ClientService.refresh_financials(db, client.id)
        return db_project

    @staticmethod
    def update_project(db: Session, project_id: int, project_update: ProjectUpdate, caller: User) -> Project:
        """Update project details; status changes go through ProjectStatusService"""
        db_project = ProjectService.get_project_for(db, project_id, caller)
        AccessPolicy.ensure_can_mutate(caller, db_project)

        update_data = {
            field: value
            for field, value in project_update.model_dump(exclude_unset=True).items()
            if value is not None or field not in REQUIRED_FIELDS
        }
        start = update_data.get("start_date", db_project.start_date)
        deadline = update_data.get("deadline", db_project.deadline)
        if deadline < start:
            raise InvalidDateRange("Deadline cannot be before the start date")
        if "manager_id" in update_data:
            if role_of(caller) != UserRole.ADMIN:
                raise Forbidden("Only admins can reassign the project manager")
            ProjectService._check_manager(db, update_data["manager_id"])
        if "client_id" in update_data:
            ProjectService._check_client(db, update_data["client_id"])

        previous_client_id = db_project.client_id
        with atomic(db):
            for field, value in update_data.items():
                setattr(db_project, field, value)
            if db_project.client_id != previous_client_id:
                db.flush()
                ClientService.refresh_financials(db, previous_client_id)
                ClientService.refresh_financials(db, db_project.client_id)

        db.refresh(db_project)
        return db_project

    @staticmethod
    def delete_project(db: Session, project_id: int, caller: User) -> Project:
        """Soft delete project (admin only)"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_project = db.query(Project).filter(Project.id == project_id, Project.is_active == True).first()
        if db_project is None:
            raise NotFound(f"Project {project_id} not found")

        with atomic(db):
            db_project.is_active = False
            db.flush()
            ClientService.refresh_financials(db, db_project.client_id)
        logger.info(f"Project {db_project.project_code} deactivated by user {caller.id}")
        return db_project

    @staticmethod
    def add_project_member(
        db: Session,
        project_id: int,
        member_data: ProjectMemberCreate,
        caller: User,
    ) -> ProjectMember:
        """Add member to project"""
        project = ProjectService.get_project_for(db, project_id, caller)
        AccessPolicy.ensure_can_mutate(caller, project)
        if db.query(User).filter(User.id == member_data.user_id).first() is None:
            raise NotFound(f"User {member_data.user_id} not found")

        existing_member = (
            db.query(ProjectMember)
            .filter(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == member_data.user_id
            )
            .first()
        )

        with atomic(db):
            if existing_member:
                # Reactivate if inactive
                existing_member.is_active = True
                existing_member.role = member_data.role
                db_member = existing_member
            else:
                db_member = ProjectMember(
                    **member_data.model_dump(),
                    project_id=project_id,
                    added_by_id=caller.id
                )
                db.add(db_member)

        db.refresh(db_member)
        return db_member

    @staticmethod
    def remove_project_member(db: Session, project_id: int, user_id: int, caller: User) -> None:
        """Remove member from project"""
        project = ProjectService.get_project_for(db, project_id, caller)
        AccessPolicy.ensure_can_mutate(caller, project)
        db_member = (
            db.query(ProjectMember)
            .filter(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
                ProjectMember.is_active == True
            )
            .first()
        )
        if not db_member:
            raise NotFound(f"User {user_id} is not a member of project {project_id}")

        with atomic(db):
            db_member.is_active = False

    @staticmethod
    def get_project_members(db: Session, project_id: int, caller: User) -> List[ProjectMember]:
        """Get all active project members"""
        ProjectService.get_project_for(db, project_id, caller)
        return (
            db.query(ProjectMember)
            .filter(
                ProjectMember.project_id == project_id,
                ProjectMember.is_active == True
            )
            .all()
        )

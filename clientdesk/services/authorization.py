"""
Role-based visibility and mutation rules.

Every rule reads the caller's normalized role; rows carrying a role that
cannot be normalized raise ``UnknownRole`` instead of being treated as the
least privileged role.
"""
import logging
from typing import Iterable

from sqlalchemy import false, or_, select
from sqlalchemy.orm import Query

from clientdesk.core.errors import Forbidden
from clientdesk.models.client import Client
from clientdesk.models.employee import Employee
from clientdesk.models.invoice import Invoice
from clientdesk.models.project import Project
from clientdesk.models.project_member import ProjectMember
from clientdesk.models.task import Task
from clientdesk.models.task_comment import TaskComment
from clientdesk.models.user import User, UserRole

logger = logging.getLogger(__name__)

STATUS_EDITORS = (UserRole.ADMIN, UserRole.PROJECT_MANAGER)


def role_of(caller: User) -> UserRole:
    return UserRole.normalize(caller.role)


def _is_member(project: Project, user_id: int) -> bool:
    return any(m.user_id == user_id and m.is_active for m in project.project_members)


def _manages(caller: User, project: Project) -> bool:
    return project is not None and project.manager_id == caller.id


class AccessPolicy:
    @staticmethod
    def can_view(caller: User, entity) -> bool:
        """Whether ``caller`` may read ``entity``"""
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return True

        if isinstance(entity, Project):
            if role == UserRole.PROJECT_MANAGER:
                return _manages(caller, entity)
            if role == UserRole.EMPLOYEE:
                return _is_member(entity, caller.id)
            return caller.client_id is not None and entity.client_id == caller.client_id

        if isinstance(entity, Task):
            if role == UserRole.PROJECT_MANAGER:
                return _manages(caller, entity.project)
            if role == UserRole.EMPLOYEE:
                return entity.assignee_id == caller.id
            return False

        if isinstance(entity, TaskComment):
            return AccessPolicy.can_view(caller, entity.task)

        if isinstance(entity, Invoice):
            return role == UserRole.CLIENT and caller.client_id is not None and entity.client_id == caller.client_id

        if isinstance(entity, Client):
            return role == UserRole.CLIENT and entity.id == caller.client_id

        if isinstance(entity, Employee):
            if role == UserRole.EMPLOYEE:
                return entity.user_id == caller.id
            if role == UserRole.PROJECT_MANAGER:
                if entity.user_id == caller.id:
                    return True
                # Employees on one of the manager's projects
                return entity.user is not None and any(
                    m.is_active and m.project.manager_id == caller.id
                    for m in entity.user.project_memberships
                )
            return False

        if isinstance(entity, User):
            return entity.id == caller.id

        return False

    @staticmethod
    def can_mutate(caller: User, entity) -> bool:
        """Whether ``caller`` may change ``entity``"""
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return True
        if role == UserRole.CLIENT:
            return False

        if isinstance(entity, Project):
            return role == UserRole.PROJECT_MANAGER and _manages(caller, entity)

        if isinstance(entity, Task):
            if role == UserRole.PROJECT_MANAGER:
                return _manages(caller, entity.project)
            return entity.assignee_id == caller.id

        if isinstance(entity, TaskComment):
            return entity.author_id == caller.id

        return False

    @staticmethod
    def ensure_can_view(caller: User, entity) -> None:
        if not AccessPolicy.can_view(caller, entity):
            logger.warning(f"User {caller.id} denied read access to {type(entity).__name__} {entity.id}")
            raise Forbidden(f"Not allowed to view this {type(entity).__name__.lower()}")

    @staticmethod
    def ensure_can_mutate(caller: User, entity) -> None:
        if not AccessPolicy.can_mutate(caller, entity):
            logger.warning(f"User {caller.id} denied write access to {type(entity).__name__} {entity.id}")
            raise Forbidden(f"Not allowed to modify this {type(entity).__name__.lower()}")

    @staticmethod
    def ensure_role(caller: User, allowed: Iterable[UserRole]) -> UserRole:
        """Reject callers whose role is not in ``allowed``; no store access"""
        role = role_of(caller)
        if role not in tuple(allowed):
            logger.warning(f"User {caller.id} with role {role.value} rejected")
            raise Forbidden("Operation not permitted for this role")
        return role

    # Query scoping

    @staticmethod
    def scope_projects(caller: User, query: Query) -> Query:
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return query
        if role == UserRole.PROJECT_MANAGER:
            return query.filter(Project.manager_id == caller.id)
        if role == UserRole.EMPLOYEE:
            member_of = (
                select(ProjectMember.project_id)
                .where(ProjectMember.user_id == caller.id, ProjectMember.is_active == True)
            )
            return query.filter(Project.id.in_(member_of))
        if caller.client_id is None:
            return query.filter(false())
        return query.filter(Project.client_id == caller.client_id)

    @staticmethod
    def scope_tasks(caller: User, query: Query) -> Query:
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return query
        if role == UserRole.PROJECT_MANAGER:
            managed = select(Project.id).where(Project.manager_id == caller.id)
            return query.filter(Task.project_id.in_(managed))
        if role == UserRole.EMPLOYEE:
            return query.filter(Task.assignee_id == caller.id)
        return query.filter(false())

    @staticmethod
    def scope_invoices(caller: User, query: Query) -> Query:
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return query
        if role == UserRole.CLIENT and caller.client_id is not None:
            return query.filter(Invoice.client_id == caller.client_id)
        return query.filter(false())

    @staticmethod
    def scope_employees(caller: User, query: Query) -> Query:
        role = role_of(caller)
        if role == UserRole.ADMIN:
            return query
        if role == UserRole.PROJECT_MANAGER:
            team = (
                select(ProjectMember.user_id)
                .join(Project, Project.id == ProjectMember.project_id)
                .where(Project.manager_id == caller.id, ProjectMember.is_active == True)
            )
            return query.filter(or_(Employee.user_id.in_(team), Employee.user_id == caller.id))
        if role == UserRole.EMPLOYEE:
            return query.filter(Employee.user_id == caller.id)
        return query.filter(false())

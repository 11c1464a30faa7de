"""
Dashboard aggregates.

Each figure is computed from the caller's visible rows narrowed by a
``StatsFilter``. The queries are independent reads; they are not taken from
one snapshot.
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from clientdesk.core.errors import InvalidStatus
from clientdesk.models.client import Client, ClientStatus
from clientdesk.models.employee import Employee, EmployeeRole, EmployeeStatus
from clientdesk.models.invoice import Invoice, InvoiceStatus
from clientdesk.models.project import Project, ProjectStatus
from clientdesk.models.project_member import ProjectMember
from clientdesk.models.task import Task, TaskStatus
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.stats import (
    ClientStats,
    EmployeeStats,
    InvoiceStats,
    ProjectStats,
    RecentProjectUpdate,
    StatsFilter,
    TaskStats,
    TeamMemberLoad,
)
from clientdesk.services.authorization import STATUS_EDITORS, AccessPolicy

RECENT_UPDATES_LIMIT = 5


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    """``part`` as a whole percentage of ``total``; 0 when there is nothing to count"""
    if not total:
        return 0
    return round_half_up(part / total * 100)


def _created_range(query: Query, column, filters: StatsFilter) -> Query:
    if filters.start_date:
        query = query.filter(column >= datetime.combine(filters.start_date, time.min, tzinfo=timezone.utc))
    if filters.end_date:
        end = datetime.combine(filters.end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.filter(column < end)
    return query


def _member(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidStatus(f"Invalid filter value '{value}', expected one of: {allowed}") from None


def _counts_by(query: Query, column) -> dict:
    return {key: count for key, count in query.with_entities(column, func.count()).group_by(column).all()}


class StatsService:
    @staticmethod
    def project_stats(db: Session, caller: User, filters: Optional[StatsFilter] = None) -> ProjectStats:
        """Counts, totals and recent updates over the caller's active projects"""
        filters = filters or StatsFilter()
        query = AccessPolicy.scope_projects(caller, db.query(Project).filter(Project.is_active == True))
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(or_(Project.title.ilike(pattern), Project.project_code.ilike(pattern)))
        if filters.status:
            query = query.filter(Project.status == _member(ProjectStatus, filters.status))
        if filters.project_id:
            query = query.filter(Project.id == filters.project_id)
        query = _created_range(query, Project.created_at, filters)

        by_status = _counts_by(query, Project.status)
        total = sum(by_status.values())
        budget, hours, avg_progress = query.with_entities(
            func.coalesce(func.sum(Project.budget), 0),
            func.coalesce(func.sum(Project.estimated_hours), 0),
            func.avg(Project.progress),
        ).one()

        recent = (
            query.order_by(func.coalesce(Project.updated_at, Project.created_at).desc(), Project.id.desc())
            .limit(RECENT_UPDATES_LIMIT)
            .all()
        )
        active = by_status.get(ProjectStatus.PLANNED, 0) + by_status.get(ProjectStatus.IN_PROGRESS, 0)

        return ProjectStats(
            total=total,
            planned=by_status.get(ProjectStatus.PLANNED, 0),
            in_progress=by_status.get(ProjectStatus.IN_PROGRESS, 0),
            delayed=by_status.get(ProjectStatus.DELAYED, 0),
            completed=by_status.get(ProjectStatus.COMPLETED, 0),
            on_hold=by_status.get(ProjectStatus.ON_HOLD, 0),
            total_budget=int(budget),
            total_estimated_hours=int(hours),
            average_progress=round_half_up(float(avg_progress)) if avg_progress is not None else 0,
            active_percentage=percentage(active, total),
            recent_updates=[
                RecentProjectUpdate(
                    project_id=p.id,
                    project_code=p.project_code,
                    title=p.title,
                    status=p.status,
                    progress=p.progress,
                    last_updated_by_name=p.last_updated_by_name,
                )
                for p in recent
            ],
        )

    @staticmethod
    def task_stats(
        db: Session, caller: User, filters: Optional[StatsFilter] = None, today: Optional[date] = None
    ) -> TaskStats:
        """Status counts, overdue count and completion rate over the caller's tasks"""
        filters = filters or StatsFilter()
        today = today or date.today()
        query = AccessPolicy.scope_tasks(caller, db.query(Task).filter(Task.is_archived == False))
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(or_(Task.title.ilike(pattern), Task.task_code.ilike(pattern)))
        if filters.status:
            query = query.filter(Task.status == _member(TaskStatus, filters.status))
        if filters.project_id:
            query = query.filter(Task.project_id == filters.project_id)
        query = _created_range(query, Task.created_at, filters)

        by_status = _counts_by(query, Task.status)
        total = sum(by_status.values())
        overdue = query.filter(Task.deadline < today, Task.status != TaskStatus.COMPLETED).count()
        completed = by_status.get(TaskStatus.COMPLETED, 0)

        return TaskStats(
            total=total,
            todo=by_status.get(TaskStatus.TODO, 0),
            in_progress=by_status.get(TaskStatus.IN_PROGRESS, 0),
            completed=completed,
            blocked=by_status.get(TaskStatus.BLOCKED, 0),
            overdue=overdue,
            completion_rate=percentage(completed, total),
        )

    @staticmethod
    def client_stats(db: Session, caller: User, filters: Optional[StatsFilter] = None) -> ClientStats:
        """Client, project and revenue totals (admin only)"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        filters = filters or StatsFilter()

        clients = db.query(Client)
        if filters.search:
            pattern = f"%{filters.search}%"
            clients = clients.filter(or_(Client.name.ilike(pattern), Client.company_name.ilike(pattern)))
        clients = _created_range(clients, Client.created_at, filters)
        total_clients = clients.count()
        active_clients = clients.filter(Client.is_active == True, Client.status == ClientStatus.ACTIVE).count()

        projects = db.query(Project).filter(Project.is_active == True)
        projects = _created_range(projects, Project.created_at, filters)
        by_status = _counts_by(projects, Project.status)
        open_projects = sum(
            by_status.get(s, 0) for s in (ProjectStatus.PLANNED, ProjectStatus.IN_PROGRESS, ProjectStatus.DELAYED)
        )

        invoices = db.query(Invoice).filter(Invoice.is_active == True)
        invoices = _created_range(invoices, Invoice.created_at, filters)
        revenue, paid, outstanding = invoices.with_entities(
            func.coalesce(func.sum(Invoice.total), 0),
            func.coalesce(func.sum(Invoice.paid_amount), 0),
            func.coalesce(func.sum(Invoice.balance_due), 0),
        ).one()

        return ClientStats(
            total_clients=total_clients,
            active_clients=active_clients,
            inactive_clients=total_clients - active_clients,
            total_projects=sum(by_status.values()),
            active_projects=open_projects,
            completed_projects=by_status.get(ProjectStatus.COMPLETED, 0),
            total_revenue=int(revenue),
            paid_revenue=int(paid),
            outstanding_revenue=int(outstanding),
            active_percentage=percentage(active_clients, total_clients),
        )

    @staticmethod
    def employee_stats(db: Session, caller: User, filters: Optional[StatsFilter] = None) -> EmployeeStats:
        """Headcount with department and role breakdowns (admin and project managers)"""
        AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        filters = filters or StatsFilter()

        query = AccessPolicy.scope_employees(caller, db.query(Employee))
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(Employee.first_name.ilike(pattern), Employee.last_name.ilike(pattern), Employee.email.ilike(pattern))
            )
        if filters.department:
            query = query.filter(Employee.department == filters.department)
        if filters.role:
            query = query.filter(Employee.role == _member(EmployeeRole, filters.role))
        if filters.status:
            query = query.filter(Employee.status == _member(EmployeeStatus, filters.status))
        query = _created_range(query, Employee.created_at, filters)

        total = query.count()
        active = query.filter(Employee.is_active == True, Employee.status == EmployeeStatus.ACTIVE).count()
        by_department = _counts_by(query, Employee.department)
        by_role = _counts_by(query, Employee.role)

        return EmployeeStats(
            total=total,
            active=active,
            inactive=total - active,
            active_percentage=percentage(active, total),
            by_department={str(k): v for k, v in by_department.items()},
            by_role={k.value: v for k, v in by_role.items()},
        )

    @staticmethod
    def invoice_stats(db: Session, caller: User, filters: Optional[StatsFilter] = None) -> InvoiceStats:
        """Invoice counts and amounts (admin: all invoices, client: own invoices)"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN, UserRole.CLIENT])
        filters = filters or StatsFilter()

        query = AccessPolicy.scope_invoices(caller, db.query(Invoice).filter(Invoice.is_active == True))
        if filters.status:
            query = query.filter(Invoice.status == _member(InvoiceStatus, filters.status))
        if filters.project_id:
            query = query.filter(Invoice.project_id == filters.project_id)
        query = _created_range(query, Invoice.created_at, filters)

        by_status = _counts_by(query, Invoice.status)
        total_amount, paid_amount = query.with_entities(
            func.coalesce(func.sum(Invoice.total), 0),
            func.coalesce(func.sum(Invoice.paid_amount), 0),
        ).one()
        overdue_amount = (
            query.filter(Invoice.status == InvoiceStatus.OVERDUE)
            .with_entities(func.coalesce(func.sum(Invoice.balance_due), 0))
            .scalar()
        )

        return InvoiceStats(
            total=sum(by_status.values()),
            draft=by_status.get(InvoiceStatus.DRAFT, 0),
            sent=by_status.get(InvoiceStatus.SENT, 0),
            paid=by_status.get(InvoiceStatus.PAID, 0),
            overdue=by_status.get(InvoiceStatus.OVERDUE, 0),
            total_amount=int(total_amount),
            paid_amount=int(paid_amount),
            pending_amount=int(total_amount) - int(paid_amount),
            overdue_amount=int(overdue_amount),
            paid_percentage=percentage(int(paid_amount), int(total_amount)),
        )

    @staticmethod
    def team_load(db: Session, caller: User, today: Optional[date] = None) -> List[TeamMemberLoad]:
        """Open and overdue task counts per team member across the caller's projects, busiest first"""
        AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        today = today or date.today()
        projects = AccessPolicy.scope_projects(caller, db.query(Project).filter(Project.is_active == True))
        project_ids = [project_id for (project_id,) in projects.with_entities(Project.id).all()]
        if not project_ids:
            return []

        members = (
            db.query(ProjectMember.user_id, User.full_name, User.username, Project.title)
            .join(User, User.id == ProjectMember.user_id)
            .join(Project, Project.id == ProjectMember.project_id)
            .filter(ProjectMember.is_active == True, ProjectMember.project_id.in_(project_ids))
            .order_by(Project.title, Project.id)
            .all()
        )

        open_tasks = db.query(Task.assignee_id, func.count(Task.id)).filter(
            Task.project_id.in_(project_ids),
            Task.assignee_id.isnot(None),
            Task.is_archived == False,
            Task.status != TaskStatus.COMPLETED,
        )
        open_counts = dict(open_tasks.group_by(Task.assignee_id).all())
        overdue_counts = dict(open_tasks.filter(Task.deadline < today).group_by(Task.assignee_id).all())

        loads = {}
        for user_id, full_name, username, title in members:
            load = loads.get(user_id)
            if load is None:
                load = loads[user_id] = TeamMemberLoad(
                    user_id=user_id,
                    name=full_name or username,
                    open_tasks=open_counts.get(user_id, 0),
                    overdue_tasks=overdue_counts.get(user_id, 0),
                )
            if title not in load.projects:
                load.projects.append(title)

        return sorted(loads.values(), key=lambda load: (-load.open_tasks, load.name))

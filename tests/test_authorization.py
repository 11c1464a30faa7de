import pytest

from clientdesk.core.errors import Forbidden, UnknownRole
from clientdesk.models.employee import Employee
from clientdesk.models.invoice import Invoice
from clientdesk.models.project import Project
from clientdesk.models.task import Task
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.task import TaskCreate
from clientdesk.services.authorization import AccessPolicy
from clientdesk.services.task import TaskService
from conftest import make_user


@pytest.fixture
def task(db, project, manager, employee):
    return TaskService.create_task(
        db, TaskCreate(title="Wireframes", project_id=project.id, assignee_id=employee.id), manager
    )


class TestPolicyTable:
    def test_admin_sees_and_changes_everything(self, project, task, admin):
        """Test that admins have full access"""
        for entity in (project, task):
            assert AccessPolicy.can_view(admin, entity)
            assert AccessPolicy.can_mutate(admin, entity)

    def test_project_manager(self, project, task, manager, other_manager):
        """Test that managers are limited to the projects they manage"""
        assert AccessPolicy.can_view(manager, project)
        assert AccessPolicy.can_mutate(manager, project)
        assert AccessPolicy.can_view(manager, task)
        assert AccessPolicy.can_mutate(manager, task)

        assert not AccessPolicy.can_view(other_manager, project)
        assert not AccessPolicy.can_mutate(other_manager, project)
        assert not AccessPolicy.can_view(other_manager, task)

    def test_employee(self, project, task, employee, outsider):
        """Test that employees see their projects and change only their own tasks"""
        assert AccessPolicy.can_view(employee, project)
        assert not AccessPolicy.can_mutate(employee, project)
        assert AccessPolicy.can_view(employee, task)
        assert AccessPolicy.can_mutate(employee, task)

        assert not AccessPolicy.can_view(outsider, project)
        assert not AccessPolicy.can_view(outsider, task)
        assert not AccessPolicy.can_mutate(outsider, task)

    def test_client(self, db, project, task, client_user):
        """Test that clients read their own projects and change nothing"""
        assert AccessPolicy.can_view(client_user, project)
        assert not AccessPolicy.can_mutate(client_user, project)
        assert not AccessPolicy.can_view(client_user, task)
        assert not AccessPolicy.can_mutate(client_user, task)

        stranger = make_user(db, "other_contact", "client")
        assert not AccessPolicy.can_view(stranger, project)

    def test_ensure_helpers_raise(self, project, outsider):
        """Test that the ensure helpers signal Forbidden"""
        with pytest.raises(Forbidden):
            AccessPolicy.ensure_can_view(outsider, project)
        with pytest.raises(Forbidden):
            AccessPolicy.ensure_can_mutate(outsider, project)
        with pytest.raises(Forbidden):
            AccessPolicy.ensure_role(outsider, [UserRole.ADMIN])
        assert AccessPolicy.ensure_role(outsider, [UserRole.EMPLOYEE]) == UserRole.EMPLOYEE

    @pytest.mark.parametrize("role", [None, "", "owner"])
    def test_unknown_role(self, project, role):
        """Test that unrecognized roles are rejected, not downgraded"""
        caller = User(id=77, username="ghost", email="ghost@example.com", role=role)
        with pytest.raises(UnknownRole):
            AccessPolicy.can_view(caller, project)
        with pytest.raises(UnknownRole):
            AccessPolicy.ensure_role(caller, [UserRole.EMPLOYEE])


class TestQueryScopes:
    def test_scope_projects(self, db, make_project, manager, other_manager, employee, client_user, admin):
        """Test that project queries are narrowed per role"""
        mine = make_project(manager.id, members=[employee.id], title="Mine")
        make_project(other_manager.id, title="Theirs")

        def visible(caller):
            return {p.id for p in AccessPolicy.scope_projects(caller, db.query(Project)).all()}

        assert len(visible(admin)) == 2
        assert visible(manager) == {mine.id}
        assert visible(employee) == {mine.id}
        assert len(visible(client_user)) == 2

        orphan = make_user(db, "loose_contact", "client")
        assert visible(orphan) == set()

    def test_scope_tasks(self, db, task, manager, other_manager, employee, client_user):
        """Test that task queries are narrowed per role"""
        def count(caller):
            return AccessPolicy.scope_tasks(caller, db.query(Task)).count()

        assert count(manager) == 1
        assert count(employee) == 1
        assert count(other_manager) == 0
        assert count(client_user) == 0

    def test_scope_invoices(self, db, employee, client_user, admin):
        """Test that only admins and the owning client see invoices"""
        assert AccessPolicy.scope_invoices(admin, db.query(Invoice)).count() == 0
        assert AccessPolicy.scope_invoices(employee, db.query(Invoice)).count() == 0
        assert AccessPolicy.scope_invoices(client_user, db.query(Invoice)).count() == 0

    def test_scope_employees(self, db, project, manager, other_manager, employee, outsider):
        """Test that managers see their team and employees see themselves"""
        for user, first in ((employee, "Emma"), (outsider, "Omar")):
            db.add(
                Employee(
                    user_id=user.id,
                    first_name=first,
                    last_name="Tester",
                    email=f"{first.lower()}@staff.example.com",
                    phone="555-0199",
                    employee_code=f"EMP-{first.upper()}",
                    department="Engineering",
                )
            )
        db.commit()

        def names(caller):
            return {e.first_name for e in AccessPolicy.scope_employees(caller, db.query(Employee)).all()}

        assert names(manager) == {"Emma"}
        assert names(other_manager) == set()
        assert names(employee) == {"Emma"}
        assert names(outsider) == {"Omar"}

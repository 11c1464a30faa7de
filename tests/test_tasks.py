from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from clientdesk.core.errors import Forbidden, InvalidComment, InvalidProgress, InvalidStatus, NotFound
from clientdesk.models.task import TaskPriority, TaskStatus
from clientdesk.models.task_comment import TaskComment
from clientdesk.models.task_history import HistoryAction
from clientdesk.schemas.task import TaskCreate, TaskFilter, TaskUpdate
from clientdesk.schemas.task_comment import TaskCommentCreate
from clientdesk.services.audit import AuditLog
from clientdesk.services.task import TaskService
from conftest import auth_headers
from main import app

client = TestClient(app)


@pytest.fixture
def task(db, project, manager, employee):
    return TaskService.create_task(
        db,
        TaskCreate(
            title="Build landing page",
            project_id=project.id,
            assignee_id=employee.id,
            deadline=date.today() + timedelta(days=7),
        ),
        manager,
    )


def actions(db, task_id):
    return [entry.action for entry in AuditLog.timeline(db, task_id)]


class TestCreateTask:
    def test_create_task(self, db, task, project):
        """Test that a new task gets a code, defaults and a created entry"""
        assert task.task_code == f"{project.project_code}-TASK-001"
        assert task.status == TaskStatus.TODO
        assert task.progress == 0
        assert task.created_by_name == "Manager"
        assert actions(db, task.id) == [HistoryAction.CREATED]

    def test_task_codes_increment(self, db, task, project, manager):
        """Test that tasks in one project get consecutive codes"""
        second = TaskService.create_task(db, TaskCreate(title="Second", project_id=project.id), manager)
        assert second.task_code == f"{project.project_code}-TASK-002"

    def test_employee_cannot_create(self, db, project, employee):
        """Test that employees cannot create tasks"""
        with pytest.raises(Forbidden):
            TaskService.create_task(db, TaskCreate(title="Nope", project_id=project.id), employee)

    def test_other_manager_cannot_create(self, db, project, other_manager):
        """Test that managers can only add tasks to their own projects"""
        with pytest.raises(Forbidden):
            TaskService.create_task(db, TaskCreate(title="Nope", project_id=project.id), other_manager)

    def test_missing_project(self, db, manager):
        """Test that tasks need an existing project"""
        with pytest.raises(NotFound):
            TaskService.create_task(db, TaskCreate(title="Orphan", project_id=999), manager)

    def test_missing_assignee(self, db, project, manager):
        """Test that tasks cannot be assigned to unknown users"""
        with pytest.raises(NotFound):
            TaskService.create_task(db, TaskCreate(title="Ghost", project_id=project.id, assignee_id=999), manager)


class TestTaskStatus:
    def test_start_sets_initial_progress(self, db, task, employee):
        """Test that starting an untouched task moves its progress to 25"""
        updated = TaskService.update_task_status(db, task.id, employee, "in-progress")
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.progress == 25
        assert updated.last_update == "Status updated"
        assert actions(db, task.id) == [HistoryAction.CREATED, HistoryAction.STATUS_CHANGED]

    def test_complete_then_block(self, db, task, employee):
        """Test that completion fills progress and a later move clears the date"""
        completed = TaskService.update_task_status(db, task.id, employee, "completed")
        assert completed.progress == 100
        assert completed.completion_date is not None

        blocked = TaskService.update_task_status(db, task.id, employee, "blocked")
        assert blocked.status == TaskStatus.BLOCKED
        assert blocked.completion_date is None
        assert blocked.progress == 100

    def test_status_change_with_comment(self, db, task, employee):
        """Test that a status note is stored as a comment and logged"""
        TaskService.update_task_status(db, task.id, employee, "blocked", comment="  Waiting on copy  ")

        comments = db.query(TaskComment).filter(TaskComment.task_id == task.id).all()
        assert [c.content for c in comments] == ["Waiting on copy"]
        assert comments[0].author_role == "employee"

        timeline = AuditLog.timeline(db, task.id)
        assert [e.action for e in timeline] == [
            HistoryAction.CREATED,
            HistoryAction.STATUS_CHANGED,
            HistoryAction.COMMENT_ADDED,
        ]
        status_entry = timeline[1]
        assert status_entry.field == "status"
        assert status_entry.old_value == {"kind": "enum", "value": "todo", "enum": "TaskStatus"}
        assert status_entry.new_value == {"kind": "enum", "value": "blocked", "enum": "TaskStatus"}
        assert status_entry.details == "Waiting on copy"

    def test_invalid_status(self, db, task, employee):
        """Test that unknown task statuses are rejected"""
        with pytest.raises(InvalidStatus):
            TaskService.update_task_status(db, task.id, employee, "done")
        assert actions(db, task.id) == [HistoryAction.CREATED]

    def test_outsider_cannot_change_status(self, db, task, outsider):
        """Test that employees cannot move tasks assigned to someone else"""
        with pytest.raises(Forbidden):
            TaskService.update_task_status(db, task.id, outsider, "completed")
        db.refresh(task)
        assert task.status == TaskStatus.TODO

    def test_client_cannot_change_status(self, db, task, client_user):
        """Test that clients are read-only"""
        with pytest.raises(Forbidden):
            TaskService.update_task_status(db, task.id, client_user, "completed")

    def test_manager_can_change_status(self, db, task, manager):
        """Test that the project manager can move tasks in their project"""
        updated = TaskService.update_task_status(db, task.id, manager, "completed")
        assert updated.status == TaskStatus.COMPLETED


class TestUpdateTask:
    def test_changed_fields_are_logged(self, db, task, manager):
        """Test that each changed field writes one history entry with tagged values"""
        TaskService.update_task(
            db, task.id,
            TaskUpdate(title="Build landing page", priority=TaskPriority.HIGH, progress=40),
            manager,
        )
        timeline = AuditLog.timeline(db, task.id)
        assert [e.action for e in timeline] == [
            HistoryAction.CREATED,
            HistoryAction.PRIORITY_CHANGED,
            HistoryAction.PROGRESS_UPDATED,
        ]
        assert timeline[2].old_value == {"kind": "number", "value": 0}
        assert timeline[2].new_value == {"kind": "number", "value": 40}

    def test_deadline_is_logged_as_date(self, db, task, manager):
        """Test that deadline changes store ISO dates"""
        new_deadline = date(2030, 1, 15)
        TaskService.update_task(db, task.id, TaskUpdate(deadline=new_deadline), manager)
        entry = AuditLog.timeline(db, task.id)[-1]
        assert entry.action == HistoryAction.DEADLINE_UPDATED
        assert entry.new_value == {"kind": "date", "value": "2030-01-15"}

    def test_invalid_progress(self, db, task, manager):
        """Test that progress outside 0..100 is rejected"""
        with pytest.raises(InvalidProgress):
            TaskService.update_task(db, task.id, TaskUpdate(progress=150), manager)

    def test_employee_cannot_edit(self, db, task, employee):
        """Test that employees cannot edit task fields"""
        with pytest.raises(Forbidden):
            TaskService.update_task(db, task.id, TaskUpdate(title="Mine now"), employee)

    def test_null_required_fields_are_ignored(self, db, task, manager):
        """Test that explicit nulls leave required fields unchanged"""
        updated = TaskService.update_task(
            db, task.id,
            TaskUpdate(title=None, priority=None, progress=None, is_archived=None, description="Hero first"),
            manager,
        )
        assert updated.title == "Build landing page"
        assert updated.priority == TaskPriority.MEDIUM
        assert updated.progress == 0
        assert updated.is_archived is False
        assert updated.description == "Hero first"
        assert actions(db, task.id) == [HistoryAction.CREATED, HistoryAction.DESCRIPTION_UPDATED]

    def test_null_clears_optional_fields(self, db, task, manager):
        """Test that nullable fields can be cleared"""
        updated = TaskService.update_task(db, task.id, TaskUpdate(deadline=None, assignee_id=None), manager)
        assert updated.deadline is None
        assert updated.assignee_id is None
        assert actions(db, task.id)[-2:] == [HistoryAction.DEADLINE_UPDATED, HistoryAction.ASSIGNED]


class TestComments:
    def test_add_comment_with_attachment(self, db, task, employee):
        """Test that comments and attachments are both logged"""
        comment = TaskService.add_comment(
            db, task.id, employee,
            TaskCommentCreate(
                content="Draft attached",
                attachments=[{"file_name": "draft.pdf", "file_url": "https://files.example.com/draft.pdf"}],
                mentions=[{"user_id": 1, "name": "Admin"}],
            ),
        )
        assert comment.content == "Draft attached"
        assert comment.attachments[0]["file_name"] == "draft.pdf"
        assert comment.mentions == [{"user_id": 1, "name": "Admin"}]
        assert actions(db, task.id) == [
            HistoryAction.CREATED,
            HistoryAction.COMMENT_ADDED,
            HistoryAction.ATTACHMENT_ADDED,
        ]

    @pytest.mark.parametrize("content", ["", "   "])
    def test_empty_comment(self, db, task, employee, content):
        """Test that empty comments are rejected"""
        with pytest.raises(InvalidComment):
            TaskService.add_comment(db, task.id, employee, TaskCommentCreate(content=content))

    def test_client_cannot_comment(self, db, task, client_user):
        """Test that clients cannot comment on tasks"""
        with pytest.raises(Forbidden):
            TaskService.add_comment(db, task.id, client_user, TaskCommentCreate(content="Hello"))

    def test_only_author_can_edit(self, db, task, employee, manager):
        """Test that comments are edited in place by their author"""
        comment = TaskService.add_comment(db, task.id, employee, TaskCommentCreate(content="First take"))

        with pytest.raises(Forbidden):
            TaskService.edit_comment(db, task.id, comment.id, manager, "Rewritten")

        edited = TaskService.edit_comment(db, task.id, comment.id, employee, "Second take")
        assert edited.content == "Second take"
        assert edited.is_edited is True
        assert edited.edited_at is not None


class TestTaskScoping:
    def test_get_tasks_is_scoped(self, db, task, employee, outsider, manager, other_manager, admin):
        """Test that task listings follow the caller's visibility"""
        for caller, expected in [(admin, 1), (manager, 1), (employee, 1), (other_manager, 0), (outsider, 0)]:
            items, total = TaskService.get_tasks(db, caller, TaskFilter())
            assert total == expected
            assert len(items) == expected

    def test_archived_tasks_are_hidden(self, db, task, manager):
        """Test that archived tasks only show up on request"""
        TaskService.update_task(db, task.id, TaskUpdate(is_archived=True), manager)
        _, total = TaskService.get_tasks(db, manager, TaskFilter())
        assert total == 0
        _, total = TaskService.get_tasks(db, manager, TaskFilter(include_archived=True))
        assert total == 1


class TestTaskAPI:
    def test_patch_status(self, task, employee):
        """Test the task status endpoint"""
        response = client.patch(
            f"/api/v1/tasks/{task.id}/status",
            headers=auth_headers(employee),
            json={"status": "in-progress", "comment": "Picked up"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "in-progress"
        assert data["progress"] == 25
        assert data["last_update"] == "Picked up"

    def test_patch_status_invalid(self, task, employee):
        """Test that an unknown status is a tagged failure"""
        response = client.patch(
            f"/api/v1/tasks/{task.id}/status",
            headers=auth_headers(employee),
            json={"status": "finished"},
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidStatus"

    def test_post_comment_and_history(self, task, employee):
        """Test commenting and reading the history with tagged values"""
        response = client.post(
            f"/api/v1/tasks/{task.id}/comment",
            headers=auth_headers(employee),
            json={"content": "Looks good"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["author_name"] == "Employee"

        response = client.get(f"/api/v1/tasks/{task.id}/history", headers=auth_headers(employee))
        assert response.status_code == 200
        entries = response.json()["data"]
        assert [e["action"] for e in entries] == ["created", "comment_added"]
        assert entries[0]["new_value"] == {"kind": "string", "value": task.task_code}

    def test_post_empty_comment(self, task, employee):
        """Test that an empty comment is a tagged failure"""
        response = client.post(
            f"/api/v1/tasks/{task.id}/comment",
            headers=auth_headers(employee),
            json={"content": " "},
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidComment"

    def test_list_tasks(self, task, employee, outsider):
        """Test that the listing is scoped to the caller"""
        response = client.get("/api/v1/tasks/", headers=auth_headers(employee))
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

        response = client.get("/api/v1/tasks/", headers=auth_headers(outsider))
        assert response.json()["data"]["total"] == 0

    def test_read_task_outsider_forbidden(self, task, outsider):
        """Test that unrelated employees cannot read the task"""
        response = client.get(f"/api/v1/tasks/{task.id}", headers=auth_headers(outsider))
        assert response.status_code == 403

    def test_put_null_title(self, task, manager):
        """Test that a null title in an update body is ignored"""
        response = client.put(
            f"/api/v1/tasks/{task.id}", headers=auth_headers(manager), json={"title": None, "progress": 10}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Build landing page"
        assert data["progress"] == 10

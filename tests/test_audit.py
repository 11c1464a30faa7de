from datetime import date, datetime, timezone

import pytest

from clientdesk.core.database import atomic
from clientdesk.models.project import ProjectStatus
from clientdesk.models.task_history import HistoryAction, TaskHistory
from clientdesk.schemas.task import TaskCreate
from clientdesk.schemas.task_history import TaskHistoryEntry
from clientdesk.services.audit import AuditLog, encode_value
from clientdesk.services.task import TaskService


class TestEncodeValue:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("Homepage", {"kind": "string", "value": "Homepage"}),
            (42, {"kind": "number", "value": 42}),
            (12.5, {"kind": "number", "value": 12.5}),
            (date(2026, 3, 1), {"kind": "date", "value": "2026-03-01"}),
            (
                datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc),
                {"kind": "date", "value": "2026-03-01T09:30:00+00:00"},
            ),
            (ProjectStatus.ON_HOLD, {"kind": "enum", "value": "on-hold", "enum": "ProjectStatus"}),
            (True, {"kind": "json", "value": True}),
            ({"file_name": "a.png"}, {"kind": "json", "value": {"file_name": "a.png"}}),
        ],
    )
    def test_tagged_values(self, value, expected):
        """Test that each value type gets its tag"""
        assert encode_value(value) == expected

    def test_tagged_values_validate_as_history(self):
        """Test that tagged values parse into the history response union"""
        entry = TaskHistoryEntry(
            id=1,
            task_id=1,
            changed_by_id=1,
            changed_by_name="Admin",
            action=HistoryAction.PRIORITY_CHANGED,
            old_value=encode_value(3),
            new_value=encode_value(ProjectStatus.DELAYED),
            created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        )
        assert entry.old_value.kind == "number"
        assert entry.new_value.kind == "enum"
        assert entry.new_value.value == "delayed"


@pytest.fixture
def task(db, project, manager):
    return TaskService.create_task(db, TaskCreate(title="Write copy", project_id=project.id), manager)


class TestAuditLog:
    def test_record_and_timeline(self, db, task, manager):
        """Test that recorded entries come back oldest first"""
        with atomic(db):
            AuditLog.record(
                db, task.id, manager.id, "Manager", HistoryAction.TITLE_UPDATED,
                field="title", old_value="Write copy", new_value="Write the copy",
            )
            AuditLog.record(
                db, task.id, manager.id, "Manager", HistoryAction.PROGRESS_UPDATED,
                field="progress", old_value=0, new_value=10,
            )

        timeline = AuditLog.timeline(db, task.id)
        assert [e.action for e in timeline] == [
            HistoryAction.CREATED,
            HistoryAction.TITLE_UPDATED,
            HistoryAction.PROGRESS_UPDATED,
        ]
        stamps = [e.created_at for e in timeline]
        assert stamps == sorted(stamps)
        assert timeline[1].old_value == {"kind": "string", "value": "Write copy"}

    def test_record_is_part_of_the_transaction(self, db, task, manager):
        """Test that a failed transaction leaves no history behind"""
        with pytest.raises(RuntimeError):
            with atomic(db):
                AuditLog.record(db, task.id, manager.id, "Manager", HistoryAction.ASSIGNED)
                db.flush()
                raise RuntimeError("boom")

        assert len(AuditLog.timeline(db, task.id)) == 1

    def test_history_is_append_only(self, db, task):
        """Test that task history rows cannot be changed or removed"""
        entry = db.query(TaskHistory).filter(TaskHistory.task_id == task.id).one()

        entry.details = "rewritten"
        with pytest.raises(ValueError):
            db.commit()
        db.rollback()

        db.delete(entry)
        with pytest.raises(ValueError):
            db.commit()
        db.rollback()

        assert db.query(TaskHistory).filter(TaskHistory.task_id == task.id).count() == 1

    def test_timeline_of_unknown_task_is_empty(self, db):
        """Test that an unknown task has no history"""
        assert AuditLog.timeline(db, 999) == []

import enum
import json
from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from clientdesk.models.project_status_history import ProjectStatusHistory
from clientdesk.models.task_history import HistoryAction, TaskHistory


def encode_value(value: Any) -> Optional[dict]:
    """Wrap a field value in its tagged form, ``{"kind": ..., "value": ...}``"""
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return {"kind": "enum", "value": str(value.value), "enum": type(value).__name__}
    if isinstance(value, bool):
        return {"kind": "json", "value": value}
    if isinstance(value, (int, float)):
        return {"kind": "number", "value": value}
    if isinstance(value, (date, datetime)):
        return {"kind": "date", "value": value.isoformat()}
    if isinstance(value, str):
        return {"kind": "string", "value": value}
    # Round-trip through JSON so only serializable data is stored
    return {"kind": "json", "value": json.loads(json.dumps(value, default=str))}


class AuditLog:
    @staticmethod
    def entry(
        actor_id: int,
        actor_name: str,
        action: HistoryAction,
        field: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        details: Optional[str] = None,
    ) -> TaskHistory:
        """Build a history row that is not attached to a task yet"""
        return TaskHistory(
            changed_by_id=actor_id,
            changed_by_name=actor_name,
            action=action,
            field=field,
            old_value=encode_value(old_value),
            new_value=encode_value(new_value),
            details=details,
        )

    @staticmethod
    def record(
        db: Session,
        task_id: int,
        actor_id: int,
        actor_name: str,
        action: HistoryAction,
        field: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        details: Optional[str] = None,
    ) -> TaskHistory:
        """Add a history row to the caller's transaction"""
        entry = AuditLog.entry(actor_id, actor_name, action, field, old_value, new_value, details)
        entry.task_id = task_id
        db.add(entry)
        return entry

    @staticmethod
    def timeline(db: Session, task_id: int) -> List[TaskHistory]:
        """Task history, oldest first"""
        return (
            db.query(TaskHistory)
            .filter(TaskHistory.task_id == task_id)
            .order_by(TaskHistory.created_at.asc(), TaskHistory.id.asc())
            .all()
        )

    @staticmethod
    def project_timeline(db: Session, project_id: int) -> List[ProjectStatusHistory]:
        """Project status history, oldest first"""
        return (
            db.query(ProjectStatusHistory)
            .filter(ProjectStatusHistory.project_id == project_id)
            .order_by(ProjectStatusHistory.timestamp.asc(), ProjectStatusHistory.id.asc())
            .all()
        )

    @staticmethod
    def project_history_length(db: Session, project_id: int) -> int:
        return (
            db.query(ProjectStatusHistory)
            .filter(ProjectStatusHistory.project_id == project_id)
            .count()
        )

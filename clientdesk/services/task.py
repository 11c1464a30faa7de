import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clientdesk.core.database import atomic, utcnow
from clientdesk.core.errors import Forbidden, InvalidComment, InvalidStatus, NotFound
from clientdesk.models.project import Project
from clientdesk.models.task import Task, TaskStatus
from clientdesk.models.task_comment import TaskComment
from clientdesk.models.task_history import HistoryAction, TaskHistory
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.task import TaskCreate, TaskFilter, TaskUpdate
from clientdesk.schemas.task_comment import TaskCommentCreate
from clientdesk.services.audit import AuditLog
from clientdesk.services.authorization import STATUS_EDITORS, AccessPolicy, role_of
from clientdesk.services.code_generator import CodeGenerator
from clientdesk.services.project_status import validate_progress

logger = logging.getLogger(__name__)

# Editable task field -> history action written when it changes
FIELD_ACTIONS = {
    "title": HistoryAction.TITLE_UPDATED,
    "description": HistoryAction.DESCRIPTION_UPDATED,
    "priority": HistoryAction.PRIORITY_CHANGED,
    "deadline": HistoryAction.DEADLINE_UPDATED,
    "progress": HistoryAction.PROGRESS_UPDATED,
    "assignee_id": HistoryAction.ASSIGNED,
}

# Columns that cannot be cleared; an explicit null leaves them unchanged
REQUIRED_FIELDS = {"title", "priority", "progress", "is_archived"}

DEFAULT_STATUS_NOTE = "Status updated"
STARTED_PROGRESS = 25


def parse_task_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise InvalidStatus(f"Invalid task status '{value}', expected one of: {allowed}") from None


class TaskService:
    @staticmethod
    def get_task(db: Session, task_id: int) -> Optional[Task]:
        """Get task by ID"""
        return db.query(Task).filter(Task.id == task_id).first()

    @staticmethod
    def get_task_for(db: Session, task_id: int, caller: User) -> Task:
        """Get a task the caller may see"""
        task = TaskService.get_task(db, task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found")
        AccessPolicy.ensure_can_view(caller, task)
        return task

    @staticmethod
    def get_tasks(db: Session, caller: User, filters: TaskFilter) -> Tuple[List[Task], int]:
        """Get tasks visible to the caller with optional filtering"""
        query = AccessPolicy.scope_tasks(caller, db.query(Task))

        if not filters.include_archived:
            query = query.filter(Task.is_archived == False)
        if filters.project_id:
            query = query.filter(Task.project_id == filters.project_id)
        if filters.assignee_id:
            query = query.filter(Task.assignee_id == filters.assignee_id)
        if filters.status:
            query = query.filter(Task.status == filters.status)
        if filters.priority:
            query = query.filter(Task.priority == filters.priority)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(or_(Task.title.ilike(pattern), Task.task_code.ilike(pattern)))

        total = query.count()
        items = (
            query.order_by(Task.created_at.desc(), Task.id.desc())
            .offset(filters.skip)
            .limit(filters.limit)
            .all()
        )
        return items, total

    @staticmethod
    def _check_assignee(db: Session, assignee_id: Optional[int]) -> None:
        if assignee_id is None:
            return
        if db.query(User).filter(User.id == assignee_id, User.is_active == True).first() is None:
            raise NotFound(f"User {assignee_id} not found")

    @staticmethod
    def create_task(db: Session, task: TaskCreate, caller: User) -> Task:
        """Create new task with a generated code and a ``created`` history row"""
        AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        project = db.query(Project).filter(Project.id == task.project_id, Project.is_active == True).first()
        if project is None:
            raise NotFound(f"Project {task.project_id} not found")
        if not AccessPolicy.can_mutate(caller, project):
            raise Forbidden("Only the project's manager can add tasks to it")
        TaskService._check_assignee(db, task.assignee_id)

        def build(code: str) -> Task:
            db_task = Task(
                **task.model_dump(),
                task_code=code,
                status=TaskStatus.TODO,
                progress=0,
                created_by_id=caller.id,
                created_by_name=caller.display_name,
            )
            db_task.history.append(
                AuditLog.entry(
                    caller.id, caller.display_name, HistoryAction.CREATED,
                    new_value=code, details=f"Task created: {task.title}",
                )
            )
            return db_task

        db_task = CodeGenerator.create_with_code(
            db, lambda session: CodeGenerator.next_task_code(session, project), build
        )
        logger.info(f"Task {db_task.task_code} created by user {caller.id}")
        return db_task

    @staticmethod
    def update_task(db: Session, task_id: int, task_update: TaskUpdate, caller: User) -> Task:
        """Update task fields, writing one history row per changed field"""
        update_data = {
            field: value
            for field, value in task_update.model_dump(exclude_unset=True).items()
            if value is not None or field not in REQUIRED_FIELDS
        }
        if "progress" in update_data:
            update_data["progress"] = validate_progress(update_data["progress"])

        AccessPolicy.ensure_role(caller, STATUS_EDITORS)
        db_task = TaskService.get_task_for(db, task_id, caller)
        AccessPolicy.ensure_can_mutate(caller, db_task)
        if "assignee_id" in update_data:
            TaskService._check_assignee(db, update_data["assignee_id"])

        with atomic(db):
            for field, value in update_data.items():
                old = getattr(db_task, field)
                if old == value:
                    continue
                if field in FIELD_ACTIONS:
                    AuditLog.record(
                        db, db_task.id, caller.id, caller.display_name, FIELD_ACTIONS[field],
                        field=field, old_value=old, new_value=value,
                    )
                setattr(db_task, field, value)

        db.refresh(db_task)
        return db_task

    @staticmethod
    def update_task_status(
        db: Session,
        task_id: int,
        caller: User,
        status,
        comment: Optional[str] = None,
    ) -> Task:
        """Move a task to ``status``; any state may move to any state"""
        new_status = parse_task_status(status)
        role = role_of(caller)
        db_task = TaskService.get_task(db, task_id)
        if db_task is None:
            raise NotFound(f"Task {task_id} not found")
        AccessPolicy.ensure_can_mutate(caller, db_task)

        note = (comment or "").strip()
        old_status = db_task.status
        now = utcnow()

        with atomic(db):
            AuditLog.record(
                db, db_task.id, caller.id, caller.display_name, HistoryAction.STATUS_CHANGED,
                field="status", old_value=old_status, new_value=new_status,
                details=note or None,
            )
            db_task.status = new_status
            db_task.last_update = note or DEFAULT_STATUS_NOTE

            if new_status == TaskStatus.COMPLETED:
                db_task.progress = 100
                db_task.completion_date = now
            else:
                db_task.completion_date = None
                if new_status == TaskStatus.IN_PROGRESS and db_task.progress == 0:
                    db_task.progress = STARTED_PROGRESS

            if note:
                db.add(
                    TaskComment(
                        task_id=db_task.id,
                        content=note,
                        author_id=caller.id,
                        author_name=caller.display_name,
                        author_role=role.value,
                    )
                )
                AuditLog.record(
                    db, db_task.id, caller.id, caller.display_name, HistoryAction.COMMENT_ADDED,
                    details=note,
                )

        logger.info(f"Task {db_task.task_code} status {old_status.value} -> {new_status.value} by user {caller.id}")
        db.refresh(db_task)
        return db_task

    @staticmethod
    def add_comment(db: Session, task_id: int, caller: User, comment: TaskCommentCreate) -> TaskComment:
        """Add a comment with a ``comment_added`` history row"""
        content = comment.content.strip()
        if not content:
            raise InvalidComment("Comment content cannot be empty")

        role = role_of(caller)
        db_task = TaskService.get_task_for(db, task_id, caller)
        if role == UserRole.CLIENT:
            raise Forbidden("Clients cannot comment on tasks")

        db_comment = TaskComment(
            task_id=db_task.id,
            content=content,
            attachments=[a.model_dump() for a in comment.attachments],
            mentions=[m.model_dump() for m in comment.mentions],
            author_id=caller.id,
            author_name=caller.display_name,
            author_role=role.value,
        )
        with atomic(db):
            db.add(db_comment)
            AuditLog.record(
                db, db_task.id, caller.id, caller.display_name, HistoryAction.COMMENT_ADDED,
                details=content,
            )
            for attachment in comment.attachments:
                AuditLog.record(
                    db, db_task.id, caller.id, caller.display_name, HistoryAction.ATTACHMENT_ADDED,
                    new_value=attachment.model_dump(), details=attachment.file_name,
                )

        db.refresh(db_comment)
        return db_comment

    @staticmethod
    def edit_comment(db: Session, task_id: int, comment_id: int, caller: User, content: str) -> TaskComment:
        """Edit a comment in place; only its author (or an admin) may"""
        content = content.strip()
        if not content:
            raise InvalidComment("Comment content cannot be empty")

        TaskService.get_task_for(db, task_id, caller)
        db_comment = (
            db.query(TaskComment)
            .filter(TaskComment.id == comment_id, TaskComment.task_id == task_id)
            .first()
        )
        if db_comment is None:
            raise NotFound(f"Comment {comment_id} not found")
        AccessPolicy.ensure_can_mutate(caller, db_comment)

        with atomic(db):
            db_comment.content = content
            db_comment.is_edited = True
            db_comment.edited_at = utcnow()

        db.refresh(db_comment)
        return db_comment

    @staticmethod
    def get_comments(db: Session, task_id: int, caller: User) -> List[TaskComment]:
        """Comments of a task, oldest first"""
        TaskService.get_task_for(db, task_id, caller)
        return (
            db.query(TaskComment)
            .filter(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at.asc(), TaskComment.id.asc())
            .all()
        )

    @staticmethod
    def get_history(db: Session, task_id: int, caller: User) -> List[TaskHistory]:
        """History of a task, oldest first"""
        TaskService.get_task_for(db, task_id, caller)
        return AuditLog.timeline(db, task_id)

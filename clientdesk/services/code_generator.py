import logging
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clientdesk.core.config import settings
from clientdesk.core.database import atomic
from clientdesk.core.errors import CodeGenerationFailed
from clientdesk.models.code_counter import CodeCounter
from clientdesk.models.invoice import Invoice
from clientdesk.models.project import Project
from clientdesk.models.task import Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

# kind -> (prefix, model whose rows created in the year seed the counter)
CODE_PREFIXES = {
    "project": ("PRJ", Project),
    "invoice": ("INV", Invoice),
}


def format_code(prefix: str, year: int, sequence: int) -> str:
    """``PRJ`` + two-digit year + four-digit sequence, e.g. ``PRJ260001``"""
    return f"{prefix}{year % 100:02d}{sequence:04d}"


def format_task_code(project_code: str, sequence: int) -> str:
    return f"{project_code}-TASK-{sequence:03d}"


def year_bounds(year: int):
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    return start, end


class CodeGenerator:
    @staticmethod
    def _increment(db: Session, scope: str) -> Optional[int]:
        """Bump the counter for ``scope`` and return the new value, or None when it does not exist"""
        result = db.execute(
            update(CodeCounter)
            .where(CodeCounter.scope == scope)
            .values(value=CodeCounter.value + 1)
            .returning(CodeCounter.value)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _seed(db: Session, scope: str, existing: int) -> int:
        """Create the counter for ``scope`` so the first value follows the existing rows"""
        value = existing + 1
        db.add(CodeCounter(scope=scope, value=value))
        # A concurrent seed of the same scope fails here on the primary key
        db.flush()
        return value

    @staticmethod
    def next_sequence(db: Session, kind: str, year: int) -> int:
        """Allocate the next per-year sequence number for ``kind``"""
        if kind not in CODE_PREFIXES:
            raise ValueError(f"Unknown code kind: {kind}")
        prefix, model = CODE_PREFIXES[kind]
        scope = f"{prefix}:{year % 100:02d}"

        value = CodeGenerator._increment(db, scope)
        if value is not None:
            return value

        start, end = year_bounds(year)
        existing = (
            db.query(func.count(model.id))
            .filter(model.created_at >= start, model.created_at < end)
            .scalar()
        )
        return CodeGenerator._seed(db, scope, existing or 0)

    @staticmethod
    def next_code(db: Session, kind: str, year: Optional[int] = None) -> str:
        """Allocate the next code for ``kind`` (``project`` or ``invoice``) in ``year``"""
        year = year or datetime.now(timezone.utc).year
        prefix, _ = CODE_PREFIXES.get(kind, (None, None))
        sequence = CodeGenerator.next_sequence(db, kind, year)
        return format_code(prefix, year, sequence)

    @staticmethod
    def next_task_code(db: Session, project: Project) -> str:
        """Allocate the next task code inside ``project``"""
        scope = f"TASK:{project.id}"
        value = CodeGenerator._increment(db, scope)
        if value is None:
            existing = db.query(func.count(Task.id)).filter(Task.project_id == project.id).scalar()
            value = CodeGenerator._seed(db, scope, existing or 0)
        return format_task_code(project.project_code, value)

    @staticmethod
    def create_with_code(
        db: Session,
        allocate: Callable[[Session], str],
        build: Callable[[str], T],
        max_attempts: Optional[int] = None,
    ) -> T:
        """Allocate a code and insert the entity built from it in one transaction.

        ``allocate`` returns a fresh code; ``build`` turns it into the entity
        (and may add related rows to the session). A uniqueness violation
        rolls the whole attempt back and retries with a new code.
        """
        max_attempts = max_attempts or settings.CODE_GENERATION_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            try:
                with atomic(db):
                    code = allocate(db)
                    entity = build(code)
                    db.add(entity)
                    db.flush()
            except IntegrityError as exc:
                logger.warning(f"Code allocation collided (attempt {attempt}/{max_attempts}): {exc.orig}")
                continue
            db.refresh(entity)
            return entity

        logger.error(f"Code allocation failed after {max_attempts} attempts")
        raise CodeGenerationFailed(f"Could not allocate a unique code after {max_attempts} attempts")

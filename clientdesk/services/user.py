from typing import List, Optional

from sqlalchemy.orm import Session

from clientdesk.core.database import atomic
from clientdesk.core.errors import NotFound
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.user import UserCreate, UserUpdate
from clientdesk.services.authorization import AccessPolicy


class UserService:
    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_users(db: Session, caller: User, skip: int = 0, limit: int = 100) -> List[User]:
        """Get all users with pagination"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        return db.query(User).order_by(User.id).offset(skip).limit(limit).all()

    @staticmethod
    def create_user(db: Session, user: UserCreate, caller: User) -> User:
        """Create new user with a normalized role"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        data = user.model_dump()
        data["role"] = UserRole.normalize(data["role"]).value
        db_user = User(**data)
        with atomic(db):
            db.add(db_user)
        db.refresh(db_user)
        return db_user

    @staticmethod
    def update_user(db: Session, user_id: int, user_update: UserUpdate, caller: User) -> User:
        """Update user"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_user = UserService.get_user(db, user_id)
        if not db_user:
            raise NotFound(f"User {user_id} not found")

        update_data = user_update.model_dump(exclude_unset=True)
        if update_data.get("role") is not None:
            update_data["role"] = UserRole.normalize(update_data["role"]).value
        with atomic(db):
            for field, value in update_data.items():
                setattr(db_user, field, value)

        db.refresh(db_user)
        return db_user

import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from clientdesk.core.database import atomic
from clientdesk.core.errors import NotFound
from clientdesk.models.client import Client, ClientStatus
from clientdesk.models.invoice import Invoice
from clientdesk.models.project import Project, ProjectStatus
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.client import ClientCreate, ClientUpdate
from clientdesk.services.authorization import AccessPolicy

logger = logging.getLogger(__name__)

OPEN_PROJECT_STATUSES = (ProjectStatus.PLANNED, ProjectStatus.IN_PROGRESS, ProjectStatus.DELAYED)


class ClientService:
    @staticmethod
    def get_client(db: Session, client_id: int, caller: User) -> Client:
        """Get client by ID"""
        client = db.query(Client).filter(Client.id == client_id, Client.is_active == True).first()
        if client is None:
            raise NotFound(f"Client {client_id} not found")
        AccessPolicy.ensure_can_view(caller, client)
        return client

    @staticmethod
    def get_clients(
        db: Session,
        caller: User,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        status: Optional[ClientStatus] = None,
    ) -> List[Client]:
        """Get active clients with optional search and status filter"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        query = db.query(Client).filter(Client.is_active == True)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Client.name.ilike(pattern), Client.company_name.ilike(pattern), Client.email.ilike(pattern))
            )
        if status:
            query = query.filter(Client.status == status)
        return query.order_by(Client.name).offset(skip).limit(limit).all()

    @staticmethod
    def create_client(db: Session, client: ClientCreate, caller: User) -> Client:
        """Create new client"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_client = Client(**client.model_dump())
        with atomic(db):
            db.add(db_client)
        db.refresh(db_client)
        logger.info(f"Client {db_client.id} created by user {caller.id}")
        return db_client

    @staticmethod
    def update_client(db: Session, client_id: int, client_update: ClientUpdate, caller: User) -> Client:
        """Update client"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_client = ClientService.get_client(db, client_id, caller)

        update_data = client_update.model_dump(exclude_unset=True)
        with atomic(db):
            for field, value in update_data.items():
                setattr(db_client, field, value)

        db.refresh(db_client)
        return db_client

    @staticmethod
    def delete_client(db: Session, client_id: int, caller: User) -> Client:
        """Soft delete client"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_client = ClientService.get_client(db, client_id, caller)
        with atomic(db):
            db_client.is_active = False
            db_client.status = ClientStatus.INACTIVE
        logger.info(f"Client {client_id} deactivated by user {caller.id}")
        return db_client

    @staticmethod
    def refresh_financials(db: Session, client_id: int) -> Optional[Client]:
        """Recompute project counts and billing totals; runs in the caller's transaction"""
        db_client = db.query(Client).filter(Client.id == client_id).first()
        if db_client is None:
            return None

        projects = db.query(Project).filter(Project.client_id == client_id, Project.is_active == True)
        db_client.total_projects = projects.count()
        db_client.active_projects = projects.filter(Project.status.in_(OPEN_PROJECT_STATUSES)).count()

        billed, paid, outstanding = (
            db.query(
                func.coalesce(func.sum(Invoice.total), 0),
                func.coalesce(func.sum(Invoice.paid_amount), 0),
                func.coalesce(func.sum(Invoice.balance_due), 0),
            )
            .filter(Invoice.client_id == client_id, Invoice.is_active == True)
            .one()
        )
        db_client.total_billed = int(billed)
        db_client.total_paid = int(paid)
        db_client.total_outstanding = int(outstanding)
        return db_client

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_admin, stats_filter
from clientdesk.models.client import ClientStatus
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.client import Client, ClientCreate, ClientUpdate
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.stats import ClientStats, StatsFilter
from clientdesk.services.client import ClientService
from clientdesk.services.stats import StatsService

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[Client]])
async def read_clients(
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Get all active clients"""
    clients = ClientService.get_clients(db, current_user, skip=skip, limit=limit, search=search, status=status)
    return ApiResponse(message="Clients fetched successfully", data=[Client.model_validate(c) for c in clients])


@router.get("/stats", response_model=ApiResponse[ClientStats])
async def read_client_stats(
    filters: StatsFilter = Depends(stats_filter),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Get client statistics"""
    stats = StatsService.client_stats(db, current_user, filters)
    return ApiResponse(message="Client statistics fetched successfully", data=stats)


@router.post("/", response_model=ApiResponse[Client], status_code=status.HTTP_201_CREATED)
async def create_client(
    client: ClientCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Create new client"""
    db_client = ClientService.create_client(db, client, current_user)
    return ApiResponse(message="Client created successfully", data=Client.model_validate(db_client))


@router.get("/{client_id}", response_model=ApiResponse[Client])
async def read_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get client by ID"""
    db_client = ClientService.get_client(db, client_id, current_user)
    return ApiResponse(message="Client fetched successfully", data=Client.model_validate(db_client))


@router.put("/{client_id}", response_model=ApiResponse[Client])
async def update_client(
    client_id: int,
    client_update: ClientUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Update client"""
    db_client = ClientService.update_client(db, client_id, client_update, current_user)
    return ApiResponse(message="Client updated successfully", data=Client.model_validate(db_client))


@router.delete("/{client_id}", response_model=ApiResponse[Client])
async def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Deactivate client"""
    db_client = ClientService.delete_client(db, client_id, current_user)
    return ApiResponse(message="Client deleted successfully", data=Client.model_validate(db_client))

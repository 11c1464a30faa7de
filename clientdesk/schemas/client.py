from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, ConfigDict

from clientdesk.models.client import ClientStatus


class ClientBase(BaseModel):
    name: str
    company_name: str
    email: EmailStr
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    status: ClientStatus = ClientStatus.ACTIVE
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    company_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    status: Optional[ClientStatus] = None
    notes: Optional[str] = None


class ClientInDBBase(ClientBase):
    id: int
    is_active: bool
    total_projects: int = 0
    active_projects: int = 0
    total_billed: int = 0  # in cents
    total_paid: int = 0  # in cents
    total_outstanding: int = 0  # in cents
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Client(ClientInDBBase):
    pass

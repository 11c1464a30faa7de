from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clientdesk.models.invoice import InvoiceStatus, PaymentMethod


class InvoiceItem(BaseModel):
    description: str
    quantity: float = Field(gt=0)
    rate: int = Field(ge=0)  # in cents
    amount: Optional[int] = None  # in cents, computed as quantity * rate


class InvoiceBase(BaseModel):
    client_id: int
    project_id: Optional[int] = None
    invoice_date: date
    due_date: date
    items: List[InvoiceItem] = Field(min_length=1)
    discount: int = Field(default=0, ge=0)  # in cents
    tax_rate: float = Field(default=0, ge=0, le=100)  # percent
    notes: Optional[str] = None


class InvoiceCreate(InvoiceBase):
    status: InvoiceStatus = InvoiceStatus.DRAFT


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class PaymentCreate(BaseModel):
    payment_date: date
    method: PaymentMethod
    amount: int = Field(gt=0)  # in cents
    reference: Optional[str] = None


class Payment(PaymentCreate):
    id: int
    invoice_id: int
    recorded_by_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceInDBBase(InvoiceBase):
    id: int
    invoice_number: str
    status: InvoiceStatus
    subtotal: int
    tax_amount: int
    total: int
    paid_amount: int
    balance_due: int
    is_active: bool
    created_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Invoice(InvoiceInDBBase):
    payments: List[Payment] = []


class OverdueSweep(BaseModel):
    updated_count: int
    invoice_numbers: List[str] = []

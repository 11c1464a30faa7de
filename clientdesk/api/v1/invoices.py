from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clientdesk.core.database import get_db
from clientdesk.core.deps import get_current_user, require_admin, stats_filter
from clientdesk.models.invoice import InvoiceStatus
from clientdesk.models.user import User as UserModel
from clientdesk.schemas.common import ApiResponse
from clientdesk.schemas.invoice import Invoice, InvoiceCreate, InvoiceStatusUpdate, OverdueSweep, PaymentCreate
from clientdesk.schemas.stats import InvoiceStats, StatsFilter
from clientdesk.services.invoice import InvoiceService
from clientdesk.services.stats import StatsService

router = APIRouter()


@router.get("/", response_model=ApiResponse[List[Invoice]])
async def read_invoices(
    skip: int = 0,
    limit: int = 100,
    status: Optional[InvoiceStatus] = None,
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get invoices visible to the caller"""
    invoices = InvoiceService.get_invoices(
        db, current_user, skip=skip, limit=limit, status=status, client_id=client_id
    )
    return ApiResponse(message="Invoices fetched successfully", data=[Invoice.model_validate(i) for i in invoices])


@router.get("/stats", response_model=ApiResponse[InvoiceStats])
async def read_invoice_stats(
    filters: StatsFilter = Depends(stats_filter),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get invoice statistics"""
    stats = StatsService.invoice_stats(db, current_user, filters)
    return ApiResponse(message="Invoice statistics fetched successfully", data=stats)


@router.post("/mark-overdue", response_model=ApiResponse[OverdueSweep])
async def mark_overdue_invoices(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Mark sent invoices past their due date as overdue"""
    invoices = InvoiceService.mark_overdue(db, current_user)
    sweep = OverdueSweep(
        updated_count=len(invoices),
        invoice_numbers=[i.invoice_number for i in invoices],
    )
    return ApiResponse(message="Overdue invoices updated successfully", data=sweep)


@router.post("/", response_model=ApiResponse[Invoice], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Create new invoice"""
    db_invoice = InvoiceService.create_invoice(db, invoice, current_user)
    return ApiResponse(message="Invoice created successfully", data=Invoice.model_validate(db_invoice))


@router.get("/{invoice_id}", response_model=ApiResponse[Invoice])
async def read_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Get invoice by ID"""
    db_invoice = InvoiceService.get_invoice(db, invoice_id, current_user)
    return ApiResponse(message="Invoice fetched successfully", data=Invoice.model_validate(db_invoice))


@router.patch("/{invoice_id}/status", response_model=ApiResponse[Invoice])
async def update_invoice_status(
    invoice_id: int,
    status_in: InvoiceStatusUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Update invoice status"""
    db_invoice = InvoiceService.update_status(db, invoice_id, status_in.status, current_user)
    return ApiResponse(message="Invoice status updated successfully", data=Invoice.model_validate(db_invoice))


@router.post("/{invoice_id}/payments", response_model=ApiResponse[Invoice], status_code=status.HTTP_201_CREATED)
async def record_invoice_payment(
    invoice_id: int,
    payment: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Record a payment against an invoice"""
    db_invoice = InvoiceService.record_payment(db, invoice_id, payment, current_user)
    return ApiResponse(message="Payment recorded successfully", data=Invoice.model_validate(db_invoice))


@router.delete("/{invoice_id}", response_model=ApiResponse[Invoice])
async def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
):
    """Deactivate invoice"""
    db_invoice = InvoiceService.delete_invoice(db, invoice_id, current_user)
    return ApiResponse(message="Invoice deleted successfully", data=Invoice.model_validate(db_invoice))

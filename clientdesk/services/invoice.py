import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from clientdesk.core.database import atomic
from clientdesk.core.errors import InvalidDateRange, InvalidPayment, InvalidStatus, NotFound
from clientdesk.models.client import Client
from clientdesk.models.invoice import Invoice, InvoicePayment, InvoiceStatus
from clientdesk.models.project import Project
from clientdesk.models.user import User, UserRole
from clientdesk.schemas.invoice import InvoiceCreate, InvoiceItem, PaymentCreate
from clientdesk.services.authorization import AccessPolicy
from clientdesk.services.client import ClientService
from clientdesk.services.code_generator import CodeGenerator

logger = logging.getLogger(__name__)


def to_cents(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(items: List[InvoiceItem], discount: int, tax_rate: float) -> dict:
    """Line amounts, subtotal, tax and total in cents; tax applies after the discount"""
    lines = []
    for item in items:
        line = item.model_dump()
        line["amount"] = to_cents(Decimal(str(item.quantity)) * item.rate)
        lines.append(line)

    subtotal = sum(line["amount"] for line in lines)
    taxable = max(subtotal - discount, 0)
    tax_amount = to_cents(Decimal(taxable) * Decimal(str(tax_rate)) / 100)
    return {
        "items": lines,
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "total": taxable + tax_amount,
    }


def apply_balance(invoice: Invoice) -> None:
    """Recompute paid amount and balance from payments; settle when nothing is left to pay"""
    invoice.paid_amount = sum(p.amount for p in invoice.payments)
    invoice.balance_due = max(invoice.total - invoice.paid_amount, 0)
    if invoice.total > 0 and invoice.balance_due == 0:
        invoice.status = InvoiceStatus.PAID
    elif invoice.status == InvoiceStatus.PAID:
        invoice.status = InvoiceStatus.SENT


class InvoiceService:
    @staticmethod
    def get_invoice(db: Session, invoice_id: int, caller: User) -> Invoice:
        """Get invoice by ID"""
        invoice = db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.is_active == True).first()
        if invoice is None:
            raise NotFound(f"Invoice {invoice_id} not found")
        AccessPolicy.ensure_can_view(caller, invoice)
        return invoice

    @staticmethod
    def get_invoices(
        db: Session,
        caller: User,
        skip: int = 0,
        limit: int = 100,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
    ) -> List[Invoice]:
        """Get active invoices visible to the caller"""
        query = AccessPolicy.scope_invoices(caller, db.query(Invoice).filter(Invoice.is_active == True))
        if status:
            query = query.filter(Invoice.status == status)
        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        return query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def create_invoice(db: Session, invoice: InvoiceCreate, caller: User) -> Invoice:
        """Create new invoice with a generated number and computed totals"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        if invoice.due_date < invoice.invoice_date:
            raise InvalidDateRange("Due date cannot be before the invoice date")
        if invoice.status == InvoiceStatus.PAID:
            raise InvalidStatus("A new invoice cannot be created as paid")
        if db.query(Client).filter(Client.id == invoice.client_id, Client.is_active == True).first() is None:
            raise NotFound(f"Client {invoice.client_id} not found")
        if invoice.project_id is not None:
            project = db.query(Project).filter(Project.id == invoice.project_id).first()
            if project is None or project.client_id != invoice.client_id:
                raise NotFound(f"Project {invoice.project_id} not found for this client")

        totals = compute_totals(invoice.items, invoice.discount, invoice.tax_rate)

        def build(number: str) -> Invoice:
            data = invoice.model_dump(exclude={"items"})
            return Invoice(
                **data,
                **totals,
                invoice_number=number,
                paid_amount=0,
                balance_due=totals["total"],
                created_by_id=caller.id,
            )

        db_invoice = CodeGenerator.create_with_code(
            db, lambda session: CodeGenerator.next_code(session, "invoice"), build
        )
        with atomic(db):
            ClientService.refresh_financials(db, db_invoice.client_id)
        logger.info(f"Invoice {db_invoice.invoice_number} created by user {caller.id}")
        return db_invoice

    @staticmethod
    def update_status(db: Session, invoice_id: int, status: InvoiceStatus, caller: User) -> Invoice:
        """Change invoice status; ``paid`` only follows from recorded payments"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_invoice = InvoiceService.get_invoice(db, invoice_id, caller)
        if status == InvoiceStatus.PAID and not (db_invoice.total > 0 and db_invoice.balance_due == 0):
            raise InvalidStatus("An invoice is paid only once payments cover its total")
        if db_invoice.status == InvoiceStatus.PAID and status != InvoiceStatus.PAID:
            raise InvalidStatus("A settled invoice cannot change status")

        with atomic(db):
            db_invoice.status = status
        db.refresh(db_invoice)
        return db_invoice

    @staticmethod
    def record_payment(db: Session, invoice_id: int, payment: PaymentCreate, caller: User) -> Invoice:
        """Append a payment and recompute the balance"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_invoice = InvoiceService.get_invoice(db, invoice_id, caller)
        if db_invoice.balance_due <= 0:
            raise InvalidPayment("The invoice is already settled")
        if payment.amount > db_invoice.balance_due:
            raise InvalidPayment(
                f"Payment of {payment.amount} exceeds the balance due of {db_invoice.balance_due}"
            )

        with atomic(db):
            db_invoice.payments.append(InvoicePayment(**payment.model_dump(), recorded_by_id=caller.id))
            apply_balance(db_invoice)
            db.flush()
            ClientService.refresh_financials(db, db_invoice.client_id)

        logger.info(f"Payment of {payment.amount} recorded on invoice {db_invoice.invoice_number}")
        db.refresh(db_invoice)
        return db_invoice

    @staticmethod
    def delete_invoice(db: Session, invoice_id: int, caller: User) -> Invoice:
        """Soft delete invoice"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        db_invoice = InvoiceService.get_invoice(db, invoice_id, caller)
        with atomic(db):
            db_invoice.is_active = False
            db.flush()
            ClientService.refresh_financials(db, db_invoice.client_id)
        return db_invoice

    @staticmethod
    def mark_overdue(db: Session, caller: User, today: Optional[date] = None) -> List[Invoice]:
        """Flag sent invoices that are past due with a balance left as overdue"""
        AccessPolicy.ensure_role(caller, [UserRole.ADMIN])
        today = today or date.today()
        invoices = (
            db.query(Invoice)
            .filter(
                Invoice.is_active == True,
                Invoice.status == InvoiceStatus.SENT,
                Invoice.due_date < today,
                Invoice.balance_due > 0,
            )
            .order_by(Invoice.id)
            .all()
        )
        if not invoices:
            return []

        with atomic(db):
            for invoice in invoices:
                invoice.status = InvoiceStatus.OVERDUE
            db.flush()
            for client_id in sorted({invoice.client_id for invoice in invoices}):
                ClientService.refresh_financials(db, client_id)

        logger.info(f"Marked {len(invoices)} invoice(s) overdue as of {today.isoformat()}")
        return invoices

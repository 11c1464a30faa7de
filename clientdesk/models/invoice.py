from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, Enum, JSON, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values, utcnow


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = "Bank Transfer"
    UPI = "UPI"
    CREDIT_CARD = "Credit Card"
    CASH = "Cash"
    CHEQUE = "Cheque"
    STRIPE = "Stripe"
    PAYPAL = "PayPal"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(32), unique=True, nullable=False, index=True)
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Enum(InvoiceStatus, values_callable=enum_values), default=InvoiceStatus.DRAFT, nullable=False)

    # [{"description", "quantity", "rate", "amount"}], money in cents
    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Integer, default=0, nullable=False)  # in cents
    discount = Column(Integer, default=0, nullable=False)  # in cents
    tax_rate = Column(Float, default=0, nullable=False)  # percent
    tax_amount = Column(Integer, default=0, nullable=False)  # in cents
    total = Column(Integer, default=0, nullable=False)  # in cents
    paid_amount = Column(Integer, default=0, nullable=False)  # in cents
    balance_due = Column(Integer, default=0, nullable=False)  # in cents
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Optimistic lock; concurrent payments on the same invoice conflict
    version_id = Column(Integer, nullable=False)

    # Relationships
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    client = relationship("Client", back_populates="invoices")

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    project = relationship("Project", back_populates="invoices")

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    payments = relationship(
        "InvoicePayment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="[InvoicePayment.payment_date, InvoicePayment.id]",
    )

    __mapper_args__ = {"version_id_col": version_id}


class InvoicePayment(Base):
    __tablename__ = "invoice_payments"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    invoice = relationship("Invoice", back_populates="payments")

    payment_date = Column(Date, nullable=False)
    method = Column(Enum(PaymentMethod, values_callable=enum_values), nullable=False)
    amount = Column(Integer, nullable=False)  # in cents
    reference = Column(String(255), nullable=True)
    recorded_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from clientdesk.core.database import Base, enum_values


class ClientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    status = Column(Enum(ClientStatus, values_callable=enum_values), default=ClientStatus.ACTIVE, nullable=False)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Running totals, recomputed from projects and invoices
    total_projects = Column(Integer, default=0, nullable=False)
    active_projects = Column(Integer, default=0, nullable=False)
    total_billed = Column(Integer, default=0, nullable=False)  # in cents
    total_paid = Column(Integer, default=0, nullable=False)  # in cents
    total_outstanding = Column(Integer, default=0, nullable=False)  # in cents

    # Audit fields
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    projects = relationship("Project", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")

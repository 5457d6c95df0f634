"""Invoice model (facture client)."""
import enum
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garage.database import Base


class InvoiceStatus(enum.Enum):
    """Invoice status enum."""
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    PAID = "PAID"
    CANCELED = "CANCELED"


class Invoice(Base):
    """
    Invoice header.

    subtotal_ht, vat_total and total_ttc are derived from the items and are
    rewritten on every mutation; they are never taken from client input.
    Ownership is created_by_id; group_id (nullable) opens the invoice to
    every member of that group.
    """

    __tablename__ = 'invoice'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_number = Column(String(32), nullable=False, unique=True)
    status = Column(SQLEnum(InvoiceStatus, name='invoice_status'), nullable=False, default=InvoiceStatus.DRAFT)
    customer_id = Column(Integer, ForeignKey('customer.id'), nullable=False)
    vehicle_id = Column(Integer, ForeignKey('vehicle.id'), nullable=True)
    notes = Column(Text, nullable=True)

    subtotal_ht = Column(Numeric(14, 2), nullable=False, default=0)
    vat_total = Column(Numeric(14, 2), nullable=False, default=0)
    total_ttc = Column(Numeric(14, 2), nullable=False, default=0)

    issued_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(Integer, ForeignKey('app_user.id'), nullable=False)
    group_id = Column(Integer, ForeignKey('user_group.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='invoices')
    vehicle = relationship('Vehicle')
    created_by = relationship('AppUser', foreign_keys=[created_by_id])
    group = relationship('Group')
    items = relationship(
        'InvoiceItem',
        back_populates='invoice',
        cascade='all, delete-orphan',
        order_by='InvoiceItem.position'
    )

    def __repr__(self):
        return (
            f"<Invoice(id={self.id}, number='{self.invoice_number}', "
            f"status='{self.status.value if self.status else None}', total_ttc={self.total_ttc})>"
        )

"""InvoiceItem model for invoice line items."""
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from garage.database import Base


class LineItemKind(enum.Enum):
    """Line item kind: a stocked part or a labor line."""
    PART = "PART"
    LABOR = "LABOR"


class InvoiceItem(Base):
    """
    Invoice line (ligne de facture).

    Lines are never updated in place: each invoice mutation deletes the whole
    set and recreates it with positions 0..n-1 in submitted order.
    """

    __tablename__ = 'invoice_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoice.id'), nullable=False)
    kind = Column(SQLEnum(LineItemKind, name='line_item_kind'), nullable=False)
    part_id = Column(Integer, ForeignKey('part.id'), nullable=True)  # only for PART lines
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price_ht = Column(Numeric(14, 2), nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False)
    line_total_ht = Column(Numeric(14, 2), nullable=False)
    line_total_ttc = Column(Numeric(14, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    invoice = relationship('Invoice', back_populates='items')
    part = relationship('Part')

    def __repr__(self):
        return (
            f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, kind='{self.kind.value}', "
            f"position={self.position}, total_ht={self.line_total_ht})>"
        )

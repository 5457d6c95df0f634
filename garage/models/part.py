"""Part model - inventory item that can be billed on an invoice."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.sql import func
from garage.database import Base


class Part(Base):
    """Spare part (pièce détachée) with its on-hand stock."""

    __tablename__ = 'part'

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(64), nullable=True, unique=True)
    name = Column(String(200), nullable=False)
    sale_price_ht = Column(Numeric(14, 2), nullable=False, default=0)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=20)
    # Decremented atomically when an invoice is issued, may go negative
    stock_qty = Column(Numeric(10, 2), nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def is_low_stock(self):
        # A threshold of 0 means the part is not tracked
        return bool(self.low_stock_threshold) and self.stock_qty <= self.low_stock_threshold

    def __repr__(self):
        return f"<Part(id={self.id}, name='{self.name}', stock_qty={self.stock_qty})>"

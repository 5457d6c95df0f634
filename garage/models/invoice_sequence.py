"""Per-year counter backing invoice number generation."""
from sqlalchemy import Column, Integer
from garage.database import Base


class InvoiceSequence(Base):
    """
    One row per calendar year.

    last_value is only ever bumped with a single UPDATE ... SET last_value =
    last_value + 1, so two writers never read the same value.
    """

    __tablename__ = 'invoice_sequence'

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<InvoiceSequence(year={self.year}, last_value={self.last_value})>"

"""Customer model."""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garage.database import Base


class Customer(Base):
    """Customer (client) - private person or company."""

    __tablename__ = 'customer'

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    company_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    siret = Column(String(14), nullable=True)
    vat_number = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    vehicles = relationship('Vehicle', back_populates='customer')
    invoices = relationship('Invoice', back_populates='customer')

    @property
    def display_name(self):
        if self.company_name:
            return self.company_name
        return ' '.join(part for part in (self.first_name, self.last_name) if part) or f'Client #{self.id}'

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.display_name}')>"

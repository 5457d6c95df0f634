"""Vehicle model."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garage.database import Base


class Vehicle(Base):
    """Customer vehicle, identified by its registration plate."""

    __tablename__ = 'vehicle'

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey('customer.id'), nullable=False)
    registration_plate = Column(String(20), nullable=False, unique=True)
    make = Column(String(80), nullable=True)
    model = Column(String(80), nullable=True)
    year = Column(Integer, nullable=True)
    vin = Column(String(32), nullable=True)
    mileage = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='vehicles')

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.registration_plate}')>"

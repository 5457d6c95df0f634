"""Models package - exports all SQLAlchemy models."""
# Identity
from garage.models.group import Group
from garage.models.app_user import AppUser, UserRole

# Garage records
from garage.models.customer import Customer
from garage.models.vehicle import Vehicle
from garage.models.part import Part

# Invoicing
from garage.models.invoice import Invoice, InvoiceStatus
from garage.models.invoice_item import InvoiceItem, LineItemKind
from garage.models.invoice_sequence import InvoiceSequence

__all__ = [
    'Group', 'AppUser', 'UserRole',
    'Customer', 'Vehicle', 'Part',
    'Invoice', 'InvoiceStatus', 'InvoiceItem', 'LineItemKind', 'InvoiceSequence',
]

"""Customer records: validation, search and guarded deletion."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, func, select
from sqlalchemy.orm import Session

from garage.exceptions import BusinessLogicError, NotFoundError, ValidationError
from garage.models import Customer, Invoice, Vehicle
from garage.services.auth_service import EMAIL_PATTERN

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {
    # field: (camelCase alias, max length or None for Text columns)
    'company_name': ('companyName', 200),
    'email': ('email', 255),
    'phone': ('phone', 50),
    'address': ('address', None),
    'siret': ('siret', 14),
    'vat_number': ('vatNumber', 20),
    'notes': ('notes', None),
}


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def parse_customer_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a customer body (snake_case or camelCase keys).

    First and last name are required even for companies; every other field
    is optional and stored as NULL when blank.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Corps JSON attendu')

    first_name = _clean(payload.get('first_name', payload.get('firstName')))
    last_name = _clean(payload.get('last_name', payload.get('lastName')))
    if not first_name:
        raise ValidationError('Prénom requis')
    if not last_name:
        raise ValidationError('Nom requis')
    if len(first_name) > 120 or len(last_name) > 120:
        raise ValidationError('Prénom et nom limités à 120 caractères')

    data = {'first_name': first_name, 'last_name': last_name}
    for field, (alias, max_length) in _TEXT_FIELDS.items():
        value = _clean(payload.get(field, payload.get(alias)))
        if value and max_length and len(value) > max_length:
            raise ValidationError(f'{field} : {max_length} caractères max.')
        data[field] = value

    if data['email']:
        data['email'] = data['email'].lower()
        if not EMAIL_PATTERN.match(data['email']):
            raise ValidationError('Email invalide. Utilisez le format : user@example.com')
    if data['siret'] and not (data['siret'].isdigit() and len(data['siret']) == 14):
        raise ValidationError('SIRET invalide (14 chiffres)')
    return data


def get_customer(session: Session, customer_id: int) -> Customer:
    customer = session.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f'Client {customer_id} introuvable')
    return customer


def list_customers(session: Session, search: Optional[str] = None) -> List[Customer]:
    """Customers, newest first; search matches names, company, email or phone."""
    query = session.query(Customer)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Customer.first_name).like(pattern),
            func.lower(Customer.last_name).like(pattern),
            func.lower(Customer.company_name).like(pattern),
            func.lower(Customer.email).like(pattern),
            Customer.phone.like(pattern)
        ))
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def create_customer(session: Session, payload: Dict[str, Any]) -> Customer:
    data = parse_customer_payload(payload)
    try:
        customer = Customer(**data)
        session.add(customer)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[CUSTOMER] Created {customer.display_name} (id={customer.id})")
    return customer


def update_customer(session: Session, customer_id: int, payload: Dict[str, Any]) -> Customer:
    customer = get_customer(session, customer_id)
    data = parse_customer_payload(payload)
    try:
        for key, value in data.items():
            setattr(customer, key, value)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return customer


def delete_customer(session: Session, customer_id: int) -> None:
    """
    Delete a customer and their vehicles.

    Raises:
        NotFoundError
        BusinessLogicError: the customer is billed on at least one invoice.
    """
    customer = get_customer(session, customer_id)
    vehicle_ids = select(Vehicle.id).where(Vehicle.customer_id == customer.id)
    billed = session.query(Invoice.id).filter(or_(
        Invoice.customer_id == customer.id,
        Invoice.vehicle_id.in_(vehicle_ids)
    )).first()
    if billed:
        raise BusinessLogicError('Impossible de supprimer ce client car il a des factures associées')

    name = customer.display_name
    try:
        session.query(Vehicle).filter(Vehicle.customer_id == customer.id).delete(synchronize_session=False)
        session.expire(customer, ['vehicles'])
        session.delete(customer)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[CUSTOMER] Deleted {name} (id={customer_id})")

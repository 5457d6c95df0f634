"""Vehicle records attached to customers."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from garage.exceptions import BusinessLogicError, NotFoundError, ValidationError
from garage.models import Customer, Invoice, Vehicle

logger = logging.getLogger(__name__)

FIRST_MODEL_YEAR = 1900


def normalize_plate(value) -> str:
    """AB-123-CD style: upper case, outer spaces removed."""
    return str(value or '').strip().upper()


def _optional_int(value, label: str, minimum: int = 0, maximum: Optional[int] = None) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{label} invalide')
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ValidationError(f'{label} invalide')
    if parsed < minimum or (maximum is not None and parsed > maximum):
        raise ValidationError(f'{label} invalide')
    return parsed


def parse_vehicle_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a vehicle body; plate, make, model and customer are required."""
    if not isinstance(payload, dict):
        raise ValidationError('Corps JSON attendu')

    plate = normalize_plate(payload.get('registration_plate', payload.get('registrationPlate')))
    if not plate:
        raise ValidationError('Immatriculation requise')
    if len(plate) > 20:
        raise ValidationError('Immatriculation trop longue (20 caractères max.)')

    make = str(payload.get('make') or '').strip()
    model = str(payload.get('model') or '').strip()
    if not make:
        raise ValidationError('Marque requise')
    if not model:
        raise ValidationError('Modèle requis')

    customer_id = _optional_int(payload.get('customer_id', payload.get('customerId')), 'Client', minimum=1)
    if customer_id is None:
        raise ValidationError('Client requis')

    vin = str(payload.get('vin') or '').strip().upper() or None
    if vin and len(vin) > 32:
        raise ValidationError('VIN trop long (32 caractères max.)')

    return {
        'registration_plate': plate,
        'make': make[:80],
        'model': model[:80],
        'customer_id': customer_id,
        'vin': vin,
        'year': _optional_int(payload.get('year'), 'Année', FIRST_MODEL_YEAR, datetime.now().year + 1),
        'mileage': _optional_int(payload.get('mileage', payload.get('mileageKm')), 'Kilométrage'),
    }


def get_vehicle(session: Session, vehicle_id: int) -> Vehicle:
    vehicle = session.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
    if not vehicle:
        raise NotFoundError(f'Véhicule {vehicle_id} introuvable')
    return vehicle


def list_vehicles(session: Session, customer_id: Optional[int] = None,
                  search: Optional[str] = None) -> List[Vehicle]:
    """Vehicles ordered by plate, optionally for one customer."""
    query = session.query(Vehicle)
    if customer_id is not None:
        query = query.filter(Vehicle.customer_id == customer_id)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.filter(or_(
            func.lower(Vehicle.registration_plate).like(pattern),
            func.lower(Vehicle.make).like(pattern),
            func.lower(Vehicle.model).like(pattern)
        ))
    return query.order_by(Vehicle.registration_plate.asc()).all()


def _check_plate_available(session: Session, plate: str, exclude_id: Optional[int] = None) -> None:
    query = session.query(Vehicle.id).filter(Vehicle.registration_plate == plate)
    if exclude_id is not None:
        query = query.filter(Vehicle.id != exclude_id)
    if query.first():
        raise ValidationError(f'Un véhicule immatriculé {plate} existe déjà')


def _save(session: Session, vehicle: Vehicle, data: Dict[str, Any]) -> Vehicle:
    if not session.query(Customer.id).filter(Customer.id == data['customer_id']).first():
        raise NotFoundError(f"Client {data['customer_id']} introuvable")
    _check_plate_available(session, data['registration_plate'], exclude_id=vehicle.id)

    try:
        for key, value in data.items():
            setattr(vehicle, key, value)
        session.add(vehicle)
        session.commit()
    except IntegrityError:
        # Concurrent insert of the same plate
        session.rollback()
        raise ValidationError(f"Un véhicule immatriculé {data['registration_plate']} existe déjà")
    except Exception:
        session.rollback()
        raise
    return vehicle


def create_vehicle(session: Session, payload: Dict[str, Any]) -> Vehicle:
    vehicle = _save(session, Vehicle(), parse_vehicle_payload(payload))
    logger.info(f"[VEHICLE] Created {vehicle.registration_plate} (id={vehicle.id}) for customer {vehicle.customer_id}")
    return vehicle


def update_vehicle(session: Session, vehicle_id: int, payload: Dict[str, Any]) -> Vehicle:
    vehicle = get_vehicle(session, vehicle_id)
    return _save(session, vehicle, parse_vehicle_payload(payload))


def delete_vehicle(session: Session, vehicle_id: int) -> None:
    """Raises BusinessLogicError when an invoice references the vehicle."""
    vehicle = get_vehicle(session, vehicle_id)
    if session.query(Invoice.id).filter(Invoice.vehicle_id == vehicle.id).first():
        raise BusinessLogicError('Impossible de supprimer ce véhicule car il a des factures associées')

    plate = vehicle.registration_plate
    try:
        session.delete(vehicle)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[VEHICLE] Deleted {plate} (id={vehicle_id})")

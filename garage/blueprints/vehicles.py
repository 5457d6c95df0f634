"""Vehicles blueprint - JSON CRUD for customer vehicles."""
from flask import Blueprint, request, jsonify

from garage.database import get_session
from garage.exceptions import ValidationError
from garage.middleware import require_login
from garage.services import vehicle_service

vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/api/vehicles')


def serialize_vehicle(vehicle):
    return {
        'id': vehicle.id,
        'registration_plate': vehicle.registration_plate,
        'customer_id': vehicle.customer_id,
        'customer_name': vehicle.customer.display_name if vehicle.customer else None,
        'make': vehicle.make,
        'model': vehicle.model,
        'year': vehicle.year,
        'vin': vehicle.vin,
        'mileage': vehicle.mileage,
    }


@vehicles_bp.route('/', methods=['GET'])
@require_login
def list_vehicles():
    """?customer_id= restricts to one customer, ?q= searches plate, make and model."""
    customer_id = request.args.get('customer_id', '').strip()
    if customer_id and not customer_id.isdigit():
        raise ValidationError('Client invalide')
    vehicles = vehicle_service.list_vehicles(
        get_session(),
        customer_id=int(customer_id) if customer_id else None,
        search=request.args.get('q', '').strip() or None
    )
    return jsonify([serialize_vehicle(vehicle) for vehicle in vehicles])


@vehicles_bp.route('/', methods=['POST'])
@require_login
def create_vehicle():
    vehicle = vehicle_service.create_vehicle(get_session(), request.get_json(silent=True))
    return jsonify(serialize_vehicle(vehicle)), 201


@vehicles_bp.route('/<int:vehicle_id>', methods=['GET'])
@require_login
def view_vehicle(vehicle_id):
    return jsonify(serialize_vehicle(vehicle_service.get_vehicle(get_session(), vehicle_id)))


@vehicles_bp.route('/<int:vehicle_id>', methods=['PUT'])
@require_login
def update_vehicle(vehicle_id):
    vehicle = vehicle_service.update_vehicle(get_session(), vehicle_id, request.get_json(silent=True))
    return jsonify(serialize_vehicle(vehicle))


@vehicles_bp.route('/<int:vehicle_id>', methods=['DELETE'])
@require_login
def delete_vehicle(vehicle_id):
    vehicle_service.delete_vehicle(get_session(), vehicle_id)
    return jsonify({'status': 'ok'})

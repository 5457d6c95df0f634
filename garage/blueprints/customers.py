"""Customers blueprint - JSON CRUD for garage customers."""
from flask import Blueprint, request, jsonify

from garage.database import get_session
from garage.middleware import require_login
from garage.services import customer_service

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


def serialize_customer(customer, include_vehicles=False):
    data = {
        'id': customer.id,
        'label': customer.display_name,
        'first_name': customer.first_name,
        'last_name': customer.last_name,
        'company_name': customer.company_name,
        'email': customer.email,
        'phone': customer.phone,
        'address': customer.address,
        'siret': customer.siret,
        'vat_number': customer.vat_number,
        'notes': customer.notes,
    }
    if include_vehicles:
        data['vehicles'] = [
            {'id': vehicle.id, 'registration_plate': vehicle.registration_plate}
            for vehicle in customer.vehicles
        ]
    return data


@customers_bp.route('/', methods=['GET'])
@require_login
def list_customers():
    """?q= filters on names, company, email and phone."""
    search = request.args.get('q', '').strip() or None
    customers = customer_service.list_customers(get_session(), search=search)
    return jsonify([serialize_customer(customer) for customer in customers])


@customers_bp.route('/', methods=['POST'])
@require_login
def create_customer():
    customer = customer_service.create_customer(get_session(), request.get_json(silent=True))
    return jsonify(serialize_customer(customer)), 201


@customers_bp.route('/<int:customer_id>', methods=['GET'])
@require_login
def view_customer(customer_id):
    customer = customer_service.get_customer(get_session(), customer_id)
    return jsonify(serialize_customer(customer, include_vehicles=True))


@customers_bp.route('/<int:customer_id>', methods=['PUT'])
@require_login
def update_customer(customer_id):
    customer = customer_service.update_customer(get_session(), customer_id, request.get_json(silent=True))
    return jsonify(serialize_customer(customer))


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
@require_login
def delete_customer(customer_id):
    customer_service.delete_customer(get_session(), customer_id)
    return jsonify({'status': 'ok'})

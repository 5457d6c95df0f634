"""Invoices blueprint - JSON API over the invoice service."""
from flask import Blueprint, request, g, jsonify

from garage.database import get_session
from garage.exceptions import ValidationError
from garage.middleware import require_login
from garage.services import invoice_service
from garage.services.cache_service import get_cache
from garage.utils.formatters import money_fr, date_fr

invoices_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


def _amount(value):
    return str(value) if value is not None else None


def _timestamp(value):
    return value.isoformat() if value is not None else None


def serialize_item(item):
    return {
        'id': item.id,
        'kind': item.kind.value,
        'part_id': item.part_id,
        'description': item.description,
        'quantity': _amount(item.quantity),
        'unit_price_ht': _amount(item.unit_price_ht),
        'vat_rate': _amount(item.vat_rate),
        'line_total_ht': _amount(item.line_total_ht),
        'line_total_ttc': _amount(item.line_total_ttc),
        'position': item.position,
    }


def serialize_invoice(invoice, include_items=True):
    data = {
        'id': invoice.id,
        'invoice_number': invoice.invoice_number,
        'status': invoice.status.value,
        'customer_id': invoice.customer_id,
        'customer_name': invoice.customer.display_name if invoice.customer else None,
        'vehicle_id': invoice.vehicle_id,
        'registration_plate': invoice.vehicle.registration_plate if invoice.vehicle else None,
        'notes': invoice.notes,
        'subtotal_ht': _amount(invoice.subtotal_ht),
        'vat_total': _amount(invoice.vat_total),
        'total_ttc': _amount(invoice.total_ttc),
        'total_ttc_display': money_fr(invoice.total_ttc),
        'issued_at': _timestamp(invoice.issued_at),
        'paid_at': _timestamp(invoice.paid_at),
        'due_at': _timestamp(invoice.due_at),
        'due_at_display': date_fr(invoice.due_at),
        'created_by_id': invoice.created_by_id,
        'group_id': invoice.group_id,
        'created_at': _timestamp(invoice.created_at),
    }
    if include_items:
        data['items'] = [serialize_item(item) for item in invoice.items]
    return data


def _serialize_stats(stats):
    return {key: _amount(value) if key.startswith('total_') else value for key, value in stats.items()}


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Corps JSON attendu')
    return data


@invoices_bp.route('/', methods=['GET'])
@require_login
def list_invoices():
    """List invoices visible to the current user, with per-status stats."""
    db_session = get_session()
    status = request.args.get('status', '').strip() or None
    search = request.args.get('q', '').strip() or None

    invoices = invoice_service.list_invoices(db_session, g.user, status=status, search=search)

    if status or search:
        stats = invoice_service.invoice_stats(invoices)
    else:
        # Unfiltered stats are cached per user until the next invoice mutation
        stats = get_cache().cached_invoice_stats(g.user.id, lambda: invoice_service.invoice_stats(invoices))

    return jsonify({
        'invoices': [serialize_invoice(invoice, include_items=False) for invoice in invoices],
        'stats': _serialize_stats(stats),
    })


@invoices_bp.route('/', methods=['POST'])
@require_login
def create_invoice():
    """Create an invoice; {"issue": true} creates it directly as ISSUED."""
    data = _json_body()
    invoice = invoice_service.create_invoice(
        data, get_session(), g.user, issue=bool(data.get('issue', False))
    )
    return jsonify(serialize_invoice(invoice)), 201


@invoices_bp.route('/<int:invoice_id>', methods=['GET'])
@require_login
def view_invoice(invoice_id):
    invoice = invoice_service.get_invoice(invoice_id, get_session(), g.user)
    return jsonify(serialize_invoice(invoice))


@invoices_bp.route('/<int:invoice_id>', methods=['PUT'])
@require_login
def update_invoice(invoice_id):
    invoice = invoice_service.update_invoice(invoice_id, _json_body(), get_session(), g.user)
    return jsonify(serialize_invoice(invoice))


@invoices_bp.route('/<int:invoice_id>/status', methods=['PATCH'])
@require_login
def change_status(invoice_id):
    data = _json_body()
    invoice = invoice_service.change_status(invoice_id, data.get('status'), get_session(), g.user)
    return jsonify(serialize_invoice(invoice, include_items=False))


@invoices_bp.route('/<int:invoice_id>', methods=['DELETE'])
@require_login
def delete_invoice(invoice_id):
    invoice_service.delete_invoice(invoice_id, get_session(), g.user)
    return jsonify({'status': 'ok'})


@invoices_bp.route('/<int:invoice_id>/duplicate', methods=['POST'])
@require_login
def duplicate_invoice(invoice_id):
    invoice = invoice_service.duplicate_invoice(invoice_id, get_session(), g.user)
    return jsonify(serialize_invoice(invoice)), 201

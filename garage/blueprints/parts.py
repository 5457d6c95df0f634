"""Parts blueprint - catalog listing used by the invoice form."""
from flask import Blueprint, request, jsonify

from garage.database import get_session
from garage.middleware import require_login
from garage.services.part_service import list_parts

parts_bp = Blueprint('parts', __name__, url_prefix='/api/parts')


def serialize_part(part):
    return {
        'id': part.id,
        'reference': part.reference,
        'name': part.name,
        'sale_price_ht': str(part.sale_price_ht),
        'vat_rate': str(part.vat_rate),
        'stock_qty': str(part.stock_qty),
        'low_stock_threshold': part.low_stock_threshold,
        'is_low_stock': part.is_low_stock,
    }


@parts_bp.route('/', methods=['GET'])
@require_login
def list_parts_view():
    """?q= searches name and reference, ?low_stock=1 keeps parts at or below their threshold."""
    parts = list_parts(
        get_session(),
        search=request.args.get('q', '').strip() or None,
        low_stock_only=request.args.get('low_stock') in ('1', 'true')
    )
    return jsonify([serialize_part(part) for part in parts])

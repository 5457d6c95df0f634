"""Validation of submitted invoice data (header + items)."""
from datetime import datetime, date
from decimal import Decimal
from typing import Dict, Any, List, Optional

from garage.exceptions import ValidationError
from garage.models import LineItemKind
from garage.utils.number_format import parse_decimal

MIN_QUANTITY = Decimal('0.01')
MAX_VAT_RATE = Decimal('100')
MAX_DESCRIPTION_LENGTH = 255

# Stored scales of InvoiceItem.quantity, unit_price_ht and vat_rate
QUANTITY_STEP = Decimal('0.001')
PRICE_STEP = Decimal('0.01')
RATE_STEP = Decimal('0.01')


def _pick(data: Dict[str, Any], *keys, default=None):
    """First present key, accepting both snake_case and camelCase names."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_id(value, label: str, required: bool = False) -> Optional[int]:
    if value is None or value == '':
        if required:
            raise ValidationError(f'{label} requis')
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{label} invalide')
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} invalide')
    if parsed <= 0:
        raise ValidationError(f'{label} invalide')
    return parsed


def _parse_datetime(value, label: str) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f'{label} : date invalide (format AAAA-MM-JJ)')


def _parse_number(value, label: str) -> Decimal:
    try:
        return parse_decimal(value, label)
    except ValueError as e:
        raise ValidationError(str(e))


def _check_scale(value: Decimal, step: Decimal, message: str) -> Decimal:
    """Refuse digits the column cannot store; line totals must match stored values."""
    if value.quantize(step) != value:
        raise ValidationError(message)
    return value.quantize(step)


def parse_invoice_item(raw: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Validate one line; index is used in messages (1-based for humans)."""
    line_label = f'Ligne {index + 1}'
    if not isinstance(raw, dict):
        raise ValidationError(f'{line_label} : format invalide')

    kind_raw = str(raw.get('kind') or '').strip().upper()
    try:
        kind = LineItemKind[kind_raw]
    except KeyError:
        raise ValidationError(f'{line_label} : type de ligne invalide (PART ou LABOR)')

    part_id = _parse_id(_pick(raw, 'part_id', 'partId'), f'{line_label} : pièce')
    if kind == LineItemKind.LABOR and part_id is not None:
        raise ValidationError(f"{line_label} : une ligne de main-d'œuvre ne peut pas référencer une pièce")

    description = (raw.get('description') or '').strip()
    if not description:
        raise ValidationError(f'{line_label} : description requise')
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f'{line_label} : description trop longue ({MAX_DESCRIPTION_LENGTH} caractères max.)')

    quantity = _parse_number(raw.get('quantity'), f'{line_label} : quantité')
    if quantity < MIN_QUANTITY:
        raise ValidationError(f'{line_label} : la quantité doit être supérieure à 0')
    quantity = _check_scale(quantity, QUANTITY_STEP, f'{line_label} : quantité limitée à 3 décimales')

    unit_price_ht = _parse_number(_pick(raw, 'unit_price_ht', 'unitPriceHt'), f'{line_label} : prix unitaire HT')
    if unit_price_ht < 0:
        raise ValidationError(f'{line_label} : le prix unitaire HT doit être positif ou nul')
    unit_price_ht = _check_scale(unit_price_ht, PRICE_STEP, f'{line_label} : prix unitaire HT limité à 2 décimales')

    vat_rate = _parse_number(_pick(raw, 'vat_rate', 'vatRate'), f'{line_label} : taux de TVA')
    if vat_rate < 0 or vat_rate > MAX_VAT_RATE:
        raise ValidationError(f'{line_label} : le taux de TVA doit être compris entre 0 et 100')
    vat_rate = _check_scale(vat_rate, RATE_STEP, f'{line_label} : taux de TVA limité à 2 décimales')

    return {
        'kind': kind,
        'part_id': part_id,
        'description': description,
        'quantity': quantity,
        'unit_price_ht': unit_price_ht,
        'vat_rate': vat_rate,
    }


def parse_invoice_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an invoice form/JSON body.

    Expected keys (camelCase accepted as well):
        customer_id: int (required)
        vehicle_id: int | None
        notes: str | None
        invoice_number: str | None (generated when missing)
        due_at: ISO date | None
        items: non-empty list of {kind, part_id?, description, quantity,
               unit_price_ht, vat_rate}

    Returns:
        Normalized dict; numbers are Decimal, kinds are LineItemKind.

    Raises:
        ValidationError: on the first invalid field.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Données invalides')

    customer_id = _parse_id(_pick(payload, 'customer_id', 'customerId'), 'Client', required=True)
    vehicle_id = _parse_id(_pick(payload, 'vehicle_id', 'vehicleId'), 'Véhicule')

    notes = _pick(payload, 'notes')
    notes = notes.strip() or None if isinstance(notes, str) else None

    invoice_number = _pick(payload, 'invoice_number', 'invoiceNumber')
    invoice_number = invoice_number.strip() or None if isinstance(invoice_number, str) else None
    if invoice_number and len(invoice_number) > 32:
        raise ValidationError('Numéro de facture trop long (32 caractères max.)')

    due_at = _parse_datetime(_pick(payload, 'due_at', 'dueAt'), "Date d'échéance")

    raw_items = payload.get('items')
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError('Au moins une ligne requise')

    items: List[Dict[str, Any]] = [parse_invoice_item(raw, index) for index, raw in enumerate(raw_items)]

    return {
        'customer_id': customer_id,
        'vehicle_id': vehicle_id,
        'notes': notes,
        'invoice_number': invoice_number,
        'due_at': due_at,
        'items': items,
    }

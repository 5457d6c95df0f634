"""
Money/tax calculator for invoice lines.

Pure functions, Decimal only. Rounding policy: every line amount is rounded
to cents (ROUND_HALF_UP); the VAT of a line is computed from its rounded HT
amount; document totals are plain sums of the rounded line amounts. Under
that policy total_ttc == subtotal_ht + vat_total holds exactly and the same
inputs always give the same outputs.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Iterable, List

from garage.exceptions import ValidationError

CENT = Decimal('0.01')
HUNDRED = Decimal('100')
ZERO = Decimal('0.00')


def to_cents(value: Decimal) -> Decimal:
    """Round a Decimal amount to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _as_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (Decimal, int)):
        raise ValidationError(f'{field} : valeur décimale attendue')
    value = Decimal(value)
    if not value.is_finite():
        raise ValidationError(f'{field} : valeur invalide')
    return value


def compute_line(quantity, unit_price_ht, vat_rate) -> Dict[str, Decimal]:
    """
    Compute the amounts of a single line.

    Returns:
        dict with line_total_ht, line_vat and line_total_ttc, all in cents.

    Raises:
        ValidationError: non-positive quantity, negative price, VAT rate
            outside 0-100, or a non-finite value.
    """
    quantity = _as_decimal(quantity, 'Quantité')
    unit_price_ht = _as_decimal(unit_price_ht, 'Prix unitaire HT')
    vat_rate = _as_decimal(vat_rate, 'Taux de TVA')

    if quantity <= 0:
        raise ValidationError('La quantité doit être supérieure à 0')
    if unit_price_ht < 0:
        raise ValidationError('Le prix unitaire HT ne peut pas être négatif')
    if vat_rate < 0 or vat_rate > HUNDRED:
        raise ValidationError('Le taux de TVA doit être compris entre 0 et 100')

    line_ht = to_cents(quantity * unit_price_ht)
    line_vat = to_cents(line_ht * vat_rate / HUNDRED)
    return {
        'line_total_ht': line_ht,
        'line_vat': line_vat,
        'line_total_ttc': line_ht + line_vat,
    }


def compute_totals(items: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Compute document totals from line inputs.

    Args:
        items: iterable of dicts with quantity, unit_price_ht and vat_rate
            (Decimal or int).

    Returns:
        dict with subtotal_ht, vat_total, total_ttc and lines (one dict of
        line amounts per input item, same order).
    """
    lines: List[Dict[str, Decimal]] = []
    subtotal_ht = ZERO
    vat_total = ZERO

    for item in items:
        line = compute_line(item['quantity'], item['unit_price_ht'], item['vat_rate'])
        lines.append(line)
        subtotal_ht += line['line_total_ht']
        vat_total += line['line_vat']

    return {
        'subtotal_ht': subtotal_ht,
        'vat_total': vat_total,
        'total_ttc': subtotal_ht + vat_total,
        'lines': lines,
    }

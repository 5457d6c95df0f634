"""Number parsing utilities for user-submitted amounts."""
import re
from decimal import Decimal, InvalidOperation

# 1 234,56 / 1234,56 / 1234.56 / 1234
FR_NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:[ \u00a0\u202f]\d{3})+|\d+)(?:[.,]\d+)?$")


def parse_decimal(value, field_label: str = 'valeur') -> Decimal:
    """
    Parse a submitted number into a Decimal.

    Accepts JSON numbers (int, float, Decimal) and strings using either a dot
    or a comma as decimal separator, with optional space-grouped thousands
    (e.g. "1 234,56"). Booleans, NaN and infinities are rejected.

    Raises:
        ValueError: if the value is missing or not a finite number.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f'{field_label} : nombre requis')

    if isinstance(value, Decimal):
        decimal_value = value
    elif isinstance(value, (int, float)):
        # str() keeps the shortest repr, so 52.1 stays 52.1 and not 52.100000000000001
        decimal_value = _to_decimal(str(value), field_label)
    elif isinstance(value, str):
        cleaned = value.strip()
        if not cleaned or not FR_NUMBER_PATTERN.match(cleaned):
            raise ValueError(f'{field_label} : format invalide, utilisez 1234,56')
        normalized = re.sub(r"[ \u00a0\u202f]", "", cleaned).replace(',', '.')
        decimal_value = _to_decimal(normalized, field_label)
    else:
        raise ValueError(f'{field_label} : nombre requis')

    if not decimal_value.is_finite():
        raise ValueError(f'{field_label} : nombre invalide')

    return decimal_value


def _to_decimal(raw: str, field_label: str) -> Decimal:
    try:
        return Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValueError(f'{field_label} : nombre invalide')

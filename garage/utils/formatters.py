"""
Formatting helpers for amounts and dates.
French conventions: space as thousands separator, comma as decimal separator.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional

THOUSANDS_SEPARATOR = '\u202f'  # narrow no-break space


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return THOUSANDS_SEPARATOR.join(groups)[::-1]


def num_fr(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Format a number the French way, dropping insignificant decimals.

    Examples:
        num_fr(1500) -> "1 500"
        num_fr(Decimal('1500.50')) -> "1 500,5"
        num_fr(Decimal('2.000')) -> "2"
        num_fr(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        if isinstance(value, str):
            value = value.replace(",", ".")
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if not num.is_finite():
        return "-"

    if num == 0:
        return "0"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals)

    num_str = f"{num:f}"
    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
        if decimals is None:
            decimal_part = decimal_part.rstrip('0')
    else:
        integer_part, decimal_part = num_str, ""

    sign_str = ''
    if integer_part.startswith('-'):
        sign_str = '-'
        integer_part = integer_part[1:]

    integer_formatted = _group_thousands(integer_part)
    if decimal_part:
        return f"{sign_str}{integer_formatted},{decimal_part}"
    return f"{sign_str}{integer_formatted}"


def money_fr(value: Union[int, float, Decimal, str, None], currency: str = '€') -> str:
    """
    Format an amount with exactly two decimals and the currency symbol.

    Examples:
        money_fr(Decimal('170.4')) -> "170,40 €"
        money_fr(1234.5) -> "1 234,50 €"
    """
    if value is None or value == "":
        return "-"

    try:
        normalized = str(value).replace(",", ".")
        num = Decimal(normalized).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    integer_part, decimal_part = f"{abs(num):.2f}".split(".")
    return f"{sign}{_group_thousands(integer_part)},{decimal_part} {currency}"


def date_fr(value: Union[date, datetime, None]) -> str:
    """Format a date as DD/MM/YYYY, "-" when missing."""
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")

"""Invoice number generation backed by an atomic per-year counter."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from garage.models import Invoice, InvoiceSequence

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = 'FAC'


def format_invoice_number(prefix: str, year: int, value: int) -> str:
    """FAC-2026-0007 style number."""
    return f"{prefix}-{year}-{str(value).zfill(4)}"


def highest_used_value(session: Session, prefix: str, year: int) -> int:
    """Largest NNNN among the stored PREFIX-YEAR-NNNN numbers (0 when none)."""
    stem = f"{prefix}-{year}-"
    numbers = (session.query(Invoice.invoice_number)
               .filter(Invoice.invoice_number.like(f'{stem}%'))
               .all())
    suffixes = [number[len(stem):] for (number,) in numbers]
    return max((int(suffix) for suffix in suffixes if suffix.isdigit()), default=0)


def _bump(session: Session, year: int) -> Optional[int]:
    updated = (session.query(InvoiceSequence)
               .filter(InvoiceSequence.year == year)
               .update({InvoiceSequence.last_value: InvoiceSequence.last_value + 1},
                       synchronize_session=False))
    if not updated:
        return None
    return (session.query(InvoiceSequence.last_value)
            .filter(InvoiceSequence.year == year)
            .scalar())


def _is_taken(session: Session, invoice_number: str) -> bool:
    return session.query(Invoice.id).filter(Invoice.invoice_number == invoice_number).first() is not None


def next_invoice_number(session: Session, prefix: str = DEFAULT_PREFIX, year: Optional[int] = None) -> str:
    """
    Reserve the next invoice number for the given year.

    The counter row is bumped with a single UPDATE so concurrent writers
    serialize on the row instead of reading the same count. The first call of
    a year seeds the row past the highest number already used that year.
    Numbers typed by users can run ahead of the counter: when the reserved
    value is already taken, the counter jumps past the highest used value.

    A concurrent seed or insert surfaces as an IntegrityError on flush, which
    the caller handles by rolling back and retrying; the retry sees the
    committed rows and moves past them.

    Must run inside the caller's transaction (no commit here).
    """
    year = year or datetime.now().year

    value = _bump(session, year)
    if value is None:
        value = highest_used_value(session, prefix, year) + 1
        session.add(InvoiceSequence(year=year, last_value=value))
        session.flush()
        logger.info(f"[INVOICE] Sequence for {year} seeded at {value}")

    invoice_number = format_invoice_number(prefix, year, value)
    if _is_taken(session, invoice_number):
        value = highest_used_value(session, prefix, year) + 1
        (session.query(InvoiceSequence)
         .filter(InvoiceSequence.year == year, InvoiceSequence.last_value < value)
         .update({InvoiceSequence.last_value: value}, synchronize_session=False))
        invoice_number = format_invoice_number(prefix, year, value)
        logger.info(f"[INVOICE] Sequence for {year} moved past typed numbers to {value}")

    return invoice_number

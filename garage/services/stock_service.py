"""Part stock movements triggered by invoice issuance."""
import logging
from decimal import Decimal
from typing import Dict

from sqlalchemy.orm import Session

from garage.exceptions import NotFoundError, InsufficientStockError
from garage.models import Part, LineItemKind

logger = logging.getLogger(__name__)


def part_quantities(items) -> Dict[int, Decimal]:
    """Sum quantities per part for the PART lines that reference a part, ordered by part id."""
    totals: Dict[int, Decimal] = {}
    for item in items:
        if item.kind == LineItemKind.PART and item.part_id:
            totals[item.part_id] = totals.get(item.part_id, Decimal('0')) + Decimal(item.quantity)
    # Part rows are always updated in ascending id order
    return dict(sorted(totals.items()))


def decrement_stock(session: Session, part_id: int, qty: Decimal, allow_negative: bool = True) -> None:
    """
    Atomically decrement a part's stock.

    Runs as one conditional UPDATE; with allow_negative=False the row is only
    touched while stock_qty >= qty.

    Raises:
        NotFoundError: unknown part.
        InsufficientStockError: not enough stock and negatives not allowed.
    """
    query = session.query(Part).filter(Part.id == part_id)
    if not allow_negative:
        query = query.filter(Part.stock_qty >= qty)

    updated = query.update({Part.stock_qty: Part.stock_qty - qty}, synchronize_session=False)
    if updated:
        return

    part = session.query(Part).filter(Part.id == part_id).first()
    if not part:
        raise NotFoundError(f'Pièce {part_id} introuvable')
    raise InsufficientStockError(part.name, qty, part.stock_qty)


def restore_stock(session: Session, part_id: int, qty: Decimal) -> None:
    """Give quantity back to a part (atomic increment)."""
    updated = (session.query(Part)
               .filter(Part.id == part_id)
               .update({Part.stock_qty: Part.stock_qty + qty}, synchronize_session=False))
    if not updated:
        raise NotFoundError(f'Pièce {part_id} introuvable')


def consume_invoice_parts(session: Session, invoice, allow_negative: bool = True) -> None:
    """Decrement stock for every PART line of an invoice being issued."""
    for part_id, qty in part_quantities(invoice.items).items():
        decrement_stock(session, part_id, qty, allow_negative=allow_negative)
        logger.info(f"[STOCK] Part {part_id} -{qty} (invoice {invoice.invoice_number})")


def release_invoice_parts(session: Session, invoice) -> None:
    """Give back the stock consumed by an invoice."""
    for part_id, qty in part_quantities(invoice.items).items():
        restore_stock(session, part_id, qty)
        logger.info(f"[STOCK] Part {part_id} +{qty} (invoice {invoice.invoice_number})")

"""Invoice service with transactional logic.

Every mutation follows the same shape: load + authorize + check lifecycle,
validate and compute totals, write header and items, commit once. Any error
rolls the whole unit back; the mutation signal is only sent after commit.
"""
import logging
from decimal import Decimal
from typing import Dict, Any, List, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from garage.exceptions import (
    GarageError, BusinessLogicError, ValidationError, NotFoundError, Forbidden
)
from garage.models import (
    Invoice, InvoiceItem, InvoiceStatus, LineItemKind, Customer, Vehicle, Part
)
from garage.services.invoice_access import ensure_can_read, ensure_can_write, visible_invoices_query
from garage.services.invoice_lifecycle import (
    apply_transition, coerce_status, ensure_editable, ensure_deletable,
    STOCK_DECREMENT, STOCK_RESTORE
)
from garage.services.invoice_number_service import next_invoice_number
from garage.services.invoice_payload import parse_invoice_payload
from garage.services.invoice_totals import compute_totals, ZERO
from garage.services.stock_service import consume_invoice_parts, release_invoice_parts
from garage.signals import notify_invoice_mutation

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'INVOICE_NUMBER_PREFIX': 'FAC',
    'INVOICE_NUMBER_MAX_RETRIES': 3,
    'RESTORE_STOCK_ON_CANCEL': False,
    'ALLOW_NEGATIVE_STOCK': True,
}


def _setting(name: str):
    if has_app_context():
        return current_app.config.get(name, DEFAULT_SETTINGS[name])
    return DEFAULT_SETTINGS[name]


def _require_user(acting_user) -> None:
    if acting_user is None:
        raise Forbidden('Authentification requise')


def _get_invoice_or_404(session: Session, invoice_id: int, for_update: bool = False) -> Invoice:
    query = session.query(Invoice).filter(Invoice.id == invoice_id)
    if for_update:
        query = query.with_for_update()
    invoice = query.first()
    if not invoice:
        raise NotFoundError(f'Facture {invoice_id} introuvable')
    return invoice


def _check_references(session: Session, data: Dict[str, Any]) -> None:
    """Customer, vehicle and parts referenced by the payload must exist."""
    customer = session.query(Customer).filter(Customer.id == data['customer_id']).first()
    if not customer:
        raise NotFoundError(f"Client {data['customer_id']} introuvable")

    if data['vehicle_id'] is not None:
        vehicle = session.query(Vehicle).filter(Vehicle.id == data['vehicle_id']).first()
        if not vehicle:
            raise NotFoundError(f"Véhicule {data['vehicle_id']} introuvable")
        if vehicle.customer_id != customer.id:
            raise ValidationError("Ce véhicule n'appartient pas au client sélectionné")

    part_ids = {item['part_id'] for item in data['items'] if item['part_id'] is not None}
    if part_ids:
        found = {pid for (pid,) in session.query(Part.id).filter(Part.id.in_(part_ids)).all()}
        missing = sorted(part_ids - found)
        if missing:
            raise NotFoundError(f'Pièce(s) introuvable(s) : {", ".join(str(pid) for pid in missing)}')


def _check_number_available(session: Session, invoice_number: str, exclude_id: Optional[int] = None) -> None:
    query = session.query(Invoice.id).filter(Invoice.invoice_number == invoice_number)
    if exclude_id is not None:
        query = query.filter(Invoice.id != exclude_id)
    if query.first():
        raise ValidationError(f'Le numéro de facture "{invoice_number}" existe déjà')


def _build_items(items: List[Dict[str, Any]], totals: Dict[str, Any]) -> List[InvoiceItem]:
    """Fresh InvoiceItem rows, positions 0..n-1 in submitted order."""
    rows = []
    for position, (item, line) in enumerate(zip(items, totals['lines'])):
        rows.append(InvoiceItem(
            kind=item['kind'],
            part_id=item['part_id'] if item['kind'] == LineItemKind.PART else None,
            description=item['description'],
            quantity=item['quantity'],
            unit_price_ht=item['unit_price_ht'],
            vat_rate=item['vat_rate'],
            line_total_ht=line['line_total_ht'],
            line_total_ttc=line['line_total_ttc'],
            position=position
        ))
    return rows


def _apply_totals(invoice: Invoice, totals: Dict[str, Any]) -> None:
    invoice.subtotal_ht = totals['subtotal_ht']
    invoice.vat_total = totals['vat_total']
    invoice.total_ttc = totals['total_ttc']


def _run_stock_effects(session: Session, invoice: Invoice, effects: List[str]) -> None:
    if STOCK_DECREMENT in effects:
        consume_invoice_parts(session, invoice, allow_negative=_setting('ALLOW_NEGATIVE_STOCK'))
    if STOCK_RESTORE in effects:
        release_invoice_parts(session, invoice)


def _is_number_conflict(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return 'invoice_number' in message or 'invoice_sequence' in message


def _insert_new_invoice(session: Session, build, requested_number: Optional[str]) -> Invoice:
    """
    Run build(invoice_number) and commit, retrying on number conflicts.

    build must add the invoice to the session and return it. A caller-chosen
    number is never retried: a conflict on it is a validation error.
    """
    max_retries = max(1, int(_setting('INVOICE_NUMBER_MAX_RETRIES')))
    prefix = _setting('INVOICE_NUMBER_PREFIX')

    for attempt in range(1, max_retries + 1):
        try:
            invoice_number = requested_number or next_invoice_number(session, prefix=prefix)
            invoice = build(invoice_number)
            session.commit()
            return invoice
        except GarageError:
            session.rollback()
            raise
        except IntegrityError as e:
            session.rollback()
            if not _is_number_conflict(e):
                raise
            if requested_number:
                raise ValidationError(f'Le numéro de facture "{requested_number}" existe déjà')
            logger.warning(f"[INVOICE] Number conflict on attempt {attempt}/{max_retries}, retrying")
        except Exception:
            session.rollback()
            raise

    raise BusinessLogicError("Impossible d'attribuer un numéro de facture, veuillez réessayer.")


def create_invoice(payload: dict, session: Session, acting_user, issue: bool = False) -> Invoice:
    """
    Create an invoice with its items.

    Steps:
    1. Validate payload and referenced customer/vehicle/parts
    2. Compute totals
    3. Reserve a number (unless one was submitted)
    4. Insert header + items, owned by the acting user and their group
    5. When issue=True, move to ISSUED and decrement part stock
    6. Commit and signal

    Args:
        payload: invoice data, see parse_invoice_payload
        session: SQLAlchemy session
        acting_user: AppUser creating the invoice
        issue: create-and-issue variant

    Returns:
        The persisted Invoice.
    """
    _require_user(acting_user)
    data = parse_invoice_payload(payload)
    _check_references(session, data)
    if data['invoice_number']:
        _check_number_available(session, data['invoice_number'])
    totals = compute_totals(data['items'])

    def build(invoice_number):
        invoice = Invoice(
            invoice_number=invoice_number,
            status=InvoiceStatus.DRAFT,
            customer_id=data['customer_id'],
            vehicle_id=data['vehicle_id'],
            notes=data['notes'],
            due_at=data['due_at'],
            created_by_id=acting_user.id,
            group_id=acting_user.group_id
        )
        _apply_totals(invoice, totals)
        invoice.items = _build_items(data['items'], totals)
        session.add(invoice)
        session.flush()

        if issue:
            effects = apply_transition(invoice, InvoiceStatus.ISSUED)
            _run_stock_effects(session, invoice, effects)
        return invoice

    invoice = _insert_new_invoice(session, build, data['invoice_number'])
    logger.info(
        f"[INVOICE] Created {invoice.invoice_number} (id={invoice.id}, status={invoice.status.value}, "
        f"total_ttc={invoice.total_ttc}) by user {acting_user.id}"
    )
    notify_invoice_mutation('create', invoice.id)
    return invoice


def update_invoice(invoice_id: int, payload: dict, session: Session, acting_user) -> Invoice:
    """
    Replace header and items of a DRAFT or ISSUED invoice.

    All existing items are deleted and the submitted list is recreated with
    fresh positions; totals are recomputed. The invoice number can only be
    changed while the invoice is a DRAFT.

    Raises:
        NotFoundError, Forbidden, ImmutableInvoiceError, ValidationError
    """
    _require_user(acting_user)
    new_number = None
    try:
        invoice = _get_invoice_or_404(session, invoice_id, for_update=True)
        ensure_can_write(invoice, acting_user)
        ensure_editable(invoice)

        data = parse_invoice_payload(payload)
        _check_references(session, data)

        new_number = data['invoice_number']
        if new_number and new_number != invoice.invoice_number:
            if invoice.status != InvoiceStatus.DRAFT:
                raise ValidationError("Le numéro d'une facture émise ne peut plus être modifié")
            _check_number_available(session, new_number, exclude_id=invoice.id)
            invoice.invoice_number = new_number

        totals = compute_totals(data['items'])

        # Drop the previous lines before inserting the new set
        invoice.items.clear()
        session.flush()

        invoice.customer_id = data['customer_id']
        invoice.vehicle_id = data['vehicle_id']
        invoice.notes = data['notes']
        invoice.due_at = data['due_at']
        _apply_totals(invoice, totals)
        invoice.items.extend(_build_items(data['items'], totals))

        session.commit()
    except GarageError:
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        if _is_number_conflict(e):
            raise ValidationError(f'Le numéro de facture "{new_number}" existe déjà')
        raise
    except Exception:
        session.rollback()
        raise

    logger.info(f"[INVOICE] Updated {invoice.invoice_number} (id={invoice.id}, total_ttc={invoice.total_ttc})")
    notify_invoice_mutation('update', invoice.id)
    return invoice


def change_status(invoice_id: int, target_status, session: Session, acting_user) -> Invoice:
    """
    Apply a lifecycle transition.

    DRAFT -> ISSUED stamps issued_at (once) and decrements part stock;
    ISSUED -> PAID stamps paid_at; cancellations only flip the status unless
    RESTORE_STOCK_ON_CANCEL is enabled.

    Raises:
        NotFoundError, Forbidden, ValidationError (unknown status),
        InvalidTransition, InsufficientStockError
    """
    _require_user(acting_user)
    try:
        invoice = _get_invoice_or_404(session, invoice_id, for_update=True)
        ensure_can_write(invoice, acting_user)
        target = coerce_status(target_status)

        previous = invoice.status
        effects = apply_transition(
            invoice, target,
            restore_stock_on_cancel=_setting('RESTORE_STOCK_ON_CANCEL')
        )
        _run_stock_effects(session, invoice, effects)
        session.commit()
    except GarageError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise

    if previous != target:
        logger.info(f"[INVOICE] {invoice.invoice_number}: {previous.value} -> {target.value}")
        notify_invoice_mutation('status', invoice.id)
    return invoice


def delete_invoice(invoice_id: int, session: Session, acting_user) -> None:
    """
    Delete a DRAFT or CANCELED invoice, items first, then the header.

    Raises:
        NotFoundError, Forbidden, CannotDeletePaidInvoice, CannotDeleteIssuedInvoice
    """
    _require_user(acting_user)
    try:
        invoice = _get_invoice_or_404(session, invoice_id, for_update=True)
        ensure_can_write(invoice, acting_user)
        ensure_deletable(invoice)

        invoice_number = invoice.invoice_number
        session.query(InvoiceItem).filter(InvoiceItem.invoice_id == invoice.id).delete(synchronize_session=False)
        session.expire(invoice, ['items'])
        session.delete(invoice)
        session.commit()
    except GarageError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise

    logger.info(f"[INVOICE] Deleted {invoice_number} (id={invoice_id})")
    notify_invoice_mutation('delete', invoice_id)


def duplicate_invoice(invoice_id: int, session: Session, acting_user) -> Invoice:
    """
    Copy an invoice into a new DRAFT.

    Customer, vehicle, notes and items are copied; id, number and positions
    are fresh; ownership is the acting user's (and their group), not the
    source's.
    """
    _require_user(acting_user)
    source = _get_invoice_or_404(session, invoice_id)
    ensure_can_read(source, acting_user)

    items = [{
        'kind': item.kind,
        'part_id': item.part_id,
        'description': item.description,
        'quantity': Decimal(item.quantity),
        'unit_price_ht': Decimal(item.unit_price_ht),
        'vat_rate': Decimal(item.vat_rate),
    } for item in sorted(source.items, key=lambda i: i.position)]
    totals = compute_totals(items)

    header = {
        'customer_id': source.customer_id,
        'vehicle_id': source.vehicle_id,
        'notes': source.notes,
    }

    def build(invoice_number):
        invoice = Invoice(
            invoice_number=invoice_number,
            status=InvoiceStatus.DRAFT,
            created_by_id=acting_user.id,
            group_id=acting_user.group_id,
            **header
        )
        _apply_totals(invoice, totals)
        invoice.items = _build_items(items, totals)
        session.add(invoice)
        session.flush()
        return invoice

    invoice = _insert_new_invoice(session, build, None)
    logger.info(f"[INVOICE] Duplicated invoice {invoice_id} into {invoice.invoice_number} (id={invoice.id})")
    notify_invoice_mutation('duplicate', invoice.id)
    return invoice


def get_invoice(invoice_id: int, session: Session, acting_user) -> Invoice:
    """Load one invoice the acting user may read."""
    _require_user(acting_user)
    invoice = _get_invoice_or_404(session, invoice_id)
    ensure_can_read(invoice, acting_user)
    return invoice


def list_invoices(session: Session, acting_user, status=None, search: Optional[str] = None) -> List[Invoice]:
    """Invoices visible to the acting user, newest first."""
    _require_user(acting_user)
    query = visible_invoices_query(session.query(Invoice), acting_user)

    if status:
        query = query.filter(Invoice.status == coerce_status(status))

    if search:
        query = query.filter(Invoice.invoice_number.ilike(f'%{search.strip()}%'))

    return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()


def invoice_stats(invoices: List[Invoice]) -> Dict[str, Any]:
    """Counts per status and paid / pending TTC amounts."""
    stats = {
        'total': len(invoices),
        'draft': 0,
        'issued': 0,
        'paid': 0,
        'canceled': 0,
        'total_paid': ZERO,
        'total_pending': ZERO,
    }
    for invoice in invoices:
        stats[invoice.status.value.lower()] += 1
        if invoice.status == InvoiceStatus.PAID:
            stats['total_paid'] += Decimal(invoice.total_ttc)
        elif invoice.status == InvoiceStatus.ISSUED:
            stats['total_pending'] += Decimal(invoice.total_ttc)
    return stats

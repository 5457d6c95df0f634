"""
Invoice lifecycle state machine.

    DRAFT -> ISSUED -> PAID
    DRAFT -> CANCELED, ISSUED -> CANCELED
    ISSUED -> DRAFT (revert), DRAFT -> DRAFT (no-op)

PAID and CANCELED are terminal. This module only decides and stamps; stock
side effects are returned to the caller, which runs them inside its
transaction.
"""
from datetime import datetime
from typing import List, Optional

from garage.exceptions import (
    ValidationError, InvalidTransition, ImmutableInvoiceError,
    CannotDeletePaidInvoice, CannotDeleteIssuedInvoice
)
from garage.models import InvoiceStatus

# Side effects the caller has to apply
STOCK_DECREMENT = 'stock_decrement'
STOCK_RESTORE = 'stock_restore'

TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.DRAFT, InvoiceStatus.ISSUED, InvoiceStatus.CANCELED},
    InvoiceStatus.ISSUED: {InvoiceStatus.PAID, InvoiceStatus.CANCELED, InvoiceStatus.DRAFT},
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELED: set(),
}

EDITABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.ISSUED})


def coerce_status(value) -> InvoiceStatus:
    """Turn a submitted status ('issued', 'PAID', InvoiceStatus.PAID) into an InvoiceStatus."""
    if isinstance(value, InvoiceStatus):
        return value
    if isinstance(value, str):
        try:
            return InvoiceStatus[value.strip().upper()]
        except KeyError:
            pass
    raise ValidationError(
        'Statut invalide. Valeurs possibles : DRAFT, ISSUED, PAID, CANCELED',
        payload={'status': str(value)}
    )


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in TRANSITIONS.get(current, set())


def ensure_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def apply_transition(invoice, target, now: Optional[datetime] = None,
                     restore_stock_on_cancel: bool = False) -> List[str]:
    """
    Move invoice to target status, stamping issued_at / paid_at.

    Nothing is modified when the transition is refused.

    Returns:
        List of side effects (STOCK_DECREMENT, STOCK_RESTORE) the caller must
        apply to the invoice's PART lines.

    Raises:
        ValidationError: unknown target status.
        InvalidTransition: transition not in the table.
    """
    target = coerce_status(target)
    current = invoice.status
    ensure_transition(current, target)

    now = now or datetime.now()
    effects = []

    if current == InvoiceStatus.DRAFT and target == InvoiceStatus.ISSUED:
        if invoice.issued_at is None:
            invoice.issued_at = now
        effects.append(STOCK_DECREMENT)
    elif current == InvoiceStatus.ISSUED and target == InvoiceStatus.PAID:
        invoice.paid_at = now
    elif current == InvoiceStatus.ISSUED and target == InvoiceStatus.CANCELED:
        if restore_stock_on_cancel:
            effects.append(STOCK_RESTORE)

    invoice.status = target
    return effects


def ensure_editable(invoice) -> None:
    """Header + items edits are only allowed on DRAFT and ISSUED invoices."""
    if invoice.status not in EDITABLE_STATUSES:
        raise ImmutableInvoiceError()


def ensure_deletable(invoice) -> None:
    """Only DRAFT and CANCELED invoices can be deleted."""
    if invoice.status == InvoiceStatus.PAID:
        raise CannotDeletePaidInvoice()
    if invoice.status == InvoiceStatus.ISSUED:
        raise CannotDeleteIssuedInvoice()

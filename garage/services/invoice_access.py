"""
Access policy for invoices.

A user may act on an invoice when they are ADMIN, when they created it, or
when they belong to the (non-null) group the invoice is stamped with. Read
and write share this rule today; they are kept as two predicates so a
stricter write rule can be introduced without touching the callers.
"""
from sqlalchemy import or_

from garage.exceptions import Forbidden
from garage.models import Invoice


def can_access_invoice(invoice, user) -> bool:
    """ADMIN, creator, or member of the invoice's (non-null) group."""
    if user is None:
        return False
    if user.is_admin:
        return True
    if invoice.created_by_id == user.id:
        return True
    if user.group_id is not None and invoice.group_id == user.group_id:
        return True
    return False


def can_read_invoice(invoice, user) -> bool:
    return can_access_invoice(invoice, user)


def can_write_invoice(invoice, user) -> bool:
    return can_access_invoice(invoice, user)


def ensure_can_read(invoice, user) -> None:
    if not can_read_invoice(invoice, user):
        raise Forbidden("Vous n'avez pas accès à cette facture")


def ensure_can_write(invoice, user) -> None:
    if not can_write_invoice(invoice, user):
        raise Forbidden("Vous n'avez pas le droit de modifier cette facture")


def visible_invoices_query(query, user):
    """
    Restrict an Invoice query to the rows the user may read.

    Admins see everything; other users their own invoices plus those of
    their group.
    """
    if user.is_admin:
        return query

    conditions = [Invoice.created_by_id == user.id]
    if user.group_id is not None:
        conditions.append(Invoice.group_id == user.group_id)
    return query.filter(or_(*conditions))

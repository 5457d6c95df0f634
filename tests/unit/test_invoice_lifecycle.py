"""
Unit tests for the invoice state machine.
"""

import pytest
from datetime import datetime
from types import SimpleNamespace

from garage.exceptions import (
    ValidationError, InvalidTransition, ImmutableInvoiceError,
    CannotDeletePaidInvoice, CannotDeleteIssuedInvoice
)
from garage.models import InvoiceStatus
from garage.services.invoice_lifecycle import (
    TRANSITIONS, STOCK_DECREMENT, STOCK_RESTORE,
    apply_transition, can_transition, coerce_status, ensure_editable, ensure_deletable
)

NOW = datetime(2026, 3, 14, 10, 30)

ALLOWED = {
    (InvoiceStatus.DRAFT, InvoiceStatus.DRAFT),
    (InvoiceStatus.DRAFT, InvoiceStatus.ISSUED),
    (InvoiceStatus.DRAFT, InvoiceStatus.CANCELED),
    (InvoiceStatus.ISSUED, InvoiceStatus.PAID),
    (InvoiceStatus.ISSUED, InvoiceStatus.CANCELED),
    (InvoiceStatus.ISSUED, InvoiceStatus.DRAFT),
}

ALL_PAIRS = [(current, target) for current in InvoiceStatus for target in InvoiceStatus]


def _invoice(status, issued_at=None, paid_at=None):
    return SimpleNamespace(status=status, issued_at=issued_at, paid_at=paid_at)


class TestTransitionTable:

    def test_table_matches_allowed_pairs(self):
        pairs = {(current, target) for current, targets in TRANSITIONS.items() for target in targets}
        assert pairs == ALLOWED

    @pytest.mark.parametrize('current,target', [p for p in ALL_PAIRS if p not in ALLOWED])
    def test_refused_transition_leaves_invoice_untouched(self, current, target):
        invoice = _invoice(current)

        assert not can_transition(current, target)
        with pytest.raises(InvalidTransition) as exc_info:
            apply_transition(invoice, target, now=NOW)

        assert invoice.status == current
        assert invoice.issued_at is None
        assert invoice.paid_at is None
        assert exc_info.value.status_code == 409
        assert exc_info.value.to_dict()['from'] == current.value

    def test_draft_to_paid_must_go_through_issued(self):
        with pytest.raises(InvalidTransition):
            apply_transition(_invoice(InvoiceStatus.DRAFT), 'PAID', now=NOW)


class TestApplyTransition:

    def test_issue_stamps_date_and_requests_stock_decrement(self):
        invoice = _invoice(InvoiceStatus.DRAFT)
        effects = apply_transition(invoice, InvoiceStatus.ISSUED, now=NOW)

        assert invoice.status == InvoiceStatus.ISSUED
        assert invoice.issued_at == NOW
        assert effects == [STOCK_DECREMENT]

    def test_reissue_keeps_first_issue_date(self):
        first = datetime(2026, 1, 2)
        invoice = _invoice(InvoiceStatus.DRAFT, issued_at=first)
        apply_transition(invoice, InvoiceStatus.ISSUED, now=NOW)
        assert invoice.issued_at == first

    def test_pay_stamps_paid_at(self):
        invoice = _invoice(InvoiceStatus.ISSUED, issued_at=NOW)
        assert apply_transition(invoice, 'paid', now=NOW) == []
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_at == NOW

    def test_cancel_issued_keeps_stock_by_default(self):
        invoice = _invoice(InvoiceStatus.ISSUED)
        assert apply_transition(invoice, InvoiceStatus.CANCELED, now=NOW) == []
        assert invoice.status == InvoiceStatus.CANCELED

    def test_cancel_issued_can_restore_stock(self):
        invoice = _invoice(InvoiceStatus.ISSUED)
        effects = apply_transition(invoice, InvoiceStatus.CANCELED, now=NOW, restore_stock_on_cancel=True)
        assert effects == [STOCK_RESTORE]

    def test_cancel_draft_never_restores_stock(self):
        invoice = _invoice(InvoiceStatus.DRAFT)
        effects = apply_transition(invoice, InvoiceStatus.CANCELED, now=NOW, restore_stock_on_cancel=True)
        assert effects == []

    def test_draft_to_draft_is_a_no_op(self):
        invoice = _invoice(InvoiceStatus.DRAFT)
        assert apply_transition(invoice, InvoiceStatus.DRAFT, now=NOW) == []
        assert invoice.status == InvoiceStatus.DRAFT

    def test_unknown_status_is_a_validation_error(self):
        invoice = _invoice(InvoiceStatus.DRAFT)
        with pytest.raises(ValidationError):
            apply_transition(invoice, 'ARCHIVED', now=NOW)
        assert invoice.status == InvoiceStatus.DRAFT


class TestCoerceStatus:

    @pytest.mark.parametrize('raw', ['ISSUED', 'issued', ' Issued ', InvoiceStatus.ISSUED])
    def test_accepted_spellings(self, raw):
        assert coerce_status(raw) == InvoiceStatus.ISSUED

    @pytest.mark.parametrize('raw', [None, '', 'SENT', 3])
    def test_rejected_values(self, raw):
        with pytest.raises(ValidationError):
            coerce_status(raw)


class TestMutationPreconditions:

    @pytest.mark.parametrize('status', [InvoiceStatus.DRAFT, InvoiceStatus.ISSUED])
    def test_editable_statuses(self, status):
        ensure_editable(_invoice(status))

    @pytest.mark.parametrize('status', [InvoiceStatus.PAID, InvoiceStatus.CANCELED])
    def test_terminal_statuses_are_immutable(self, status):
        with pytest.raises(ImmutableInvoiceError) as exc_info:
            ensure_editable(_invoice(status))
        assert 'avoir' in exc_info.value.message

    @pytest.mark.parametrize('status', [InvoiceStatus.DRAFT, InvoiceStatus.CANCELED])
    def test_deletable_statuses(self, status):
        ensure_deletable(_invoice(status))

    def test_paid_cannot_be_deleted(self):
        with pytest.raises(CannotDeletePaidInvoice):
            ensure_deletable(_invoice(InvoiceStatus.PAID))

    def test_issued_cannot_be_deleted(self):
        with pytest.raises(CannotDeleteIssuedInvoice) as exc_info:
            ensure_deletable(_invoice(InvoiceStatus.ISSUED))
        assert 'Annulez' in exc_info.value.message

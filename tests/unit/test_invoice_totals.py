"""
Unit tests for the money/tax calculator.
"""

import pytest
from decimal import Decimal

from garage.exceptions import ValidationError
from garage.services.invoice_totals import compute_line, compute_totals, to_cents


def _item(quantity, price, vat):
    return {'quantity': Decimal(quantity), 'unit_price_ht': Decimal(price), 'vat_rate': Decimal(vat)}


class TestComputeLine:

    def test_simple_line(self):
        line = compute_line(Decimal('2'), Decimal('45.00'), Decimal('20'))
        assert line == {
            'line_total_ht': Decimal('90.00'),
            'line_vat': Decimal('18.00'),
            'line_total_ttc': Decimal('108.00'),
        }

    def test_line_amounts_are_rounded_half_up(self):
        """1.5 x 0.35 = 0.525 -> 0.53; VAT 5.5% of 0.53 = 0.02915 -> 0.03"""
        line = compute_line(Decimal('1.5'), Decimal('0.35'), Decimal('5.5'))
        assert line['line_total_ht'] == Decimal('0.53')
        assert line['line_vat'] == Decimal('0.03')
        assert line['line_total_ttc'] == Decimal('0.56')

    def test_zero_price_and_zero_vat_allowed(self):
        line = compute_line(Decimal('1'), Decimal('0'), Decimal('0'))
        assert line['line_total_ttc'] == Decimal('0.00')

    def test_integers_accepted(self):
        assert compute_line(3, 10, 20)['line_total_ttc'] == Decimal('36.00')

    @pytest.mark.parametrize('quantity', [Decimal('0'), Decimal('-1')])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError):
            compute_line(quantity, Decimal('10'), Decimal('20'))

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            compute_line(Decimal('1'), Decimal('-0.01'), Decimal('20'))

    @pytest.mark.parametrize('vat', [Decimal('-1'), Decimal('100.01')])
    def test_vat_rate_out_of_range_rejected(self, vat):
        with pytest.raises(ValidationError):
            compute_line(Decimal('1'), Decimal('10'), vat)

    def test_float_rejected(self):
        """Binary floats never reach money arithmetic."""
        with pytest.raises(ValidationError):
            compute_line(1.0, Decimal('10'), Decimal('20'))

    def test_nan_rejected(self):
        with pytest.raises(ValidationError):
            compute_line(Decimal('NaN'), Decimal('10'), Decimal('20'))


class TestComputeTotals:

    def test_labor_and_parts_example(self):
        """52.00 of labor + 2 x 45.00 of parts at 20% VAT."""
        totals = compute_totals([_item('1', '52.00', '20'), _item('2', '45.00', '20')])

        assert totals['subtotal_ht'] == Decimal('142.00')
        assert totals['vat_total'] == Decimal('28.40')
        assert totals['total_ttc'] == Decimal('170.40')
        assert [line['line_total_ht'] for line in totals['lines']] == [Decimal('52.00'), Decimal('90.00')]

    def test_empty_list_gives_zero_totals(self):
        totals = compute_totals([])
        assert totals['subtotal_ht'] == Decimal('0.00')
        assert totals['total_ttc'] == Decimal('0.00')
        assert totals['lines'] == []

    def test_ttc_is_exactly_ht_plus_vat_with_mixed_rates(self):
        items = [
            _item('3', '19.99', '20'),
            _item('0.333', '7.77', '5.5'),
            _item('1.25', '103.45', '10'),
            _item('7', '0.01', '2.1'),
        ]
        totals = compute_totals(items)

        assert totals['subtotal_ht'] + totals['vat_total'] == totals['total_ttc']
        assert totals['subtotal_ht'] == sum(line['line_total_ht'] for line in totals['lines'])
        assert totals['vat_total'] == sum(
            to_cents(line['line_total_ht'] * item['vat_rate'] / 100)
            for line, item in zip(totals['lines'], items)
        )

    def test_recomputation_is_stable(self):
        items = [_item('1.5', '33.33', '20'), _item('2', '12.345', '5.5')]
        assert compute_totals(items) == compute_totals(items)

    def test_invalid_line_rejects_whole_document(self):
        with pytest.raises(ValidationError):
            compute_totals([_item('1', '10', '20'), _item('0', '10', '20')])

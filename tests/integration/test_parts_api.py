"""
Integration tests for the parts listing.
"""

from decimal import Decimal

from garage.models import Part
from garage.services.part_service import list_parts


def _add_part(session, name, stock, threshold=0, reference=None):
    part = Part(name=name, reference=reference, sale_price_ht=Decimal('12.50'),
                vat_rate=Decimal('20'), stock_qty=Decimal(stock), low_stock_threshold=threshold)
    session.add(part)
    session.commit()
    return part


class TestPartService:

    def test_ordered_by_name(self, session, part):
        _add_part(session, 'Filtre à huile', 4, reference='FLT-010')
        _add_part(session, 'Ampoule H7', 20)
        assert [p.name for p in list_parts(session)] == ['Ampoule H7', 'Filtre à huile', 'Plaquettes de frein']

    def test_search_by_reference(self, session, part):
        _add_part(session, 'Filtre à huile', 4, reference='FLT-010')
        assert [p.name for p in list_parts(session, search='plq')] == ['Plaquettes de frein']

    def test_low_stock(self, session, part):
        low = _add_part(session, 'Filtre à huile', 2, threshold=5)
        assert low.is_low_stock
        assert not part.is_low_stock
        assert [p.id for p in list_parts(session, low_stock_only=True)] == [low.id]


class TestPartsApi:

    def test_requires_login(self, client):
        assert client.get('/api/parts/').status_code == 401

    def test_listing(self, login, owner, part):
        client = login(owner)
        data = client.get('/api/parts/').get_json()
        assert data == [{
            'id': part.id,
            'reference': 'PLQ-001',
            'name': 'Plaquettes de frein',
            'sale_price_ht': '45.00',
            'vat_rate': '20.00',
            'stock_qty': '10.00',
            'low_stock_threshold': 0,
            'is_low_stock': False,
        }]

    def test_low_stock_filter(self, login, session, owner, part):
        _add_part(session, 'Filtre à huile', 1, threshold=3)
        client = login(owner)
        assert [p['name'] for p in client.get('/api/parts/?low_stock=1').get_json()] == ['Filtre à huile']

"""
Integration tests for the Prometheus endpoint and the invoice mutation counter.
"""

from prometheus_client import REGISTRY

from garage.services import group_service


def _mutations(operation):
    return REGISTRY.get_sample_value('garage_invoice_mutations_total', {'operation': operation}) or 0


class TestMetricsEndpoint:

    def test_exposes_prometheus_text(self, client):
        client.get('/auth/csrf-token')
        response = client.get('/metrics')

        assert response.status_code == 200
        assert response.content_type.startswith('text/plain')
        body = response.get_data(as_text=True)
        assert 'garage_http_requests_total' in body
        assert 'garage_http_request_duration_seconds_bucket' in body
        assert 'garage_http_requests_in_flight' in body

    def test_invoice_mutations_are_exposed(self, login, owner, invoice_payload):
        client = login(owner)
        client.post('/api/invoices/', json=invoice_payload())

        body = client.get('/metrics').get_data(as_text=True)
        assert 'garage_invoice_mutations_total{operation="create"}' in body


class TestInvoiceMutationCounter:

    def test_each_committed_operation_is_counted(self, login, owner, invoice_payload):
        operations = ('create', 'update', 'status', 'duplicate', 'delete')
        before = {operation: _mutations(operation) for operation in operations}
        client = login(owner)

        invoice_id = client.post('/api/invoices/', json=invoice_payload()).get_json()['id']
        client.put(f'/api/invoices/{invoice_id}', json=invoice_payload(notes='Ajout'))
        client.patch(f'/api/invoices/{invoice_id}/status', json={'status': 'CANCELED'})
        client.post(f'/api/invoices/{invoice_id}/duplicate')
        client.delete(f'/api/invoices/{invoice_id}')

        for operation in operations:
            assert _mutations(operation) == before[operation] + 1, operation

    def test_rejected_requests_are_not_counted(self, login, owner, invoice_payload):
        before = _mutations('create')
        client = login(owner)

        response = client.post('/api/invoices/', json=invoice_payload(items=[]))

        assert response.status_code == 400
        assert _mutations('create') == before

    def test_group_changes_are_not_invoice_mutations(self, session, admin, teammate, other_group):
        before = sum(_mutations(operation) for operation in ('create', 'update', 'status', 'delete'))
        group_service.assign_user_to_group(session, admin, teammate.id, other_group.id)
        assert sum(_mutations(operation) for operation in ('create', 'update', 'status', 'delete')) == before

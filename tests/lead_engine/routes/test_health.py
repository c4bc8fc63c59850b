"""Tests for /health, /api/health and /api/health/<service>/reset."""


class TestHealth:

    def test_liveness(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json() == {'status': 'healthy'}


class TestApiHealth:

    def test_returns_services_dict(self, client):
        data = client.get('/api/health').get_json()
        assert set(data['services']) >= {'openai', 'slack'}
        assert data['status'] == 'ok'

    def test_service_has_expected_fields(self, client):
        svc = client.get('/api/health').get_json()['services']['openai']
        for key in ('name', 'state', 'failure_count', 'failure_threshold', 'total_success', 'total_failure'):
            assert key in svc

    def test_open_circuit_reported_degraded(self, client, fake_redis):
        fake_redis.set('cb:slack:state', 'open')
        fake_redis.set('cb:slack:last_failure', '9999999999')
        data = client.get('/api/health').get_json()
        assert data['status'] == 'degraded'
        assert data['degraded'] == ['slack']


class TestResetCircuit:

    def test_reset_known_service(self, client, fake_redis):
        fake_redis.set('cb:openai:state', 'open')
        resp = client.post('/api/health/openai/reset')
        assert resp.status_code == 200
        assert resp.get_json()['ok'] is True
        assert fake_redis.get('cb:openai:state') == 'closed'

    def test_reset_unknown_service_404(self, client):
        resp = client.post('/api/health/nonexistent/reset')
        assert resp.status_code == 404

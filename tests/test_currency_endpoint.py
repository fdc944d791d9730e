"""Tests for the currency API endpoints."""


class TestCurrencies:
    """Tests for GET /api/currencies."""

    def test_selector_order(self, client):
        data = client.get('/api/currencies').get_json()

        codes = [c['code'] for c in data['currencies']]
        assert codes == ['INR', 'USD', 'EUR', 'GBP', 'AED']
        assert data['default'] == 'INR'
        assert data['count'] == 5


class TestCurrencyRates:
    """Tests for GET /api/currency/rates."""

    def test_rates_against_snapshot_base(self, live_client):
        response = live_client.get('/api/currency/rates')

        assert response.status_code == 200
        data = response.get_json()
        assert data['base'] == 'INR'
        assert data['date'] == '2026-01-15'
        assert data['timestamp'] == '2026-01-15T09:30:00Z'
        assert data['rates']['USD'] == 0.012
        assert data['rates']['INR'] == 1.0
        assert 'fallback' not in data

    def test_rebased_subset(self, live_client):
        data = live_client.get('/api/currency/rates?base=usd&currencies=INR,EUR').get_json()

        assert data['base'] == 'USD'
        assert set(data['rates']) == {'INR', 'EUR'}
        assert round(data['rates']['INR'], 4) == 83.3333

    def test_fallback_flagged(self, client):
        data = client.get('/api/currency/rates').get_json()

        assert data['fallback'] is True
        assert data['rates']['AED'] == 0.044

    def test_invalid_base(self, live_client):
        response = live_client.get('/api/currency/rates?base=DOLLAR')
        assert response.status_code == 400
        assert response.get_json()['field'] == 'base'

    def test_unknown_base(self, live_client):
        response = live_client.get('/api/currency/rates?base=JPY')
        assert response.status_code == 400
        assert response.get_json()['currency'] == 'JPY'


class TestCurrencyConvert:
    """Tests for POST /api/currency/convert."""

    def test_convert(self, live_client):
        response = live_client.post('/api/currency/convert', json={
            'amount': 1000, 'from': 'INR', 'to': 'USD',
        })

        assert response.status_code == 200
        assert response.get_json() == {
            'amount': 1000.0,
            'from': 'INR',
            'to': 'USD',
            'rate': 0.012,
            'convertedAmount': 12.0,
            'timestamp': '2026-01-15T09:30:00Z',
        }

    def test_convert_on_fallback(self, client):
        data = client.post('/api/currency/convert', json={'amount': '100', 'from': 'INR', 'to': 'AED'}).get_json()

        assert data['convertedAmount'] == 4.4
        assert data['fallback'] is True

    def test_missing_amount(self, live_client):
        response = live_client.post('/api/currency/convert', json={'from': 'INR', 'to': 'USD'})
        assert response.status_code == 400
        assert response.get_json()['field'] == 'amount'

    def test_unsupported_currency(self, live_client):
        response = live_client.post('/api/currency/convert', json={'amount': 5, 'from': 'INR', 'to': 'JPY'})
        assert response.status_code == 400
        assert response.get_json() == {'error': 'Unsupported currency: JPY', 'currency': 'JPY'}

    def test_oversized_amount(self, live_client):
        response = live_client.post('/api/currency/convert', json={'amount': '1e30', 'from': 'INR', 'to': 'USD'})
        assert response.status_code == 400
        assert response.get_json()['field'] == 'amount'

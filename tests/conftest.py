"""Pytest fixtures for jewellery pricing tests."""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from app import create_app
from app.constants import FAMILY_CURRENCY, FAMILY_METAL
from app.services.snapshots import CurrencyRateSnapshot, MetalRateSnapshot
from app.services.time_provider import TimeProvider


# Fixed "now" for deterministic timestamps
FROZEN_NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from rate settings in the developer's environment."""
    monkeypatch.setenv('RATES_ALLOW_NETWORK', '1')
    monkeypatch.delenv('RATES_BACKGROUND_REFRESH', raising=False)
    monkeypatch.delenv('RATE_CACHE_FILE', raising=False)
    monkeypatch.delenv('GOLDAPI_KEY', raising=False)
    monkeypatch.delenv('METALSDEV_API_KEY', raising=False)
    monkeypatch.delenv('CURRENCY_BASE', raising=False)
    monkeypatch.delenv('METAL_RATE_CURRENCY', raising=False)


@pytest.fixture
def frozen_time():
    """Fixture that freezes time to FROZEN_NOW.

    Automatically resets the default TimeProvider after the test completes.
    """
    provider = TimeProvider(frozen_at=FROZEN_NOW)
    TimeProvider.set_default(provider)
    yield provider
    TimeProvider.reset_default()


@pytest.fixture
def frozen_now():
    """Returns the frozen instant for assertions."""
    return FROZEN_NOW


@pytest.fixture
def metal_snapshot(frozen_now):
    """INR per gram rates; 24k at 6000 as in the storefront examples."""
    return MetalRateSnapshot(
        rate24k=Decimal('6000'),
        rate22k=Decimal('5496'),
        rate18k=Decimal('4500'),
        silver_rate=Decimal('80'),
        currency='INR',
        source='test',
        effective_at=frozen_now,
    )


@pytest.fixture
def currency_snapshot(frozen_now):
    """INR-based rates."""
    return CurrencyRateSnapshot(
        base='INR',
        rates={
            'INR': Decimal('1'),
            'USD': Decimal('0.012'),
            'EUR': Decimal('0.011'),
            'GBP': Decimal('0.0095'),
        },
        fetched_at=frozen_now,
        source='test',
    )


@pytest.fixture
def app():
    """Create application for testing.

    Yields:
        Flask application configured for testing.
    """
    app = create_app({'TESTING': True})
    yield app


@pytest.fixture
def client(app):
    """Create test client.

    Yields:
        Flask test client for making requests.
    """
    with app.test_client() as client:
        yield client


@pytest.fixture
def live_app(app, metal_snapshot, currency_snapshot, frozen_time):
    """Application whose cache already holds fetched snapshots."""
    cache = app.extensions['rate_cache']
    cache.put(FAMILY_METAL, metal_snapshot)
    cache.put(FAMILY_CURRENCY, currency_snapshot)
    yield app


@pytest.fixture
def live_client(live_app):
    with live_app.test_client() as client:
        yield client

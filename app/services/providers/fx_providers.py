"""FX rate provider implementations."""
from decimal import Decimal, InvalidOperation

from . import FXProvider, FXRate, UpstreamFetchError, RateLimitError
from .http import fetch_json


def _parse_rates(blob: dict, base: str, source: str) -> list[FXRate]:
    """Turn a {code: rate} mapping into FXRate rows, skipping bad values."""
    rates = []
    for currency, rate in blob.items():
        try:
            rate_value = Decimal(str(rate))
        except (InvalidOperation, TypeError):
            continue
        if not rate_value.is_finite() or rate_value <= 0:
            continue
        rates.append(FXRate(currency=str(currency).upper(), rate=rate_value, source=source))

    if not any(r.currency == base for r in rates):
        rates.append(FXRate(currency=base, rate=Decimal('1'), source=source))
    return rates


class ExchangeRateAPIProvider(FXProvider):
    """ExchangeRate-API provider - free tier without API key.

    Provides latest rates against any base currency.
    Free tier: refreshed once a day, ~1500 requests/month.
    """

    BASE_URL = "https://open.er-api.com/v6"

    @property
    def name(self) -> str:
        return "exchangerate-api"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True  # No key required

    def get_rates(self, base: str) -> list[FXRate]:
        data = fetch_json(f"{self.BASE_URL}/latest/{base}")
        if not isinstance(data, dict) or data.get('result') != 'success':
            error = data.get('error-type', 'unknown') if isinstance(data, dict) else 'unknown'
            raise UpstreamFetchError(f"API error: {error}")

        blob = data.get('rates')
        if not isinstance(blob, dict) or not blob:
            raise UpstreamFetchError("Unexpected response format")
        return _parse_rates(blob, base, self.name)


class FawazExchangeAPIProvider(FXProvider):
    """fawazahmed0/exchange-api provider (via jsDelivr with Cloudflare fallback).

    Provides latest rates against any base currency with no API key.
    """

    BASE_URL = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest"
    FALLBACK_URL = "https://latest.currency-api.pages.dev"
    API_VERSION = "v1"

    @property
    def name(self) -> str:
        return "fawaz-exchange-api"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True  # No key required

    def get_rates(self, base: str) -> list[FXRate]:
        key = base.lower()
        endpoints = [
            f"{self.BASE_URL}/{self.API_VERSION}/currencies/{key}.min.json",
            f"{self.FALLBACK_URL}/{self.API_VERSION}/currencies/{key}.min.json",
        ]

        last_error = None
        for url in endpoints:
            try:
                data = fetch_json(url)
            except RateLimitError:
                raise
            except UpstreamFetchError as e:
                last_error = e
                continue

            blob = data.get(key) if isinstance(data, dict) else None
            if not isinstance(blob, dict):
                last_error = UpstreamFetchError("Unexpected response format")
                continue
            return _parse_rates(blob, base, self.name)

        raise UpstreamFetchError(f"Failed to fetch rates: {last_error}")


class ChainedFXProvider(FXProvider):
    """Try a primary provider, then fall back when needed."""

    def __init__(self, primary: FXProvider, fallback: FXProvider):
        self._primary = primary
        self._fallback = fallback
        self._last_provider = primary

    @property
    def name(self) -> str:
        return self._last_provider.name

    @property
    def requires_api_key(self) -> bool:
        return self._primary.requires_api_key and self._fallback.requires_api_key

    def is_configured(self) -> bool:
        return self._primary.is_configured() or self._fallback.is_configured()

    def get_rates(self, base: str) -> list[FXRate]:
        """Fetch FX rates using primary, with fallback on failure."""
        try:
            rates = self._primary.get_rates(base)
            if rates:
                self._last_provider = self._primary
                return rates
            primary_error = UpstreamFetchError("empty response")
        except UpstreamFetchError as exc:
            primary_error = exc

        try:
            rates = self._fallback.get_rates(base)
        except UpstreamFetchError as exc:
            raise UpstreamFetchError(f"Primary provider failed: {primary_error}; fallback failed: {exc}")
        if not rates:
            raise UpstreamFetchError("No rates returned from providers")
        self._last_provider = self._fallback
        return rates

"""Metal price provider implementations."""
from decimal import Decimal
from typing import Optional

from app.data.metals import TROY_OZ_TO_GRAMS
from app.services.config import get_goldapi_key, get_metalsdev_key, get_usd_conversion_rate
from . import MetalProvider, MetalQuote, UpstreamFetchError, AuthenticationError
from .http import fetch_json, positive_decimal


class GoldAPIProvider(MetalProvider):
    """GoldAPI.io provider - requires API key.

    Quotes XAU and XAG directly in the requested currency, including a
    per-gram 24k price.
    """

    BASE_URL = "https://www.goldapi.io/api"

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or get_goldapi_key()

    @property
    def name(self) -> str:
        return "goldapi"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _per_gram(self, symbol: str, currency: str) -> Decimal:
        data = fetch_json(
            f"{self.BASE_URL}/{symbol}/{currency}",
            headers={'x-access-token': self._api_key},
        )
        if not isinstance(data, dict):
            raise UpstreamFetchError("Unexpected response format")
        if data.get('error'):
            raise UpstreamFetchError(f"API error: {data['error']}")
        if data.get('price_gram_24k') is not None:
            return positive_decimal(data['price_gram_24k'], f'{symbol} price')
        return positive_decimal(data.get('price'), f'{symbol} price') / TROY_OZ_TO_GRAMS

    def get_quote(self, currency: str) -> MetalQuote:
        if not self._api_key:
            raise AuthenticationError("GoldAPI key not configured")
        return MetalQuote(
            gold_per_gram=self._per_gram('XAU', currency),
            silver_per_gram=self._per_gram('XAG', currency),
            currency=currency,
            source=self.name,
        )


class MetalsDevAPIProvider(MetalProvider):
    """Metals.dev API provider - free tier available.

    Provides per-gram prices in any supported currency.
    Free tier: 100 requests/month for latest prices.
    """

    BASE_URL = "https://api.metals.dev/v1"

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or get_metalsdev_key()

    @property
    def name(self) -> str:
        return "metals-dev"

    @property
    def requires_api_key(self) -> bool:
        return True

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def get_quote(self, currency: str) -> MetalQuote:
        if not self._api_key:
            raise AuthenticationError("Metals.dev API key not configured")

        data = fetch_json(f"{self.BASE_URL}/latest?api_key={self._api_key}&currency={currency}&unit=g")
        if not isinstance(data, dict) or data.get('status') != 'success':
            error = data.get('error_message', 'unknown') if isinstance(data, dict) else 'unknown'
            raise UpstreamFetchError(f"API error: {error}")

        metals = data.get('metals') or {}
        return MetalQuote(
            gold_per_gram=positive_decimal(metals.get('gold'), 'gold price'),
            silver_per_gram=positive_decimal(metals.get('silver'), 'silver price'),
            currency=currency,
            source=self.name,
        )


class MetalsLiveProvider(MetalProvider):
    """metals.live free spot feed - no key, USD per troy ounce only.

    Prices are converted to the requested currency with the configured
    METALS_USD_CONVERSION_RATE when that currency is not USD.
    """

    URL = "https://api.metals.live/v1/spot/gold,silver"

    def __init__(self, usd_rate: Optional[Decimal] = None):
        self._usd_rate = usd_rate

    @property
    def name(self) -> str:
        return "metals-live"

    @property
    def requires_api_key(self) -> bool:
        return False

    def is_configured(self) -> bool:
        return True

    def get_quote(self, currency: str) -> MetalQuote:
        data = fetch_json(self.URL)

        # Either {"gold": x, "silver": y} or [{"gold": x}, {"silver": y}]
        prices = {}
        if isinstance(data, dict):
            prices = data
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    prices.update(item)
        else:
            raise UpstreamFetchError("Unexpected response format")

        factor = Decimal('1')
        if currency != 'USD':
            factor = self._usd_rate or get_usd_conversion_rate()

        gold_oz = positive_decimal(prices.get('gold'), 'gold price')
        silver_oz = positive_decimal(prices.get('silver'), 'silver price')
        return MetalQuote(
            gold_per_gram=gold_oz * factor / TROY_OZ_TO_GRAMS,
            silver_per_gram=silver_oz * factor / TROY_OZ_TO_GRAMS,
            currency=currency,
            source=self.name,
        )


class ChainedMetalProvider(MetalProvider):
    """Try each configured provider in order until one returns a quote."""

    def __init__(self, providers: list[MetalProvider]):
        self._providers = [p for p in providers if p.is_configured()]
        self._last_provider = self._providers[0] if self._providers else None

    @property
    def name(self) -> str:
        return self._last_provider.name if self._last_provider else "none"

    @property
    def requires_api_key(self) -> bool:
        return all(p.requires_api_key for p in self._providers)

    def is_configured(self) -> bool:
        return bool(self._providers)

    def get_quote(self, currency: str) -> MetalQuote:
        errors = []
        for provider in self._providers:
            try:
                quote = provider.get_quote(currency)
            except UpstreamFetchError as exc:
                errors.append(f"{provider.name}: {exc}")
                continue
            self._last_provider = provider
            return quote

        if errors:
            raise UpstreamFetchError("All metal providers failed: " + "; ".join(errors))
        raise UpstreamFetchError("No metal providers configured")

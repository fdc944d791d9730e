"""Pluggable rate provider interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class FXRate:
    """FX rate data point."""
    currency: str       # ISO 4217 code
    rate: Decimal       # 1 base = X currency
    source: str


@dataclass
class MetalQuote:
    """Spot prices per gram, for fine (24k) gold and silver."""
    gold_per_gram: Decimal
    silver_per_gram: Decimal
    currency: str
    source: str


class FXProvider(ABC):
    """Abstract base for FX rate providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured (API key set if required)."""
        pass

    @abstractmethod
    def get_rates(self, base: str) -> list[FXRate]:
        """Fetch latest FX rates relative to `base`.

        Args:
            base: ISO code the returned rates are quoted against

        Returns:
            List of FXRate objects

        Raises:
            UpstreamFetchError: If fetch fails
        """
        pass


class MetalProvider(ABC):
    """Abstract base for metal price providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured."""
        pass

    @abstractmethod
    def get_quote(self, currency: str) -> MetalQuote:
        """Fetch latest gold and silver prices per gram in `currency`."""
        pass


class UpstreamFetchError(Exception):
    """Base exception for rate provider errors."""
    pass


class RateLimitError(UpstreamFetchError):
    """API rate limit exceeded."""
    pass


class AuthenticationError(UpstreamFetchError):
    """API key invalid or missing."""
    pass


class NetworkError(UpstreamFetchError):
    """Network connectivity issue."""
    pass

"""Fetch and normalize raw provider data into rate snapshots."""
import logging
from typing import Optional

from app.constants import FAMILY_CURRENCY, FAMILY_METAL
from app.data.metals import GOLD_PURITY_FRACTIONS, PURITY_18K, PURITY_22K, PURITY_24K
from app.services.config import get_currency_base, get_metal_rate_currency, is_network_enabled
from app.services.money import round2
from app.services.providers import FXProvider, MetalProvider, MetalQuote, FXRate, UpstreamFetchError
from app.services.snapshots import CurrencyRateSnapshot, MetalRateSnapshot, SnapshotError
from app.services.time_provider import TimeProvider, get_now

logger = logging.getLogger('rate_source')


def metal_snapshot_from_quote(quote: MetalQuote, effective_at) -> MetalRateSnapshot:
    """Derive per-purity gold rates from a fine-gold quote."""
    gold = quote.gold_per_gram
    return MetalRateSnapshot(
        rate24k=round2(gold * GOLD_PURITY_FRACTIONS[PURITY_24K]),
        rate22k=round2(gold * GOLD_PURITY_FRACTIONS[PURITY_22K]),
        rate18k=round2(gold * GOLD_PURITY_FRACTIONS[PURITY_18K]),
        silver_rate=round2(quote.silver_per_gram),
        currency=quote.currency,
        source=quote.source,
        effective_at=effective_at,
    )


def currency_snapshot_from_rates(base: str, rates: list[FXRate], fetched_at) -> CurrencyRateSnapshot:
    """Build a snapshot; the base always maps to exactly 1."""
    table = {r.currency: r.rate for r in rates if r.currency != base}
    table[base] = 1
    source = rates[0].source if rates else 'unknown'
    return CurrencyRateSnapshot(base=base, rates=table, fetched_at=fetched_at, source=source)


class RateSource:
    """Fetches one rate family at a time and returns a typed snapshot.

    Every failure, including malformed provider data, surfaces as
    UpstreamFetchError so the refresh loop has a single error type to contain.
    """

    def __init__(
        self,
        metal_provider: Optional[MetalProvider] = None,
        fx_provider: Optional[FXProvider] = None,
        metal_currency: Optional[str] = None,
        currency_base: Optional[str] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        if metal_provider is None or fx_provider is None:
            from app.services.providers.registry import get_fx_provider, get_metal_provider
            metal_provider = metal_provider or get_metal_provider()
            fx_provider = fx_provider or get_fx_provider()
        self.metal_provider = metal_provider
        self.fx_provider = fx_provider
        self.metal_currency = (metal_currency or get_metal_rate_currency()).upper()
        self.currency_base = (currency_base or get_currency_base()).upper()
        self._time_provider = time_provider

    def fetch(self, family: str):
        """Fetch the latest snapshot for `family` ('metal' or 'currency')."""
        if not is_network_enabled():
            raise UpstreamFetchError("Network access disabled (RATES_ALLOW_NETWORK=0)")
        if family == FAMILY_METAL:
            return self.fetch_metal()
        if family == FAMILY_CURRENCY:
            return self.fetch_currency()
        raise ValueError(f"Unknown rate family: {family}")

    def fetch_metal(self) -> MetalRateSnapshot:
        quote = self.metal_provider.get_quote(self.metal_currency)
        try:
            snapshot = metal_snapshot_from_quote(quote, get_now(self._time_provider))
        except SnapshotError as e:
            raise UpstreamFetchError(f"Invalid metal quote from {quote.source}: {e}")
        logger.info(
            f"Fetched metal rates from {snapshot.source}: "
            f"24k={snapshot.rate24k} silver={snapshot.silver_rate} {snapshot.currency}/g"
        )
        return snapshot

    def fetch_currency(self) -> CurrencyRateSnapshot:
        rates = self.fx_provider.get_rates(self.currency_base)
        if not rates:
            raise UpstreamFetchError("Provider returned no rates")
        try:
            snapshot = currency_snapshot_from_rates(self.currency_base, rates, get_now(self._time_provider))
        except SnapshotError as e:
            raise UpstreamFetchError(f"Invalid FX rates from {self.fx_provider.name}: {e}")
        logger.info(f"Fetched {len(snapshot.rates)} FX rates from {snapshot.source} (base {snapshot.base})")
        return snapshot

"""Immutable rate snapshots held by the rate cache."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from app.data.currencies import FALLBACK_FX_BASE, FALLBACK_FX_RATES
from app.data.metals import (
    FALLBACK_METAL_CURRENCY,
    FALLBACK_METAL_RATES,
    FALLBACK_METAL_SOURCE,
    PURITY_FIELDS,
)
from app.services.money import to_json_number
from app.services.time_provider import isoformat


class SnapshotError(ValueError):
    """Snapshot fields violate their invariants."""


@dataclass(frozen=True)
class MetalRateSnapshot:
    """Price per gram of gold by purity and of silver, at one instant."""
    rate24k: Decimal
    rate22k: Decimal
    rate18k: Decimal
    silver_rate: Decimal
    currency: str
    source: str
    effective_at: datetime
    is_fallback: bool = False

    def __post_init__(self):
        for name in PURITY_FIELDS.values():
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, Decimal(str(value)))
                value = getattr(self, name)
            if not value > 0:
                raise SnapshotError(f'{name} must be positive, got {value}')

    @property
    def timestamp(self) -> datetime:
        return self.effective_at

    def rate_for(self, purity: str) -> Decimal:
        """Return the per-gram rate for a purity id (24k, 22k, 18k, silver)."""
        return getattr(self, PURITY_FIELDS[purity])

    def to_dict(self) -> dict:
        return {
            'rate24k': to_json_number(self.rate24k),
            'rate22k': to_json_number(self.rate22k),
            'rate18k': to_json_number(self.rate18k),
            'silverRate': to_json_number(self.silver_rate),
            'currency': self.currency,
            'source': self.source,
            'effectiveAt': isoformat(self.effective_at),
            'isFallback': self.is_fallback,
        }

    def to_record(self) -> dict:
        """Lossless form for persistence (decimals kept as strings)."""
        return {
            'rate24k': str(self.rate24k),
            'rate22k': str(self.rate22k),
            'rate18k': str(self.rate18k),
            'silverRate': str(self.silver_rate),
            'currency': self.currency,
            'source': self.source,
            'effectiveAt': self.effective_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict) -> 'MetalRateSnapshot':
        return cls(
            rate24k=Decimal(record['rate24k']),
            rate22k=Decimal(record['rate22k']),
            rate18k=Decimal(record['rate18k']),
            silver_rate=Decimal(record['silverRate']),
            currency=record['currency'],
            source=record['source'],
            effective_at=datetime.fromisoformat(record['effectiveAt']),
        )


@dataclass(frozen=True)
class CurrencyRateSnapshot:
    """Units of each currency per 1 unit of `base`, at one instant."""
    base: str
    rates: Mapping[str, Decimal]
    fetched_at: datetime
    is_fallback: bool = False
    source: str = field(default='unknown', compare=False)

    def __post_init__(self):
        base = self.base.upper()
        rates = {}
        for code, value in dict(self.rates).items():
            value = value if isinstance(value, Decimal) else Decimal(str(value))
            if not value > 0:
                raise SnapshotError(f'rate for {code} must be positive, got {value}')
            rates[code.upper()] = value
        if base in rates and rates[base] != 1:
            raise SnapshotError(f'rate for base {base} must be 1, got {rates[base]}')
        object.__setattr__(self, 'base', base)
        object.__setattr__(self, 'rates', MappingProxyType(rates))

    @property
    def timestamp(self) -> datetime:
        return self.fetched_at

    def supports(self, code: str) -> bool:
        return code == self.base or code in self.rates

    def codes(self) -> list[str]:
        codes = set(self.rates)
        codes.add(self.base)
        return sorted(codes)

    def to_record(self) -> dict:
        return {
            'base': self.base,
            'rates': {code: str(value) for code, value in self.rates.items()},
            'fetchedAt': self.fetched_at.isoformat(),
            'source': self.source,
        }

    @classmethod
    def from_record(cls, record: dict) -> 'CurrencyRateSnapshot':
        return cls(
            base=record['base'],
            rates={code: Decimal(value) for code, value in record['rates'].items()},
            fetched_at=datetime.fromisoformat(record['fetchedAt']),
            source=record.get('source', 'unknown'),
        )


def fallback_metal_snapshot(effective_at: datetime) -> MetalRateSnapshot:
    """Built-in metal rates, marked as fallback."""
    return MetalRateSnapshot(
        currency=FALLBACK_METAL_CURRENCY,
        source=FALLBACK_METAL_SOURCE,
        effective_at=effective_at,
        is_fallback=True,
        **FALLBACK_METAL_RATES,
    )


def fallback_currency_snapshot(fetched_at: datetime) -> CurrencyRateSnapshot:
    """Built-in exchange rates, marked as fallback."""
    return CurrencyRateSnapshot(
        base=FALLBACK_FX_BASE,
        rates=FALLBACK_FX_RATES,
        fetched_at=fetched_at,
        is_fallback=True,
        source='fallback',
    )

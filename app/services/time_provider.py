"""Time provider abstraction for testable timestamps.

All timestamps in this module are timezone-aware UTC datetimes.

Pricing and conversion results carry a timestamp; routing every "now" through
a TimeProvider lets tests freeze the clock and compare results exactly.
"""
from datetime import datetime, timezone
from typing import Optional


class TimeProvider:
    """Provides the current time, allowing tests to freeze it.

    Usage:
        # Production: uses real UTC time
        provider = TimeProvider()
        now = provider.now()

        # Testing: freeze to a specific instant
        provider = TimeProvider(frozen_at=datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc))
        now = provider.now()  # Always returns 2026-01-15T09:30:00+00:00
    """

    _instance: Optional['TimeProvider'] = None

    def __init__(self, frozen_at: Optional[datetime] = None):
        """Initialize TimeProvider.

        Args:
            frozen_at: If provided, now() always returns this instant.
                       Naive datetimes are treated as UTC.
        """
        if frozen_at is not None and frozen_at.tzinfo is None:
            frozen_at = frozen_at.replace(tzinfo=timezone.utc)
        self._frozen_at = frozen_at

    def now(self) -> datetime:
        """Get current UTC time, or the frozen instant if set."""
        if self._frozen_at is not None:
            return self._frozen_at
        return datetime.now(timezone.utc)

    @classmethod
    def get_default(cls) -> 'TimeProvider':
        """Get the default TimeProvider instance (singleton for production)."""
        if cls._instance is None:
            cls._instance = TimeProvider()
        return cls._instance

    @classmethod
    def set_default(cls, provider: 'TimeProvider') -> None:
        """Set the default TimeProvider (for testing)."""
        cls._instance = provider

    @classmethod
    def reset_default(cls) -> None:
        """Reset to production TimeProvider."""
        cls._instance = None


def get_now(time_provider: Optional[TimeProvider] = None) -> datetime:
    """Convenience function to get the current UTC time."""
    if time_provider is None:
        time_provider = TimeProvider.get_default()
    return time_provider.now()


def isoformat(moment: datetime) -> str:
    """Render a timestamp the way API responses carry it (UTC, 'Z' suffix)."""
    return moment.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')

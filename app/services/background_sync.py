"""
Background Rate Refresh Threads

Runs one refresh loop per rate family as a daemon thread inside the web
process:
- metal rates every 5 minutes
- currency rates every minute

Each tick fetches from the RateSource and replaces the RateCache entry. A
failed tick is logged and leaves the previous entry (or the fallback) in
place; the next tick is the retry. Requests never wait on these threads.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.constants import (
    CURRENCY_REFRESH_SECONDS,
    FAMILY_CURRENCY,
    FAMILY_METAL,
    METAL_REFRESH_SECONDS,
)
from app.services.providers import UpstreamFetchError

logger = logging.getLogger('rate_refresh')

DEFAULT_INTERVALS = {
    FAMILY_METAL: METAL_REFRESH_SECONDS,
    FAMILY_CURRENCY: CURRENCY_REFRESH_SECONDS,
}

# Schedulers started by the app factory, one per app rate cache
_schedulers: list['RateRefreshScheduler'] = []
_schedulers_lock = threading.Lock()


class RateRefreshScheduler:
    """Periodically refreshes each rate family on its own thread."""

    def __init__(self, source, cache, intervals: Optional[dict] = None):
        self.source = source
        self.cache = cache
        self.intervals = dict(intervals or DEFAULT_INTERVALS)
        self._stop_event = threading.Event()
        self._threads: dict[str, threading.Thread] = {}
        self._state_lock = threading.Lock()
        self._state = {
            family: {
                'last_attempt': None,
                'last_success': None,
                'last_error': None,
                'consecutive_failures': 0,
                'ticks': 0,
            }
            for family in self.intervals
        }

    def start(self) -> None:
        """Start one daemon thread per family. Safe to call twice."""
        self._stop_event.clear()
        for family, interval in self.intervals.items():
            thread = self._threads.get(family)
            if thread is not None and thread.is_alive():
                continue
            thread = threading.Thread(
                target=self._loop,
                args=(family, interval),
                daemon=True,
                name=f'rate-refresh-{family}',
            )
            self._threads[family] = thread
            thread.start()
            logger.info(f"Rate refresh thread started for {family} (every {interval}s)")

    def stop(self, timeout: float = 5) -> None:
        """Stop issuing ticks and wait briefly for threads to exit.

        An in-flight fetch is not interrupted; if it outlives `timeout` the
        daemon thread is abandoned and its result is dropped.
        """
        if not self._threads:
            return
        logger.info("Stopping rate refresh threads...")
        self._stop_event.set()
        for family, thread in self._threads.items():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Rate refresh thread for {family} still running after {timeout}s; abandoning")
        self._threads = {}
        logger.info("Rate refresh threads stopped")

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads.values())

    def _loop(self, family: str, interval: float) -> None:
        while not self._stop_event.is_set():
            self.run_once(family)

            next_tick = datetime.now(timezone.utc) + timedelta(seconds=interval)
            logger.debug(f"Next {family} refresh at {next_tick.isoformat()}")
            if self._stop_event.wait(timeout=interval):
                break

    def run_once(self, family: str) -> bool:
        """Fetch one family and store it. Never raises; returns success."""
        now = datetime.now(timezone.utc)
        self._update_state(family, last_attempt=now)
        try:
            snapshot = self.source.fetch(family)
        except UpstreamFetchError as e:
            logger.warning(f"{family} refresh failed, keeping previous rates: {e}")
            self._record_failure(family, str(e))
            return False
        except Exception as e:
            logger.exception(f"{family} refresh crashed: {e}")
            self._record_failure(family, f"{type(e).__name__}: {e}")
            return False

        if self._stop_event.is_set() and self._threads:
            logger.info(f"Discarding {family} snapshot fetched during shutdown")
            return False

        try:
            stored = self.cache.put(family, snapshot)
        except (TypeError, ValueError) as e:
            logger.error(f"{family} refresh produced an unusable snapshot: {e}")
            self._record_failure(family, str(e))
            return False

        if stored:
            self._update_state(family, last_success=now, last_error=None, consecutive_failures=0)
        return stored

    def _record_failure(self, family: str, message: str) -> None:
        with self._state_lock:
            state = self._state.setdefault(family, {'consecutive_failures': 0, 'ticks': 0})
            state['last_error'] = message
            state['consecutive_failures'] = state.get('consecutive_failures', 0) + 1

    def _update_state(self, family: str, **values) -> None:
        with self._state_lock:
            state = self._state.setdefault(family, {'consecutive_failures': 0, 'ticks': 0})
            if 'last_attempt' in values:
                state['ticks'] = state.get('ticks', 0) + 1
            state.update(values)

    def status(self) -> dict:
        with self._state_lock:
            result = {}
            for family, state in self._state.items():
                thread = self._threads.get(family)
                result[family] = {
                    'interval_seconds': self.intervals.get(family),
                    'running': bool(thread and thread.is_alive()),
                    'ticks': state.get('ticks', 0),
                    'last_attempt': _iso(state.get('last_attempt')),
                    'last_success': _iso(state.get('last_success')),
                    'last_error': state.get('last_error'),
                    'consecutive_failures': state.get('consecutive_failures', 0),
                }
            return result


def _iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment else None


def start_background_sync(app, source=None) -> Optional[RateRefreshScheduler]:
    """Start the refresh threads for `app` if not already running.

    Should be called once when the Flask app starts. Each app gets its own
    scheduler bound to its own rate cache.
    """
    from app.services.config import is_network_enabled
    if not is_network_enabled():
        logger.info("Background refresh disabled (RATES_ALLOW_NETWORK != 1)")
        return None

    cache = app.extensions['rate_cache']
    with _schedulers_lock:
        _schedulers[:] = [s for s in _schedulers if s.running]
        for scheduler in _schedulers:
            if scheduler.cache is cache and scheduler.running:
                logger.info("Rate refresh threads already running for this app")
                app.extensions['rate_scheduler'] = scheduler
                return scheduler

        if source is None:
            from app.services.rate_source import RateSource
            source = RateSource()

        scheduler = RateRefreshScheduler(source, cache)
        _schedulers.append(scheduler)
    app.extensions['rate_scheduler'] = scheduler
    scheduler.start()
    return scheduler


def stop_background_sync(timeout: float = 5) -> None:
    """Stop every scheduler started by start_background_sync."""
    with _schedulers_lock:
        schedulers = list(_schedulers)
        _schedulers.clear()
    for scheduler in schedulers:
        scheduler.stop(timeout=timeout)

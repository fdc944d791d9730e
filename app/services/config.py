"""Configuration service for rate refresh and provider settings."""
import os
from decimal import Decimal, InvalidOperation


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


def is_network_enabled() -> bool:
    """Check if outbound calls to rate providers are allowed.

    Controlled by RATES_ALLOW_NETWORK env var (default: 1/true).
    """
    return _env_flag('RATES_ALLOW_NETWORK', '1')


def is_background_refresh_enabled() -> bool:
    """Check if the app factory should start the refresh threads.

    Controlled by RATES_BACKGROUND_REFRESH env var (default: 0).
    Only effective if network access is also enabled.
    """
    if not is_network_enabled():
        return False
    return _env_flag('RATES_BACKGROUND_REFRESH', '0')


def get_currency_base() -> str:
    """Base currency for stored FX snapshots (default: INR)."""
    return os.environ.get('CURRENCY_BASE', 'INR').upper()


def get_metal_rate_currency() -> str:
    """Currency metal rates are quoted in (default: INR)."""
    return os.environ.get('METAL_RATE_CURRENCY', 'INR').upper()


def get_usd_conversion_rate() -> Decimal:
    """Units of METAL_RATE_CURRENCY per USD for USD-only metal feeds.

    Controlled by METALS_USD_CONVERSION_RATE env var (default: 83).
    """
    raw = os.environ.get('METALS_USD_CONVERSION_RATE', '83')
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f'METALS_USD_CONVERSION_RATE is not a number: {raw!r}')
    if value <= 0:
        raise ValueError('METALS_USD_CONVERSION_RATE must be positive')
    return value


def get_rate_cache_file() -> str | None:
    """Path for warm-start persistence of the latest snapshots, if any."""
    return os.environ.get('RATE_CACHE_FILE') or None


def get_user_agent() -> str:
    """Get the User-Agent string for provider HTTP requests."""
    default_ua = 'JewelleryPricing/1.0 (+rates)'
    return os.environ.get('RATES_USER_AGENT', default_ua)


def get_http_timeout() -> int:
    """Provider HTTP timeout in seconds (default: 15)."""
    return int(os.environ.get('RATES_HTTP_TIMEOUT', '15'))


# Provider API key getters
def get_goldapi_key() -> str | None:
    """Get GoldAPI key if configured."""
    return os.environ.get('GOLDAPI_KEY')


def get_metalsdev_key() -> str | None:
    """Get Metals.dev API key if configured."""
    return os.environ.get('METALSDEV_API_KEY')


def get_provider_keys_status() -> dict:
    """Get status of configured provider API keys."""
    return {
        'goldapi': bool(get_goldapi_key()),
        'metalsdev': bool(get_metalsdev_key()),
    }


def get_refresh_config() -> dict:
    """Get complete refresh configuration status."""
    return {
        'network_enabled': is_network_enabled(),
        'background_refresh_enabled': is_background_refresh_enabled(),
        'currency_base': get_currency_base(),
        'metal_rate_currency': get_metal_rate_currency(),
        'rate_cache_file': get_rate_cache_file(),
        'user_agent': get_user_agent(),
        'provider_keys': get_provider_keys_status(),
    }

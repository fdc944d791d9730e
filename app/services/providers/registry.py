"""Provider registry and selection logic."""
from app.services.config import get_goldapi_key, get_metalsdev_key
from . import FXProvider, MetalProvider
from .fx_providers import ExchangeRateAPIProvider, FawazExchangeAPIProvider, ChainedFXProvider
from .metal_providers import ChainedMetalProvider, GoldAPIProvider, MetalsDevAPIProvider, MetalsLiveProvider


def get_fx_provider() -> FXProvider:
    """Get the FX provider chain.

    ExchangeRate-API first (no key), falling back to the Fawaz currency API.
    """
    return ChainedFXProvider(
        primary=ExchangeRateAPIProvider(),
        fallback=FawazExchangeAPIProvider(),
    )


def get_metal_provider() -> MetalProvider:
    """Get the metal provider chain.

    Priority:
    1. GoldAPI (if key configured) - quotes directly in the local currency
    2. Metals.dev (if key configured)
    3. metals.live (no key) - USD spot, converted with a configured factor
    """
    providers: list[MetalProvider] = []
    if get_goldapi_key():
        providers.append(GoldAPIProvider())
    if get_metalsdev_key():
        providers.append(MetalsDevAPIProvider())
    providers.append(MetalsLiveProvider())
    return ChainedMetalProvider(providers)


def get_provider_status() -> dict:
    """Return status of the configured provider chains."""
    fx = get_fx_provider()
    metal = get_metal_provider()

    return {
        'currency': {
            'provider': fx.name,
            'requires_key': fx.requires_api_key,
            'configured': fx.is_configured(),
        },
        'metal': {
            'provider': metal.name,
            'requires_key': metal.requires_api_key,
            'configured': metal.is_configured(),
        },
    }

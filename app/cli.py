"""Flask CLI commands for rate refresh and inspection."""
import json
import click
from flask import current_app
from flask.cli import with_appcontext

from app.constants import FAMILY_CURRENCY, FAMILY_METAL, RATE_FAMILIES


@click.command('refresh-rates')
@click.option('--family', type=click.Choice(['all', *RATE_FAMILIES]), default='all',
              help='Rate family to refresh.')
@with_appcontext
def refresh_rates_command(family):
    """Fetch rates once and store them in the rate cache.

    With RATE_CACHE_FILE set this warms the cache file for the next start.
    """
    from app.services.background_sync import RateRefreshScheduler
    from app.services.rate_source import RateSource

    cache = current_app.extensions['rate_cache']
    scheduler = RateRefreshScheduler(RateSource(), cache)
    families = RATE_FAMILIES if family == 'all' else (family,)

    failed = False
    for name in families:
        if scheduler.run_once(name):
            snapshot = cache.get(name)
            click.echo(f'{name}: refreshed from {snapshot.source} at {snapshot.timestamp.isoformat()}')
        else:
            error = scheduler.status()[name]['last_error'] or 'out-of-order snapshot'
            click.echo(f'{name}: refresh failed ({error})', err=True)
            failed = True

    if failed:
        click.get_current_context().exit(1)


@click.command('show-rates')
@with_appcontext
def show_rates_command():
    """Print the rates currently served (live or fallback)."""
    cache = current_app.extensions['rate_cache']

    metal = cache.get(FAMILY_METAL)
    fx = cache.get(FAMILY_CURRENCY)
    click.echo(json.dumps({
        'metal': metal.to_dict(),
        'currency': {
            'base': fx.base,
            'rates': {code: str(rate) for code, rate in sorted(fx.rates.items())},
            'isFallback': fx.is_fallback,
        },
    }, indent=2))


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(refresh_rates_command)
    app.cli.add_command(show_rates_command)

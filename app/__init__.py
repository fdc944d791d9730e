"""Flask application factory for the jewellery pricing engine."""
import logging
import os
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


logger = logging.getLogger('app')


def create_app(config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Trust X-Forwarded-For from reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    from app.services.config import get_rate_cache_file

    # Default configuration
    app.config.update(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        RATE_CACHE_FILE=get_rate_cache_file(),
    )

    # Override with provided config
    if config:
        app.config.update(config)

    # Keep response keys in the order handlers build them
    app.json.sort_keys = False

    # One rate cache per app; request handlers only ever read it
    from app.services.cache import RateCache
    app.extensions['rate_cache'] = RateCache(persist_path=app.config.get('RATE_CACHE_FILE'))

    # Register CLI commands
    from app import cli
    cli.register_cli(app)

    # Register blueprints
    from app.routes.health import health_bp
    from app.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api')

    # Start background rate refresh (metal every 5 min, currency every minute)
    from app.services.config import is_background_refresh_enabled
    if is_background_refresh_enabled():
        from app.services.background_sync import start_background_sync
        start_background_sync(app)

    return app

"""Health check endpoint."""
from flask import Blueprint, jsonify

from app.constants import RATE_FAMILIES
from app.services.cache import get_rate_cache

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz')
def healthz():
    """Return health status; fallback rates do not make the app unhealthy."""
    cache = get_rate_cache()
    return jsonify({
        'status': 'ok',
        'rates': {
            family: 'live' if cache.has_live(family) else 'fallback'
            for family in RATE_FAMILIES
        },
    })

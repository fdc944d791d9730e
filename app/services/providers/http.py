"""Shared HTTP and parsing helpers for provider implementations."""
import json
import http.client
import urllib.request
import urllib.error
from decimal import Decimal, InvalidOperation
from typing import Optional

from app.services.config import get_http_timeout, get_user_agent
from . import UpstreamFetchError, RateLimitError, NetworkError, AuthenticationError


def fetch_json(url: str, headers: Optional[dict] = None):
    """GET a URL and decode its JSON body, mapping failures to provider errors."""
    all_headers = {'User-Agent': get_user_agent()}
    all_headers.update(headers or {})
    try:
        req = urllib.request.Request(url, headers=all_headers)
        with urllib.request.urlopen(req, timeout=get_http_timeout()) as response:
            return json.loads(response.read().decode('utf-8'))
    except urllib.error.HTTPError as e:
        if e.code == 429:
            raise RateLimitError("Rate limit exceeded")
        if e.code in (401, 403):
            raise AuthenticationError("Invalid API key")
        raise UpstreamFetchError(f"HTTP error: {e.code}")
    except urllib.error.URLError as e:
        raise NetworkError(f"Network error: {e.reason}")
    except (TimeoutError, OSError, http.client.HTTPException) as e:
        raise NetworkError(f"Network error: {e}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise UpstreamFetchError("Invalid JSON response")


def positive_decimal(value, label: str) -> Decimal:
    """Parse a provider number, rejecting non-numeric and non-positive values."""
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise UpstreamFetchError(f"Non-numeric {label}: {value!r}")
    if not result.is_finite() or result <= 0:
        raise UpstreamFetchError(f"Invalid {label}: {value!r}")
    return result

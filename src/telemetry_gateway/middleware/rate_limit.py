"""Rate limiting middleware"""
from functools import wraps

from flask import current_app, g, request

from telemetry_gateway.utils.errors import RateLimited

GENERAL_LIMIT_MESSAGE = 'Too many requests from this IP, please try again later.'
INGEST_LIMIT_MESSAGE = 'Rate limit exceeded for telemetry ingestion.'


def get_caller_key() -> str:
    """Identify the caller by address; ProxyFix rewrites it when proxies are trusted"""
    return request.remote_addr or 'unknown'


def enforce(limiter, message: str):
    """
    Count the current request against a limiter

    Raises:
        RateLimited: If the caller is over the limit
    """
    decision = limiter.admit(get_caller_key())
    # Reported on the response by the after_request hook; a denial or the
    # lowest remaining count wins
    current = g.get('rate_limit')
    if current is None or not decision.allowed or decision.remaining < current.remaining:
        g.rate_limit = decision
    if not decision.allowed:
        raise RateLimited(message)


def check_general_rate_limit():
    """before_request hook applying the general limiter to every request"""
    enforce(current_app.extensions['telemetry_gateway'].general_limiter, GENERAL_LIMIT_MESSAGE)


def ingest_rate_limited(f):
    """Decorator applying the stricter ingestion limiter to a route"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        enforce(current_app.extensions['telemetry_gateway'].ingest_limiter, INGEST_LIMIT_MESSAGE)
        return f(*args, **kwargs)

    return decorated_function


def add_rate_limit_headers(response):
    """after_request hook exposing the most restrictive decision of this request"""
    decision = g.get('rate_limit')
    if decision is not None:
        response.headers['X-RateLimit-Limit'] = str(decision.limit)
        response.headers['X-RateLimit-Remaining'] = str(decision.remaining)
        if not decision.allowed:
            response.headers['Retry-After'] = str(decision.retry_after)
    return response

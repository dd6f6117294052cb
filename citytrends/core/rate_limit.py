"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only the public, unauthenticated
read endpoint opts in; cron triggers are protected by the shared secret.

Usage in routes:
    from fastapi import Request
    from citytrends.core.rate_limit import limiter

    @router.get("/some-public-endpoint")
    @limiter.limit(settings.read_rate_limit)
    async def my_endpoint(request: Request):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

"""
Security middleware: rate limiting + response headers

The form endpoints are public, so each client IP gets a token bucket per
endpoint tier. Exceeding it returns 429 with the usual JSON error shape.
Set DISABLE_RATE_LIMIT=true to turn it off (local dev, load tests).
"""

import os
import time
import logging
import functools
from threading import Lock

from flask import request, jsonify

log = logging.getLogger("furyfence.security")

# ═══════════════════════════════════════════════════════════════════════════════
# Rate Limiting
# ═══════════════════════════════════════════════════════════════════════════════

class RateLimiter:
    """Simple in-memory rate limiter using token bucket algorithm."""

    def __init__(self):
        self._buckets = {}
        self._lock = Lock()
        self._last_cleanup = time.time()

    def check(self, key: str, max_tokens: int = 60, refill_rate: float = 1.0) -> bool:
        """Check if request is allowed. Returns True if allowed, False if rate limited.

        Args:
            key: Unique key for the bucket (usually IP + endpoint group)
            max_tokens: Maximum burst capacity
            refill_rate: Tokens added per second
        """
        with self._lock:
            now = time.time()
            bucket = self._buckets.setdefault(key, {"tokens": max_tokens, "last_refill": now})
            elapsed = now - bucket["last_refill"]

            bucket["tokens"] = min(max_tokens, bucket["tokens"] + elapsed * refill_rate)
            bucket["last_refill"] = now

            if bucket["tokens"] >= 1:
                bucket["tokens"] -= 1
                return True
            return False

    def reset(self):
        with self._lock:
            self._buckets.clear()

    def cleanup(self, max_age: int = 3600) -> int:
        """Remove stale buckets older than max_age seconds."""
        now = time.time()
        with self._lock:
            stale = [k for k, v in self._buckets.items() if now - v["last_refill"] > max_age]
            for k in stale:
                del self._buckets[k]
            self._last_cleanup = now
        return len(stale)

    def maybe_cleanup(self, interval: int = 600, max_age: int = 3600) -> int:
        """Run cleanup() at most once per interval seconds. Returns buckets removed."""
        if time.time() - self._last_cleanup < interval:
            return 0
        removed = self.cleanup(max_age)
        if removed:
            log.debug("Rate limiter dropped %d idle buckets", removed)
        return removed


# Global rate limiter instance
_limiter = RateLimiter()

RATE_LIMITS = {
    "default": {"max_tokens": 60, "refill_rate": 2.0},
    "forms":   {"max_tokens": int(os.environ.get("RATE_LIMIT_FORMS", "10")), "refill_rate": 0.2},
}


def rate_limit(tier: str = "default"):
    """Decorator to apply rate limiting to a route."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            if os.environ.get("DISABLE_RATE_LIMIT", "").lower() == "true":
                return f(*args, **kwargs)

            _limiter.maybe_cleanup()
            ip = request.remote_addr or "unknown"
            limits = RATE_LIMITS.get(tier, RATE_LIMITS["default"])
            if not _limiter.check(f"{ip}:{tier}", **limits):
                log.warning("Rate limit exceeded: %s tier=%s path=%s", ip, tier, request.path)
                return jsonify({"error": "Too many requests. Please try again shortly."}), 429

            return f(*args, **kwargs)
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# Response headers
# ═══════════════════════════════════════════════════════════════════════════════

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def init_security(app):
    """Attach security headers to every response."""
    @app.after_request
    def _security_headers(response):
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    log.debug("Security middleware initialized")

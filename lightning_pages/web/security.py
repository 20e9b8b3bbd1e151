"""
Security response headers (Content-Security-Policy and friends).

The CSP keeps everything same-origin by default; site projects widen it per
directive with the script/img/connect source lists from PagesOptions. Inline
scripts stay allowed because pages inline the cached stylesheet and small
bootstrap snippets.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

HSTS_VALUE = "max-age=31536000; includeSubDomains"
PERMISSIONS_POLICY = "geolocation=(), microphone=(), camera=()"


def _directive(name: str, base: Iterable[str], extra: Iterable[str]) -> str:
    values = list(dict.fromkeys([*base, *(s for s in extra if s)]))
    return f"{name} {' '.join(values)}"


def build_csp(
    script_sources: Iterable[str] = (),
    img_sources: Iterable[str] = (),
    connect_sources: Iterable[str] = (),
) -> str:
    """Return the Content-Security-Policy header value."""
    return "; ".join(
        [
            "default-src 'self'",
            _directive("script-src", ["'self'", "'unsafe-inline'"], script_sources),
            _directive("img-src", ["'self'", "data:"], img_sources),
            _directive("connect-src", ["'self'"], connect_sources),
        ]
    )


def security_headers(csp: str, *, production: bool = False) -> Mapping[str, str]:
    """Baseline headers. Production adds document isolation (COOP)."""
    headers = {
        "Content-Security-Policy": csp,
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": PERMISSIONS_POLICY,
        "Strict-Transport-Security": HSTS_VALUE,
    }
    if production:
        headers["Cross-Origin-Opener-Policy"] = "same-origin"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Set baseline security headers unless a route already set them."""

    def __init__(self, app, *, csp: str, production: bool = False):
        super().__init__(app)
        self._headers = dict(security_headers(csp, production=production))

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        return response


__all__ = ["HSTS_VALUE", "PERMISSIONS_POLICY", "build_csp", "security_headers", "SecurityHeadersMiddleware"]

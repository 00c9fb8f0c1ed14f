"""
Security headers middleware.

The portal APIs only ever return JSON or redirects, so the policy is
strict: nothing may be framed, sniffed or loaded from a response.

References:
- OWASP Secure Headers Project: https://owasp.org/www-project-secure-headers/
"""

from typing import Callable, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


DEFAULT_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to every response.

    Headers already set by a route (for example Cache-Control on
    ``/api/auth/verify``) are left untouched.

    Example:
        app.add_middleware(SecurityHeadersMiddleware, hsts=True)
    """

    def __init__(self, app, hsts: bool = False, extra_headers: Optional[Dict[str, str]] = None):
        super().__init__(app)
        self.headers = dict(DEFAULT_HEADERS)
        if hsts:
            self.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        if extra_headers:
            self.headers.update(extra_headers)

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response

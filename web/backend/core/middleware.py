"""
Response hardening middleware: security headers and the production HTTPS
redirect used behind the TLS-terminating proxy.
"""

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' https://cdnjs.cloudflare.com https://static.cloudflareinsights.com",
        "style-src 'self' 'unsafe-inline' https://cdnjs.cloudflare.com",
        "img-src 'self' https: data:",
        "connect-src 'self'",
        "font-src 'self' https://cdnjs.cloudflare.com",
        "object-src 'none'",
        "media-src 'self'",
        "frame-src 'none'",
    ]
)

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), interest-cohort=(), payment=()",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "X-Frame-Options": "SAMEORIGIN",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Redirect plain-HTTP requests (per ``X-Forwarded-Proto``) with a 301."""

    async def dispatch(self, request: Request, call_next):
        proto = request.headers.get("x-forwarded-proto", request.url.scheme)
        if proto.split(",")[0].strip() != "https":
            # Collapse leading slashes so the target can't become //other-host
            path = "/" + request.url.path.lstrip("/")
            query = f"?{request.url.query}" if request.url.query else ""
            host = request.headers.get("host", request.url.netloc)
            return RedirectResponse(url=f"https://{host}{path}{query}", status_code=301)
        return await call_next(request)

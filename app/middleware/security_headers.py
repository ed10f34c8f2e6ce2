"""
Security headers middleware.

The service only serves JSON, so the Content-Security-Policy denies every
resource type and framing outright.

Usage:
    from app.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'; form-action 'none'"


def init_security_headers(app):
    """Register after_request handler that injects security headers."""

    @app.after_request
    def _add_security_headers(response):
        response.headers.setdefault("Content-Security-Policy", API_CSP)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")

        # Ignored over plain HTTP
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        # Responses carry organization data; keep them out of shared caches
        response.headers.setdefault("Cache-Control", "no-store")

        response.headers.pop("Server", None)

        return response

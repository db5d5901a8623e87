# ArcRevoke Middleware
from arcrevoke.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["SecurityHeadersMiddleware"]

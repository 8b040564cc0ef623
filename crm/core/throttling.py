"""Per-IP rate limits for the unauthenticated customer-facing endpoints"""
from rest_framework.throttling import SimpleRateThrottle


class PublicIPRateThrottle(SimpleRateThrottle):
    """Throttle by client IP regardless of authentication"""

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }


class PublicInvoiceRateThrottle(PublicIPRateThrottle):
    scope = 'public_invoice'


class PublicPortalRateThrottle(PublicIPRateThrottle):
    scope = 'public_portal'

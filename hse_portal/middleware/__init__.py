"""HTTP middleware applied in hse_portal.main (first added = outermost)."""

from hse_portal.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]

"""HTTP middleware: timeout, request ID, correlation ID, caller context.

Applied in main app; order matters (last added = outermost).
Import and use from app.main.
"""

from app.middleware.caller_context import CallerContextMiddleware
from app.middleware.correlation_id import CorrelationIDMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.middleware.timeout import TimeoutMiddleware

__all__ = [
    "CallerContextMiddleware",
    "CorrelationIDMiddleware",
    "RequestIDMiddleware",
    "TimeoutMiddleware",
]

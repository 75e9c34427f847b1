from .cors import CORSMiddleware
from .http_errors import HttpErrorCounterMiddleware
from .logging import LoggingMiddleware
from .request_id import RequestIdMiddleware

__all__ = [
    "RequestIdMiddleware",
    "LoggingMiddleware",
    "HttpErrorCounterMiddleware",
    "CORSMiddleware",
]

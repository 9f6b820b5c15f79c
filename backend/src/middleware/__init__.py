"""Request logging and error rendering for the API."""

from .error_handler import register_exception_handlers
from .logging import logging_middleware

__all__ = [
    "register_exception_handlers",
    "logging_middleware",
]

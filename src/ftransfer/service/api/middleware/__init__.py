"""
API middleware components.

Provides error handling and CORS.
"""

from ftransfer.service.api.middleware.cors import setup_cors
from ftransfer.service.api.middleware.error import error_middleware

__all__ = ["error_middleware", "setup_cors"]

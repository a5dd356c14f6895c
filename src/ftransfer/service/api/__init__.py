"""
REST API module for ftransfer.

Provides HTTP endpoints for the web UI and programmatic access to the ledger
and the configured connections.
"""

from ftransfer.service.api.routes import setup_legacy_routes, setup_routes

__all__ = ["setup_routes", "setup_legacy_routes"]

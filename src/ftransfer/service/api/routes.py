"""
API route registration.

Registers all API endpoints with versioned prefix.
"""

from typing import TYPE_CHECKING

from aiohttp import web

from ftransfer.service.api.handlers.connections import ConnectionsHandler
from ftransfer.service.api.handlers.files import FilesHandler
from ftransfer.service.api.handlers.health import HealthHandler

if TYPE_CHECKING:
    from ftransfer.service.server import FtransferService


def setup_routes(app: web.Application, service: "FtransferService") -> None:
    """
    Register all API routes.

    Args:
        app: aiohttp Application
        service: FtransferService instance for handler access
    """
    health = HealthHandler(service)
    files = FilesHandler(service)
    connections = ConnectionsHandler(service)

    prefix = "/api/v1"

    app.router.add_routes(
        [
            # Health
            web.get(f"{prefix}/health", health.health),
            # Ledger
            web.get(f"{prefix}/files", files.list),
            web.delete(f"{prefix}/files", files.clear),
            web.post(f"{prefix}/files/sweep", files.sweep),
            # Connections
            web.get(f"{prefix}/connections", connections.list),
        ]
    )


def setup_legacy_routes(app: web.Application, service: "FtransferService") -> None:
    """
    Setup legacy routes for backward compatibility.

    These paths answer any method, like the endpoints existing UIs and
    scripts were written against; the /api/v1/* routes are preferred.
    """
    health = HealthHandler(service)
    files = FilesHandler(service)
    connections = ConnectionsHandler(service)

    app.router.add_route("*", "/health", health.ping)
    app.router.add_route("*", "/info", files.legacy_info)
    app.router.add_route("*", "/connections", connections.legacy_list)
    app.router.add_route("*", "/deleteOldEntries", files.sweep)
    app.router.add_route("*", "/truncateDatabase", files.clear)

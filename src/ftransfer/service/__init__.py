"""
ftransfer long-running service (management API + background scheduler).
"""

from ftransfer.service.server import FtransferService, create_app, run_service

__all__ = ["FtransferService", "create_app", "run_service"]

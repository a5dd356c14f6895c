"""
ftransfer long-running service (HTTP API + background scheduler).

Provides:
- REST API for the web UI and programmatic access to the ledger
- The group scheduler, run as background work of the application
- Static serving of the single-page UI
"""

from __future__ import annotations

import asyncio
import signal
import time
from pathlib import Path
from typing import Any

from aiohttp import web

from ftransfer.core.initialization import Runtime
from ftransfer.core.scheduler import GroupScheduler
from ftransfer.core.types import Connection
from ftransfer.service.api import setup_legacy_routes, setup_routes
from ftransfer.service.api.middleware import error_middleware, setup_cors
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.service")


class FtransferService:
    """Holds the wired runtime and owns the scheduler lifecycle."""

    def __init__(self, runtime: Runtime):
        self.runtime = runtime
        self.started_at = time.time()

    @property
    def ledger(self) -> DownloadLedger:
        return self.runtime.ledger

    @property
    def scheduler(self) -> GroupScheduler:
        return self.runtime.scheduler

    @property
    def connections(self) -> list[Connection]:
        return self.runtime.connections

    @property
    def retention_days(self) -> int:
        return self.runtime.retention_days

    def start_background_tasks(self) -> None:
        self.started_at = time.time()
        self.scheduler.start()

    async def stop_background_tasks(self) -> None:
        await self.scheduler.stop(self.runtime.shutdown_grace_s)

    def close(self) -> None:
        self.ledger.close()


def _setup_ui(app: web.Application, web_dir: Path) -> None:
    """Serve the single-page UI from ``web_dir``, falling back to index.html."""
    index = web_dir / "index.html"
    if not index.is_file():
        logger.warning(f"UI files not found in {web_dir}, serving the API only")
        return
    root = web_dir.resolve()

    async def spa_handler(request: web.Request) -> web.StreamResponse:
        # Don't serve index.html for API routes
        if request.path.startswith("/api/"):
            raise web.HTTPNotFound()
        relative = request.match_info.get("path", "")
        candidate = (root / relative).resolve()
        if relative and candidate.is_relative_to(root) and candidate.is_file():
            return web.FileResponse(candidate)
        response = web.FileResponse(index)
        # Prevent caching index.html so new deploys are picked up
        response.headers["Cache-Control"] = "no-cache"
        return response

    app.router.add_get("/", spa_handler)
    # Catch-all for client-side routing (must be added last)
    app.router.add_get("/{path:.*}", spa_handler)
    logger.info(f"Serving UI from {web_dir}")


def create_app(service: FtransferService, *, web_dir: Path | None = None, manage_scheduler: bool = True) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        service: FtransferService instance
        web_dir: Directory of the built UI; None disables UI serving
        manage_scheduler: Start the scheduler on startup and stop it on cleanup
    """
    app = web.Application(middlewares=[error_middleware])
    setup_cors(app)
    setup_routes(app, service)
    setup_legacy_routes(app, service)
    if web_dir is not None:
        _setup_ui(app, Path(web_dir))

    if manage_scheduler:

        async def on_startup(app: web.Application) -> None:
            service.start_background_tasks()

        async def on_cleanup(app: web.Application) -> None:
            await service.stop_background_tasks()

        app.on_startup.append(on_startup)
        app.on_cleanup.append(on_cleanup)

    app["service"] = service
    return app


async def _serve(app: web.Application, service: FtransferService, host: str, port: int) -> None:
    runner = web.AppRunner(app, access_log=None)
    # setup() runs on_startup, which starts the scheduler
    await runner.setup()

    loop = asyncio.get_running_loop()
    installed: list[Any] = []
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info(f"ftransfer service started on http://{host}:{port}")
        logger.info(f"API available at http://{host}:{port}/api/v1/")

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, service.scheduler.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                pass

        # Returns on SIGINT/SIGTERM, or when a fatal ledger error stops the scheduler
        await service.scheduler.wait_stopped()
        logger.info("Shutting down server...")
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        # Runs on_cleanup: scheduler stop within the grace period
        await runner.cleanup()
    logger.info("Server exiting")


def run_service(runtime: Runtime, *, host: str, port: int, enable_ui: bool = True) -> BaseException | None:
    """
    Run the management API and the scheduler until signaled, then close the ledger (blocking).

    Returns:
        The fatal error that stopped the scheduler, if any
    """
    service = FtransferService(runtime)
    web_dir = None
    if enable_ui:
        web_dir = Path(runtime.config.get("service.web_dir", "web"))
        if not web_dir.is_absolute():
            web_dir = runtime.project_dir / web_dir
    app = create_app(service, web_dir=web_dir)
    # asyncio.run waits for sync passes still in worker threads before returning
    try:
        asyncio.run(_serve(app, service, host, port))
    finally:
        service.close()
    return runtime.scheduler.fatal_error

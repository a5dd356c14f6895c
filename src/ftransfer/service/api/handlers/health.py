"""
Health endpoint.
"""

import time

from aiohttp import web

from ftransfer.service.api.handlers import BaseHandler


class HealthHandler(BaseHandler):
    """Handler for the health check endpoint."""

    async def health(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/health

        Returns process health and scheduler status.
        """
        scheduler = self.scheduler
        data = {
            "status": "ok",
            "version": self._get_version(),
            "uptime_seconds": round(time.time() - self.service.started_at, 2),
            "scheduler_running": scheduler.running,
            "active_groups": sum(1 for members in scheduler.groups.values() if members),
            "connections": len(self.service.connections),
        }
        if scheduler.fatal_error is not None:
            data["status"] = "degraded"
            data["fatal_error"] = str(scheduler.fatal_error)

        return await self.json_response(data, request=request)

    async def ping(self, request: web.Request) -> web.Response:
        """GET /health - minimal liveness probe."""
        return await self.json_response({"status": "ok"}, request=request)

    def _get_version(self) -> str:
        from ftransfer import __version__

        return __version__

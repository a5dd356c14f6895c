"""
Connection endpoints.
"""

from typing import Any

from aiohttp import web

from ftransfer.service.api.handlers import BaseHandler


class ConnectionsHandler(BaseHandler):
    """Handler for the configured connections (secrets removed)."""

    def _describe(self) -> list[dict[str, Any]]:
        scheduler = self.scheduler
        described = []
        for connection in self.service.connections:
            entry = connection.redacted()
            entry["group"] = scheduler.group_of(connection.name)
            summary = scheduler.last_summaries.get(connection.name)
            entry["last_pass"] = summary.to_dict() if summary else None
            described.append(entry)
        return described

    async def list(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/connections

        Returns every configured connection with its group, probe result
        and the counters of its last pass.
        """
        return await self.json_response({"connections": self._describe()}, request=request)

    async def legacy_list(self, request: web.Request) -> web.Response:
        """GET /connections - bare list, as older UIs expect."""
        return await self.json_response(self._describe(), request=request)

"""
Ledger endpoints: list downloaded files, clear the ledger, retention sweep.
"""

import asyncio

from aiohttp import web

from ftransfer.exceptions import LedgerError
from ftransfer.service.api.errors import DatabaseError
from ftransfer.service.api.handlers import BaseHandler
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.api.files")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
LEGACY_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_pagination(query: dict) -> tuple[int, int]:
    """
    Normalize ``page``/``limit`` query parameters.

    Missing or non-numeric values count as 0; page below 1 becomes 1 and a
    limit outside [1, 100] becomes 20.
    """

    def to_int(raw: str | None) -> int:
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            return 0

    page = to_int(query.get("page"))
    limit = to_int(query.get("limit"))
    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_LIMIT:
        limit = DEFAULT_LIMIT
    return page, limit


class FilesHandler(BaseHandler):
    """Handler for ledger endpoints."""

    async def _page(self, request: web.Request) -> tuple[list, int, int, int]:
        page, limit = parse_pagination(request.query)
        try:
            records, total = await asyncio.to_thread(self.ledger.list_records, page, limit)
        except LedgerError as e:
            logger.error(f"Error querying database: {e}")
            raise DatabaseError("Failed to query database") from e
        return records, total, page, limit

    async def list(self, request: web.Request) -> web.Response:
        """
        GET /api/v1/files?page=&limit=

        Returns one page of download records, newest first.
        """
        records, total, page, limit = await self._page(request)
        data = {
            "files": [r.to_dict() for r in records],
            "total_count": total,
            "page": page,
            "limit": limit,
        }
        return await self.json_response(data, request=request)

    async def legacy_info(self, request: web.Request) -> web.Response:
        """GET /info - same page in the field layout older UIs expect."""
        records, total, page, limit = await self._page(request)
        data = {
            "files": [
                {
                    "FileName": r.file_name,
                    "FileSize": r.file_size,
                    "ServerName": r.server_name,
                    "DownloadTime": r.downloaded_at.strftime(LEGACY_TIME_FORMAT),
                }
                for r in records
            ],
            "totalCount": total,
            "page": page,
            "limit": limit,
        }
        return await self.json_response(data, request=request)

    async def clear(self, request: web.Request) -> web.Response:
        """
        DELETE /api/v1/files

        Removes every ledger record. Files already moved are not affected.
        """
        try:
            removed = await asyncio.to_thread(self.ledger.clear)
        except LedgerError as e:
            logger.error(f"Error truncating database: {e}")
            raise DatabaseError("Failed to truncate database") from e
        return await self.json_response({"status": "database truncated", "deleted": removed}, request=request)

    async def sweep(self, request: web.Request) -> web.Response:
        """
        POST /api/v1/files/sweep

        Removes records older than the retention horizon.
        """
        days = self.service.retention_days
        try:
            removed = await asyncio.to_thread(self.ledger.delete_older_than, days)
        except LedgerError as e:
            logger.error(f"Error deleting old entries: {e}")
            raise DatabaseError("Failed to delete old entries") from e
        return await self.json_response(
            {"status": "old entries deleted", "deleted": removed, "retention_days": days}, request=request
        )

"""
Error handling middleware.

Every request gets an ID echoed in ``X-Request-ID``. Ledger failures arrive
as ``DatabaseError``; anything else a handler raises becomes a generic 500.
"""

import uuid
from typing import Callable

from aiohttp import web

from ftransfer.service.api.errors import APIError, ErrorCode
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.api.middleware.error")


def _error_response(error: APIError, request_id: str) -> web.Response:
    return web.json_response(
        error.to_dict(request_id),
        status=error.status,
        headers={"X-Request-ID": request_id},
    )


@web.middleware
async def error_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    request["request_id"] = request_id
    logger.debug(f"Request: {request.method} {request.path}")

    try:
        response = await handler(request)
    except APIError as e:
        logger.warning(f"API error on {request.method} {request.path}: {e.code.value} - {e.message}")
        return _error_response(e, request_id)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error on {request.method} {request.path} ({request_id}): {e}", exc_info=True)
        return _error_response(
            APIError(ErrorCode.INTERNAL_ERROR, "An internal error occurred", status=500), request_id
        )

    response.headers["X-Request-ID"] = request_id
    return response

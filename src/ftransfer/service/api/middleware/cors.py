"""
CORS middleware configuration.

Every origin is allowed: the management API is meant for a local web UI and
scripts on the same network.
"""

from typing import Any

from aiohttp import web


def setup_cors(
    app: web.Application,
    origins: list[str] | None = None,
    allow_methods: list[str] | None = None,
    allow_headers: list[str] | None = None,
    expose_headers: list[str] | None = None,
    max_age: int = 300,
) -> None:
    """
    Setup CORS middleware for the application.

    Args:
        app: aiohttp Application
        origins: Allowed origins (default: ["*"])
        allow_methods: Allowed HTTP methods
        allow_headers: Allowed request headers
        expose_headers: Headers to expose to browser
        max_age: Preflight cache duration in seconds
    """
    if origins is None:
        origins = ["*"]
    if allow_methods is None:
        allow_methods = ["GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS"]
    if allow_headers is None:
        allow_headers = ["*"]
    if expose_headers is None:
        expose_headers = ["X-Request-ID"]

    @web.middleware
    async def cors_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
        origin = request.headers.get("Origin", "")

        allowed_origin = None
        if "*" in origins:
            allowed_origin = "*"
        elif origin in origins:
            allowed_origin = origin

        def apply_headers(headers: Any) -> None:
            if not allowed_origin:
                return
            headers["Access-Control-Allow-Origin"] = allowed_origin
            headers["Access-Control-Allow-Methods"] = ", ".join(allow_methods)
            headers["Access-Control-Allow-Headers"] = ", ".join(allow_headers)
            headers["Access-Control-Expose-Headers"] = ", ".join(expose_headers)
            headers["Access-Control-Max-Age"] = str(max_age)

        # Preflight
        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            response: web.StreamResponse = web.Response(status=204)
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                apply_headers(e.headers)
                raise

        apply_headers(response.headers)
        return response

    # Insert at beginning of middleware chain
    app.middlewares.insert(0, cors_middleware)

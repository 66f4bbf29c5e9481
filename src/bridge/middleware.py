"""Request filtering middleware."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from aiohttp import web

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def user_agent_gate(prefix: str, exempt_paths=("/_bridge/health",)):
    """Build a middleware rejecting clients whose User-Agent lacks ``prefix``."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if request.path in exempt_paths:
            return await handler(request)
        user_agent = request.headers.get("User-Agent", "")
        if not user_agent.startswith(prefix):
            logger.info("Rejected user agent %r for %s", user_agent, request.path)
            return web.json_response(
                {"error": f"Only the {prefix} user agent is currently supported."},
                status=501,
            )
        return await handler(request)

    return middleware

"""Registration bridge server using aiohttp."""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from aiohttp import web

from constants import Constants
from registration import (
    BackgroundTasks,
    DocumentCache,
    FeedFormatError,
    MalformedVersion,
    MemoryDocumentStore,
    NoVersionsFound,
    PageNotFound,
    PagePopulationTimeout,
    RegistrationError,
    RegistrationService,
    SynthesisSettings,
    UpstreamFeedClient,
    UpstreamError,
)

from .middleware import user_agent_gate
from .service_index import build_service_index

logger = logging.getLogger(__name__)


@dataclass
class BridgeConfig:
    """Configuration for the bridge server."""

    host: str = "127.0.0.1"
    port: int = 8080
    upstream: str = Constants.UPSTREAM_FEED_URL
    public_base_url: Optional[str] = None
    timeout: int = Constants.REQUEST_TIMEOUT
    readahead_concurrency: int = Constants.READAHEAD_CONCURRENCY
    page_ttl: int = Constants.PAGE_CACHE_TTL_SEC
    index_ttl: int = Constants.INDEX_CACHE_TTL_SEC
    older_page_ttl: int = Constants.OLDER_PAGE_CACHE_TTL_SEC
    await_retries: int = Constants.AWAIT_PAGE_RETRIES
    await_interval: float = Constants.AWAIT_PAGE_INTERVAL_SEC
    older_page_fallback: bool = False
    user_agent_prefix: Optional[str] = None
    allow_external: bool = False
    store_max_entries: int = Constants.STORE_MAX_ENTRIES

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BridgeConfig":
        """Create config from a mapping such as a loaded YAML document.

        Unknown keys are ignored with a warning. Dashes in keys are accepted
        in place of underscores.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name not in known:
                logger.warning("Ignoring unknown config key: %s", key)
                continue
            values[name] = value
        return cls(**values)

    def apply_args(self, args: Any) -> "BridgeConfig":
        """Override fields with CLI arguments that were given.

        Args:
            args: Parsed CLI arguments namespace.

        Returns:
            self, for chaining.
        """
        overrides = {
            "host": "BRIDGE_HOST",
            "port": "BRIDGE_PORT",
            "upstream": "UPSTREAM",
            "public_base_url": "BASE_URL",
            "timeout": "TIMEOUT",
            "readahead_concurrency": "READAHEAD_CONCURRENCY",
            "user_agent_prefix": "USER_AGENT_PREFIX",
        }
        for name, dest in overrides.items():
            value = getattr(args, dest, None)
            if value is not None:
                setattr(self, name, value)
        if getattr(args, "OLDER_FALLBACK", False):
            self.older_page_fallback = True
        if getattr(args, "ALLOW_EXTERNAL", False):
            self.allow_external = True
        return self

    def synthesis_settings(self) -> SynthesisSettings:
        return SynthesisSettings(
            readahead_concurrency=self.readahead_concurrency,
            index_ttl=self.index_ttl,
            older_page_ttl=self.older_page_ttl,
            await_retries=self.await_retries,
            await_interval=self.await_interval,
            older_page_fallback=self.older_page_fallback,
        )


class RegistrationBridgeServer:
    """HTTP server exposing registration documents synthesized from a v2 feed."""

    def __init__(self, config: BridgeConfig):
        """Initialize the bridge server.

        Args:
            config: Server configuration.
        """
        self._config = config
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None

        self._store = MemoryDocumentStore(max_entries=config.store_max_entries)
        self._feed = UpstreamFeedClient(upstream=config.upstream, timeout=config.timeout)
        self._tasks = BackgroundTasks()
        self._service = RegistrationService(
            feed=self._feed,
            cache=DocumentCache(self._store, page_ttl=config.page_ttl),
            spawner=self._tasks,
            settings=config.synthesis_settings(),
        )

    def _create_app(self) -> web.Application:
        """Create the aiohttp application."""
        middlewares = []
        if self._config.user_agent_prefix:
            middlewares.append(user_agent_gate(self._config.user_agent_prefix))
        app = web.Application(middlewares=middlewares)
        app.router.add_get("/_bridge/health", self._health_check)
        app.router.add_get("/index.json", self._handle_service_index)
        app.router.add_get("/{package_id}/index.json", self._handle_index)
        app.router.add_get("/{package_id}/page/{page_file}", self._handle_page)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: web.Application) -> None:
        """Called when the server starts."""
        await self._feed.start()
        logger.info("Bridge server starting on %s:%s", self._config.host, self._config.port)

    async def _on_cleanup(self, app: web.Application) -> None:
        """Called when the server stops."""
        await self._tasks.drain(Constants.SHUTDOWN_DRAIN_SEC)
        await self._feed.stop()
        logger.info("Bridge server stopped")

    def _base_url(self, request: web.Request) -> str:
        """Base URL that every ``@id`` is built from."""
        if self._config.public_base_url:
            return self._config.public_base_url.rstrip("/")
        return f"{request.scheme}://{request.host}"

    async def _health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "upstream": self._config.upstream,
            "background_tasks": self._tasks.pending,
            "store": self._store.stats(),
        })

    async def _handle_service_index(self, request: web.Request) -> web.Response:
        return web.json_response(build_service_index(self._base_url(request)))

    async def _handle_index(self, request: web.Request) -> web.Response:
        """Serve the registration index of a package."""
        package_id = request.match_info["package_id"]
        try:
            document = await self._service.get_index(self._base_url(request), package_id)
        except RegistrationError as exc:
            return self._error_response(exc, package_id)
        return web.json_response(
            document,
            headers={"Cache-Control": f"max-age={Constants.INDEX_MAX_AGE_SEC}"},
        )

    async def _handle_page(self, request: web.Request) -> web.Response:
        """Serve a named registration page as a standalone document."""
        package_id = request.match_info["package_id"]
        page_file = request.match_info["page_file"]
        if not page_file.endswith(".json"):
            return web.json_response({"error": "Not Found."}, status=404)
        page_name = page_file[: -len(".json")]
        try:
            document = await self._service.get_page(
                self._base_url(request), package_id, page_name
            )
        except RegistrationError as exc:
            return self._error_response(exc, package_id)
        return web.json_response(
            document,
            headers={"Cache-Control": f"max-age={self._config.page_ttl}"},
        )

    def _error_response(self, exc: RegistrationError, package_id: str) -> web.Response:
        """Map a synthesis error onto an HTTP response."""
        if isinstance(exc, UpstreamError):
            logger.warning("%s: upstream error %s", package_id, exc)
            return web.Response(
                status=exc.status or 502,
                text=exc.message,
                content_type="text/plain",
            )
        if isinstance(exc, NoVersionsFound):
            logger.error("%s: %s", package_id, exc)
            return web.json_response({"error": str(exc)}, status=424)
        if isinstance(exc, (MalformedVersion, FeedFormatError)):
            logger.error("%s: unusable upstream data: %s", package_id, exc)
            return web.json_response({"error": str(exc)}, status=502)
        if isinstance(exc, PageNotFound):
            return web.json_response(
                {
                    "error": str(exc),
                    "message": (
                        "The registration page you requested does not exist. "
                        "Parse page identifiers from the registration index."
                    ),
                },
                status=404,
            )
        if isinstance(exc, PagePopulationTimeout):
            return web.json_response(
                {
                    "error": str(exc),
                    "message": "The page is still being populated, retry shortly.",
                },
                status=503,
                headers={"Retry-After": str(max(1, int(self._config.await_interval)))},
            )
        logger.error("%s: synthesis failed: %s", package_id, exc)
        return web.json_response({"error": str(exc)}, status=500)

    def cache_stats(self) -> Dict[str, Any]:
        """Get document store statistics."""
        return self._store.stats()

    async def start(self) -> None:
        """Start the bridge server."""
        self._app = self._create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(
            self._runner,
            self._config.host,
            self._config.port,
        )
        await site.start()

        logger.info(
            "Bridge server listening on http://%s:%s",
            self._config.host, self._config.port,
        )
        logger.info("Upstream feed: %s", self._config.upstream)

    async def stop(self) -> None:
        """Stop the bridge server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_bridge_server_sync(config: BridgeConfig) -> None:
    """Run the bridge server synchronously.

    Installs signal handlers for SIGTERM and SIGINT for clean shutdown.

    Args:
        config: Server configuration.
    """
    server = RegistrationBridgeServer(config)
    loop = asyncio.new_event_loop()

    async def run():
        await server.start()
        stop_event = asyncio.Event()
        running_loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            running_loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
        await server.stop()

    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work (Windows)
        loop.run_until_complete(server.stop())
    finally:
        loop.close()
        logger.info("Bridge server shutdown complete")

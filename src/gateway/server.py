"""Gem gateway server using aiohttp."""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aiohttp import web
from yarl import URL

from constants import Constants

from .aggregator import Aggregator
from .codec import encode_dependencies
from .directory import GemDirectory
from .errors import NotFoundError, UpstreamError
from .models import Repository
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig:
    """Configuration for the gateway server."""

    host: str = Constants.DEFAULT_HOST
    port: int = Constants.DEFAULT_PORT
    repositories: List[str] = field(default_factory=list)
    timeout: int = Constants.REQUEST_TIMEOUT

    @classmethod
    def from_args(cls, args: Any, file_config: Optional[Dict[str, Any]] = None) -> "GatewayConfig":
        """Create config from CLI arguments.

        Values from a config file are applied first; any option given on the
        command line overrides them.

        Args:
            args: Parsed CLI arguments namespace.
            file_config: Optional mapping loaded from a config file.

        Returns:
            GatewayConfig instance.
        """
        config = cls()
        file_config = file_config or {}

        if file_config.get("host"):
            config.host = str(file_config["host"])
        if file_config.get("port") is not None:
            config.port = int(file_config["port"])
        if file_config.get("timeout") is not None:
            config.timeout = int(file_config["timeout"])
        repositories = file_config.get("repositories")
        if repositories:
            if not isinstance(repositories, list):
                raise ValueError("Config key 'repositories' must be a list of URLs")
            config.repositories = [str(r) for r in repositories]

        if getattr(args, "GATEWAY_HOST", None):
            config.host = args.GATEWAY_HOST
        if getattr(args, "GATEWAY_PORT", None) is not None:
            config.port = args.GATEWAY_PORT
        if getattr(args, "GATEWAY_TIMEOUT", None) is not None:
            config.timeout = args.GATEWAY_TIMEOUT
        if getattr(args, "REPOSITORIES", None):
            config.repositories = list(args.REPOSITORIES)

        return config

    def validate(self) -> None:
        """Check the config is usable.

        Raises:
            ValueError: Describing the first problem found.
        """
        if not self.repositories:
            raise ValueError("Need at least one repository specified!")
        for repo in self.repositories:
            url = URL(repo)
            if url.scheme not in ("http", "https") or not url.host:
                raise ValueError(f"Invalid repository URL: {repo}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}")
        if self.timeout <= 0:
            raise ValueError(f"Invalid timeout: {self.timeout}")

    def build_repositories(self) -> List[Repository]:
        """Repositories in priority order, highest first."""
        return [Repository(url, priority) for priority, url in enumerate(self.repositories)]


@web.middleware
async def log_requests(request: web.Request, handler) -> web.StreamResponse:
    """Log every incoming request."""
    logger.info("%s %s", request.method, request.path_qs)
    return await handler(request)


class GemGatewayServer:
    """HTTP gateway presenting several gem repositories as one.

    Dependency queries are answered from the priority-merged view of all
    upstreams; gem downloads are redirected to the repository that last
    supplied the requested gem.
    """

    def __init__(self, config: GatewayConfig):
        """Initialize the gateway server.

        Args:
            config: Server configuration.
        """
        self._config = config
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None

        self._repositories = config.build_repositories()
        self._directory = GemDirectory()
        self._upstream = UpstreamClient(timeout=config.timeout)
        self._aggregator = Aggregator(self._repositories, self._upstream, self._directory)

    def _create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application(middlewares=[log_requests])
        app.router.add_get(Constants.HEALTH_PATH, self._health_check)
        app.router.add_get(Constants.DEPENDENCIES_PATH, self._handle_dependencies)
        app.router.add_get(f"{Constants.DEPENDENCIES_PATH}.json", self._handle_dependencies)
        app.router.add_get(Constants.GEMS_PATH + "{filename}", self._handle_gem)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "repositories": [str(repo) for repo in self._repositories],
            "directory": self._directory.stats(),
        })

    async def _on_startup(self, app: web.Application) -> None:
        """Called when the server starts."""
        await self._upstream.start()
        logger.info("Gateway starting on %s:%s", self._config.host, self._config.port)

    async def _on_cleanup(self, app: web.Application) -> None:
        """Called when the server stops."""
        await self._upstream.stop()
        logger.info("Gateway stopped")

    async def _handle_dependencies(self, request: web.Request) -> web.Response:
        """Answer a dependency query from the merged view of all upstreams.

        Args:
            request: Incoming HTTP request.

        Returns:
            Encoded records, an empty response for an empty query,
            or a JSON error.
        """
        gems = request.query.get("gems", "")
        names = [name.strip() for name in gems.split(",") if name.strip()]
        if not names:
            return web.Response()

        try:
            records = await self._aggregator.query(names)
        except UpstreamError as exc:
            logger.warning("Dependency query for %s failed: %s", ",".join(names), exc)
            return web.json_response(
                {
                    "error": "Upstream request failed",
                    "repository": str(exc.repository),
                    "message": exc.message,
                },
                status=502,
            )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error answering dependency query")
            return web.json_response({"error": "Internal gateway error"}, status=500)

        return web.Response(body=encode_dependencies(records), content_type="application/json")

    async def _handle_gem(self, request: web.Request) -> web.Response:
        """Redirect a gem download to the repository that holds it.

        Raises:
            web.HTTPMovedPermanently: When the gem is in the directory.
            web.HTTPNotFound: When it is not, or the path is not a .gem file.
        """
        filename = request.match_info["filename"]
        if not filename.endswith(Constants.GEM_SUFFIX):
            raise web.HTTPNotFound()
        identity = filename[: -len(Constants.GEM_SUFFIX)]

        try:
            repository = self._directory.lookup(identity)
        except NotFoundError:
            logger.debug("No repository known for %s", identity)
            raise web.HTTPNotFound() from None

        logger.info("Found %s in repo %s", filename, repository)
        raise web.HTTPMovedPermanently(location=repository.gem_url(identity))

    def directory_stats(self) -> Dict[str, Any]:
        """Get gem directory statistics."""
        return self._directory.stats()

    async def start(self) -> None:
        """Start the gateway server."""
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
            "gemgate listening on http://%s:%s",
            self._config.host, self._config.port,
        )
        for repo in self._repositories:
            logger.info("Upstream #%d: %s", repo.priority, repo)

    async def stop(self) -> None:
        """Stop the gateway server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_gateway_server_sync(config: GatewayConfig) -> None:
    """Run the gateway server synchronously.

    Installs signal handlers for SIGTERM and SIGINT for clean shutdown.

    Args:
        config: Server configuration.
    """
    server = GemGatewayServer(config)
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
        logger.info("Gateway shutdown complete")

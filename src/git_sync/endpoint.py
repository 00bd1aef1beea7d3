"""Trigger endpoint for on-demand repository updates."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import web

from git_sync.errors import RepositoryNotFoundError
from git_sync.webhook import authenticate, policy_for

if TYPE_CHECKING:
    from git_sync.config import ServerConfig
    from git_sync.manager import RepoManager

logger = logging.getLogger(__name__)

# Configure logging to stderr
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class TriggerResponse:
    """Status of one trigger request."""

    status_code: int

    def payload(self) -> dict[str, Any]:
        return {"status_code": self.status_code}


class TriggerEndpoint:
    """Authenticates inbound triggers and runs the repository update."""

    def __init__(self, manager: RepoManager) -> None:
        self._manager = manager

    async def handle(
        self,
        name: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TriggerResponse:
        """Handle a trigger for the named repository."""
        logger.debug("Received update request for %s", name)

        try:
            repo = self._manager.lookup(name)
        except RepositoryNotFoundError:
            logger.warning("Repo not found: %s", name)
            return TriggerResponse(HTTPStatus.INTERNAL_SERVER_ERROR)

        if repo.config.webhooks:
            policies = [policy_for(webhook) for webhook in repo.config.webhooks]
            result = authenticate(policies, method, headers, body)
            if not result.ok:
                logger.warning(
                    "Webhook authentication failed for %s (header: %s): %s",
                    name,
                    result.header or "-",
                    result.reason,
                )
                return TriggerResponse(HTTPStatus.UNAUTHORIZED)
        else:
            logger.debug("No webhooks configured for %s, trigger accepted without authentication", name)

        try:
            await repo.update()
        except Exception:
            logger.exception("Failed updating repo %s", name)
            return TriggerResponse(HTTPStatus.INTERNAL_SERVER_ERROR)

        return TriggerResponse(HTTPStatus.OK)


class TriggerServer:
    """HTTP server exposing the trigger endpoint.

    Routes ``{path_prefix}/{name}`` to the endpoint for any method and serves
    ``/health`` and ``/status``.
    """

    def __init__(self, endpoint: TriggerEndpoint, config: ServerConfig, manager: RepoManager | None = None) -> None:
        """Initialize trigger server.

        Args:
            endpoint: Endpoint that authenticates and runs updates.
            config: Listener settings.
            manager: Manager whose state is reported on /status.
        """
        self._endpoint = endpoint
        self._config = config
        self._manager = manager
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    async def _handle_trigger(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        body = await request.read()
        response = await self._endpoint.handle(name, request.method, request.headers, body)
        return web.json_response(response.payload(), status=response.status_code)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.Response(text="OK", status=200)

    async def _handle_status(self, _request: web.Request) -> web.Response:
        repos = self._manager.status() if self._manager else []
        return web.json_response({"repositories": repos})

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/status", self._handle_status)
        app.router.add_route("*", self._config.path_prefix + "/{name}", self._handle_trigger)
        return app

    async def start(self) -> None:
        """Start the trigger server."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await self._site.start()

        logger.info("Trigger server started on %s:%d", self._config.host, self._config.port)

    async def stop(self) -> None:
        """Stop the trigger server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

        logger.info("Trigger server stopped")

    async def run_forever(self) -> None:
        """Start server and run until cancelled."""
        await self.start()
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            await self.stop()

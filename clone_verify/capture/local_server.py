"""Local static server for the cloned site.

Pages opened via file:// break root-relative asset URLs, so the clone is
served over HTTP for the duration of a run and relative candidate locators
are resolved against ``base_url``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from aiohttp import web

from clone_verify.errors import ConfigurationError
from clone_verify.models.config import LocalServerConfig

logger = logging.getLogger(__name__)


class LocalCloneServer:
    """Serves a directory of static files with aiohttp.

    ``/`` and directory paths map to ``index.html``; extensionless paths
    fall back to ``<path>.html`` the way static hosts do.
    """

    def __init__(self, config: LocalServerConfig):
        self.config = config
        self.root = Path(config.directory).resolve()
        self._runner: web.AppRunner | None = None
        self._port: int = config.port

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def base_url(self) -> str:
        return f"http://{self.config.host}:{self._port}/"

    async def start(self) -> None:
        if self._runner is not None:
            return
        if not self.root.is_dir():
            raise ConfigurationError(f"Clone directory not found: {self.root}")

        app = web.Application()
        app.router.add_get("/{tail:.*}", self._handle)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            raise ConfigurationError(
                f"Failed to start clone server on {self.config.host}:{self.config.port}: {e}"
            ) from e

        self._runner = runner
        if self.config.port == 0 and runner.addresses:
            self._port = runner.addresses[0][1]
        logger.info("Serving %s at %s", self.root, self.base_url)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.debug("Clone server stopped")

    async def __aenter__(self) -> "LocalCloneServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def resolve_path(self, tail: str) -> Path | None:
        """Map a request path to a file under the root, or None."""
        target = (self.root / tail.lstrip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            return None
        if target.is_dir():
            target = target / "index.html"
        elif not target.exists() and not target.suffix:
            target = target.with_suffix(".html")
        return target if target.is_file() else None

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        path = self.resolve_path(request.match_info["tail"])
        if path is None:
            raise web.HTTPNotFound()
        return web.FileResponse(path)

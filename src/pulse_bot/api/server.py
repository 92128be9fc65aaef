"""
Health check HTTP server.

Exposes a plain ``/health`` endpoint for process supervisors and a
``/status`` endpoint reporting request queue statistics.
"""

import json
import time
from typing import Optional

from aiohttp import web
from aiohttp.web import Request, Response

from pulse_bot.config import HealthConfig
from pulse_bot.queue import SequentialRetryQueue
from pulse_bot.utils.logging import get_logger


class HealthServer:
    """
    Lightweight aiohttp server for liveness and status checks.

    Endpoints:
    - GET /health: plain ``OK``
    - GET /status: JSON with queue statistics and uptime
    """

    def __init__(self, queue: SequentialRetryQueue, config: Optional[HealthConfig] = None):
        """
        Initialize the health server.

        Args:
            queue: The request queue whose statistics are reported
            config: Host and port settings
        """
        self.queue = queue
        self.config = config or HealthConfig()
        self.logger = get_logger(__name__)
        self.started_at = time.monotonic()

        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def create_app(self) -> web.Application:
        """Build the aiohttp application with all routes registered."""
        app = web.Application()
        app.router.add_get('/health', self._health_check)
        app.router.add_get('/status', self._status)
        return app

    async def start(self) -> None:
        """Start serving on the configured host and port."""
        self.app = self.create_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.config.host, self.config.port)
        await self.site.start()

        self.logger.info("Health check server started",
                         host=self.config.host, port=self.config.port)

    async def stop(self) -> None:
        """Stop the server and release its sockets."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        self.logger.info("Health check server stopped")

    async def _health_check(self, request: Request) -> Response:
        """Liveness endpoint."""
        return Response(text='OK')

    async def _status(self, request: Request) -> Response:
        """Report queue statistics."""
        status_data = {
            'status': 'closed' if self.queue.closed else 'healthy',
            'queue': self.queue.get_stats(),
            'uptime_seconds': round(time.monotonic() - self.started_at, 1),
        }

        return Response(
            text=json.dumps(status_data, indent=2),
            content_type='application/json'
        )

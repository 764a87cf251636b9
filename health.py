"""
Simple health check server for deployment monitoring
"""
import time
import logging
from typing import Optional

from aiohttp import web

logger = logging.getLogger(__name__)


class HealthServer:
    def __init__(self, port: int = 8000, service: str = "youtube-shorts-bot"):
        self.port = port
        self.service = service
        self.started_at = time.monotonic()
        self.runner: Optional[web.AppRunner] = None
        self.app = web.Application()
        self.app.router.add_get('/health', self.health_check)
        self.app.router.add_get('/', self.health_check)

    async def health_check(self, request):
        """Health check endpoint"""
        return web.json_response({
            "status": "healthy",
            "service": self.service,
            "uptime": round(time.monotonic() - self.started_at, 1),
        })

    async def start(self):
        """Start health check server on the running loop"""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, '0.0.0.0', self.port)
        await site.start()
        logger.info(f"Health check server started on port {self.port}")

    async def stop(self):
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Health check server stopped")

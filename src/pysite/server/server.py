import asyncio
import logging
import signal
from typing import Optional

from hypercorn.asyncio import serve
from hypercorn.config import Config as HyperConfig

from ..config import AppConfig
from ..config.logging import configure_logging
from .application import Application


class Server:
    """Runs an Application under hypercorn until SIGINT/SIGTERM"""

    def __init__(self, app: Application, config: Optional[AppConfig] = None):
        self.app = app
        self.config = config or app.config
        self._shutdown_event: Optional[asyncio.Event] = None
        self.logger = logging.getLogger("pysite.server")

    def _create_hyper_config(self) -> HyperConfig:
        server = self.config.server
        config = HyperConfig()
        config.bind = [f"{server.host}:{server.port}"]
        config.backlog = server.backlog
        config.keep_alive_timeout = server.keep_alive_timeout
        config.accesslog = logging.getLogger("pysite.access") if server.access_log else None
        config.errorlog = logging.getLogger("pysite.server")

        if server.ssl_certfile and server.ssl_keyfile:
            config.certfile = server.ssl_certfile
            config.keyfile = server.ssl_keyfile

        return config

    async def start(self) -> None:
        """Serve until a shutdown signal arrives; hypercorn drives the app lifespan"""
        self._shutdown_event = asyncio.Event()
        self._setup_signal_handlers()
        hyper_config = self._create_hyper_config()
        self.logger.info("Starting server on %s:%s", self.config.server.host, self.config.server.port)
        await serve(self.app, hyper_config, shutdown_trigger=self._shutdown_wait)
        self.logger.info("Server shutdown complete")

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda s=sig: self._handle_shutdown_signal(s))

    def _handle_shutdown_signal(self, sig: signal.Signals) -> None:
        self.logger.info("Received signal %s, shutting down gracefully...", signal.Signals(sig).name)
        self.shutdown()

    async def _shutdown_wait(self) -> None:
        await self._shutdown_event.wait()

    def shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    def run(self) -> None:
        """Run the server (blocking call)"""
        configure_logging(self.config.logging, debug=self.config.debug)

        if self.config.server.uvloop:
            import uvloop
            asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
            self.logger.info("Using uvloop event loop")

        try:
            asyncio.run(self.start())
        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")

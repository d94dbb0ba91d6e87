"""Main entry point for the FountainScan risk engine service."""

import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone

from .analyzer.catalog import load_catalog
from .analyzer.engine import ScanEngine
from .config import Config, load_config, validate_config
from .reporter import ReportSubmitter
from .server import ScanServer
from .utils.lists import read_list

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


class FountainScanService:
    """Owns the engine, the HTTP adapter and the background workers."""

    def __init__(self, config: Config, engine: ScanEngine | None = None):
        self.config = config
        self.engine = engine if engine is not None else ScanEngine.from_config(config)
        self.reporter: ReportSubmitter | None = None
        if config.report_endpoint:
            self.reporter = ReportSubmitter(config.report_endpoint, timeout_seconds=config.report_timeout)
        self.server = ScanServer(
            self.engine,
            host=config.host,
            port=config.port,
            reporter=self.reporter,
        )
        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._stop_lock = asyncio.Lock()
        self._stop_task: asyncio.Task | None = None
        self._started_at = datetime.now(timezone.utc)

    def refresh_feed(self) -> None:
        """Re-read the threat feed and catalog override and swap them in."""
        feed = read_list(self.config.feed_path)
        self.engine.replace_feed(feed)

        catalog = load_catalog(self.config.catalog_path)
        if catalog != self.engine.catalog:
            self.engine.replace_catalog(catalog)

    async def _feed_refresh_worker(self):
        """Periodically refresh the threat feed and catalog."""
        interval = self.config.feed_refresh_hours * 3600
        logger.info("Feed refresh worker started (every %.1fh)", self.config.feed_refresh_hours)

        while self._running:
            try:
                await asyncio.sleep(interval)
                self.refresh_feed()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Feed refresh failed: %s", e)

        logger.info("Feed refresh worker stopped")

    async def start(self):
        """Start the engine workers and the HTTP adapter."""
        logger.info("Starting FountainScan...")
        self._running = True

        self.engine.start_sweeper()
        self._tasks = [asyncio.create_task(self._feed_refresh_worker())]

        await self.server.start()
        logger.info(
            "FountainScan running (catalog v%s, %s allow / %s deny / %s feed entries)",
            self.engine.catalog.version,
            len(self.engine.lists.allow),
            len(self.engine.lists.deny),
            len(self.engine.lists.feed),
        )

        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            logger.info("Service tasks cancelled")

    async def stop(self):
        """Stop all components."""
        async with self._stop_lock:
            if self._stop_task is None:
                self._stop_task = asyncio.create_task(self._stop_impl())
            stop_task = self._stop_task
        await stop_task

    async def _stop_impl(self):
        """One-shot shutdown implementation (idempotent via stop())."""
        logger.info("Stopping FountainScan...")
        self._running = False

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await self.server.stop()
        await self.engine.close()
        if self.reporter:
            await self.reporter.close()

        logger.info("FountainScan stopped")


async def run_service():
    """Run the FountainScan service."""
    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        sys.exit(1)

    service = FountainScanService(config)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

    try:
        await service.start()
    except KeyboardInterrupt:
        pass
    finally:
        await service.stop()


def main():
    """Entry point."""
    asyncio.run(run_service())


if __name__ == "__main__":
    main()

"""Main polling loop with signal handling and exponential backoff."""

from __future__ import annotations

import logging
import random
import signal
import time
from types import FrameType

from .config import AppConfig
from .discovery.change_detector import ChangeDetector
from .discovery.ec2_client import EC2Discovery
from .exceptions import OutputError
from .logging_config import log_fields
from .targets.file_sd import FileSDWriter

logger = logging.getLogger(__name__)


class Daemon:
    """Polling daemon: discover -> detect changes -> write targets -> sleep."""

    def __init__(self, config: AppConfig, discovery: EC2Discovery | None = None):
        self._config = config
        self._discovery = discovery or EC2Discovery(config.ec2)
        self._change_detector = ChangeDetector()
        self._writer = FileSDWriter(config.output)
        self._shutdown = False
        self._consecutive_failures = 0

    def run_once(self) -> None:
        """Execute a single discovery + write cycle."""
        self._cycle()

    def run(self) -> None:
        """Run the polling loop until shutdown signal."""
        self._install_signal_handlers()
        logger.info("Daemon started, polling every %ds", self._config.polling.interval_seconds)

        while not self._shutdown:
            cycle_start = time.monotonic()

            try:
                self._cycle()
                self._consecutive_failures = 0
            except Exception:
                self._consecutive_failures += 1
                logger.exception(
                    "Cycle failed (consecutive failures: %d)",
                    self._consecutive_failures,
                )

            elapsed = time.monotonic() - cycle_start
            sleep_time = self._calculate_sleep(elapsed)
            logger.debug("Sleeping %.1fs before next cycle", sleep_time)
            self._interruptible_sleep(sleep_time)

        logger.info("Daemon stopped")

    def _cycle(self) -> None:
        """One full discovery-to-output cycle."""
        start = time.monotonic()

        label_maps = self._discovery.discover_all()

        if self._change_detector.detect(label_maps):
            try:
                self._writer.write(label_maps)
            except OutputError:
                # Forget what was seen so the next cycle retries the write
                self._change_detector.reset()
                raise
        else:
            logger.debug("Targets unchanged, %s left as is", self._writer.path)

        elapsed = time.monotonic() - start
        logger.info(
            "Cycle complete",
            extra=log_fields(elapsed_seconds=round(elapsed, 2)),
        )

    def _calculate_sleep(self, elapsed: float) -> float:
        """Determine how long to sleep, applying backoff and jitter."""
        base = self._config.polling.interval_seconds

        if self._consecutive_failures > 0:
            backoff = min(
                self._config.polling.backoff_base_seconds * (2 ** (self._consecutive_failures - 1)),
                self._config.polling.max_backoff_seconds,
            )
            base = backoff

        jitter = random.uniform(0, self._config.polling.jitter_seconds)

        # Subtract elapsed time from interval
        return max(0.0, base - elapsed + jitter)

    def _interruptible_sleep(self, seconds: float) -> None:
        """Sleep in short increments so we can respond to shutdown signals."""
        end = time.monotonic() + seconds
        while not self._shutdown and time.monotonic() < end:
            remaining = end - time.monotonic()
            time.sleep(min(remaining, 1.0))

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGHUP, self._handle_reload)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        self._shutdown = True

    def _handle_reload(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received SIGHUP, resetting change detector state")
        self._change_detector.reset()

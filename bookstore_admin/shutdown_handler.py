"""
Graceful shutdown handler for the status monitor.

Handles SIGTERM and SIGINT signals so that polling timers are stopped and
connections closed before the process exits.
"""

import asyncio
import signal
from typing import Callable, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class GracefulShutdownHandler:
    """
    Manages graceful shutdown of long-running consumers.

    Handles SIGTERM and SIGINT signals and runs the registered cleanup
    callbacks before releasing ``wait_for_shutdown``.
    """

    def __init__(self, service_name: str):
        """
        Initialize shutdown handler.

        Args:
            service_name: Name of the service for logging
        """
        self.service_name = service_name
        self.shutdown_event = asyncio.Event()
        self.cleanup_callbacks: List[Callable] = []
        self.is_shutting_down = False
        self._shutdown_task: Optional[asyncio.Task] = None

    def register_cleanup(self, callback: Callable) -> None:
        """
        Register a cleanup callback to be called during shutdown.

        Callbacks are executed in reverse registration order (LIFO).

        Args:
            callback: Async or sync function to call during cleanup
        """
        self.cleanup_callbacks.append(callback)
        logger.debug(f"Registered cleanup callback: {callback.__name__}")

    def setup_signal_handlers(self) -> None:
        """
        Setup signal handlers for SIGTERM and SIGINT.

        The handlers are installed on the running event loop so a signal
        wakes the loop immediately. Must be called from a coroutine.
        """
        loop = asyncio.get_running_loop()

        def signal_handler(signum: int) -> None:
            """Handle shutdown signals."""
            signal_name = signal.Signals(signum).name
            logger.info(
                f"Received {signal_name} signal, initiating graceful shutdown",
                extra={"extra_fields": {"signal": signal_name}}
            )
            self.request_shutdown()

        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, signal_handler, signum)

        logger.info(
            f"Signal handlers registered for {self.service_name}",
            extra={"extra_fields": {"signals": ["SIGTERM", "SIGINT"]}}
        )

    def request_shutdown(self) -> None:
        """Start the shutdown sequence unless one is already running."""
        if self.is_shutting_down:
            logger.warning("Shutdown already in progress, ignoring request")
            return

        self.is_shutting_down = True
        self._shutdown_task = asyncio.get_running_loop().create_task(
            self.perform_shutdown()
        )

    async def perform_shutdown(self) -> None:
        """
        Perform graceful shutdown sequence.

        Executes all registered cleanup callbacks in reverse order.
        """
        logger.info(f"Starting graceful shutdown sequence for {self.service_name}")

        cleanup_count = len(self.cleanup_callbacks)
        logger.info(f"Executing {cleanup_count} cleanup callbacks")

        for idx, callback in enumerate(reversed(self.cleanup_callbacks), 1):
            try:
                callback_name = callback.__name__
                logger.debug(f"Executing cleanup {idx}/{cleanup_count}: {callback_name}")

                if asyncio.iscoroutinefunction(callback):
                    await callback()
                else:
                    callback()

                logger.debug(f"Completed cleanup: {callback_name}")

            except Exception as e:
                logger.error(
                    f"Error in cleanup callback {callback.__name__}: {e}",
                    exc_info=True
                )

        logger.info(f"Graceful shutdown completed for {self.service_name}")
        self.shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        """
        Wait until the shutdown sequence has completed.
        """
        await self.shutdown_event.wait()


def setup_graceful_shutdown(
    service_name: str,
    cleanup_callbacks: Optional[List[Callable]] = None
) -> GracefulShutdownHandler:
    """
    Setup graceful shutdown for a service.

    Args:
        service_name: Name of the service
        cleanup_callbacks: Optional list of cleanup functions

    Returns:
        Configured GracefulShutdownHandler
    """
    handler = GracefulShutdownHandler(service_name)

    if cleanup_callbacks:
        for callback in cleanup_callbacks:
            handler.register_cleanup(callback)

    handler.setup_signal_handlers()

    return handler

"""
Worker launcher: telemetry, logging, signal handling and lifecycle for
long-running processes such as the billing scheduler.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional, Any, Callable

from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger


class WorkerLauncher:
    """Runs a worker object exposing `start()`, `stop()` and `running`."""

    def __init__(self):
        self.logger = get_logger(__name__)
        self.worker_instance: Optional[Any] = None

    def _setup_logging(self, level: int = logging.INFO):
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )

    def _signal_handler(self, signum: int, frame: Any) -> None:
        """Stop the worker loop on SIGINT / SIGTERM."""
        self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        if self.worker_instance:
            self.worker_instance.running = False
        sys.exit(0)

    def _register_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    async def _run_worker_async(self, worker_instance: Any, worker_name: str):
        self.worker_instance = worker_instance
        self._register_signal_handlers()

        try:
            self.logger.info(f"Starting {worker_name}...")
            await worker_instance.start()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt, shutting down worker...")
        except Exception as e:
            self.logger.error(f"Worker failed with error: {e}", exc_info=True)
        finally:
            try:
                await worker_instance.stop()
                self.logger.info(f"{worker_name} shutdown complete")
            except Exception as cleanup_error:
                self.logger.error(f"Error during cleanup: {cleanup_error}")

    def run(
        self,
        worker_factory: Callable,
        worker_name: str,
        log_level: int = logging.INFO,
        factory_args: tuple = (),
        factory_kwargs: Optional[dict] = None,
    ):
        """
        Main entry point to run a worker.

        Args:
            worker_factory: Function/class that creates the worker instance
            worker_name: Human readable name for logging
            log_level: Root logging level
            factory_args: Args to pass to worker factory
            factory_kwargs: Kwargs to pass to worker factory
        """
        if factory_kwargs is None:
            factory_kwargs = {}

        _initialize_telemetry()
        self._setup_logging(log_level)

        self.logger.info(f"Configuring {worker_name}...")
        worker_instance = worker_factory(*factory_args, **factory_kwargs)

        try:
            asyncio.run(self._run_worker_async(worker_instance, worker_name))
        except KeyboardInterrupt:
            self.logger.info("Final keyboard interrupt caught, exiting...")
            sys.exit(0)

    def run_with_cli(
        self,
        worker_factory: Callable,
        worker_name: str,
        cli_setup_func: Optional[Callable] = None,
    ):
        """
        Run worker with CLI argument parsing support.

        Args:
            worker_factory: Function/class that creates the worker instance
            worker_name: Human readable name for logging
            cli_setup_func: Returns (args, factory_args, factory_kwargs);
                `args.log_level`, when present, sets the logging level
        """
        log_level = logging.INFO
        if cli_setup_func:
            args, factory_args, factory_kwargs = cli_setup_func()
            if getattr(args, "log_level", None):
                log_level = getattr(logging, args.log_level)
        else:
            factory_args, factory_kwargs = (), {}

        self.run(
            worker_factory=worker_factory,
            worker_name=worker_name,
            log_level=log_level,
            factory_args=factory_args,
            factory_kwargs=factory_kwargs,
        )

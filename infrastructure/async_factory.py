# infrastructure/async_factory.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Type

from core.logger import logger
from infrastructure.circuit_breaker import HealthCheckRegistry

T = TypeVar("T", bound="BaseAsyncFactory")


class BaseAsyncFactory(ABC):
    """
    Base class for async services with health checking and a standard
    lifecycle: create -> initialise -> process_batch / start -> stop.

    Collaborators are passed in by the caller; subclasses report the health
    checkers they need and the resources to release on shutdown.
    """

    def __init__(self, run_once=False):
        self.run_once = run_once
        self._registry = None
        self._running = False
        self._task = None
        logger.info(f"Initializing {self.__class__.__name__} (run_once={run_once})")

    @classmethod
    async def create(cls: Type[T], **kwargs) -> T:
        """Factory method for creating and initializing services."""
        logger.info(f"Creating {cls.__name__} instance")
        instance = cls(**kwargs)
        await instance.async_setup()
        return instance

    async def __aenter__(self):
        await self.initialise()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def async_setup(self):
        """Registers health checks, then runs subclass setup."""
        checkers = self.health_checkers()
        self._registry = HealthCheckRegistry(*checkers)
        logger.info(f"{self.__class__.__name__} registered {len(checkers)} health checks")
        await self.service_setup()

    def health_checkers(self) -> list:
        return []

    def resources(self) -> list:
        """Objects with an async `close()` to release on stop."""
        return []

    @abstractmethod
    async def service_setup(self):
        """Subclass-specific setup logic."""
        pass

    async def initialise(self):
        """Validates all services are healthy before operation commences."""
        logger.info(f"Initializing {self.__class__.__name__}")
        await self._registry.assert_healthy_or_exit()
        logger.info(f"{self.__class__.__name__} initialized successfully")

    @abstractmethod
    async def process_batch(self) -> int:
        """
        Run one processing pass.

        Returns:
            int: Number of items processed
        """
        pass

    async def start(self, interval_seconds: int = 60):
        """Begins the continuous processing loop with appropriate task management."""
        logger.info(f"Starting {self.__class__.__name__}")
        self._running = True

        # Use a task to allow cancellation during shutdown
        self._task = asyncio.create_task(self._processing_loop(interval_seconds))
        return self._task

    async def _processing_loop(self, interval_seconds):
        """Processes one batch per interval until stopped, or once in run_once mode."""
        while self._running:
            try:
                if not await self._registry.check_with_backoff(max_wait=interval_seconds):
                    logger.warning("Health check failed - waiting before retry")
                    await asyncio.sleep(interval_seconds)
                    continue

                items_processed = await self.process_batch()
                log_level = logging.INFO if items_processed > 0 else logging.DEBUG
                logger.log(log_level, f"Processed {items_processed} items")

                if self.run_once:
                    logger.info("Run-once mode: exiting after batch")
                    break

                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                logger.info(f"{self.__class__.__name__} processing loop cancelled")
                break
            except Exception as e:
                logger.error(f"Error in processing loop: {e}", exc_info=True)
                await asyncio.sleep(interval_seconds / 2)
        self._running = False

    def request_stop(self):
        """Signal-safe: ends the processing loop without awaiting anything."""
        self._running = False
        if self._task:
            self._task.cancel()

    async def stop(self):
        """Stops the loop and releases every registered resource."""
        logger.info(f"Stopping {self.__class__.__name__}")
        self._running = False

        if self._task:
            try:
                self._task.cancel()
                await asyncio.wait_for(asyncio.shield(self._task), timeout=5.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                logger.debug("Task cancellation confirmed")
            except Exception as e:
                logger.warning(f"Exception during task cancellation: {e}")
            self._task = None

        for resource in self.resources():
            try:
                await resource.close()
                logger.debug(f"{resource.__class__.__name__} closed")
            except Exception as e:
                logger.warning(f"Error closing {resource.__class__.__name__}: {e}")

        logger.info(f"{self.__class__.__name__} stopped successfully")

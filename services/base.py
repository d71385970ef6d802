"""
Lifecycle base class for website services started by the app lifespan.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from utils.logging import get_logger


class BaseService(ABC):
    """
    Abstract base for long-lived website services.

    Subclasses implement ``_initialize_impl`` (and optionally
    ``_shutdown_impl``). ``initialize`` is idempotent and safe to call from
    concurrent startup code; a failed shutdown is logged and the service is
    still marked stopped.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.logger = get_logger(f"services.{name}")
        self._started_at: datetime | None = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._started_at is not None

    async def initialize(self) -> None:
        async with self._lock:
            if self.initialized:
                return
            self.logger.info("Starting %s service", self.name)
            await self._initialize_impl()
            self._started_at = datetime.now(UTC)
            self.logger.info("%s service started", self.name)

    async def shutdown(self) -> None:
        if not self.initialized:
            return
        self.logger.info("Stopping %s service", self.name)
        try:
            await self._shutdown_impl()
        except Exception:
            self.logger.exception("Error while stopping %s service", self.name)
        finally:
            self._started_at = None

    @abstractmethod
    async def _initialize_impl(self) -> None:
        """Subclass-specific initialization logic."""

    async def _shutdown_impl(self) -> None:
        """Subclass-specific shutdown logic. Override if needed."""

    async def health_check(self) -> dict[str, Any]:
        started = self._started_at
        return {
            "service": self.name,
            "initialized": started is not None,
            "status": "healthy" if started is not None else "not_initialized",
            "started_at": started.isoformat() if started else None,
        }

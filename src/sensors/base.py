"""
MotionSource interface for pluggable accelerometer feeds.

This defines the contract every motion source implements so a monitoring
session can work with any feed:
- Browser devicemotion events forwarded over the API
- Recorded sample streams
- Native device sensors
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from models.motion import MotionSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[MotionSample], Awaitable[None]]


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    # Platforms without a permission gate (everything except iOS Safari)
    NOT_REQUIRED = "not_required"


@dataclass
class MotionSourceConfig:
    """
    Base configuration for motion sources.

    Attributes:
        source_id: Identifier for this source (e.g., session id or device name).
    """
    source_id: str = "default"


class MotionSource(ABC):
    """
    Abstract base class for motion sources.

    Lifecycle:
        1. Check is_supported()
        2. Await request_permission() when requires_permission is True
        3. subscribe(callback) to start delivery
        4. unsubscribe() to stop delivery

    subscribe() is idempotent: subscribing while already active never
    duplicates delivery.
    """

    def __init__(self, config: MotionSourceConfig):
        self._config = config
        self._callback: Optional[SampleCallback] = None
        self._samples_delivered = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_active(self) -> bool:
        """Whether a subscriber is currently receiving samples."""
        return self._callback is not None

    @property
    def samples_delivered(self) -> int:
        return self._samples_delivered

    @property
    def requires_permission(self) -> bool:
        """Whether request_permission() must complete before sampling."""
        return False

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether the platform exposes a motion sensor API at all."""

    async def request_permission(self) -> PermissionState:
        """One-time permission prompt. Auto-granted where no gate exists."""
        return PermissionState.NOT_REQUIRED

    def subscribe(self, callback: SampleCallback) -> bool:
        """
        Start delivering samples to callback.

        Returns:
            True if delivery started, False if the source was already active.
        """
        if self.is_active:
            logger.debug(f"Motion source {self.source_id} already subscribed")
            return False
        self._callback = callback
        logger.info(f"Motion source {self.source_id} subscribed")
        return True

    def unsubscribe(self) -> None:
        """Stop delivery immediately. Safe to call multiple times."""
        if self._callback is not None:
            logger.info(f"Motion source {self.source_id} unsubscribed")
        self._callback = None

    async def _deliver(self, sample: MotionSample) -> bool:
        callback = self._callback
        if callback is None:
            return False
        self._samples_delivered += 1
        await callback(sample)
        return True

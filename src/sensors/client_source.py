"""
Client-fed motion source.

The browser owns the accelerometer: it runs the permission prompt, listens to
devicemotion events and forwards samples over the API. This source records
what the client reported about sensor support and permission, and hands
pushed samples to the subscriber while monitoring is on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from models.motion import MotionSample
from .base import MotionSource, MotionSourceConfig, PermissionState

logger = logging.getLogger(__name__)


@dataclass
class ClientMotionSourceConfig(MotionSourceConfig):
    """
    Configuration for a client-fed source.

    Attributes:
        supported: Client reported a devicemotion API.
        permission: Outcome of the client's permission prompt.
    """
    supported: bool = True
    permission: PermissionState = PermissionState.NOT_REQUIRED


class ClientMotionSource(MotionSource):
    """Motion source whose samples are pushed by the API layer."""

    def __init__(self, config: ClientMotionSourceConfig):
        super().__init__(config)
        self._client_config = config

    @property
    def requires_permission(self) -> bool:
        return self._client_config.permission != PermissionState.NOT_REQUIRED

    def is_supported(self) -> bool:
        return self._client_config.supported

    async def request_permission(self) -> PermissionState:
        permission = self._client_config.permission
        logger.info(f"Motion permission for {self.source_id}: {permission.value}")
        return permission

    async def push(self, sample: MotionSample) -> bool:
        """
        Deliver one sample.

        Returns:
            False when nobody is subscribed (sample dropped).
        """
        return await self._deliver(sample)

    async def push_many(self, samples: Iterable[MotionSample]) -> int:
        """Deliver samples in arrival order; returns how many were delivered."""
        delivered = 0
        for sample in samples:
            if await self._deliver(sample):
                delivered += 1
        return delivered

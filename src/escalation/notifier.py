"""
Alert delivery.

No real SMS or telephony transport exists; LoggingNotifier records each
payload in the log and keeps it in memory so callers can inspect what would
have been sent.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from models.alert import AmbulanceRequest, ContactAlert

logger = logging.getLogger(__name__)


class Notifier(ABC):
    @abstractmethod
    def send_contact_alert(self, alert: ContactAlert) -> None:
        ...

    @abstractmethod
    def send_ambulance_request(self, request: AmbulanceRequest) -> None:
        ...


class LoggingNotifier(Notifier):
    """Logs alerts instead of transmitting them."""

    def __init__(self, max_history: int = 500):
        self._max_history = max_history
        self.sent: List[object] = []

    def _remember(self, payload: object) -> None:
        self.sent.append(payload)
        if len(self.sent) > self._max_history:
            del self.sent[: len(self.sent) - self._max_history]

    def send_contact_alert(self, alert: ContactAlert) -> None:
        logger.warning(f"SENDING SMS TO {alert.name} <{alert.to}>: {alert.message}")
        self._remember(alert)

    def send_ambulance_request(self, request: AmbulanceRequest) -> None:
        logger.warning(f"ALERTING HOSPITAL {request.hospital} <{request.phone}>: {request.message}")
        self._remember(request)

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Dict, List, Optional

from models.countdown import CountdownStatus
from .session import MonitoringSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, str], MonitoringSession]


class SessionRegistry:
    """
    Maps session ids to monitoring sessions. Sessions never share state.

    Clients are expected to DELETE their session when done. Sessions that are
    not looked up for idle_timeout_s are closed by expire_idle(), unless a
    countdown or escalation is still running.
    """

    def __init__(
        self,
        factory: SessionFactory,
        idle_timeout_s: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._factory = factory
        self._idle_timeout_s = idle_timeout_s
        self._clock = clock
        self._sessions: Dict[str, MonitoringSession] = {}
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, user_name: str) -> MonitoringSession:
        session_id = uuid.uuid4().hex[:12]
        session = self._factory(session_id, user_name)
        self._sessions[session_id] = session
        self._last_seen[session_id] = self._clock()
        logger.info(f"Session {session_id} opened for {user_name}")
        return session

    def get(self, session_id: str) -> Optional[MonitoringSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._last_seen[session_id] = self._clock()
        return session

    def list_ids(self) -> List[str]:
        return list(self._sessions)

    async def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info(f"Session {session_id} closed")
        return True

    async def expire_idle(self) -> List[str]:
        """
        Close sessions whose client stopped calling.

        Returns:
            IDs of the sessions that were closed.
        """
        if self._idle_timeout_s is None:
            return []
        now = self._clock()
        expired = []
        for session_id, session in list(self._sessions.items()):
            if now - self._last_seen.get(session_id, now) <= self._idle_timeout_s:
                continue
            if session.countdown.status != CountdownStatus.IDLE or session.escalating:
                continue
            logger.info(f"Session {session_id} idle for more than {self._idle_timeout_s}s, closing")
            await self.close(session_id)
            expired.append(session_id)
        return expired

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

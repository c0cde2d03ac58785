"""
Monitoring session controller.

One session per user device. The session owns every piece of mutable
detection state (last jerk time, countdown, tick source, pending location
capture, last escalation) and is the only thing that mutates it. Motion
samples, timer ticks and API actions all run on the same event loop, so no
locking is needed beyond the countdown's own transition rules.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from detection.jerk import JerkDetector
from domain.errors import InvalidTransition, LocationUnavailable, MotionUnsupported, PermissionDenied
from escalation.location import ClientLocationProvider, LocationProvider, fetch_location
from escalation.workflow import EscalationWorkflow
from models.alert import EscalationResult
from models.countdown import CountdownState, CountdownStatus
from models.motion import JerkEvent, Location, MotionSample
from safety.ticker import CountdownTicker
from safety.timer import SafetyCheckTimer
from sensors.base import MotionSource, PermissionState

logger = logging.getLogger(__name__)


class MonitoringSession:
    """
    Wires sampler -> detector -> countdown -> escalation for one user.

    Example:
        session = MonitoringSession("abc", "Asha", workflow, ClientLocationProvider())
        await session.start_monitoring(ClientMotionSource(ClientMotionSourceConfig()))
        await source.push(MotionSample(30.0, 0.0, 0.0))   # starts the safety check
        await session.mark_safe()
    """

    def __init__(
        self,
        session_id: str,
        user_name: str,
        workflow: EscalationWorkflow,
        location_provider: LocationProvider,
        detector: Optional[JerkDetector] = None,
        timer: Optional[SafetyCheckTimer] = None,
        ticker: Optional[CountdownTicker] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session_id = session_id
        self.user_name = user_name
        self.workflow = workflow
        self.location_provider = location_provider
        self.detector = detector or JerkDetector(clock=clock)
        self.timer = timer or SafetyCheckTimer(clock=clock)
        self.ticker = ticker or CountdownTicker()
        self.created_at = clock()

        self.jerks_detected = 0
        self.last_jerk: Optional[JerkEvent] = None
        self.last_result: Optional[EscalationResult] = None

        self._source: Optional[MotionSource] = None
        self._location_task: Optional[asyncio.Task] = None
        self._escalation_task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    @property
    def monitoring(self) -> bool:
        return self._source is not None and self._source.is_active

    @property
    def source(self) -> Optional[MotionSource]:
        return self._source

    @property
    def countdown(self) -> CountdownState:
        return self.timer.state

    async def start_monitoring(self, source: MotionSource) -> bool:
        """
        Subscribe to a motion source.

        The permission prompt completes before any subscription happens.
        Starting again with the source already subscribed is a no-op.

        Returns:
            True if delivery started, False if it was already running.

        Raises:
            MotionUnsupported: The device has no motion sensor API.
            PermissionDenied: The user refused motion access.
        """
        if source is self._source and source.is_active:
            return False

        if not source.is_supported():
            raise MotionUnsupported("Motion sensors are not supported on this device.")

        if source.requires_permission:
            permission = await source.request_permission()
            if permission == PermissionState.DENIED:
                logger.warning(f"Session {self.session_id}: motion permission denied")
                raise PermissionDenied()

        if self._source is not None and self._source is not source:
            self._source.unsubscribe()
        self._source = source
        started = source.subscribe(self.handle_sample)
        logger.info(f"Session {self.session_id}: monitoring on ({source.source_id})")
        return started

    def stop_monitoring(self) -> None:
        """Unsubscribe immediately. A running countdown keeps going."""
        if self._source is not None:
            self._source.unsubscribe()
            logger.info(f"Session {self.session_id}: monitoring off")

    async def handle_sample(self, sample: MotionSample) -> Optional[JerkEvent]:
        event = self.detector.process(sample)
        if event is None:
            return None
        self.jerks_detected += 1
        self.last_jerk = event
        logger.warning(f"Session {self.session_id}: jerk detected ({event.magnitude:.1f} m/s^2)")
        await self.start_safety_check(reason="jerk")
        return event

    # -------------------------------------------------------------------------
    # Safety check
    # -------------------------------------------------------------------------

    async def start_safety_check(self, reason: str = "manual") -> bool:
        """
        Start the countdown and ask for a location without waiting for it.

        Returns:
            False if a countdown or escalation already owns the session.
        """
        if not self.timer.start(reason):
            logger.info(
                f"Session {self.session_id}: safety check ({reason}) ignored, "
                f"countdown is {self.timer.status.value}"
            )
            return False
        countdown_id = self.timer.state.countdown_id
        self.ticker.start(self._on_tick)
        self._location_task = asyncio.get_running_loop().create_task(self._capture_location(countdown_id))
        return True

    async def _capture_location(self, countdown_id: int) -> None:
        # Unbounded: a fix may land any time while COUNTING; every exit from
        # COUNTING cancels this task.
        try:
            location = await fetch_location(self.location_provider, timeout_s=None)
        except LocationUnavailable as e:
            logger.warning(f"Session {self.session_id}: location capture failed: {e}")
            return
        if self.timer.set_location(countdown_id, location):
            logger.info(f"Session {self.session_id}: location captured for countdown #{countdown_id}")

    def report_location(self, location: Location) -> bool:
        """
        Record a fix sent by the client.

        While COUNTING the fix also becomes the countdown's captured location,
        however late in the countdown it arrives.

        Returns:
            False if this session's location is not client-reported.
        """
        if not isinstance(self.location_provider, ClientLocationProvider):
            return False
        self.location_provider.report(location)
        state = self.timer.state
        if self.timer.set_location(state.countdown_id, location):
            logger.info(f"Session {self.session_id}: location captured for countdown #{state.countdown_id}")
        return True

    def _cancel_location_capture(self) -> None:
        task, self._location_task = self._location_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _on_tick(self) -> bool:
        status = self.timer.tick()
        if status == CountdownStatus.COUNTING:
            return True
        if status == CountdownStatus.EXPIRED:
            self._begin_escalation()
        return False

    async def mark_safe(self) -> bool:
        """
        "I am safe": stop the countdown without escalating.

        Returns:
            False if no countdown was running.
        """
        if not self.timer.mark_safe():
            return False
        await self.ticker.stop()
        self._cancel_location_capture()
        self.timer.reset()
        return True

    async def force_trigger(self) -> EscalationResult:
        """
        "Trigger now": escalate immediately and wait for the result.

        Raises:
            InvalidTransition: No countdown is running.
        """
        if not self.timer.force_trigger():
            raise InvalidTransition("trigger", self.timer.status.value)
        await self.ticker.stop()
        task = self._begin_escalation()
        return await asyncio.shield(task)

    def _begin_escalation(self) -> asyncio.Task:
        self._cancel_location_capture()
        snapshot = self.timer.state
        self._escalation_task = asyncio.get_running_loop().create_task(self._escalate(snapshot))
        return self._escalation_task

    async def _escalate(self, snapshot: CountdownState) -> EscalationResult:
        try:
            result = await self.workflow.run(snapshot, self.user_name, self.location_provider)
            self.last_result = result
            return result
        finally:
            self.timer.reset()

    async def wait_for_escalation(self) -> Optional[EscalationResult]:
        """Wait for an in-flight escalation, if any, and return the latest result."""
        task = self._escalation_task
        if task is None:
            return self.last_result
        return await asyncio.shield(task)

    @property
    def escalating(self) -> bool:
        return self._escalation_task is not None and not self._escalation_task.done()

    def acknowledge(self) -> bool:
        """Dismiss the "Emergency Triggered" state."""
        if self.last_result is None:
            return False
        self.last_result = None
        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """
        Stop monitoring and the countdown.

        An escalation already in flight is allowed to finish so its incident
        is not lost.
        """
        self.stop_monitoring()
        abandoned = self.timer.mark_safe()
        await self.ticker.stop()
        self._cancel_location_capture()
        if abandoned:
            logger.info(f"Session {self.session_id}: countdown abandoned on close")
            self.timer.reset()
        if self.escalating:
            await self.wait_for_escalation()

    def status(self) -> Dict[str, Any]:
        last_known = self.location_provider.last_known
        return {
            "session_id": self.session_id,
            "user_name": self.user_name,
            "monitoring": self.monitoring,
            "countdown": self.timer.state.to_dict(),
            "escalating": self.escalating,
            "location_requested": self.location_provider.location_requested,
            "last_known_location": last_known.to_dict() if last_known else None,
            "jerks_detected": self.jerks_detected,
            "last_jerk": self.last_jerk.to_dict() if self.last_jerk else None,
            "emergency": self.last_result.to_dict() if self.last_result else None,
        }

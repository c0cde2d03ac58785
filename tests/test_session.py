"""
Tests for the monitoring session: detection -> countdown -> escalation.
"""

import asyncio

import pytest

from domain.errors import InvalidTransition, MotionUnsupported, PermissionDenied
from escalation.location import ClientLocationProvider, StaticLocationProvider
from models.alert import EscalationOutcome
from models.countdown import CountdownStatus
from models.motion import Location, MotionSample
from runtime.registry import SessionRegistry
from runtime.session import MonitoringSession
from safety.ticker import CountdownTicker
from safety.timer import SafetyCheckTimer
from sensors.base import PermissionState
from sensors.client_source import ClientMotionSource, ClientMotionSourceConfig

BANGALORE = Location(12.9716, 77.5946)
JOLT = MotionSample(30.0, 0.0, 0.0)
RESTING = MotionSample(0.0, 0.0, 9.81)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def store(fake_store_cls, asha):
    return fake_store_cls(contacts=[asha])


@pytest.fixture
def make_session(make_workflow, store, city_hospital_lookup):
    def _make(countdown_s=60, tick_interval_s=0.0, location_provider=None, clock=None):
        workflow = make_workflow(store=store, lookup=city_hospital_lookup)
        clock = clock or FakeClock()
        return MonitoringSession(
            session_id="s1",
            user_name="Ravi",
            workflow=workflow,
            location_provider=location_provider or StaticLocationProvider(BANGALORE),
            timer=SafetyCheckTimer(initial_seconds=countdown_s, clock=clock),
            ticker=CountdownTicker(interval_s=tick_interval_s),
            clock=clock,
        )

    return _make


def _source(**kwargs):
    return ClientMotionSource(ClientMotionSourceConfig(source_id="s1", **kwargs))


async def _run_until_escalated(session):
    while session.ticker.running:
        await asyncio.sleep(0)
    return await session.wait_for_escalation()


class TestMonitoring:
    def test_permission_denied_never_subscribes(self, make_session):
        async def scenario():
            session = make_session()
            source = _source(permission=PermissionState.DENIED)
            with pytest.raises(PermissionDenied) as excinfo:
                await session.start_monitoring(source)
            return session, source, excinfo.value

        session, source, error = asyncio.run(scenario())
        assert not source.is_active
        assert not session.monitoring
        assert error.user_message == "Motion sensor access is required for accident detection."

    def test_unsupported_device(self, make_session):
        async def scenario():
            session = make_session()
            with pytest.raises(MotionUnsupported):
                await session.start_monitoring(_source(supported=False))
            return session

        assert not asyncio.run(scenario()).monitoring

    def test_start_is_idempotent(self, make_session):
        async def scenario():
            session = make_session()
            source = _source(permission=PermissionState.GRANTED)
            first = await session.start_monitoring(source)
            second = await session.start_monitoring(source)
            await source.push(RESTING)
            return session, first, second, source

        session, first, second, source = asyncio.run(scenario())
        assert first is True
        assert second is False
        assert session.monitoring
        assert source.samples_delivered == 1

    def test_stop_keeps_running_countdown(self, make_session):
        async def scenario():
            session = make_session(tick_interval_s=10)
            source = _source()
            await session.start_monitoring(source)
            await source.push(JOLT)
            session.stop_monitoring()
            delivered = await source.push(JOLT)
            status = session.countdown.status
            await session.close()
            return session, delivered, status

        session, delivered, status = asyncio.run(scenario())
        assert delivered is False
        assert status == CountdownStatus.COUNTING
        assert session.jerks_detected == 1


class TestCountdown:
    def test_jerk_starts_countdown(self, make_session):
        async def scenario():
            session = make_session(tick_interval_s=10)
            source = _source()
            await session.start_monitoring(source)
            await source.push(RESTING)
            await source.push(JOLT)
            state = session.countdown
            await session.close()
            return session, state

        session, state = asyncio.run(scenario())
        assert state.status == CountdownStatus.COUNTING
        assert state.remaining_seconds == 60
        assert state.trigger_reason == "jerk"
        assert session.jerks_detected == 1

    def test_second_jerk_does_not_restart_countdown(self, make_session):
        async def scenario():
            clock = FakeClock()
            session = make_session(tick_interval_s=10, clock=clock)
            source = _source()
            await session.start_monitoring(source)
            await source.push(JOLT)
            clock.now += 10
            await source.push(JOLT)
            state = session.countdown
            await session.close()
            return session, state

        session, state = asyncio.run(scenario())
        assert session.jerks_detected == 2
        assert state.countdown_id == 1
        assert state.status == CountdownStatus.COUNTING

    def test_mark_safe_cancels_without_escalating(self, make_session, store):
        async def scenario():
            session = make_session(tick_interval_s=10)
            await session.start_safety_check()
            accepted = await session.mark_safe()
            return session, accepted

        session, accepted = asyncio.run(scenario())
        assert accepted is True
        assert session.countdown.status == CountdownStatus.IDLE
        assert not session.ticker.running
        assert session.last_result is None
        assert store.incidents == []

    def test_mark_safe_when_idle(self, make_session):
        assert asyncio.run(make_session().mark_safe()) is False

    def test_expiry_escalates_once(self, make_session, store):
        async def scenario():
            session = make_session(countdown_s=3)
            await session.start_safety_check(reason="jerk")
            result = await _run_until_escalated(session)
            return session, result

        session, result = asyncio.run(scenario())
        assert result.outcome == EscalationOutcome.TRIGGERED
        assert result.location == BANGALORE
        assert session.ticker.ticks == 3
        assert len(store.incidents) == 1
        assert session.countdown.status == CountdownStatus.IDLE
        assert session.last_result is result

    def test_full_sixty_second_countdown(self, make_session, store):
        async def scenario():
            session = make_session()
            await session.start_safety_check()
            return session, await _run_until_escalated(session)

        session, result = asyncio.run(scenario())
        assert session.ticker.ticks == 60
        assert result is not None
        assert len(store.incidents) == 1

    def test_force_trigger_escalates_immediately(self, make_session, store):
        async def scenario():
            session = make_session(tick_interval_s=10)
            await session.start_safety_check()
            result = await session.force_trigger()
            return session, result

        session, result = asyncio.run(scenario())
        assert result.outcome == EscalationOutcome.TRIGGERED
        assert result.countdown_id == 1
        assert len(store.incidents) == 1
        assert "City Hospital" in store.incidents[0]["details"]
        assert session.countdown.status == CountdownStatus.IDLE

    def test_force_trigger_requires_countdown(self, make_session):
        with pytest.raises(InvalidTransition):
            asyncio.run(make_session().force_trigger())

    def test_safety_check_during_escalation_ignored(self, make_session, store):
        async def scenario():
            session = make_session(tick_interval_s=10)
            await session.start_safety_check()
            trigger = asyncio.ensure_future(session.force_trigger())
            await asyncio.sleep(0)
            restarted = await session.start_safety_check()
            await trigger
            return restarted

        assert asyncio.run(scenario()) is False
        assert len(store.incidents) == 1

    def test_unknown_location_when_device_silent(self, make_session, store):
        async def scenario():
            session = make_session(countdown_s=1, location_provider=ClientLocationProvider())
            await session.start_safety_check()
            return await _run_until_escalated(session)

        result = asyncio.run(scenario())
        assert not result.location.is_known
        assert store.incidents[0]["lat"] is None

    def test_location_reported_during_countdown_is_used(self, make_session):
        async def scenario():
            provider = ClientLocationProvider()
            session = make_session(tick_interval_s=10, location_provider=provider)
            await session.start_safety_check()
            await asyncio.sleep(0)
            provider.report(BANGALORE)
            for _ in range(20):
                if session.countdown.captured_location is not None:
                    break
                await asyncio.sleep(0)
            captured = session.countdown.captured_location
            result = await session.force_trigger()
            return captured, result

        captured, result = asyncio.run(scenario())
        assert captured == BANGALORE
        assert result.location == BANGALORE


class TestLifecycle:
    def test_acknowledge_clears_emergency(self, make_session):
        async def scenario():
            session = make_session(tick_interval_s=10)
            await session.start_safety_check()
            await session.force_trigger()
            before = session.status()["emergency"]
            acknowledged = session.acknowledge()
            return session, before, acknowledged

        session, before, acknowledged = asyncio.run(scenario())
        assert before["outcome"] == "TRIGGERED"
        assert acknowledged is True
        assert session.status()["emergency"] is None
        assert session.acknowledge() is False

    def test_close_abandons_countdown(self, make_session, store):
        async def scenario():
            session = make_session(tick_interval_s=10)
            await session.start_safety_check()
            await session.close()
            return session

        session = asyncio.run(scenario())
        assert session.countdown.status == CountdownStatus.IDLE
        assert not session.ticker.running
        assert store.incidents == []

    def test_sessions_are_independent(self, make_session):
        async def scenario():
            registry = SessionRegistry(lambda sid, name: make_session(tick_interval_s=10))
            a = registry.create("A")
            b = registry.create("B")
            await a.start_safety_check()
            states = (a.countdown.status, b.countdown.status, len(registry))
            await registry.close_all()
            return states, len(registry)

        (a_status, b_status, count), remaining = asyncio.run(scenario())
        assert a_status == CountdownStatus.COUNTING
        assert b_status == CountdownStatus.IDLE
        assert count == 2
        assert remaining == 0


class TestLateLocation:
    def test_fix_after_escalation_timeout_still_captured(self, make_session, store):
        async def scenario():
            # The escalation-time wait (0.05 s) is shorter than the gap before
            # the fix arrives, and the fix is stale by expiry.
            provider = ClientLocationProvider(max_age_s=0.1)
            session = make_session(countdown_s=6, tick_interval_s=0.05, location_provider=provider)
            await session.start_safety_check(reason="jerk")
            await asyncio.sleep(0.08)
            provider.report(Location(12.9, 77.6))
            return await _run_until_escalated(session)

        result = asyncio.run(scenario())
        assert result.outcome == EscalationOutcome.TRIGGERED
        assert result.location == Location(12.9, 77.6)
        assert store.incidents[0]["lat"] == 12.9
        assert store.incidents[0]["lng"] == 77.6
        assert "location unavailable" not in store.incidents[0]["details"]

    def test_report_location_sets_captured_location(self, make_session):
        async def scenario():
            session = make_session(tick_interval_s=10, location_provider=ClientLocationProvider())
            await session.start_safety_check()
            accepted = session.report_location(BANGALORE)
            captured = session.countdown.captured_location
            result = await session.force_trigger()
            return accepted, captured, result

        accepted, captured, result = asyncio.run(scenario())
        assert accepted is True
        assert captured == BANGALORE
        assert result.location == BANGALORE

    def test_report_location_while_idle_only_updates_last_known(self, make_session):
        session = make_session(location_provider=ClientLocationProvider())
        assert session.report_location(BANGALORE) is True
        assert session.countdown.captured_location is None
        assert session.status()["last_known_location"] == BANGALORE.to_dict()

    def test_report_location_rejected_for_static_provider(self, make_session):
        session = make_session()
        assert session.report_location(Location(1.0, 2.0)) is False


class TestIdleExpiry:
    @pytest.fixture
    def registry(self, make_session):
        clock = FakeClock()
        registry = SessionRegistry(
            lambda sid, name: make_session(tick_interval_s=10),
            idle_timeout_s=60,
            clock=clock,
        )
        return registry, clock

    def test_idle_session_is_closed(self, registry):
        registry, clock = registry

        async def scenario():
            registry.create("A")
            clock.now += 61
            return await registry.expire_idle()

        expired = asyncio.run(scenario())
        assert len(expired) == 1
        assert len(registry) == 0

    def test_polled_session_is_kept(self, registry):
        registry, clock = registry

        async def scenario():
            registry.create("A")
            clock.now += 40
            registry.get(registry.list_ids()[0])
            clock.now += 40
            return await registry.expire_idle()

        assert asyncio.run(scenario()) == []
        assert len(registry) == 1

    def test_running_countdown_is_kept(self, registry):
        registry, clock = registry

        async def scenario():
            session = registry.create("A")
            await session.start_safety_check()
            clock.now += 3600
            expired = await registry.expire_idle()
            status = session.countdown.status
            await registry.close_all()
            return expired, status

        expired, status = asyncio.run(scenario())
        assert expired == []
        assert status == CountdownStatus.COUNTING

    def test_no_timeout_never_expires(self, make_session):
        clock = FakeClock()
        registry = SessionRegistry(lambda sid, name: make_session(), clock=clock)

        async def scenario():
            registry.create("A")
            clock.now += 10 ** 6
            return await registry.expire_idle()

        assert asyncio.run(scenario()) == []
        assert len(registry) == 1

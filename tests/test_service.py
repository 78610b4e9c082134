"""
Tests for the TimeKeeper service.

Tests verify:
- Construction validates options and arms exactly one aligned timer
- Minute/second/hour ticks land on wall-clock boundaries
- Late firings are dropped and the schedule realigns
- Timezone changes announce themselves and realign (or not) by mode
- dispose() is final and idempotent
"""

from datetime import UTC

import pytest

from timekeeper import ConfigurationError, TimeKeeper, TransitionMode
from timekeeper.environment import ManualEnvironment, parse_ms
from timekeeper.settings import ClockSettings


class TestConstruction:
    def test_defaults(self, make_clock):
        clock = make_clock()
        assert clock.get_time_zone() == "Asia/Seoul"
        assert clock.align.value == "minute"
        assert clock.drift_threshold_ms == 250
        assert clock.health().visibility_attached

    def test_arms_one_timer_to_next_minute(self, make_clock, env):
        make_clock(timezone="UTC")
        assert env.pending_delays == [60_000]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"timezone": "Mars/Olympus"},
            {"align": "hour"},
            {"drift_threshold_ms": -1},
        ],
    )
    def test_invalid_options_raise_before_arming(self, env, kwargs):
        with pytest.raises(ConfigurationError):
            TimeKeeper(environment=env, **kwargs)
        assert env.live_timers == []
        assert env.resume_subscriber_count == 0

    def test_visibility_disabled(self, make_clock, env):
        clock = make_clock(visibility_aware=False)
        assert env.resume_subscriber_count == 0
        assert not clock.health().visibility_attached

    def test_visibility_unavailable_still_ticks(self, start_ms):
        env = ManualEnvironment(start_ms=start_ms, fail_resume=True)
        with TimeKeeper(timezone="UTC", environment=env) as clock:
            assert clock.health().healthy
            assert not clock.health().visibility_attached

    def test_from_settings(self, env):
        settings = ClockSettings(timezone="UTC", align="second", drift_threshold_ms=100)
        with TimeKeeper.from_settings(settings, environment=env) as clock:
            assert clock.get_time_zone() == "UTC"
            assert clock.align.value == "second"
            assert clock.drift_threshold_ms == 100
            assert env.pending_delays == [1_000]


class TestAlignedTicks:
    def test_first_minute_tick(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC", align="minute")
        recorder.listen(clock, "second", "minute", "hour")

        env.advance(60_000)

        assert recorder.kinds() == ["minute", "hour"]
        minute = recorder.of("minute")[0]
        assert minute.zoned_instant.isoformat() == "2025-01-01T12:01:00+00:00"
        assert minute.zoned_instant.tzinfo.key == "UTC"

    def test_minute_tick_rendered_in_active_zone(self, make_clock, env, recorder):
        clock = make_clock(timezone="Asia/Seoul")
        recorder.listen(clock, "minute")

        env.advance(60_000)

        assert recorder.of("minute")[0].zoned_instant.isoformat() == "2025-01-01T21:01:00+09:00"

    def test_second_ticks_land_on_second_boundaries(self, make_clock, env, recorder):
        env.set_instant(env.current_instant() + 250)
        clock = make_clock(timezone="UTC", align="second")
        recorder.listen(clock, "second")

        env.advance(3_000)

        assert [e.zoned_instant.second for e in recorder.of("second")] == [1, 2, 3]
        assert all(e.zoned_instant.microsecond == 0 for e in recorder.of("second"))

    def test_none_align_only_emits_hour(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC", align="none")
        recorder.listen(clock, "second", "minute", "hour")

        env.advance(3_000)

        assert recorder.kinds() == ["hour"] * 3

    def test_minute_precedes_hour(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        order = []
        clock.on("hour", lambda _: order.append("hour"))
        clock.on("minute", lambda _: order.append("minute"))

        env.advance(60_000)

        assert order == ["minute", "hour"]

    def test_near_boundary_start_clamps_delay(self, start_ms):
        env = ManualEnvironment(start_ms=start_ms - 0.25)
        with TimeKeeper(timezone="UTC", align="minute", environment=env):
            assert env.pending_delays == [1.0]


class TestDriftRejection:
    def test_late_tick_dropped_and_restarted(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        env.advance(60_000)
        recorder.listen(clock, "minute", "hour")
        handle = clock.scheduler.state.pending_timer_handle

        env.fire_next(late_by_ms=251)

        assert len(recorder) == 0
        assert clock.scheduler.stats.restarts == 1
        assert clock.scheduler.state.pending_timer_handle is not handle
        assert len(env.live_timers) == 1

    def test_tick_at_threshold_accepted(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        env.advance(60_000)
        recorder.listen(clock, "minute")

        env.fire_next(late_by_ms=250)

        assert len(recorder.of("minute")) == 1

    def test_custom_threshold(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC", drift_threshold_ms=1_000)
        env.advance(60_000)
        recorder.listen(clock, "minute")

        env.fire_next(late_by_ms=900)

        assert len(recorder.of("minute")) == 1


class TestEarlyTimer:
    def test_early_minute_tick_reports_new_minute(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        recorder.listen(clock, "minute")

        env.fire_next(at_ms=parse_ms("2025-01-01T12:01:00Z") - 5)
        env.advance(60_000)

        assert [e.zoned_instant.minute for e in recorder.of("minute")] == [1]
        assert clock.scheduler.stats.restarts == 0
        assert len(env.live_timers) == 1


class TestSinglePendingTimer:
    def test_many_operations_keep_one_timer(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        for tz in ["Asia/Seoul", "UTC", "Europe/Paris"]:
            clock.set_time_zone(tz)
            env.resume()
            env.advance(17_000)
            env.fire_next(late_by_ms=10_000)
            assert len(env.live_timers) == 1


class TestTimezoneChange:
    def test_wall_clock_change(self, make_clock, env, recorder):
        clock = make_clock()
        recorder.listen(clock, "timezoneChange")
        restarts = clock.scheduler.stats.restarts

        clock.set_time_zone("UTC")

        events = recorder.of("timezoneChange")
        assert len(events) == 1
        assert events[0].to_dict() == {"from": "Asia/Seoul", "to": "UTC", "mode": "preserve-wall-clock"}
        assert clock.scheduler.stats.restarts == restarts + 1
        assert clock.get_time_zone() == "UTC"

    def test_absolute_change_keeps_pending_timer(self, make_clock, env, recorder):
        clock = make_clock()
        recorder.listen(clock, "timezoneChange")
        handle = clock.scheduler.state.pending_timer_handle

        clock.set_time_zone("UTC", mode=TransitionMode.PRESERVE_ABSOLUTE)

        assert clock.scheduler.state.pending_timer_handle is handle
        assert clock.scheduler.stats.restarts == 0
        assert recorder.of("timezoneChange")[0].mode is TransitionMode.PRESERVE_ABSOLUTE

    def test_realigns_to_quarter_hour_zone(self, make_clock, env):
        env.set_instant(parse_ms("2025-01-01T12:00:10Z"))
        clock = make_clock(timezone="UTC", align="minute")
        assert env.pending_delays == [50_000]

        clock.set_time_zone("Asia/Kathmandu")

        assert env.pending_delays == [50_000]
        assert clock.format("HH:mm:ss") == "17:45:10"

    def test_invalid_zone_rejected(self, make_clock, env, recorder):
        clock = make_clock()
        recorder.listen(clock, "timezoneChange")

        with pytest.raises(ConfigurationError):
            clock.set_time_zone("Not/AZone")

        assert clock.get_time_zone() == "Asia/Seoul"
        assert len(recorder) == 0
        assert clock.scheduler.stats.restarts == 0

    def test_ticks_after_change_use_new_zone(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        recorder.listen(clock, "minute")
        clock.set_time_zone("America/Los_Angeles")

        env.advance(60_000)

        assert recorder.of("minute")[0].zoned_instant.isoformat() == "2025-01-01T04:01:00-08:00"


class TestVisibility:
    def test_resume_realigns(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        recorder.listen(clock, "minute")

        env.set_instant(parse_ms("2025-01-01T15:20:30Z"))
        env.resume()
        env.advance(30_000)

        assert [e.zoned_instant.isoformat() for e in recorder.of("minute")] == [
            "2025-01-01T15:21:00+00:00"
        ]


class TestListeners:
    def test_duplicate_registration_delivers_once(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        calls = []
        listener = calls.append
        clock.on("minute", listener)
        clock.on("minute", listener)

        env.advance(60_000)

        assert len(calls) == 1

    def test_off(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        calls = []
        clock.on("minute", calls.append)
        clock.off("minute", calls.append)
        clock.off("minute", calls.append)

        env.advance(60_000)

        assert calls == []

    def test_failing_listener_isolated(self, make_clock, env, recorder):
        failures = []
        clock = make_clock(timezone="UTC", on_listener_error=failures.append)

        def boom(_):
            raise RuntimeError("boom")

        clock.on("minute", boom)
        recorder.listen(clock, "minute", "hour")

        env.advance(60_000)

        assert recorder.kinds() == ["minute", "hour"]
        assert len(failures) == 1
        assert failures[0].event_kind == "minute"
        assert clock.health().listener_failures == 1
        assert len(env.live_timers) == 1


class TestTimeAccess:
    def test_now_is_utc(self, make_clock):
        clock = make_clock()
        assert clock.now().tzinfo is UTC
        assert clock.now().isoformat() == "2025-01-01T12:00:00+00:00"

    def test_zoned_now(self, make_clock):
        clock = make_clock()
        assert clock.zoned_now().isoformat() == "2025-01-01T21:00:00+09:00"

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("HH:mm", "21:00"),
            ("HH:mm:ss", "21:00:00"),
            ("YYYY-MM-DDTHH:mm:ss", "2025-01-01T21:00:00"),
        ],
    )
    def test_format(self, make_clock, pattern, expected):
        assert make_clock().format(pattern) == expected


class TestDispose:
    def test_dispose_is_final(self, make_clock, env, recorder):
        clock = make_clock(timezone="UTC")
        recorder.listen(clock, "minute", "hour")

        clock.dispose()
        env.advance(10 * 60_000)
        env.resume()

        assert len(recorder) == 0
        assert env.live_timers == []
        assert env.resume_subscriber_count == 0
        assert clock.disposed

    def test_dispose_idempotent(self, make_clock):
        clock = make_clock()
        clock.dispose()
        clock.dispose()
        assert clock.disposed

    def test_on_after_dispose_ignored(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        clock.dispose()
        clock.on("minute", lambda _: pytest.fail("delivered after dispose"))
        assert clock.bus.listener_count() == 0

    def test_set_time_zone_after_dispose_arms_nothing(self, make_clock, env):
        clock = make_clock(timezone="UTC")
        clock.dispose()

        clock.set_time_zone("Asia/Seoul")

        assert clock.get_time_zone() == "Asia/Seoul"
        assert env.live_timers == []

    def test_context_manager(self, env):
        with TimeKeeper(timezone="UTC", environment=env) as clock:
            assert not clock.disposed
        assert clock.disposed
        assert env.live_timers == []

    def test_health_after_dispose(self, make_clock):
        clock = make_clock()
        clock.dispose()
        health = clock.health()
        assert health.healthy is False
        assert health.running is False


class TestHealth:
    def test_running_clock_is_healthy(self, make_clock, env):
        clock = make_clock(timezone="UTC", align="second")
        env.advance(5_000)

        report = clock.health().to_dict()

        assert report["healthy"] is True
        assert report["align"] == "second"
        assert report["stats"]["ticks_accepted"] == 5
        assert report["interval"]["stable"] is True

    def test_unavailable_timers_unhealthy(self, start_ms):
        env = ManualEnvironment(start_ms=start_ms, fail_timers=True)
        with TimeKeeper(timezone="UTC", environment=env) as clock:
            health = clock.health()
            assert health.healthy is False
            assert health.running is True
            assert health.stats.last_error is not None

"""
Timed Collector / Pointer Collector Tests
=========================================

Immediate phase, bounded observation with early exit, aggregation and
teardown of the pointer/motion collector.
"""

import threading
import time

import pytest

from visitprint.collectors import (
    EventTarget,
    WheelEvent,
    MoveEvent,
    PointerCollector,
    PointerCapabilities,
    CollectorState,
    ObservationWindow,
    BoundedWait
)


@pytest.fixture
def target():
    return EventTarget()


@pytest.fixture
def collector(target):
    return PointerCollector(
        target,
        PointerCapabilities(fine_pointer=True, hover=True),
        timeout_ms=150,
        thresholds={'move': 3, 'scroll': 2}
    )


def feed_events(target, moves=0, wheels=0):
    for i in range(moves):
        target.dispatch('mousemove', MoveEvent(movement_x=i + 1, movement_y=0))
    for _ in range(wheels):
        target.dispatch('wheel', WheelEvent(delta_y=100, delta_mode=0))


class TestObservationWindow:
    """Early-exit threshold checks."""

    def test_all_thresholds_must_be_met(self):
        window = ObservationWindow(1000, {'move': 2, 'scroll': 1})
        assert window.satisfied({'move': 2, 'scroll': 0}) is False
        assert window.satisfied({'move': 2, 'scroll': 1}) is True

    def test_empty_table_never_exits_early(self):
        assert ObservationWindow(1000, {}).satisfied({'move': 100}) is False


class TestBoundedWait:
    """Release-or-timeout wait."""

    def test_times_out(self):
        assert BoundedWait().wait(20) is False

    def test_release_wins(self):
        wait = BoundedWait()
        threading.Timer(0.02, wait.release).start()
        start = time.monotonic()
        assert wait.wait(5000) is True
        assert time.monotonic() - start < 2


class TestImmediatePhase:
    """collect() before any events."""

    def test_capabilities_reported(self, collector):
        data = collector.collect()
        assert data == {
            'pointerType': 'fine',
            'hoverSupport': True,
            'maxTouchPoints': 0,
            'observing': True
        }

    def test_collect_attaches_listeners_once(self, collector, target):
        collector.collect()
        collector.collect()
        assert target.listener_count('wheel') == 1
        assert target.listener_count('mousemove') == 1
        assert collector.state is CollectorState.COLLECTING

    @pytest.mark.parametrize("capabilities,expected", [
        (PointerCapabilities(coarse_pointer=True, max_touch_points=5), 'coarse'),
        (PointerCapabilities(), 'none'),
    ])
    def test_pointer_type(self, target, capabilities, expected):
        assert PointerCollector(target, capabilities).collect()['pointerType'] == expected


class TestObservation:
    """observe() timing and aggregation."""

    def test_no_events_resolves_at_timeout_with_nulls(self, collector):
        collector.collect()
        start = time.monotonic()
        result = collector.observe()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.1
        assert result == {
            'wheelDeltaY': None,
            'wheelDeltaMode': None,
            'smoothScroll': None,
            'movementMinStep': None,
            'movementMedianStep': None,
            'scrollSampleCount': 0,
            'moveSampleCount': 0
        }
        assert collector.state is CollectorState.RESOLVED

    def test_early_exit_when_thresholds_met(self, target):
        collector = PointerCollector(target, timeout_ms=10000, thresholds={'move': 50, 'scroll': 5})
        collector.collect()

        def produce():
            time.sleep(0.05)
            feed_events(target, moves=50, wheels=5)

        producer = threading.Thread(target=produce)
        producer.start()
        start = time.monotonic()
        result = collector.observe()
        elapsed = time.monotonic() - start
        producer.join()

        assert elapsed < 5
        assert result['moveSampleCount'] == 50
        assert result['scrollSampleCount'] == 5

    def test_thresholds_already_met_returns_immediately(self, collector, target):
        collector.collect()
        feed_events(target, moves=3, wheels=2)

        start = time.monotonic()
        collector.observe(timeout_ms=10000)
        assert time.monotonic() - start < 1

    def test_aggregation(self, collector, target):
        collector.collect()
        target.dispatch('wheel', WheelEvent(delta_y=-100, delta_mode=0))
        target.dispatch('wheel', WheelEvent(delta_y=100, delta_mode=0))
        target.dispatch('wheel', WheelEvent(delta_y=53.5, delta_mode=1))
        target.dispatch('mousemove', MoveEvent(movement_x=2, movement_y=-4))
        target.dispatch('mousemove', MoveEvent(movement_x=0, movement_y=1))

        result = collector.observe(timeout_ms=10)

        assert result['wheelDeltaY'] == 100
        assert result['wheelDeltaMode'] == 1
        assert result['smoothScroll'] is True
        assert result['movementMinStep'] == 1
        assert result['movementMedianStep'] == 2
        assert result['scrollSampleCount'] == 3
        assert result['moveSampleCount'] == 2

    def test_zero_magnitude_events_ignored(self, collector, target):
        collector.collect()
        target.dispatch('wheel', WheelEvent(delta_x=5, delta_y=0))
        target.dispatch('mousemove', MoveEvent(0, 0))

        result = collector.observe(timeout_ms=10)
        assert result['scrollSampleCount'] == 0
        assert result['moveSampleCount'] == 0

    def test_integer_scrolling_is_not_smooth(self, collector, target):
        collector.collect()
        feed_events(target, wheels=2)
        assert collector.observe(timeout_ms=10)['smoothScroll'] is False


class TestDestroy:
    """Teardown guarantees."""

    def test_destroy_removes_listeners(self, collector, target):
        collector.collect()
        collector.destroy()
        assert target.listener_count() == 0
        assert collector.state is CollectorState.DESTROYED

    def test_destroy_is_idempotent(self, collector, target):
        collector.collect()
        collector.destroy()
        collector.destroy()
        assert target.listener_count() == 0

    def test_destroy_before_collect(self, collector, target):
        collector.destroy()
        assert target.listener_count() == 0

    def test_no_mutation_after_destroy(self, collector, target):
        collector.collect()
        handler = collector._on_mouse_move
        collector.destroy()
        handler(MoveEvent(5, 5))

        assert collector.observe(timeout_ms=10)['moveSampleCount'] == 0

    def test_destroy_releases_pending_observe(self, target):
        collector = PointerCollector(target, timeout_ms=10000)
        collector.collect()
        threading.Timer(0.05, collector.destroy).start()

        start = time.monotonic()
        collector.observe()
        assert time.monotonic() - start < 5


class TestEventTarget:
    """Listener registry."""

    def test_dispatch_counts_listeners(self, target):
        seen = []
        target.add_listener('wheel', seen.append)
        assert target.dispatch('wheel', WheelEvent(delta_y=1)) == 1
        assert len(seen) == 1

    def test_listener_error_does_not_stop_dispatch(self, target):
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        target.add_listener('wheel', broken)
        target.add_listener('wheel', seen.append)
        assert target.dispatch('wheel', WheelEvent(delta_y=1)) == 2
        assert len(seen) == 1

    def test_from_config(self, test_config, target):
        collector = PointerCollector.from_config(test_config, target)
        assert collector.timeout_ms == 200
        assert collector.thresholds == {'move': 3, 'scroll': 2}

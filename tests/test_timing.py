"""Tests for triplay.games.timing – the beat-matching round engine."""

from __future__ import annotations

import pytest

from triplay.core.challenges import TimingChallenge
from triplay.core.levels import DifficultyTier, LevelConfig
from triplay.core.rounds import Hit, RoundState, Tap
from triplay.core.scheduler import ManualScheduler
from triplay.games.timing import HitGrade, TimingEngine, classify_hit


@pytest.fixture()
def events() -> list:
    return []


@pytest.fixture()
def engine(scheduler: ManualScheduler, fixed_generator, events: list) -> TimingEngine:
    return TimingEngine(
        LevelConfig(DifficultyTier.INITIATE, 1),
        scheduler,
        generator=fixed_generator,
        on_complete=lambda score, reward: events.append(("complete", score, reward)),
        on_exit=lambda: events.append(("exit",)),
    )


def _wait_for_pulse(engine: TimingEngine, scheduler: ManualScheduler) -> None:
    for _ in range(1000):
        if engine.pulse_started_at is not None:
            return
        scheduler.advance(0.01)
    raise AssertionError("pulse never started")


def _hit_at(engine: TimingEngine, scheduler: ManualScheduler, fraction: float) -> None:
    _wait_for_pulse(engine, scheduler)
    target = engine.pulse_started_at + fraction * engine.challenge.duration
    scheduler.advance(target - scheduler.now())
    engine.submit_input(Hit())


def _settle(engine: TimingEngine, scheduler: ManualScheduler) -> None:
    scheduler.advance(engine.settle_delay + 0.01)


# ---------------------------------------------------------------------------
# classify_hit
# ---------------------------------------------------------------------------

class TestClassifyHit:
    @pytest.fixture()
    def zone(self) -> TimingChallenge:
        return TimingChallenge(zone_start=0.4, zone_width=0.3, duration=2.0)

    def test_center_is_perfect(self, zone):
        assert classify_hit(0.55, zone) is HitGrade.PERFECT

    def test_near_edge_is_good(self, zone):
        assert classify_hit(0.42, zone) is HitGrade.GOOD

    def test_outside_is_miss(self, zone):
        assert classify_hit(0.75, zone) is HitGrade.MISS
        assert classify_hit(0.1, zone) is HitGrade.MISS

    def test_zone_end_is_exclusive(self, zone):
        assert classify_hit(zone.zone_end, zone) is HitGrade.MISS

    def test_perfect_band_edge(self, zone):
        # perfect when |p - 0.55| < 0.09
        assert classify_hit(0.63, zone) is HitGrade.PERFECT
        assert classify_hit(0.65, zone) is HitGrade.GOOD

    def test_points(self):
        assert HitGrade.PERFECT.points == 100
        assert HitGrade.GOOD.points == 50
        assert HitGrade.MISS.points == 0


# ---------------------------------------------------------------------------
# Ready gate
# ---------------------------------------------------------------------------

class TestReady:
    def test_waits_for_start(self, engine: TimingEngine, scheduler: ManualScheduler):
        scheduler.advance(10.0)
        assert engine.state is RoundState.READY
        assert engine.position == 0.0
        assert scheduler.pending_count == 0

    def test_hit_before_start_ignored(self, engine: TimingEngine):
        engine.submit_input(Hit())
        assert engine.state is RoundState.READY
        assert engine.results == []

    def test_start_begins_pulse(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        assert engine.is_active
        scheduler.advance(1.0)
        assert engine.position == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Single round outcomes
# ---------------------------------------------------------------------------

class TestRoundOutcome:
    def test_perfect(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.55)
        assert engine.state is RoundState.ROUND_SUCCESS
        assert engine.results[-1].outcome == "perfect"
        assert engine.score == 100

    def test_good(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.42)
        assert engine.state is RoundState.ROUND_SUCCESS
        assert engine.results[-1].outcome == "good"
        assert engine.score == 50

    def test_miss(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.75)
        assert engine.state is RoundState.ROUND_FAILURE
        assert engine.results[-1].outcome == "miss"
        assert engine.score == 0

    def test_timeout_is_miss(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        scheduler.advance(2.1)
        assert engine.state is RoundState.ROUND_FAILURE
        assert engine.results[-1].outcome == "miss"

    def test_second_hit_in_same_round_ignored(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.55)
        engine.submit_input(Hit())
        assert len(engine.results) == 1

    def test_wrong_event_type_ignored(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        scheduler.advance(1.1)
        engine.submit_input(Tap(3))
        assert engine.is_active
        assert engine.results == []

    def test_hit_position_uses_clock_not_last_tick(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        # land between two ticks
        scheduler.advance(1.1 + 0.004)
        assert engine.position == pytest.approx(0.552)


# ---------------------------------------------------------------------------
# Round transitions
# ---------------------------------------------------------------------------

class TestTransitions:
    def test_next_round_after_settle(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.55)
        _settle(engine, scheduler)
        assert engine.state is RoundState.ACTIVE
        assert engine.round_number == 2

    def test_hit_during_lead_in_ignored(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        _hit_at(engine, scheduler, 0.55)
        _settle(engine, scheduler)
        assert engine.pulse_started_at is None
        engine.submit_input(Hit())
        assert len(engine.results) == 1

    def test_miss_does_not_end_session(self, engine: TimingEngine, scheduler: ManualScheduler):
        engine.start()
        scheduler.advance(2.1)
        _settle(engine, scheduler)
        assert engine.state is RoundState.ACTIVE
        assert engine.round_number == 2


# ---------------------------------------------------------------------------
# Whole sessions
# ---------------------------------------------------------------------------

class TestSession:
    def test_cleared_session_completes(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        assert engine.total_rounds == 4
        engine.start()
        for fraction in (0.55, 0.42, 0.95, 0.55):
            _hit_at(engine, scheduler, fraction)
            _settle(engine, scheduler)
        assert engine.state is RoundState.FINISHED
        assert engine.session_success is True
        scheduler.run_until_idle()
        assert events == [("complete", 250, 17)]

    def test_threshold_exactly_met(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        for fraction in (0.55, 0.9, 0.9, 0.42):
            _hit_at(engine, scheduler, fraction)
            _settle(engine, scheduler)
        scheduler.run_until_idle()
        assert events == [("complete", 150, 17)]

    def test_below_threshold_exits(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        _hit_at(engine, scheduler, 0.55)
        scheduler.run_until_idle()
        assert engine.session_success is False
        assert engine.reward == 0
        assert events == [("exit",)]

    def test_all_timeouts(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        scheduler.run_until_idle()
        assert len(engine.results) == 4
        assert all(r.outcome == "miss" for r in engine.results)
        assert events == [("exit",)]

    def test_outcome_emitted_after_finish_delay(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        for _ in range(4):
            _hit_at(engine, scheduler, 0.55)
            _settle(engine, scheduler)
        assert engine.state is RoundState.FINISHED
        assert events == []
        scheduler.advance(engine.finish_delay)
        assert events == [("complete", 400, 17)]


# ---------------------------------------------------------------------------
# Exit
# ---------------------------------------------------------------------------

class TestExit:
    def test_exit_mid_round(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        scheduler.advance(0.5)
        engine.exit()
        assert engine.state is RoundState.FINISHED
        assert scheduler.pending_count == 0
        scheduler.advance(30.0)
        assert events == [("exit",)]

    def test_exit_during_finish_delay_delivers_result(
        self, engine: TimingEngine, scheduler: ManualScheduler, events: list
    ):
        engine.start()
        for _ in range(4):
            _hit_at(engine, scheduler, 0.55)
            _settle(engine, scheduler)
        engine.exit()
        scheduler.run_until_idle()
        assert events == [("complete", 400, 17)]

    def test_exit_after_outcome_is_noop(self, engine: TimingEngine, scheduler: ManualScheduler, events: list):
        engine.start()
        scheduler.run_until_idle()
        engine.exit()
        assert events == [("exit",)]

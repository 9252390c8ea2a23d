"""Tests for the SM-2 scheduler."""

from datetime import timedelta

import pytest

from flashdeck.application.scheduler import SM2Scheduler, round_half_up
from flashdeck.domain.exceptions import InvalidGrade
from flashdeck.domain.models import Grade, ReviewState

NEW = ReviewState(interval_days=0, ease=2.5, repetitions=0)

STATES = [
    NEW,
    ReviewState(1, 2.5, 1),
    ReviewState(6, 2.5, 2),
    ReviewState(16, 2.6, 3),
    ReviewState(3, 1.3, 4),
    ReviewState(120, 3.1, 9),
]


@pytest.fixture
def scheduler():
    return SM2Scheduler()


class TestScenarios:
    def test_new_card_good(self, scheduler, now):
        result = scheduler.next(NEW, Grade.GOOD, now)

        assert result.next_repetitions == 1
        assert result.next_interval_days == 1
        assert result.next_due_at == now + timedelta(days=1)
        assert result.next_ease == 2.5

    def test_new_card_again(self, scheduler, now):
        result = scheduler.next(NEW, Grade.AGAIN, now)

        assert result.next_repetitions == 0
        assert result.next_interval_days == 0
        assert result.next_due_at == now + timedelta(minutes=10)

    def test_third_review_easy(self, scheduler, now):
        result = scheduler.next(ReviewState(6, 2.5, 2), Grade.EASY, now)

        assert result.next_ease == 2.6
        assert result.next_repetitions == 3
        # round(6 * 2.6) = round(15.6) = 16
        assert result.next_interval_days == 16
        assert result.next_due_at == now + timedelta(days=16)


class TestProperties:
    @pytest.mark.parametrize("state", STATES)
    @pytest.mark.parametrize("grade", range(6))
    def test_ease_never_below_floor(self, scheduler, now, state, grade):
        assert scheduler.next(state, grade, now).next_ease >= 1.3

    @pytest.mark.parametrize("state", STATES)
    @pytest.mark.parametrize("grade", [0, 1, 2])
    def test_failed_grade_resets(self, scheduler, now, state, grade):
        result = scheduler.next(state, grade, now)
        assert result.next_repetitions == 0
        assert result.next_interval_days == 0

    @pytest.mark.parametrize("state", STATES)
    @pytest.mark.parametrize("grade", [3, 4, 5])
    def test_passed_grade_increments(self, scheduler, now, state, grade):
        result = scheduler.next(state, grade, now)
        assert result.next_repetitions == state.repetitions + 1
        assert result.next_interval_days >= 1

    def test_input_not_mutated(self, scheduler, now):
        state = ReviewState(6, 2.5, 2)
        scheduler.next(state, 5, now)
        assert state == ReviewState(6, 2.5, 2)

    def test_deterministic_for_same_now(self, scheduler, now):
        state = ReviewState(16, 2.6, 3)
        assert scheduler.next(state, 4, now) == scheduler.next(state, 4, now)


class TestDetails:
    def test_grade_two_relearns_in_thirty_minutes(self, scheduler, now):
        result = scheduler.next(ReviewState(6, 2.5, 2), Grade.INCORRECT_EASY, now)
        assert result.next_due_at == now + timedelta(minutes=30)

    def test_blackout_relearns_in_ten_minutes(self, scheduler, now):
        result = scheduler.next(NEW, Grade.BLACKOUT, now)
        assert result.next_due_at == now + timedelta(minutes=10)

    @pytest.mark.parametrize(
        "grade, expected_ease",
        [(0, 1.7), (1, 1.96), (2, 2.18), (3, 2.36), (4, 2.5), (5, 2.6)],
    )
    def test_ease_updated_for_every_grade(self, scheduler, now, grade, expected_ease):
        # Failing grades move ease through the same formula.
        assert scheduler.next(NEW, grade, now).next_ease == pytest.approx(expected_ease)

    def test_ease_clamped_at_floor(self, scheduler, now):
        assert scheduler.next(ReviewState(3, 1.3, 4), Grade.BLACKOUT, now).next_ease == 1.3

    def test_second_pass_is_six_days(self, scheduler, now):
        result = scheduler.next(ReviewState(1, 2.5, 1), Grade.HARD, now)
        assert result.next_interval_days == 6
        assert result.next_ease == 2.36

    def test_mature_interval_uses_new_ease(self, scheduler, now):
        # ease 2.6 -> 2.46 on hard; round(16 * 2.46) = round(39.36) = 39
        result = scheduler.next(ReviewState(16, 2.6, 3), Grade.HARD, now)
        assert result.next_ease == 2.46
        assert result.next_interval_days == 39

    def test_interval_floored_at_one_day(self, scheduler, now):
        # Relearned card: interval 0 but repetitions already counted past 2.
        result = scheduler.next(ReviewState(0, 2.5, 2), Grade.GOOD, now)
        assert result.next_interval_days == 1

    def test_interval_rounds_half_up(self, scheduler, now):
        # 5 * 2.5 = 12.5 -> 13 (not banker's 12)
        result = scheduler.next(ReviewState(5, 2.5, 3), Grade.GOOD, now)
        assert result.next_interval_days == 13

    @pytest.mark.parametrize("grade", [-1, 6, "nope"])
    def test_invalid_grade_rejected(self, scheduler, now, grade):
        with pytest.raises(InvalidGrade):
            scheduler.next(NEW, grade, now)

    def test_policy_overridable_on_subclass(self, now):
        class SlowRelearn(SM2Scheduler):
            again_delay = timedelta(minutes=1)

        result = SlowRelearn().next(NEW, Grade.AGAIN, now)
        assert result.next_due_at == now + timedelta(minutes=1)


@pytest.mark.parametrize(
    "value, digits, expected",
    [(12.5, 0, 13), (15.6, 0, 16), (2.125, 2, 2.13), (1.0, 2, 1.0)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == pytest.approx(expected)

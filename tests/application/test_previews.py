from datetime import timedelta

import pytest

from flashdeck.application.previews import format_interval, grade_previews
from flashdeck.application.scheduler import SM2Scheduler
from flashdeck.domain.models import ReviewState


def test_new_card_previews(now):
    assert grade_previews(ReviewState.new(), now) == {
        "again": "10m",
        "hard": "1d",
        "good": "1d",
        "easy": "1d",
    }


def test_mature_card_previews(now):
    # hard: round(6 * 2.36) = 14, good: 6 * 2.5 = 15, easy: round(6 * 2.6) = 16
    assert grade_previews(ReviewState(6, 2.5, 2), now) == {
        "again": "10m",
        "hard": "14d",
        "good": "15d",
        "easy": "16d",
    }


def test_long_interval_previews(now):
    previews = grade_previews(ReviewState(200, 2.5, 8), now)
    # good: 500 days -> 1y, hard: round(200 * 2.36) = 472 days -> 1y
    assert previews["good"] == "1y"
    assert previews["hard"] == "1y"


def test_previews_do_not_mutate_state(now):
    state = ReviewState(16, 2.6, 3)
    before = ReviewState(16, 2.6, 3)
    grade_previews(state, now)
    assert state == before


def test_previews_use_given_scheduler(now):
    class QuickRelearn(SM2Scheduler):
        again_delay = timedelta(minutes=3)

    assert grade_previews(ReviewState.new(), now, QuickRelearn())["again"] == "3m"


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(minutes=10), "10m"),
        (timedelta(minutes=30), "30m"),
        (timedelta(minutes=59), "59m"),
        (timedelta(minutes=60), "1h"),
        (timedelta(hours=5), "5h"),
        (timedelta(hours=23), "23h"),
        (timedelta(days=1), "1d"),
        (timedelta(days=2), "2d"),
        (timedelta(days=29), "29d"),
        (timedelta(days=30), "1mo"),
        (timedelta(days=45), "2mo"),
        (timedelta(days=364), "12mo"),
        (timedelta(days=365), "1y"),
        (timedelta(days=800), "2y"),
    ],
)
def test_format_interval(delta, expected):
    assert format_interval(delta) == expected

"""Centralized constants for flashdeck.

All scheduling policy numbers and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
INITIAL_EASE = 2.5
MIN_EASE = 1.3
MIN_GRADE = 0
MAX_GRADE = 5
PASSING_GRADE = 3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
MIN_INTERVAL_DAYS = 1
EASE_PRECISION = 2

# ---------- Relearning (failed grades) ----------
AGAIN_DELAY_MINUTES = 10  # grade <= 1
RELEARN_DELAY_MINUTES = 30  # grade == 2

# ---------- Preview Labels ----------
MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365

# ---------- Sessions ----------
DEFAULT_SESSION_LIMIT = 20

# ---------- Statistics ----------
LEARNED_REPETITIONS = 3

# ---------- Decks ----------
MISTAKES_DECK_TITLE = "Mistakes"
MISTAKES_DECK_DESCRIPTION = "Flashcards created from incorrectly answered questions"

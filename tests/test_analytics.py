"""
Tests for session summaries, bag statistics and review history.
"""

from dataclasses import replace
from datetime import timedelta

import pandas as pd
import pytest

from flashbag.analytics import build_bag_stats, build_review_history, build_session_summary
from flashbag.analytics.constants import DIFFICULTY_BINS, DIFFICULTY_LABELS
from flashbag.analytics.metrics import compute_distribution, compute_session_summary
from flashbag.fsrs.constants import Rating, State
from flashbag.fsrs.scheduler import compute_next_state
from flashbag.storage.records import create_card

from conftest import BAG_ID, NOW, USER_ID


def log_for(card, parameters, rating, when, duration_ms=1000, session_id=None):
    entry = compute_next_state(card.memory, parameters, rating, when).log_entry
    return replace(
        entry,
        card_id=card.id,
        user_id=card.user_id,
        duration_ms=duration_ms,
        session_id=session_id,
    )


def card_in(card_id, state, difficulty, stability, reps, lapses, due, suspended=False, bag_id=BAG_ID):
    card = create_card(USER_ID, bag_id, NOW - timedelta(days=90), card_id=card_id)
    memory = replace(
        card.memory,
        state=state,
        difficulty=difficulty,
        stability=stability,
        reps=reps,
        lapses=lapses,
        due=due,
        suspended=suspended,
    )
    return replace(card, memory=memory)


class TestSessionSummary:

    def test_counts_and_averages(self, sql_store, review_card, parameters):
        for rating, duration in ((Rating.AGAIN, 1000), (Rating.GOOD, 2000), (Rating.GOOD, 3000)):
            sql_store.insert_review_log(
                log_for(review_card, parameters, rating, NOW, duration_ms=duration, session_id="s1")
            )
        sql_store.insert_review_log(log_for(review_card, parameters, Rating.EASY, NOW, session_id="s2"))

        summary = build_session_summary(sql_store, "s1")

        assert summary.cards_reviewed == 3
        assert summary.again_count == 1
        assert summary.good_count == 2
        assert summary.hard_count == 0
        assert summary.easy_count == 0
        assert summary.manual_count == 0
        assert summary.average_duration == pytest.approx(2000.0)
        assert summary.average_difficulty == pytest.approx(review_card.memory.difficulty)

    def test_empty_session(self, sql_store):
        summary = build_session_summary(sql_store, "nothing")
        assert summary.cards_reviewed == 0
        assert summary.average_duration == 0.0

    def test_missing_durations(self):
        logs = pd.DataFrame({"rating": [3, 4], "duration": [None, None], "difficulty": [4.0, 6.0]})
        summary = compute_session_summary(logs)
        assert summary.average_duration == 0.0
        assert summary.average_difficulty == pytest.approx(5.0)

    def test_to_fields(self, sql_store):
        fields = build_session_summary(sql_store, "nothing").to_fields()
        assert set(fields) == {
            "cards_reviewed", "manual_count", "again_count", "hard_count",
            "good_count", "easy_count", "average_duration", "average_difficulty",
        }


class TestBagStats:

    @pytest.fixture
    def bag(self, sql_store):
        cards = [
            create_card(USER_ID, BAG_ID, NOW - timedelta(days=1), card_id="new"),
            card_in("learning", State.LEARNING, 5.0, 0.5, 1, 0, NOW + timedelta(minutes=10)),
            card_in("review", State.REVIEW, 2.0, 12.0, 8, 1, NOW - timedelta(days=1)),
            card_in("lapsed", State.RELEARNING, 9.5, 3.0, 25, 6, NOW - timedelta(hours=1)),
            card_in("paused", State.REVIEW, 7.0, 100.0, 15, 3, NOW - timedelta(days=2), suspended=True),
            card_in("elsewhere", State.REVIEW, 5.0, 5.0, 5, 0, NOW, bag_id="bag_2"),
        ]
        for card in cards:
            sql_store.insert_card(card)
        return sql_store

    def test_state_counts(self, bag):
        stats = build_bag_stats(bag, USER_ID, BAG_ID, now=NOW)

        assert stats.total_cards == 5
        assert stats.new_cards == 1
        assert stats.learning_cards == 1
        assert stats.review_cards == 2
        assert stats.relearning_cards == 1
        assert stats.suspended_cards == 1

    def test_due_count_is_exact(self, bag):
        # new (due at creation), review and lapsed; paused is excluded
        assert build_bag_stats(bag, USER_ID, BAG_ID, now=NOW).due_cards == 3

    def test_distributions(self, bag):
        stats = build_bag_stats(bag, USER_ID, BAG_ID, now=NOW)

        assert stats.difficulty_distribution == {
            "very_easy": 2, "easy": 0, "medium": 1, "hard": 1, "very_hard": 1,
        }
        assert stats.stability_distribution == {
            "very_low": 2, "low": 1, "medium": 1, "high": 0, "very_high": 1,
        }
        assert stats.reps_distribution == {
            "new": 1, "beginner": 1, "intermediate": 1, "advanced": 1, "expert": 1,
        }
        assert stats.lapses_distribution == {
            "perfect": 2, "occasional": 1, "frequent": 1, "problematic": 1,
        }

    def test_empty_bag(self, sql_store):
        stats = build_bag_stats(sql_store, USER_ID, "empty", now=NOW)
        assert stats.total_cards == 0
        assert stats.due_cards == 0
        assert sum(stats.difficulty_distribution.values()) == 0

    def test_bucket_edges_are_right_inclusive(self):
        values = pd.Series([2.0, 2.01, 10.0])
        assert compute_distribution(values, DIFFICULTY_BINS, DIFFICULTY_LABELS) == {
            "very_easy": 1, "easy": 1, "medium": 0, "hard": 0, "very_hard": 1,
        }


class TestReviewHistory:

    def test_daily_counts_and_retention(self, sql_store, review_card, parameters):
        day_one = NOW
        day_three = NOW + timedelta(days=2, hours=5)
        for rating, when in (
            (Rating.GOOD, day_one),
            (Rating.AGAIN, day_one + timedelta(hours=1)),
            (Rating.EASY, day_three),
        ):
            sql_store.insert_review_log(log_for(review_card, parameters, rating, when))

        history = build_review_history(sql_store, USER_ID)

        assert history.total_reviews == 3
        assert history.daily_reviews.tolist() == [2, 0, 1]
        assert history.daily_retention.iloc[0] == pytest.approx(0.5)
        assert pd.isna(history.daily_retention.iloc[1])
        assert history.daily_retention.iloc[2] == pytest.approx(1.0)

    def test_no_reviews(self, sql_store):
        history = build_review_history(sql_store, USER_ID)
        assert history.total_reviews == 0
        assert history.daily_reviews.empty

"""
Tests for the transactional review workflow.

Most tests drive the orchestrator against a mocked store so that write calls
can be counted; the last class runs it end to end on SQLite.
"""

import logging
from dataclasses import replace
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from flashbag.errors import (
    ConcurrentReviewError,
    ConfigurationMissingError,
    IncompleteResultError,
    InvalidRatingError,
    NotFoundError,
    WriteConflictError,
)
from flashbag.fsrs.constants import Rating, ReviewType, State
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.fsrs.scheduler import SchedulingResult, compute_next_state
from flashbag.review import ReviewOrchestrator, resolve_review_type
from flashbag.storage.documents import memory_to_fields
from flashbag.timeutils import to_epoch_ms

from conftest import BAG_ID, NOW, USER_ID


@pytest.fixture
def store(review_card):
    store = MagicMock()
    store.get_card.return_value = review_card
    store.get_scheduling_parameters.return_value = SchedulingParameters().to_document()
    store.patch_card.return_value = True
    store.insert_review_log.return_value = "log_1"
    return store


@pytest.fixture
def orchestrator(store):
    return ReviewOrchestrator(store, clock=lambda: NOW)


class TestSubmitReview:

    def test_good_review(self, orchestrator, store, review_card):
        summary = orchestrator.submit_review(USER_ID, "card_1", 3, 4200, session_id="session_1")

        expected = compute_next_state(review_card.memory, SchedulingParameters(), Rating.GOOD, NOW)
        assert summary.new_state == State.REVIEW
        assert summary.next_review == expected.next_state.due
        assert summary.next_review_timestamp == to_epoch_ms(expected.next_state.due)
        assert summary.new_stability == expected.next_state.stability
        assert summary.log_id == "log_1"

        store.patch_card.assert_called_once_with(
            "card_1", memory_to_fields(expected.next_state), expected_reps=review_card.memory.reps
        )

    def test_log_entry_is_completed(self, orchestrator, store):
        orchestrator.submit_review(USER_ID, "card_1", 3, 4200, session_id="session_1")

        entry = store.insert_review_log.call_args.args[0]
        assert entry.card_id == "card_1"
        assert entry.user_id == USER_ID
        assert entry.duration_ms == 4200
        assert entry.session_id == "session_1"
        assert entry.elapsed_days == 6
        assert entry.last_elapsed_days == 5
        assert entry.review_type == ReviewType.SCHEDULED

    def test_writes_inside_one_transaction(self, orchestrator, store):
        calls = []
        store.transaction.side_effect = lambda: _recording_transaction(calls)
        store.patch_card.side_effect = lambda *a, **k: calls.append("patch") or True
        store.insert_review_log.side_effect = lambda *a, **k: calls.append("log") or "log_1"

        orchestrator.submit_review(USER_ID, "card_1", 3, 1000)
        assert calls == ["begin", "patch", "log", "commit"]

    def test_explicit_review_type(self, orchestrator, store):
        orchestrator.submit_review(USER_ID, "card_1", 3, 1000, review_type=ReviewType.MANUAL)
        assert store.insert_review_log.call_args.args[0].review_type == ReviewType.MANUAL

    def test_early_review_is_cramming(self, store, review_card):
        early = replace(review_card, memory=replace(review_card.memory, due=NOW + timedelta(days=2)))
        store.get_card.return_value = early

        ReviewOrchestrator(store, clock=lambda: NOW).submit_review(USER_ID, "card_1", 3, 1000)
        assert store.insert_review_log.call_args.args[0].review_type == ReviewType.CRAMMING

    def test_injected_logger(self, store):
        logger = MagicMock(spec=logging.Logger)
        ReviewOrchestrator(store, logger=logger, clock=lambda: NOW).submit_review(
            USER_ID, "card_1", 1, 1000
        )

        messages = [call.args[0] for call in logger.info.call_args_list]
        assert any("Review started" in m for m in messages)
        assert any("Lapses increased" in m for m in messages)
        assert any("Review completed" in m for m in messages)

    def test_rejects_zero_attempts(self, store):
        with pytest.raises(ValueError):
            ReviewOrchestrator(store, max_attempts=0)


class TestFailures:

    def _assert_nothing_written(self, store):
        assert store.patch_card.call_count == 0
        assert store.insert_review_log.call_count == 0

    def test_incomplete_result_writes_nothing(self, store, review_card):
        """A scheduler that leaves the log's elapsed_days empty must not persist anything."""
        def broken_scheduler(current, parameters, rating, now):
            result = compute_next_state(current, parameters, rating, now)
            return SchedulingResult(
                next_state=result.next_state,
                log_entry=replace(result.log_entry, elapsed_days=None),
            )

        orchestrator = ReviewOrchestrator(store, clock=lambda: NOW, scheduler=broken_scheduler)
        with pytest.raises(IncompleteResultError) as excinfo:
            orchestrator.submit_review(USER_ID, "card_1", 3, 1000)

        assert "log_entry.elapsed_days" in excinfo.value.missing_fields
        assert "elapsed_days" in str(excinfo.value)
        self._assert_nothing_written(store)

    def test_missing_card(self, orchestrator, store):
        store.get_card.return_value = None
        with pytest.raises(NotFoundError):
            orchestrator.submit_review(USER_ID, "card_404", 3, 1000)
        self._assert_nothing_written(store)

    def test_card_of_another_user(self, orchestrator, store):
        with pytest.raises(NotFoundError):
            orchestrator.submit_review("someone_else", "card_1", 3, 1000)
        self._assert_nothing_written(store)

    def test_missing_parameters(self, orchestrator, store):
        store.get_scheduling_parameters.return_value = None
        with pytest.raises(ConfigurationMissingError):
            orchestrator.submit_review(USER_ID, "card_1", 3, 1000)
        self._assert_nothing_written(store)

    def test_invalid_parameters(self, orchestrator, store):
        store.get_scheduling_parameters.return_value = {"w": [1.0, 2.0], "request_retention": 0.9}
        with pytest.raises(ConfigurationMissingError):
            orchestrator.submit_review(USER_ID, "card_1", 3, 1000)
        self._assert_nothing_written(store)

    @pytest.mark.parametrize("rating", [0, 5])
    def test_invalid_rating(self, orchestrator, store, rating):
        with pytest.raises(InvalidRatingError):
            orchestrator.submit_review(USER_ID, "card_1", rating, 1000)
        assert store.get_card.call_count == 0
        self._assert_nothing_written(store)

    def test_errors_are_logged(self, store):
        store.get_card.return_value = None
        logger = MagicMock(spec=logging.Logger)
        with pytest.raises(NotFoundError):
            ReviewOrchestrator(store, logger=logger).submit_review(USER_ID, "card_1", 3, 1000)
        logger.error.assert_called_once()


class TestConcurrency:

    def test_retries_after_conflict(self, orchestrator, store):
        store.patch_card.side_effect = [False, True]

        summary = orchestrator.submit_review(USER_ID, "card_1", 3, 1000)

        assert summary.log_id == "log_1"
        assert store.get_card.call_count == 2
        assert store.insert_review_log.call_count == 1

    def test_retries_after_store_write_conflict(self, orchestrator, store):
        store.patch_card.side_effect = [WriteConflictError("WriteConflict"), True]

        summary = orchestrator.submit_review(USER_ID, "card_1", 3, 1000)

        assert summary.log_id == "log_1"
        assert store.get_card.call_count == 2
        assert store.insert_review_log.call_count == 1

    def test_persistent_write_conflict_gives_up(self, orchestrator, store):
        store.patch_card.side_effect = WriteConflictError("WriteConflict")

        with pytest.raises(ConcurrentReviewError):
            orchestrator.submit_review(USER_ID, "card_1", 3, 1000)
        assert store.insert_review_log.call_count == 0

    def test_gives_up_after_max_attempts(self, store):
        store.patch_card.return_value = False
        orchestrator = ReviewOrchestrator(store, clock=lambda: NOW, max_attempts=3)

        with pytest.raises(ConcurrentReviewError) as excinfo:
            orchestrator.submit_review(USER_ID, "card_1", 3, 1000)

        assert excinfo.value.attempts == 3
        assert store.patch_card.call_count == 3
        assert store.insert_review_log.call_count == 0


class TestResolveReviewType:

    def test_due_card_is_scheduled(self):
        assert resolve_review_type(NOW, NOW) == ReviewType.SCHEDULED

    def test_not_yet_due_is_cramming(self):
        assert resolve_review_type(NOW + timedelta(hours=1), NOW) == ReviewType.CRAMMING

    def test_explicit_wins(self):
        assert resolve_review_type(NOW, NOW, ReviewType.MANUAL) == ReviewType.MANUAL


class TestEndToEnd:

    def test_review_persists_card_and_log(self, sql_store, review_card):
        sql_store.insert_card(review_card)
        sql_store.save_scheduling_parameters(USER_ID, SchedulingParameters())

        orchestrator = ReviewOrchestrator(sql_store, clock=lambda: NOW)
        summary = orchestrator.submit_review(USER_ID, "card_1", 1, 2500, session_id="s1")

        card = sql_store.get_card("card_1")
        assert card.memory.state == State.RELEARNING
        assert card.memory.lapses == 2
        assert card.memory.reps == 6
        assert card.memory.elapsed_days == 6
        assert card.memory.due == summary.next_review
        assert card.bag_id == BAG_ID

        logs = sql_store.list_review_logs(card_id="card_1")
        assert len(logs) == 1
        assert logs[0].id == summary.log_id
        assert logs[0].rating == Rating.AGAIN
        assert logs[0].elapsed_days == 6
        assert logs[0].last_elapsed_days == 5
        assert logs[0].duration_ms == 2500

    def test_second_review_uses_persisted_state(self, sql_store, review_card):
        sql_store.insert_card(review_card)
        sql_store.save_scheduling_parameters(USER_ID, SchedulingParameters())

        ReviewOrchestrator(sql_store, clock=lambda: NOW).submit_review(USER_ID, "card_1", 3, 1000)
        later = NOW + timedelta(days=3)
        ReviewOrchestrator(sql_store, clock=lambda: later).submit_review(USER_ID, "card_1", 3, 1000)

        logs = sql_store.list_review_logs(card_id="card_1")
        assert [log.elapsed_days for log in logs] == [6, 3]
        assert [log.last_elapsed_days for log in logs] == [5, 6]

    def test_failed_write_rolls_back_patch(self, sql_store, review_card):
        sql_store.insert_card(review_card)
        sql_store.save_scheduling_parameters(USER_ID, SchedulingParameters())

        def failing_insert(entry):
            raise RuntimeError("log collection unavailable")

        sql_store.insert_review_log = failing_insert
        with pytest.raises(RuntimeError):
            ReviewOrchestrator(sql_store, clock=lambda: NOW).submit_review(USER_ID, "card_1", 3, 1000)

        assert sql_store.get_card("card_1").memory == review_card.memory


def _recording_transaction(calls):
    class _Transaction:
        def __enter__(self):
            calls.append("begin")

        def __exit__(self, exc_type, exc, tb):
            calls.append("commit" if exc_type is None else "rollback")
            return False

    return _Transaction()

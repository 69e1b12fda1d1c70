"""
Tests for interval computation, fuzzing and learning-step planning.
"""

from datetime import datetime, timezone

import pytest

from flashbag.fsrs import intervals
from flashbag.fsrs.constants import Rating
from flashbag.fsrs.parameters import SchedulingParameters
from flashbag.fsrs.stm_updates import StepOutcome, hard_step_delay, plan_learning_step


class TestNextInterval:

    def test_equals_stability_at_ninety_percent(self):
        assert intervals.next_interval(10.0, 0.9, 36500) == 10

    def test_higher_retention_gives_shorter_interval(self):
        assert intervals.next_interval(10.0, 0.95, 36500) < intervals.next_interval(10.0, 0.8, 36500)

    def test_at_least_one_day(self):
        assert intervals.next_interval(0.01, 0.9, 36500) == 1

    def test_capped_by_maximum(self):
        assert intervals.next_interval(5000.0, 0.9, 365) == 365


class TestFuzz:

    def test_short_intervals_untouched(self):
        assert intervals.apply_fuzz(2, 0, 36500, 0.99) == 2

    @pytest.mark.parametrize("interval", [3, 7, 15, 30, 100, 1000])
    def test_stays_in_range(self, interval):
        low, high = intervals.fuzz_range(interval, 0, 36500)
        for fraction in (0.0, 0.25, 0.5, 0.999):
            fuzzed = intervals.apply_fuzz(interval, 0, 36500, fraction)
            assert low <= fuzzed <= high

    def test_range_widens_with_interval(self):
        low_10, high_10 = intervals.fuzz_range(10, 0, 36500)
        low_100, high_100 = intervals.fuzz_range(100, 0, 36500)
        assert high_100 - low_100 > high_10 - low_10

    def test_range_respects_maximum(self):
        _, high = intervals.fuzz_range(100, 0, 100)
        assert high == 100

    def test_lower_bound_past_elapsed_days(self):
        low, _ = intervals.fuzz_range(10, 9, 36500)
        assert low >= 10

    def test_lower_bound_at_least_two(self):
        low, _ = intervals.fuzz_range(3, 0, 36500)
        assert low >= 2

    def test_seed_is_deterministic(self):
        instant = datetime(2024, 1, 7, tzinfo=timezone.utc)
        seed = intervals.fuzz_seed(instant, 5, 3.0, 3.0)
        assert seed == intervals.fuzz_seed(instant, 5, 3.0, 3.0)
        assert intervals.fuzz_fraction(seed) == intervals.fuzz_fraction(seed)

    def test_seed_depends_on_inputs(self):
        instant = datetime(2024, 1, 7, tzinfo=timezone.utc)
        assert intervals.fuzz_seed(instant, 5, 3.0, 3.0) != intervals.fuzz_seed(instant, 6, 3.0, 3.0)

    def test_scheduled_interval_ignores_fraction_without_fuzz(self):
        params = SchedulingParameters(enable_fuzz=False)
        assert intervals.scheduled_interval(30.0, params, 0, 0.999) == 30


class TestOrderReviewIntervals:

    def test_already_ordered(self):
        assert intervals.order_review_intervals(3, 5, 9, 36500) == (3, 5, 9)

    def test_hard_above_good(self):
        hard, good, easy = intervals.order_review_intervals(6, 5, 9, 36500)
        assert hard <= good < easy

    def test_collapsed(self):
        assert intervals.order_review_intervals(4, 4, 4, 36500) == (4, 5, 6)

    def test_maximum_wins(self):
        hard, good, easy = intervals.order_review_intervals(100, 100, 100, 100)
        assert (hard, good, easy) == (100, 100, 100)


class TestPlanLearningStep:

    steps = (1.0, 10.0)

    def test_again_restarts(self):
        assert plan_learning_step(self.steps, 1, Rating.AGAIN) == StepOutcome(0, 1.0)

    def test_hard_repeats_step(self):
        assert plan_learning_step(self.steps, 0, Rating.HARD) == StepOutcome(0, 5.5)

    def test_good_advances(self):
        assert plan_learning_step(self.steps, 0, Rating.GOOD) == StepOutcome(1, 10.0)

    def test_good_on_last_step_graduates(self):
        assert plan_learning_step(self.steps, 1, Rating.GOOD) is None

    def test_easy_graduates(self):
        assert plan_learning_step(self.steps, 0, Rating.EASY) is None

    def test_out_of_range_step(self):
        assert plan_learning_step(self.steps, 5, Rating.AGAIN) == StepOutcome(0, 1.0)
        assert plan_learning_step(self.steps, 5, Rating.HARD) is None
        assert plan_learning_step(self.steps, 5, Rating.GOOD) is None

    def test_single_step_hard_delay(self):
        assert hard_step_delay((10.0,)) == 15.0

    def test_empty_steps_rejected(self):
        with pytest.raises(ValueError):
            plan_learning_step((), 0, Rating.GOOD)

"""
Tests for due/new card selection and the capped due count.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from flashbag import card_selector
from flashbag.fsrs.constants import State
from flashbag.storage.records import create_card

from conftest import BAG_ID, NOW, USER_ID


def due_card(card_id, due, bag_id=BAG_ID, suspended=False, created_offset=0, user_id=USER_ID):
    card = create_card(user_id, bag_id, NOW - timedelta(days=60, minutes=-created_offset), card_id=card_id)
    memory = replace(
        card.memory,
        due=due,
        state=State.REVIEW,
        stability=5.0,
        difficulty=5.0,
        reps=3,
        elapsed_days=2,
        last_review=due - timedelta(days=5),
        suspended=suspended,
    )
    return replace(card, memory=memory)


@pytest.fixture
def many_due(sql_store):
    """150 due cards; card_149 is the most overdue."""
    for i in range(150):
        sql_store.insert_card(due_card(f"card_{i:03d}", NOW - timedelta(hours=i), created_offset=i))
    return sql_store


class TestDueCount:

    def test_capped_above_threshold(self, many_due):
        count = card_selector.count_due_cards(many_due, USER_ID, now=NOW)
        assert count == 101
        assert card_selector.format_due_count(count) == "100+"

    def test_exact_below_threshold(self, sql_store):
        for i in range(7):
            sql_store.insert_card(due_card(f"card_{i}", NOW - timedelta(minutes=i + 1)))
        sql_store.insert_card(due_card("later", NOW + timedelta(days=1)))

        count = card_selector.count_due_cards(sql_store, USER_ID, now=NOW)
        assert count == 7
        assert card_selector.format_due_count(count) == "7"

    @pytest.mark.parametrize("count, label", [(0, "0"), (100, "100"), (101, "100+"), (5000, "100+")])
    def test_format(self, count, label):
        assert card_selector.format_due_count(count) == label

    def test_suspended_not_counted(self, sql_store):
        sql_store.insert_card(due_card("active", NOW - timedelta(hours=1)))
        sql_store.insert_card(due_card("paused", NOW - timedelta(hours=2), suspended=True))
        assert card_selector.count_due_cards(sql_store, USER_ID, now=NOW) == 1


class TestGetDueCard:

    def test_most_overdue_first(self, many_due):
        card = card_selector.get_due_card(many_due, USER_ID, now=NOW)
        assert card.id == "card_149"

    def test_due_cards_in_order(self, many_due):
        cards = card_selector.get_due_cards(many_due, USER_ID, now=NOW, limit=3)
        assert [c.id for c in cards] == ["card_149", "card_148", "card_147"]

    def test_ties_broken_by_creation(self, sql_store):
        sql_store.insert_card(due_card("b", NOW - timedelta(hours=1), created_offset=5))
        sql_store.insert_card(due_card("a", NOW - timedelta(hours=1), created_offset=9))
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW).id == "b"

    def test_due_exactly_now(self, sql_store):
        sql_store.insert_card(due_card("edge", NOW))
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW).id == "edge"

    def test_nothing_due(self, sql_store):
        sql_store.insert_card(due_card("later", NOW + timedelta(minutes=1)))
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW) is None

    def test_suspended_skipped(self, sql_store):
        sql_store.insert_card(due_card("paused", NOW - timedelta(days=3), suspended=True))
        sql_store.insert_card(due_card("active", NOW - timedelta(hours=1)))
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW).id == "active"

    def test_bag_scope(self, sql_store):
        sql_store.insert_card(due_card("other_bag", NOW - timedelta(days=3), bag_id="bag_2"))
        sql_store.insert_card(due_card("this_bag", NOW - timedelta(hours=1)))

        assert card_selector.get_due_card(sql_store, USER_ID, bag_id=BAG_ID, now=NOW).id == "this_bag"
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW).id == "other_bag"
        assert card_selector.count_due_cards(sql_store, USER_ID, bag_id="bag_2", now=NOW) == 1

    def test_other_users_cards_ignored(self, sql_store):
        sql_store.insert_card(due_card("theirs", NOW - timedelta(days=1), user_id="user_2"))
        assert card_selector.get_due_card(sql_store, USER_ID, now=NOW) is None


class TestSelectNextCard:

    def test_due_before_new(self, sql_store):
        sql_store.insert_card(create_card(USER_ID, BAG_ID, NOW + timedelta(hours=1), card_id="fresh"))
        sql_store.insert_card(due_card("due", NOW - timedelta(hours=1)))
        assert card_selector.select_next_card(sql_store, USER_ID, now=NOW).id == "due"

    def test_new_cards_oldest_first(self, sql_store):
        sql_store.insert_card(create_card(USER_ID, BAG_ID, NOW + timedelta(hours=2), card_id="newer"))
        sql_store.insert_card(create_card(USER_ID, BAG_ID, NOW + timedelta(hours=1), card_id="older"))

        assert [c.id for c in card_selector.get_new_cards(sql_store, USER_ID)] == ["older", "newer"]
        assert card_selector.select_next_card(sql_store, USER_ID, now=NOW).id == "older"

    def test_without_new_cards(self, sql_store):
        sql_store.insert_card(create_card(USER_ID, BAG_ID, NOW + timedelta(hours=1), card_id="fresh"))
        assert card_selector.select_next_card(sql_store, USER_ID, now=NOW, include_new=False) is None

    def test_session_complete(self, sql_store):
        assert card_selector.select_next_card(sql_store, USER_ID, now=NOW) is None

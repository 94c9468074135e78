"""
Unit tests for RoundSession

Tests cover:
- Round lifecycle (new round, reset)
- Placement rules: open ledger only, known cards and categories only
- Checking through the session
"""

import pytest
from models import E_C, EXPENDITURE, INCOME, LEDGERS, PRODUCTION
from reconcile import GAP, NO_CARDS_PLACED, RECONCILED
from session import RoundSession


@pytest.fixture
def session():
    s = RoundSession(seed=11)
    s.new_round()
    return s


def _card(session, ledger, distractor=False):
    return next(c for c in session.scenario.ledger_cards(ledger) if c.is_distractor == distractor)


class TestLifecycle:
    """Test suite for starting and resetting rounds"""

    def test_new_round_starts_with_empty_placement(self, session):
        assert session.scenario is not None
        assert session.placement.round_id == session.scenario.round_id
        assert session.placement.placed_count == 0
        assert session.rounds_played == 1

    def test_new_round_discards_old_placement(self, session):
        card = _card(session, PRODUCTION)
        session.place(card.id, card.correct_bin)
        old_round = session.scenario.round_id
        old_placement = session.placement

        session.new_round()

        assert session.scenario.round_id != old_round
        assert session.placement is not old_placement
        assert session.placement.placed_count == 0
        assert session.placement.round_id == session.scenario.round_id

    def test_reset_clears_placement_but_keeps_round(self, session):
        card = _card(session, PRODUCTION)
        session.place(card.id, card.correct_bin)
        round_id = session.scenario.round_id

        session.reset()

        assert session.placement.placed_count == 0
        assert session.scenario.round_id == round_id

    def test_reset_before_any_round_is_harmless(self):
        RoundSession(seed=1).reset()

    def test_seeded_sessions_generate_same_round(self):
        assert RoundSession(seed=3).new_round().round_id == RoundSession(seed=3).new_round().round_id

    def test_check_starts_a_round_if_needed(self):
        session = RoundSession(seed=4)
        report = session.check()

        assert session.scenario is not None
        assert report.status == NO_CARDS_PLACED


class TestPlacement:
    """Test suite for place / unplace rules"""

    def test_place_card_of_open_ledger(self, session):
        card = _card(session, PRODUCTION)

        assert session.place(card.id, card.correct_bin)
        assert session.placement.get(PRODUCTION, card.id) == card.correct_bin

    def test_place_overwrites_previous_category(self, session):
        card = _card(session, PRODUCTION)
        other = next(c.id for c in session.scenario.categories[PRODUCTION] if c.id != card.correct_bin)

        session.place(card.id, other)
        session.place(card.id, card.correct_bin)

        assert session.placement.get(PRODUCTION, card.id) == card.correct_bin
        assert session.placement.placed_count == 1

    def test_card_from_other_ledger_is_ignored(self, session):
        card = _card(session, EXPENDITURE)

        assert session.active_ledger == PRODUCTION
        assert not session.place(card.id, E_C)
        assert session.placement.placed_count == 0

        assert session.set_active_ledger(EXPENDITURE)
        assert session.place(card.id, E_C)

    def test_unknown_card_is_ignored(self, session):
        assert not session.place("p_does_not_exist", session.scenario.categories[PRODUCTION][0].id)
        assert session.placement.placed_count == 0

    def test_category_from_other_ledger_is_ignored(self, session):
        card = _card(session, PRODUCTION)

        assert not session.place(card.id, E_C)
        assert not session.place(card.id, "NOT_A_BIN")
        assert session.placement.placed_count == 0

    def test_unknown_ledger_leaves_tab_unchanged(self, session):
        assert not session.set_active_ledger("balance_sheet")
        assert session.active_ledger == PRODUCTION

    def test_place_before_any_round_is_ignored(self):
        session = RoundSession(seed=5)

        assert not session.place("p_1", "P_S_OUT")
        assert not session.unplace("p_1")

    def test_unplace_returns_card_to_pool(self, session):
        card = _card(session, PRODUCTION)
        session.place(card.id, card.correct_bin)

        assert session.unplace(card.id)
        assert session.placement.get(PRODUCTION, card.id) is None
        assert not session.unplace(card.id)

    def test_unplace_respects_open_ledger(self, session):
        session.set_active_ledger(INCOME)
        card = _card(session, INCOME)
        session.place(card.id, card.correct_bin)
        session.set_active_ledger(PRODUCTION)

        assert not session.unplace(card.id)
        assert session.placement.get(INCOME, card.id) == card.correct_bin


class TestChecking:
    """Test suite for checking through the session"""

    def test_placing_everything_correctly_reconciles(self, session):
        for ledger in LEDGERS:
            session.set_active_ledger(ledger)
            for card in session.scenario.ledger_cards(ledger):
                assert session.place(card.id, card.correct_bin)

        report = session.check()

        assert report.status == RECONCILED
        assert report.gap == 0
        assert report.correct_count == session.scenario.card_count
        assert report.inventory_ok

    def test_partial_placement_reports_gap(self, session):
        card = _card(session, PRODUCTION)
        session.place(card.id, card.correct_bin)

        report = session.check()

        assert report.status == GAP
        assert report.placed_count == 1

    def test_check_is_repeatable(self, session):
        card = _card(session, PRODUCTION)
        session.place(card.id, card.correct_bin)

        assert session.check() == session.check()

"""
Unit tests for CardFactory

Tests cover:
- Card construction and id allocation
- Hint-free wording across generated rounds
- Inventory cards and their registered ids
- Distractors
"""

import random

import pytest
from cards import DISTRACTORS, EXCLUSION_BIN, HINT_TERMS, TEMPLATES, CardFactory
from models import (
    E_C,
    E_I,
    EXPENDITURE,
    INCOME,
    LEDGERS,
    PRODUCTION,
    SUBTYPE_DISTRACTOR,
    SUBTYPE_INVENTORY,
)
from solver import ScenarioSolver


@pytest.fixture
def factory():
    return CardFactory(random.Random(7))


class TestMakeCard:
    """Test suite for single cards"""

    def test_card_carries_amount_and_category(self, factory):
        card = factory.make_card(EXPENDITURE, 42, E_C, TEMPLATES["consumption"])

        assert card.ledger == EXPENDITURE
        assert card.amount == 42
        assert card.correct_bin == E_C
        assert "$42m" in card.text
        assert card.text in {t.format(amount=42) for t in TEMPLATES["consumption"]}

    def test_ids_are_unique_and_prefixed_by_ledger(self, factory):
        cards = [
            factory.make_card(PRODUCTION, 5, "P_S_OUT", TEMPLATES["output"], firm="SteelCo", product="metal"),
            factory.make_card(EXPENDITURE, 5, E_C, TEMPLATES["consumption"]),
            factory.make_card(INCOME, 5, "I_W", TEMPLATES["wages"], firm="SteelCo"),
        ]

        assert [c.id[:2] for c in cards] == ["p_", "e_", "i_"]
        assert len({c.id for c in cards}) == 3

    def test_phrasing_is_drawn_from_whole_pool(self, factory):
        """Over many draws every template in the pool shows up"""
        texts = {factory.make_card(EXPENDITURE, 10, E_C, TEMPLATES["consumption"]).text for _ in range(200)}

        assert len(texts) == len(TEMPLATES["consumption"])

    def test_make_cards_one_per_amount(self, factory):
        cards = factory.make_cards(INCOME, [10, 20, 30], "I_W", TEMPLATES["wages"], firm="PortCo")

        assert [c.amount for c in cards] == [10, 20, 30]
        assert all("PortCo" in c.text for c in cards)

    def test_cards_are_immutable(self, factory):
        card = factory.make_card(EXPENDITURE, 10, E_C, TEMPLATES["consumption"])
        with pytest.raises(AttributeError):
            card.amount = 99


class TestInventoryCards:
    """Test suite for inventory-change cards"""

    def test_returns_ids_of_every_card(self, factory):
        cards, ids = factory.make_inventory_cards([12, 8], "finished vehicles")

        assert ids == [c.id for c in cards]
        assert all(c.correct_bin == E_I for c in cards)
        assert all(c.subtype == SUBTYPE_INVENTORY for c in cards)

    def test_negative_amount_shows_magnitude_in_text(self, factory):
        """A stock decrease reads as a fall, never as a negative number"""
        cards, _ = factory.make_inventory_cards([-7], "finished vehicles")

        assert cards[0].amount == -7
        assert "$7m" in cards[0].text
        assert "-7" not in cards[0].text
        assert cards[0].text in {t.format(amount=7, product="finished vehicles") for t in TEMPLATES["inventory_down"]}

    def test_zero_change_uses_flat_wording(self, factory):
        cards, _ = factory.make_inventory_cards([0], "finished vehicles")

        assert cards[0].text in {t.format(amount=0, product="finished vehicles") for t in TEMPLATES["inventory_flat"]}


class TestDistractors:
    """Test suite for distractor cards"""

    @pytest.mark.parametrize("ledger", LEDGERS)
    def test_distractors_belong_to_exclusion_bin(self, factory, ledger):
        cards = factory.make_distractors(ledger, 2, ["SteelCo", "AutoCo"])

        assert len(cards) == 2
        for card in cards:
            assert card.correct_bin == EXCLUSION_BIN[ledger]
            assert card.subtype == SUBTYPE_DISTRACTOR
            assert card.is_distractor

    @pytest.mark.parametrize("ledger", LEDGERS)
    def test_amounts_come_from_the_statement_range(self, factory, ledger):
        ranges = {t.split("$")[0]: (lo, hi) for lo, hi, t in DISTRACTORS[ledger]}
        for _ in range(30):
            for card in factory.make_distractors(ledger, len(DISTRACTORS[ledger]), ["MachCo"]):
                lo, hi = next(r for prefix, r in ranges.items() if card.text.startswith(prefix.replace("{firm}", "MachCo")))
                assert lo <= card.amount <= hi

    def test_each_statement_used_once_per_call(self, factory):
        cards = factory.make_distractors(EXPENDITURE, 10, [])

        assert len(cards) == len(DISTRACTORS[EXPENDITURE])
        assert len({c.text.split("$")[0] for c in cards}) == len(cards)

    def test_production_distractor_names_a_firm(self, factory):
        cards = factory.make_distractors(PRODUCTION, 3, ["SteelCo"])

        assert all(c.text.startswith("SteelCo") for c in cards)


class TestWording:
    """Generated rounds never give the category away in the card text"""

    def test_no_parentheticals_or_category_names(self):
        for seed in range(50):
            scenario = ScenarioSolver(seed=seed).solve()
            for card in scenario.all_cards():
                role = scenario.find_category(card.ledger, card.correct_bin).role
                text = card.text.lower()

                assert "(" not in text, card.text
                for term in HINT_TERMS[role]:
                    assert term not in text, f"'{term}' gives away {card.correct_bin}: {card.text}"

    def test_every_template_fills_cleanly(self):
        """No placeholder is left unfilled in any generated text"""
        for seed in range(20):
            scenario = ScenarioSolver(seed=seed).solve()
            for card in scenario.all_cards():
                assert "{" not in card.text and "}" not in card.text

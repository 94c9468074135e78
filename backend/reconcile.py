"""
Reconciliation Engine

Recomputes the three GDP totals from whatever the learner has placed so far,
and scores each placed card. Everything is derived from the Card and
Placement data; nothing is read back from a rendered view.

reconcile() never mutates its inputs, so calling it twice with the same
scenario and placement returns equal reports.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping

from config import CONFIG, LabConfig
from models import (
    CONSUMPTION,
    E_I,
    EXPENDITURE,
    EXPORTS,
    GOVERNMENT,
    IMPORTS,
    INCOME,
    INTERMEDIATE,
    INVESTMENT,
    LEDGERS,
    OUTPUT,
    PRODUCTION,
    PROFITS,
    WAGES,
    Placement,
    Scenario,
)

logger = logging.getLogger(__name__)

# Coarse status of a check
NO_CARDS_PLACED = "no_cards_placed"
GAP = "gap"
RECONCILED = "reconciled"

# Inventory feedback
INVENTORY_CORRECT = "correct"
INVENTORY_MISPLACED = "misplaced"
INVENTORY_UNPLACED = "unplaced"

INVENTORY_MESSAGES = {
    INVENTORY_CORRECT: "Inventory check: ✓ Inventory investment was correctly classified inside Investment (I).",
    INVENTORY_MISPLACED: "Inventory check: ✗ Inventory investment should be placed in Investment (I), not in another category.",
    INVENTORY_UNPLACED: "Inventory check: Place the inventory change item. It belongs in Investment (I).",
}


def money(amount: float) -> str:
    return f"${amount:.0f}m"


@dataclass(frozen=True)
class Report:
    """Result of one check."""

    gdp_production: int
    gdp_expenditure: int
    gdp_income: int
    gap: int
    bin_totals: Mapping[str, int]  # category id -> sum of non-distractor cards placed there
    card_results: Mapping[str, bool]  # placed card id -> placed correctly
    correct_count: int
    placed_count: int
    total_cards: int
    inventory_ok: bool
    inventory_status: str
    status: str
    message: str
    round_id: str = ""
    unplaced_ids: frozenset = field(default_factory=frozenset)

    @property
    def inventory_message(self) -> str:
        return INVENTORY_MESSAGES[self.inventory_status]

    @property
    def is_reconciled(self) -> bool:
        return self.status == RECONCILED

    def to_dict(self) -> Dict[str, object]:
        return {
            "round_id": self.round_id,
            "gdp_production": self.gdp_production,
            "gdp_expenditure": self.gdp_expenditure,
            "gdp_income": self.gdp_income,
            "gap": self.gap,
            "bin_totals": dict(self.bin_totals),
            "card_results": dict(self.card_results),
            "correct_count": self.correct_count,
            "placed_count": self.placed_count,
            "total_cards": self.total_cards,
            "inventory_ok": self.inventory_ok,
            "inventory_status": self.inventory_status,
            "inventory_message": self.inventory_message,
            "status": self.status,
            "message": self.message,
        }


def _role_sum(scenario: Scenario, ledger: str, totals: Mapping[str, int], role: str) -> int:
    return sum(totals[c.id] for c in scenario.categories[ledger] if c.role == role)


def reconcile(scenario: Scenario, placement: Placement, config: LabConfig = None) -> Report:
    """Sum every bin, derive the three GDP totals and score the placed cards."""
    config = config or CONFIG

    if placement.round_id != scenario.round_id:
        # A placement from another round can reference card ids that no longer
        # exist; score it as if nothing were placed.
        logger.warning(
            f"Placement for round {placement.round_id} checked against round {scenario.round_id}; ignoring it"
        )
        placement = Placement(scenario.round_id)

    totals: Dict[str, int] = {c.id: 0 for ledger in LEDGERS for c in scenario.categories[ledger]}
    card_results: Dict[str, bool] = {}
    unplaced = []

    for card in scenario.all_cards():
        placed_bin = placement.get(card.ledger, card.id)
        if placed_bin is None:
            unplaced.append(card.id)
            continue
        # Distractors are scored but never summed, wherever they land
        if placed_bin in totals and not card.is_distractor:
            totals[placed_bin] += card.amount
        card_results[card.id] = placed_bin == card.correct_bin

    # Production: value added per firm, summed
    gdp_production = 0
    for category in scenario.categories[PRODUCTION]:
        if category.role == OUTPUT:
            gdp_production += totals[category.id]
        elif category.role == INTERMEDIATE:
            gdp_production -= totals[category.id]

    consumption = _role_sum(scenario, EXPENDITURE, totals, CONSUMPTION)
    investment = _role_sum(scenario, EXPENDITURE, totals, INVESTMENT)
    government = _role_sum(scenario, EXPENDITURE, totals, GOVERNMENT)
    exports = _role_sum(scenario, EXPENDITURE, totals, EXPORTS)
    imports = _role_sum(scenario, EXPENDITURE, totals, IMPORTS)
    gdp_expenditure = consumption + investment + government + (exports - imports)

    gdp_income = _role_sum(scenario, INCOME, totals, WAGES) + _role_sum(scenario, INCOME, totals, PROFITS)

    gap = max(
        abs(gdp_production - gdp_expenditure),
        abs(gdp_production - gdp_income),
        abs(gdp_expenditure - gdp_income),
    )

    # Inventory: every inventory card must sit in Investment
    inventory_bins = [placement.get(EXPENDITURE, card_id) for card_id in scenario.inventory_card_ids]
    inventory_ok = all(b == E_I for b in inventory_bins)
    if inventory_ok:
        inventory_status = INVENTORY_CORRECT
    elif any(b is not None and b != E_I for b in inventory_bins):
        inventory_status = INVENTORY_MISPLACED
    else:
        inventory_status = INVENTORY_UNPLACED

    placed_count = len(card_results)
    correct_count = sum(1 for ok in card_results.values() if ok)

    if placed_count == 0:
        status = NO_CARDS_PLACED
        message = "Place items in the bins, then click Check."
    elif gap < config.check.gap_tolerance:
        status = RECONCILED
        message = f"Nice. Your three GDP totals reconcile (gap = {money(gap)})."
    else:
        status = GAP
        message = (
            f"Checked: {correct_count}/{placed_count} items correctly placed. "
            f"Reconciliation gap: {money(gap)}."
        )

    return Report(
        gdp_production=gdp_production,
        gdp_expenditure=gdp_expenditure,
        gdp_income=gdp_income,
        gap=gap,
        bin_totals=totals,
        card_results=card_results,
        correct_count=correct_count,
        placed_count=placed_count,
        total_cards=scenario.card_count,
        inventory_ok=inventory_ok,
        inventory_status=inventory_status,
        status=status,
        message=message,
        round_id=scenario.round_id,
        unplaced_ids=frozenset(unplaced),
    )

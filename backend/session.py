"""
Round Session

One learner's state: the current scenario, where their cards are, and which
ledger tab is open. The view layer talks to this object only.
"""

import logging
from typing import Optional

from config import CONFIG, LabConfig
from models import LEDGERS, PRODUCTION, Placement, Scenario
from reconcile import Report, reconcile
from solver import ScenarioSolver

logger = logging.getLogger(__name__)


class RoundSession:
    """
    Owns the Scenario and the Placement of the round in progress.

    Invalid actions (unknown cards, a card from a ledger other than the open
    one, an unknown category) are ignored and reported as not accepted; they
    never raise.
    """

    def __init__(self, config: Optional[LabConfig] = None, seed: Optional[int] = None):
        self.config = config or CONFIG
        self.solver = ScenarioSolver(config=self.config, seed=seed)
        self.scenario: Optional[Scenario] = None
        self.placement: Optional[Placement] = None
        self.active_ledger = PRODUCTION
        self.rounds_played = 0

    def new_round(self, seed: Optional[int] = None) -> Scenario:
        """Throw away the old round (placement first) and generate a new one."""
        self.placement = None
        self.scenario = None
        scenario = self.solver.solve(seed=seed)
        self.scenario = scenario
        self.placement = Placement(scenario.round_id)
        self.rounds_played += 1
        logger.info(
            f"New round {scenario.round_id}: {scenario.card_count} cards, target GDP {scenario.target}"
        )
        return scenario

    def ensure_round(self) -> Scenario:
        if self.scenario is None:
            return self.new_round()
        return self.scenario

    def reset(self) -> None:
        """Send every card back to the pool; the scenario stays."""
        if self.placement is not None:
            self.placement.clear()

    def set_active_ledger(self, ledger: str) -> bool:
        if ledger not in LEDGERS:
            logger.debug(f"Ignoring unknown ledger '{ledger}'")
            return False
        self.active_ledger = ledger
        return True

    def place(self, card_id: str, category_id: str) -> bool:
        """Record that a card of the open ledger was dropped into a category."""
        if self.scenario is None:
            return False

        card = self.scenario.cards[self.active_ledger].get(card_id)
        if card is None:
            logger.debug(f"Ignoring placement of '{card_id}': not a {self.active_ledger} card")
            return False
        if self.scenario.find_category(self.active_ledger, category_id) is None:
            logger.debug(f"Ignoring placement of '{card_id}': no category '{category_id}' in {self.active_ledger}")
            return False

        self.placement.assign(card.ledger, card.id, category_id)
        return True

    def unplace(self, card_id: str) -> bool:
        """Move a card of the open ledger back to the pool."""
        if self.scenario is None or card_id not in self.scenario.cards[self.active_ledger]:
            return False
        return self.placement.remove(self.active_ledger, card_id)

    def check(self) -> Report:
        """Live totals and per-card scoring for the current placement."""
        scenario = self.ensure_round()
        return reconcile(scenario, self.placement, self.config)

"""
Scenario Parameter Solver

Builds one round of the lab: a small economy of firms, the final demand that
buys what they make, and the incomes they pay out, such that

    sum(value added) == C + I + G + (X - M) == sum(wages) + sum(profits)

holds exactly in integer arithmetic for every random draw.

The production side and the expenditure side are drawn independently. One
variable, inventory investment, is then solved for so the two sides agree.
If that residual falls outside its plausibility band, the excess is moved
into a paired final-demand component in a single pass and the residual is
recomputed. The identity always wins over the bands.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cards import CardFactory, TEMPLATES
from config import CONFIG, ComponentBand, FirmProfile, LabConfig
from models import (
    E_C,
    E_G,
    E_I,
    E_M,
    E_X,
    EXPENDITURE,
    I_P,
    I_W,
    INCOME,
    PRODUCTION,
    SUBTYPE_FIXED,
    Card,
    Scenario,
    expenditure_categories,
    income_categories,
    intermediate_bin,
    output_bin,
    production_categories,
)
from partition import feasible_count, partition

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FirmAccount:
    """Production and income account of one modeled firm."""

    profile: FirmProfile
    output: int
    intermediate_input: int
    domestic_inputs: Dict[str, int] = field(default_factory=dict)  # supplier key -> amount
    imported_input: int = 0
    wage: int = 0
    profit: int = 0
    inventory_change: int = 0  # only non-zero for the inventory holder

    @property
    def value_added(self) -> int:
        return self.output - self.intermediate_input

    @property
    def sales(self) -> int:
        """Output actually sold this year (output net of inventory change)."""
        return self.output - self.inventory_change

    @property
    def key(self) -> str:
        return self.profile.key

    @property
    def name(self) -> str:
        return self.profile.name


@dataclass(slots=True)
class ExpenditureAccount:
    """Final demand, net of imports."""

    consumption: int
    fixed_investment: int
    government: int
    exports: int
    consumer_imports: int
    intermediate_imports: int = 0
    inventory: int = 0

    @property
    def imports(self) -> int:
        return self.consumer_imports + self.intermediate_imports

    @property
    def investment(self) -> int:
        return self.fixed_investment + self.inventory

    def gdp_without_inventory(self) -> int:
        return self.consumption + self.fixed_investment + self.government + (self.exports - self.imports)

    @property
    def gdp(self) -> int:
        return self.gdp_without_inventory() + self.inventory


@dataclass
class Solution:
    """Reconciled macro and firm accounts, before any cards are made."""

    scale: int
    firms: List[FirmAccount]
    expenditure: ExpenditureAccount
    shifted: int = 0  # amount moved between inventory and its compensators
    shifts: Dict[str, int] = field(default_factory=dict)

    @property
    def gdp_production(self) -> int:
        return sum(f.value_added for f in self.firms)

    @property
    def gdp_expenditure(self) -> int:
        return self.expenditure.gdp

    @property
    def gdp_income(self) -> int:
        return sum(f.wage + f.profit for f in self.firms)

    @property
    def inventory_holder(self) -> FirmAccount:
        return next(f for f in self.firms if f.profile.holds_inventory)


def _draw_component(rng: random.Random, band: ComponentBand, scale: int) -> int:
    value = round(band.share * scale + rng.randint(-band.noise, band.noise))
    return max(band.lo, min(band.hi, value))


def _uniform(rng: random.Random, bounds: Tuple[float, float]) -> float:
    lo, hi = bounds
    return lo + rng.random() * (hi - lo)


class ScenarioSolver:
    """
    Generates reconciled scenarios.

    Pass a seed (or an existing random.Random) to make rounds reproducible.
    """

    def __init__(
        self,
        config: Optional[LabConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or CONFIG
        self.rng = rng or random.Random(seed)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def solve_accounts(self) -> Solution:
        """Draw and reconcile every aggregate of one round."""
        rng = self.rng
        cfg = self.config

        scale = rng.randint(cfg.scale.scale_min, cfg.scale.scale_max)

        exp_cfg = cfg.expenditure
        expenditure = ExpenditureAccount(
            consumption=_draw_component(rng, exp_cfg.consumption, scale),
            fixed_investment=_draw_component(rng, exp_cfg.fixed_investment, scale),
            government=_draw_component(rng, exp_cfg.government, scale),
            exports=_draw_component(rng, exp_cfg.exports, scale),
            consumer_imports=_draw_component(rng, exp_cfg.consumer_imports, scale),
        )

        firms = self._build_firms(scale)
        expenditure.intermediate_imports = sum(f.imported_input for f in firms)

        solution = Solution(scale=scale, firms=firms, expenditure=expenditure)
        self._solve_inventory(solution)
        self._split_income(solution)
        return solution

    def _build_firms(self, scale: int) -> List[FirmAccount]:
        rng = self.rng
        firm_cfg = self.config.firms
        profiles = firm_cfg.profiles

        value_added = partition(scale, len(profiles), firm_cfg.min_value_added, rng)

        firms: List[FirmAccount] = []
        for profile, va in zip(profiles, value_added):
            intermediate = max(firm_cfg.min_intermediate, round(va * _uniform(rng, profile.intermediate_share)))
            domestic_total = round(intermediate * _uniform(rng, profile.domestic_share)) if profile.suppliers else 0
            domestic_split = partition(domestic_total, len(profile.suppliers), 0, rng) if profile.suppliers else []
            firms.append(
                FirmAccount(
                    profile=profile,
                    output=va + intermediate,
                    intermediate_input=intermediate,
                    domestic_inputs=dict(zip(profile.suppliers, domestic_split)),
                    imported_input=intermediate - domestic_total,
                )
            )

        self._cap_supplier_sales(firms)
        return firms

    @staticmethod
    def _cap_supplier_sales(firms: List[FirmAccount]) -> None:
        """
        A supplier cannot sell other firms more than it makes; the rest is
        bought abroad. Each buyer's total intermediate input is unchanged.
        """
        for supplier in firms:
            buyers = [f for f in firms if f.domestic_inputs.get(supplier.key, 0) > 0]
            excess = sum(b.domestic_inputs[supplier.key] for b in buyers) - supplier.output
            for buyer in buyers:
                if excess <= 0:
                    break
                moved = min(excess, buyer.domestic_inputs[supplier.key])
                buyer.domestic_inputs[supplier.key] -= moved
                buyer.imported_input += moved
                excess -= moved

    def _solve_inventory(self, solution: Solution) -> None:
        """
        Make the expenditure side match production exactly.

        inventory = GDP_production - (C + I_fixed + G + X - M)
        """
        cfg = self.config
        expenditure = solution.expenditure
        holder = solution.inventory_holder
        gdp = solution.gdp_production

        residual = gdp - expenditure.gdp_without_inventory()
        lo = cfg.inventory.inventory_min
        hi = max(lo, min(cfg.inventory.inventory_max, holder.output))

        if residual > hi:
            # Too much unsold stock: raise final demand instead
            solution.shifted = self._shift_demand(solution, residual - hi)
        elif residual < lo:
            # Too much liquidation: lower final demand instead
            solution.shifted = -self._shift_demand(solution, residual - lo)

        expenditure.inventory = gdp - expenditure.gdp_without_inventory()

        # The holder's output now splits into what it sold and what it stocked;
        # its output and value added are unchanged.
        holder.inventory_change = expenditure.inventory

        if solution.shifted:
            logger.debug(
                f"Inventory residual {residual} outside [{lo}, {hi}]; shifted {solution.shifts} "
                f"-> inventory {expenditure.inventory}"
            )

    def _shift_demand(self, solution: Solution, amount: int) -> int:
        """
        Move `amount` from inventory into the compensating components, each
        only as far as its own band allows. Returns how much was moved.
        """
        exp_cfg = self.config.expenditure
        expenditure = solution.expenditure
        remaining = abs(amount)
        direction = 1 if amount > 0 else -1

        for name in exp_cfg.compensators:
            if remaining == 0:
                break
            band: ComponentBand = getattr(exp_cfg, name)
            current = getattr(expenditure, name)
            room = (band.hi - current) if direction > 0 else (current - band.lo)
            step = max(0, min(room, remaining))
            if step:
                setattr(expenditure, name, current + direction * step)
                solution.shifts[name] = solution.shifts.get(name, 0) + direction * step
                remaining -= step

        return abs(amount) - remaining

    def _split_income(self, solution: Solution) -> None:
        for firm in solution.firms:
            va = firm.value_added
            firm.wage = round(va * _uniform(self.rng, firm.profile.wage_ratio))
            firm.profit = va - firm.wage

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def _fragments(self, total: int, kind: str) -> List[int]:
        """Partition one aggregate into its cards. Zero aggregates produce none."""
        if total == 0:
            return []
        lo, hi, min_part = self.config.cards.fragments[kind]
        k = feasible_count(total, self.rng.randint(lo, hi), min_part)
        return partition(total, k, min_part, self.rng)

    def build_scenario(self, solution: Solution) -> Scenario:
        """Fragment every aggregate of a solved round into cards."""
        rng = self.rng
        factory = CardFactory(rng)
        firms = solution.firms
        by_key = {f.key: f for f in firms}
        firm_names = [f.name for f in firms]
        expenditure = solution.expenditure

        # Production: outputs and intermediate purchases per firm
        production: List[Card] = []
        for firm in firms:
            production += factory.make_cards(
                PRODUCTION, self._fragments(firm.output, "output"), output_bin(firm.key),
                TEMPLATES["output"], firm=firm.name, product=firm.profile.product,
            )
            for supplier_key, amount in firm.domestic_inputs.items():
                supplier = by_key[supplier_key]
                production += factory.make_cards(
                    PRODUCTION, self._fragments(amount, "domestic_input"), intermediate_bin(firm.key),
                    TEMPLATES["domestic_input"], firm=firm.name, supplier=supplier.name,
                    good=supplier.profile.product,
                )
            production += factory.make_cards(
                PRODUCTION, self._fragments(firm.imported_input, "imported_input"), intermediate_bin(firm.key),
                TEMPLATES["imported_input"], firm=firm.name, good=firm.profile.imported_input,
            )
        production += factory.make_distractors(PRODUCTION, self._distractor_count(PRODUCTION), firm_names)

        # Expenditure: C, I (fixed and inventory), G, X, M
        spending: List[Card] = []
        spending += factory.make_cards(
            EXPENDITURE, self._fragments(expenditure.consumption, "consumption"), E_C, TEMPLATES["consumption"]
        )
        spending += factory.make_cards(
            EXPENDITURE, self._fragments(expenditure.fixed_investment, "fixed_investment"), E_I,
            TEMPLATES["fixed_investment"], SUBTYPE_FIXED,
        )
        inventory_parts = self._fragments(expenditure.inventory, "inventory") or [0]
        inventory_cards, inventory_ids = factory.make_inventory_cards(
            inventory_parts, solution.inventory_holder.profile.product
        )
        spending += inventory_cards
        spending += factory.make_cards(
            EXPENDITURE, self._fragments(expenditure.government, "government"), E_G, TEMPLATES["government"]
        )
        spending += factory.make_cards(
            EXPENDITURE, self._fragments(expenditure.exports, "exports"), E_X, TEMPLATES["exports"]
        )
        spending += factory.make_cards(
            EXPENDITURE, self._fragments(expenditure.consumer_imports, "consumer_imports"), E_M,
            TEMPLATES["consumer_imports"],
        )
        for firm in firms:
            spending += factory.make_cards(
                EXPENDITURE, self._fragments(firm.imported_input, "intermediate_imports"), E_M,
                TEMPLATES["intermediate_imports"], good=firm.profile.imported_input,
            )
        spending += factory.make_distractors(EXPENDITURE, self._distractor_count(EXPENDITURE), firm_names)

        # Income: wages and profits per firm
        income: List[Card] = []
        for firm in firms:
            income += factory.make_cards(
                INCOME, self._fragments(firm.wage, "wages"), I_W, TEMPLATES["wages"], firm=firm.name
            )
            income += factory.make_cards(
                INCOME, self._fragments(firm.profit, "profits"), I_P, TEMPLATES["profits"], firm=firm.name
            )
        income += factory.make_distractors(INCOME, self._distractor_count(INCOME), firm_names)

        for cards in (production, spending, income):
            rng.shuffle(cards)

        return Scenario(
            round_id=uuid.UUID(int=rng.getrandbits(128), version=4).hex[:12],
            cards={
                PRODUCTION: {c.id: c for c in production},
                EXPENDITURE: {c.id: c for c in spending},
                INCOME: {c.id: c for c in income},
            },
            categories={
                PRODUCTION: production_categories([(f.key, f.name) for f in firms]),
                EXPENDITURE: expenditure_categories(),
                INCOME: income_categories(),
            },
            target=solution.gdp_production,
            inventory_card_ids=frozenset(inventory_ids),
            aggregates={
                "consumption": expenditure.consumption,
                "fixed_investment": expenditure.fixed_investment,
                "inventory": expenditure.inventory,
                "government": expenditure.government,
                "exports": expenditure.exports,
                "imports": expenditure.imports,
                "wages": sum(f.wage for f in firms),
                "profits": sum(f.profit for f in firms),
            },
            scale=solution.scale,
        )

    def _distractor_count(self, ledger: str) -> int:
        lo, hi = self.config.cards.distractors.get(ledger, (0, 0))
        return self.rng.randint(lo, hi)

    def solve(self, seed: Optional[int] = None) -> Scenario:
        """Generate one complete round."""
        if seed is not None:
            self.rng.seed(seed)
        solution = self.solve_accounts()
        scenario = self.build_scenario(solution)
        logger.debug(
            f"Round {scenario.round_id}: scale={solution.scale} gdp={scenario.target} "
            f"inventory={solution.expenditure.inventory} cards={scenario.card_count}"
        )
        return scenario


def generate_scenario(seed: Optional[int] = None, config: Optional[LabConfig] = None) -> Scenario:
    """Convenience wrapper: one fresh round."""
    return ScenarioSolver(config=config, seed=seed).solve()

"""
Lab Data Model

Ledgers, categories, cards, scenarios and placements. Cards and scenarios are
immutable once built; the Placement is the only mutable structure and belongs
to whoever drives the round (see session.py).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

PRODUCTION = "production"
EXPENDITURE = "expenditure"
INCOME = "income"
LEDGERS: Tuple[str, ...] = (PRODUCTION, EXPENDITURE, INCOME)

CARD_ID_PREFIX = {PRODUCTION: "p", EXPENDITURE: "e", INCOME: "i"}

# Category roles
OUTPUT = "output"
INTERMEDIATE = "intermediate"
CONSUMPTION = "consumption"
INVESTMENT = "investment"
GOVERNMENT = "government"
EXPORTS = "exports"
IMPORTS = "imports"
WAGES = "wages"
PROFITS = "profits"
EXCLUDED = "excluded"

# Fixed expenditure and income category ids
E_C = "E_C"
E_I = "E_I"
E_G = "E_G"
E_X = "E_X"
E_M = "E_M"
E_XCL = "E_XCL"
I_W = "I_W"
I_P = "I_P"
I_XCL = "I_XCL"
P_XCL = "P_XCL"

SUBTYPE_FIXED = "fixed"
SUBTYPE_INVENTORY = "inventory"
SUBTYPE_DISTRACTOR = "distractor"


def output_bin(firm_key: str) -> str:
    return f"P_{firm_key}_OUT"


def intermediate_bin(firm_key: str) -> str:
    return f"P_{firm_key}_INT"


@dataclass(frozen=True, slots=True)
class Category:
    """A bin a card can be dropped into."""
    id: str
    ledger: str
    label: str
    role: str
    firm: Optional[str] = None  # firm key, production bins only


@dataclass(frozen=True, slots=True)
class Card:
    """One transaction statement the learner has to classify."""
    id: str
    ledger: str
    amount: int  # currency-millions, signed
    text: str
    correct_bin: str
    subtype: Optional[str] = None

    @property
    def is_distractor(self) -> bool:
        return self.subtype == SUBTYPE_DISTRACTOR


def expenditure_categories() -> Tuple[Category, ...]:
    return (
        Category(E_C, EXPENDITURE, "Consumption (C)", CONSUMPTION),
        Category(E_I, EXPENDITURE, "Investment (I)", INVESTMENT),
        Category(E_G, EXPENDITURE, "Government purchases (G)", GOVERNMENT),
        Category(E_X, EXPENDITURE, "Exports (X)", EXPORTS),
        Category(E_M, EXPENDITURE, "Imports (M)", IMPORTS),
        Category(E_XCL, EXPENDITURE, "Not counted in GDP", EXCLUDED),
    )


def income_categories() -> Tuple[Category, ...]:
    return (
        Category(I_W, INCOME, "Wages", WAGES),
        Category(I_P, INCOME, "Profits", PROFITS),
        Category(I_XCL, INCOME, "Not counted in GDP", EXCLUDED),
    )


def production_categories(firms: List[Tuple[str, str]]) -> Tuple[Category, ...]:
    """Output and intermediate bins for each (key, name) firm, plus the exclusion bin."""
    bins: List[Category] = []
    for key, name in firms:
        bins.append(Category(output_bin(key), PRODUCTION, f"{name} output", OUTPUT, key))
        bins.append(Category(intermediate_bin(key), PRODUCTION, f"{name} intermediate inputs", INTERMEDIATE, key))
    bins.append(Category(P_XCL, PRODUCTION, "Not counted in GDP", EXCLUDED))
    return tuple(bins)


@dataclass(frozen=True)
class Scenario:
    """
    Everything generated for one round.

    Card collections are keyed by card id; order carries no meaning. The
    scenario is never mutated after the solver returns it.
    """

    round_id: str
    cards: Mapping[str, Mapping[str, Card]]  # ledger -> card id -> card
    categories: Mapping[str, Tuple[Category, ...]]  # ledger -> bins
    target: int  # GDP every ledger reconciles to
    inventory_card_ids: FrozenSet[str]
    aggregates: Mapping[str, int] = field(default_factory=dict)
    scale: int = 0

    def __post_init__(self):
        # Freeze the nested dicts handed in by the solver
        object.__setattr__(
            self,
            "cards",
            MappingProxyType({ledger: MappingProxyType(dict(self.cards.get(ledger, {}))) for ledger in LEDGERS}),
        )
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "aggregates", MappingProxyType(dict(self.aggregates)))
        object.__setattr__(self, "inventory_card_ids", frozenset(self.inventory_card_ids))

    def ledger_cards(self, ledger: str) -> List[Card]:
        return list(self.cards.get(ledger, {}).values())

    def all_cards(self) -> Iterator[Card]:
        for ledger in LEDGERS:
            yield from self.cards[ledger].values()

    def find_card(self, card_id: str) -> Optional[Card]:
        for ledger in LEDGERS:
            card = self.cards[ledger].get(card_id)
            if card is not None:
                return card
        return None

    def find_category(self, ledger: str, category_id: str) -> Optional[Category]:
        for category in self.categories.get(ledger, ()):
            if category.id == category_id:
                return category
        return None

    @property
    def card_count(self) -> int:
        return sum(len(self.cards[ledger]) for ledger in LEDGERS)


class Placement:
    """
    Where the learner currently has each card: ledger -> card id -> category id.

    A placement is created for exactly one round; `round_id` ties it to the
    scenario it may be scored against.
    """

    def __init__(self, round_id: str):
        self.round_id = round_id
        self._bins: Dict[str, Dict[str, str]] = {ledger: {} for ledger in LEDGERS}

    def assign(self, ledger: str, card_id: str, category_id: str) -> None:
        self._bins[ledger][card_id] = category_id

    def remove(self, ledger: str, card_id: str) -> bool:
        return self._bins[ledger].pop(card_id, None) is not None

    def get(self, ledger: str, card_id: str) -> Optional[str]:
        return self._bins.get(ledger, {}).get(card_id)

    def ledger_view(self, ledger: str) -> Mapping[str, str]:
        return MappingProxyType(self._bins[ledger])

    def clear(self) -> None:
        for ledger in LEDGERS:
            self._bins[ledger].clear()

    @property
    def placed_count(self) -> int:
        return sum(len(entries) for entries in self._bins.values())

    def __repr__(self) -> str:
        return f"Placement(round_id={self.round_id!r}, placed={self.placed_count})"

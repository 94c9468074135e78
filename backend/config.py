"""
Lab Configuration

Centralizes all tunable parameters for scenario generation and checking.
Every band, ratio and fragment count used by the solver lives here instead
of being scattered through the generator as magic numbers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass
class ScaleConfig:
    """Size of a round. The scale becomes total value added across firms."""
    scale_min: int = 160
    scale_max: int = 360


@dataclass
class ComponentBand:
    """A final-demand component drawn as share * scale + noise, then clamped."""
    share: float
    noise: int
    lo: int
    hi: int

    def __post_init__(self):
        if self.lo > self.hi:
            raise ValueError(f"band lower bound {self.lo} exceeds upper bound {self.hi}")
        if self.noise < 0:
            raise ValueError("noise must be non-negative")


@dataclass
class ExpenditureConfig:
    """Domestic final demand and consumer imports."""
    consumption: ComponentBand = field(default_factory=lambda: ComponentBand(0.62, 25, 70, 300))
    fixed_investment: ComponentBand = field(default_factory=lambda: ComponentBand(0.22, 20, 20, 170))
    government: ComponentBand = field(default_factory=lambda: ComponentBand(0.18, 15, 20, 120))
    exports: ComponentBand = field(default_factory=lambda: ComponentBand(0.20, 12, 10, 130))
    consumer_imports: ComponentBand = field(default_factory=lambda: ComponentBand(0.10, 12, 8, 130))

    # Components allowed to absorb an out-of-band inventory residual, in order
    compensators: Tuple[str, ...] = ("consumption", "government", "exports")


@dataclass
class InventoryConfig:
    """Advisory band for the inventory residual (may go negative: liquidation)."""
    inventory_min: int = -20
    inventory_max: int = 90


@dataclass
class FirmProfile:
    """
    One modeled firm.

    `suppliers` names the modeled firms this firm buys domestic intermediate
    inputs from; everything else it uses up in production is imported.
    """
    key: str  # one-letter code used in category ids (P_<key>_OUT)
    name: str
    product: str  # what the firm sells, used in card phrasing
    imported_input: str  # what it brings in from abroad
    suppliers: Tuple[str, ...] = ()
    holds_inventory: bool = False
    intermediate_share: Tuple[float, float] = (0.35, 0.70)  # of value added
    domestic_share: Tuple[float, float] = (0.40, 0.70)  # of intermediate input
    wage_ratio: Tuple[float, float] = (0.55, 0.80)  # of value added

    def __post_init__(self):
        for label, (lo, hi) in (
            ("intermediate_share", self.intermediate_share),
            ("domestic_share", self.domestic_share),
            ("wage_ratio", self.wage_ratio),
        ):
            if lo > hi:
                raise ValueError(f"{self.name}: {label} range is inverted ({lo} > {hi})")
            if lo < 0.0:
                raise ValueError(f"{self.name}: {label} must be non-negative")
        if not (0.0 <= self.wage_ratio[0] and self.wage_ratio[1] <= 1.0):
            raise ValueError(f"{self.name}: wage_ratio must lie within [0, 1]")
        if self.domestic_share[1] > 1.0:
            raise ValueError(f"{self.name}: domestic_share cannot exceed 1")


def _default_firms() -> List[FirmProfile]:
    return [
        FirmProfile(
            key="S",
            name="SteelCo",
            product="processed metal",
            imported_input="iron ore",
            suppliers=("P",),
            intermediate_share=(0.35, 0.60),
            domestic_share=(0.15, 0.35),
            wage_ratio=(0.55, 0.75),
        ),
        FirmProfile(
            key="A",
            name="AutoCo",
            product="finished vehicles",
            imported_input="electronic modules",
            suppliers=("S", "P"),
            holds_inventory=True,
            intermediate_share=(0.50, 0.80),
            domestic_share=(0.55, 0.80),
            wage_ratio=(0.55, 0.80),
        ),
        FirmProfile(
            key="P",
            name="PortCo",
            product="shipping and handling",
            imported_input="marine fuel",
            intermediate_share=(0.15, 0.35),
            domestic_share=(0.0, 0.0),
            wage_ratio=(0.60, 0.85),
        ),
        FirmProfile(
            key="M",
            name="MachCo",
            product="machine tools",
            imported_input="precision parts",
            suppliers=("S", "P"),
            intermediate_share=(0.40, 0.70),
            domestic_share=(0.50, 0.75),
            wage_ratio=(0.55, 0.80),
        ),
    ]


@dataclass
class FirmConfig:
    """Production structure."""
    profiles: List[FirmProfile] = field(default_factory=_default_firms)
    min_value_added: int = 20  # floor per firm when splitting the scale
    min_intermediate: int = 3  # every firm uses up at least this much

    def __post_init__(self):
        if len(self.profiles) < 3:
            raise ValueError("at least 3 firms are required")
        keys = [p.key for p in self.profiles]
        if len(set(keys)) != len(keys):
            raise ValueError(f"firm keys must be unique, got {keys}")
        holders = [p.name for p in self.profiles if p.holds_inventory]
        if len(holders) != 1:
            raise ValueError(f"exactly one firm must hold inventory, got {holders}")
        for profile in self.profiles:
            for supplier in profile.suppliers:
                if supplier not in keys:
                    raise ValueError(f"{profile.name}: unknown supplier '{supplier}'")
                if supplier == profile.key:
                    raise ValueError(f"{profile.name}: a firm cannot supply itself")
        if self.min_value_added < 1:
            raise ValueError("min_value_added must be positive")


@dataclass
class CardConfig:
    """How many cards each aggregate is fragmented into, and fragment floors."""

    # aggregate -> (min cards, max cards, min amount per card)
    fragments: Dict[str, Tuple[int, int, int]] = field(default_factory=lambda: {
        "output": (2, 4, 2),
        "domestic_input": (1, 2, 1),
        "imported_input": (1, 2, 1),
        "consumption": (3, 6, 5),
        "fixed_investment": (2, 4, 5),
        "inventory": (1, 2, 1),
        "government": (2, 3, 5),
        "exports": (1, 3, 3),
        "consumer_imports": (1, 2, 2),
        "intermediate_imports": (1, 2, 1),
        "wages": (2, 3, 5),
        "profits": (1, 2, 3),
    })

    # ledger -> (min distractors, max distractors)
    distractors: Dict[str, Tuple[int, int]] = field(default_factory=lambda: {
        "production": (1, 2),
        "expenditure": (2, 4),
        "income": (1, 3),
    })

    def __post_init__(self):
        for name, (lo, hi, min_part) in self.fragments.items():
            if lo < 1 or lo > hi:
                raise ValueError(f"fragment range for {name} is invalid: ({lo}, {hi})")
            if min_part < 0:
                raise ValueError(f"fragment floor for {name} must be non-negative")
        for ledger, (lo, hi) in self.distractors.items():
            if lo < 0 or lo > hi:
                raise ValueError(f"distractor range for {ledger} is invalid: ({lo}, {hi})")


@dataclass
class CheckConfig:
    """Reconciliation checking."""
    gap_tolerance: float = 0.5  # rounding slack for "fully reconciled"


@dataclass
class LabConfig:
    """Master configuration for the whole lab."""

    scale: ScaleConfig = field(default_factory=ScaleConfig)
    expenditure: ExpenditureConfig = field(default_factory=ExpenditureConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    firms: FirmConfig = field(default_factory=FirmConfig)
    cards: CardConfig = field(default_factory=CardConfig)
    check: CheckConfig = field(default_factory=CheckConfig)

    def __post_init__(self):
        """Cross-section validation."""
        if self.scale.scale_min > self.scale.scale_max:
            raise ValueError("scale_min cannot exceed scale_max")
        if self.scale.scale_min < len(self.firms.profiles) * self.firms.min_value_added:
            raise ValueError("scale_min is too small to give every firm its minimum value added")
        if self.inventory.inventory_min > self.inventory.inventory_max:
            raise ValueError("inventory_min cannot exceed inventory_max")
        for name in self.expenditure.compensators:
            if not isinstance(getattr(self.expenditure, name, None), ComponentBand):
                raise ValueError(f"unknown compensating component '{name}'")
        if self.check.gap_tolerance < 0:
            raise ValueError("gap_tolerance cannot be negative")


# Global configuration instance
CONFIG = LabConfig()

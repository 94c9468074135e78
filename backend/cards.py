"""
Card Factory

Turns (ledger, amount, correct category) into a card with randomized wording.
Each category has a pool of statements that say the same thing in different
words. None of them name the category the card belongs in; working that out
is the exercise.
"""

import itertools
import random
from typing import Dict, List, Optional, Sequence, Tuple

from models import (
    Card,
    CARD_ID_PREFIX,
    E_I,
    E_XCL,
    EXPENDITURE,
    I_XCL,
    INCOME,
    P_XCL,
    PRODUCTION,
    SUBTYPE_DISTRACTOR,
    SUBTYPE_INVENTORY,
)

TemplatePool = Sequence[str]

TEMPLATES: Dict[str, Tuple[str, ...]] = {
    # Production ledger
    "output": (
        "{firm} produces ${amount}m of {product} this year.",
        "{firm} turns out {product} valued at ${amount}m at market prices.",
        "{firm} delivers {product} worth ${amount}m.",
        "{firm} reports ${amount}m in production of {product}.",
    ),
    "domestic_input": (
        "{firm} buys ${amount}m of {good} from {supplier} and uses it up making its own goods.",
        "{firm} pays {supplier} ${amount}m for {good} consumed during the year.",
        "{firm} purchases ${amount}m of {good} from {supplier} for use in its production process.",
    ),
    "imported_input": (
        "{firm} buys ${amount}m of {good} from foreign suppliers and uses it up in production.",
        "{firm} brings in {good} worth ${amount}m from abroad for its own production.",
        "{firm} pays an overseas supplier ${amount}m for {good} consumed during the year.",
    ),
    # Expenditure ledger
    "consumption": (
        "Households buy domestically made goods and services totaling ${amount}m.",
        "Families spend ${amount}m on locally produced items this year.",
        "Shoppers purchase ${amount}m of new, domestically produced goods and services.",
    ),
    "fixed_investment": (
        "Firms purchase newly produced machine tools and equipment worth ${amount}m.",
        "Businesses acquire new software and capital equipment worth ${amount}m.",
        "Companies pay ${amount}m for newly built factories and equipment.",
    ),
    "inventory_up": (
        "Firms end the year with larger stockpiles; their stocks rise by ${amount}m.",
        "Unsold {product} worth ${amount}m pile up in warehouses.",
        "Stocks of finished goods held by firms grow by ${amount}m this year.",
    ),
    "inventory_down": (
        "Firms sell out of existing stockpiles; their stocks fall by ${amount}m.",
        "Warehouse stocks of finished goods shrink by ${amount}m this year.",
        "Dealers run down their stock of unsold {product} by ${amount}m.",
    ),
    "inventory_flat": (
        "Stocks of finished goods end the year exactly where they began: a change of ${amount}m.",
        "Warehouse stocks of {product} neither grow nor shrink, a change of ${amount}m.",
    ),
    "government": (
        "Government agencies buy newly produced goods and services worth ${amount}m.",
        "The public sector pays ${amount}m for newly built roads and equipment.",
        "City and state agencies purchase ${amount}m of goods and services from producers.",
    ),
    "exports": (
        "Foreign buyers purchase domestically produced goods and services worth ${amount}m.",
        "Sales of domestic production to customers in other countries total ${amount}m.",
        "Overseas customers pay ${amount}m for goods made in this country.",
    ),
    "consumer_imports": (
        "Households buy ${amount}m of goods produced abroad.",
        "Shoppers spend ${amount}m on foreign-made electronics and clothing.",
        "Purchases of goods and services produced in other countries total ${amount}m.",
    ),
    "intermediate_imports": (
        "Domestic firms buy ${amount}m of {good} produced in other countries.",
        "Shipments of foreign-made {good} worth ${amount}m arrive for domestic producers.",
        "Producers abroad sell ${amount}m of {good} to domestic firms.",
    ),
    # Income ledger
    "wages": (
        "{firm} payroll for production workers totals ${amount}m.",
        "{firm} pays ${amount}m in salaries this year.",
        "{firm} labor compensation equals ${amount}m.",
    ),
    "profits": (
        "{firm} reports an operating surplus of ${amount}m.",
        "{firm} keeps ${amount}m after paying its staff and suppliers.",
        "{firm} earns ${amount}m in net operating income this year.",
    ),
}

# (lowest amount, highest amount, statement) per ledger
DISTRACTORS: Dict[str, Tuple[Tuple[int, int, str], ...]] = {
    PRODUCTION: (
        (4, 12, "{firm} sells a used forklift for ${amount}m."),
        (8, 20, "{firm} buys an existing warehouse for ${amount}m."),
        (6, 16, "{firm} buys back ${amount}m of its own shares."),
    ),
    EXPENDITURE: (
        (8, 18, "The government sends ${amount}m in benefit payments to retired households."),
        (6, 16, "A used delivery van changes hands for ${amount}m."),
        (8, 20, "Households buy ${amount}m of existing company shares on the stock market."),
        (6, 16, "A one-off cash payment of ${amount}m goes out to every household, with nothing bought in return."),
    ),
    INCOME: (
        (8, 18, "Households receive ${amount}m in Social Security benefits."),
        (6, 16, "A household's shares rise in value, giving it a ${amount}m capital gain."),
        (8, 20, "A firm raises ${amount}m by selling newly issued bonds to investors."),
    ),
}

EXCLUSION_BIN = {PRODUCTION: P_XCL, EXPENDITURE: E_XCL, INCOME: I_XCL}

# Words that would give away a card's category if they showed up in its text
HINT_TERMS: Dict[str, Tuple[str, ...]] = {
    "output": ("output",),
    "intermediate": ("intermediate", "input"),
    "consumption": ("consumption", "(c)"),
    "investment": ("investment", "invest", "(i)"),
    "government": ("government purchases", "(g)"),
    "exports": ("export", "(x)"),
    "imports": ("import", "(m)"),
    "wages": ("wage",),
    "profits": ("profit",),
    "excluded": ("not counted", "does not count", "transfer", "financial transaction", "no new production"),
}


class CardFactory:
    """
    Builds the cards of one round.

    Card ids are unique for the lifetime of the factory, so a solver run uses
    one factory per round.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._counter = itertools.count(1)

    def next_id(self, ledger: str) -> str:
        return f"{CARD_ID_PREFIX[ledger]}_{next(self._counter)}"

    def make_card(
        self,
        ledger: str,
        amount: int,
        correct_bin: str,
        template_pool: TemplatePool,
        subtype: Optional[str] = None,
        **fields: str,
    ) -> Card:
        """Pick one phrasing from the pool and fill it in."""
        template = self.rng.choice(template_pool)
        text = template.format(amount=abs(amount), **fields)
        return Card(
            id=self.next_id(ledger),
            ledger=ledger,
            amount=int(amount),
            text=text,
            correct_bin=correct_bin,
            subtype=subtype,
        )

    def make_cards(
        self,
        ledger: str,
        amounts: Sequence[int],
        correct_bin: str,
        template_pool: TemplatePool,
        subtype: Optional[str] = None,
        **fields: str,
    ) -> List[Card]:
        """One card per fragment amount, each worded independently."""
        return [
            self.make_card(ledger, amount, correct_bin, template_pool, subtype, **fields)
            for amount in amounts
        ]

    def make_inventory_cards(self, amounts: Sequence[int], product: str) -> Tuple[List[Card], List[str]]:
        """
        Inventory-change cards plus their ids.

        The caller registers the ids so the dedicated inventory check can find
        these cards without searching their text.
        """
        cards = []
        for amount in amounts:
            if amount > 0:
                pool = TEMPLATES["inventory_up"]
            elif amount < 0:
                pool = TEMPLATES["inventory_down"]
            else:
                pool = TEMPLATES["inventory_flat"]
            cards.append(self.make_card(EXPENDITURE, amount, E_I, pool, SUBTYPE_INVENTORY, product=product))
        return cards, [card.id for card in cards]

    def make_distractors(self, ledger: str, count: int, firm_names: Sequence[str] = ()) -> List[Card]:
        """
        Cards that belong in none of the ledger's totals.

        Amounts are drawn on their own, unrelated to any aggregate. Each
        statement is used at most once per round.
        """
        pool = list(DISTRACTORS[ledger])
        self.rng.shuffle(pool)
        cards = []
        for lo, hi, template in pool[:count]:
            amount = self.rng.randint(lo, hi)
            fields = {}
            if "{firm}" in template:
                fields["firm"] = self.rng.choice(list(firm_names) or ["A local firm"])
            cards.append(
                self.make_card(ledger, amount, EXCLUSION_BIN[ledger], (template,), SUBTYPE_DISTRACTOR, **fields)
            )
        return cards

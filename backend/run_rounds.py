"""
Generate many lab rounds and verify that each one reconciles.

Every card of every round is placed in its correct category and checked. A
round fails if the gap is not exactly zero, if the three totals disagree with
the solver's target, or if a fragment group does not add back to its
aggregate. Summary statistics are printed at the end.
"""

import argparse
import json
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from config import CONFIG, LabConfig
from models import E_C, E_G, E_I, E_M, E_X, I_P, I_W, SUBTYPE_INVENTORY, Placement, Scenario
from reconcile import reconcile
from solver import ScenarioSolver


def place_all_correctly(scenario: Scenario) -> Placement:
    placement = Placement(scenario.round_id)
    for card in scenario.all_cards():
        placement.assign(card.ledger, card.id, card.correct_bin)
    return placement


def fragment_errors(scenario: Scenario) -> List[str]:
    """Aggregates whose cards do not add back to them."""
    sums: Dict[str, int] = {}
    inventory = 0
    for card in scenario.all_cards():
        if card.is_distractor:
            continue
        sums[card.correct_bin] = sums.get(card.correct_bin, 0) + card.amount
        if card.subtype == SUBTYPE_INVENTORY:
            inventory += card.amount

    agg = scenario.aggregates
    expected = {
        E_C: agg["consumption"],
        E_I: agg["fixed_investment"] + agg["inventory"],
        E_G: agg["government"],
        E_X: agg["exports"],
        E_M: agg["imports"],
        I_W: agg["wages"],
        I_P: agg["profits"],
    }
    errors = [
        f"{bin_id}: cards sum to {sums.get(bin_id, 0)}, aggregate is {value}"
        for bin_id, value in expected.items()
        if sums.get(bin_id, 0) != value
    ]
    if inventory != agg["inventory"]:
        errors.append(f"inventory: cards sum to {inventory}, aggregate is {agg['inventory']}")
    return errors


def run_rounds(rounds: int, seed: Optional[int] = None, config: Optional[LabConfig] = None,
               progress_every: int = 0) -> Dict[str, float]:
    """
    Generate and verify `rounds` scenarios.

    Returns summary statistics; `failures` counts rounds that did not reconcile.
    """
    solver = ScenarioSolver(config=config or CONFIG, seed=seed)

    gdp = np.zeros(rounds, dtype=float)
    inventory = np.zeros(rounds, dtype=float)
    card_counts = np.zeros(rounds, dtype=float)
    shifted = np.zeros(rounds, dtype=bool)
    failures = 0

    for i in range(rounds):
        solution = solver.solve_accounts()
        scenario = solver.build_scenario(solution)
        report = reconcile(scenario, place_all_correctly(scenario), config)

        problems = fragment_errors(scenario)
        if report.gap != 0:
            problems.append(f"gap is {report.gap}")
        if not (report.gdp_production == report.gdp_expenditure == report.gdp_income == scenario.target):
            problems.append(
                f"totals P={report.gdp_production} E={report.gdp_expenditure} "
                f"I={report.gdp_income} target={scenario.target}"
            )
        if report.correct_count != scenario.card_count or not report.inventory_ok:
            problems.append("a correctly placed card was scored wrong")

        if problems:
            failures += 1
            print(f"  Round {i} ({scenario.round_id}) FAILED: " + "; ".join(problems))

        gdp[i] = scenario.target
        inventory[i] = solution.expenditure.inventory
        card_counts[i] = scenario.card_count
        shifted[i] = solution.shifted != 0

        if progress_every and (i + 1) % progress_every == 0:
            print(f"  {i + 1}/{rounds} rounds generated ({failures} failures)")

    if rounds == 0:
        return {"rounds": 0, "failures": 0}

    return {
        "rounds": rounds,
        "failures": failures,
        "mean_gdp": float(gdp.mean()),
        "median_gdp": float(np.median(gdp)),
        "min_gdp": float(gdp.min()),
        "max_gdp": float(gdp.max()),
        "mean_inventory": float(inventory.mean()),
        "negative_inventory_share": float((inventory < 0).mean()),
        "shifted_share": float(shifted.mean()),
        "mean_cards": float(card_counts.mean()),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate GDP lab rounds and verify they reconcile.")
    parser.add_argument("--rounds", type=int, default=1000, help="Number of rounds to generate")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible rounds")
    parser.add_argument("--progress-every", type=int, default=0, help="Print progress every N rounds")
    parser.add_argument("--json", type=Path, default=None, help="Write the summary to this JSON file")
    args = parser.parse_args(argv)

    print(f"Generating {args.rounds} rounds...")
    start = time.time()
    summary = run_rounds(args.rounds, seed=args.seed, progress_every=args.progress_every)
    elapsed = time.time() - start

    print("=" * 60)
    for key, value in summary.items():
        print(f"  {key:<26} {value:,.3f}" if isinstance(value, float) else f"  {key:<26} {value}")
    print(f"  {'elapsed_seconds':<26} {elapsed:.2f}")
    print("=" * 60)

    if args.json:
        args.json.write_text(json.dumps(summary, indent=2))
        print(f"Summary written to {args.json}")

    return 1 if summary["failures"] else 0


if __name__ == "__main__":
    raise SystemExit(main())

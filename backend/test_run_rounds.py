"""
Tests for the round stress harness
"""

import json

from run_rounds import fragment_errors, main, place_all_correctly, run_rounds
from solver import ScenarioSolver


def test_run_rounds_reports_no_failures():
    summary = run_rounds(100, seed=1)

    assert summary["rounds"] == 100
    assert summary["failures"] == 0
    assert summary["min_gdp"] >= 160
    assert summary["max_gdp"] <= 360
    assert 0.0 <= summary["negative_inventory_share"] <= 1.0
    assert summary["mean_cards"] > 0


def test_zero_rounds():
    assert run_rounds(0) == {"rounds": 0, "failures": 0}


def test_fragment_errors_empty_for_generated_round():
    scenario = ScenarioSolver(seed=4).solve()

    assert fragment_errors(scenario) == []


def test_place_all_correctly_places_every_card():
    scenario = ScenarioSolver(seed=4).solve()
    placement = place_all_correctly(scenario)

    assert placement.placed_count == scenario.card_count
    assert placement.round_id == scenario.round_id


def test_main_writes_summary(tmp_path, capsys):
    out = tmp_path / "summary.json"

    code = main(["--rounds", "20", "--seed", "3", "--json", str(out)])

    assert code == 0
    summary = json.loads(out.read_text())
    assert summary["failures"] == 0
    assert summary["rounds"] == 20
    assert "Generating 20 rounds" in capsys.readouterr().out

"""Tests for the extinction cascade sweep (experiments)."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

import experiments
from data_loader import build_node_index, subgroup_indices
from experiments import (
    DEFAULT_SUBGROUP,
    draw_extinction_orders,
    load_cascade_runs,
    run_cascade_sweep,
    run_file_name,
    summarize_cascades,
    unit_rng,
)


class TestExtinctionOrders:

    def test_orders_are_permutations_of_subgroups(self, food_web):
        index = build_node_index(food_web)
        groups = subgroup_indices(food_web, index)
        rngs = {label: np.random.default_rng(i) for i, label in enumerate(groups)}
        orders = draw_extinction_orders(index, groups, rngs)

        assert set(orders) == set(groups)
        assert sorted(orders["bird"]) == ["Buteo jamaicensis", "Troglodytes aedon"]
        assert orders["bird_resident"] == ["Troglodytes aedon"]

    def test_unit_rng_is_reproducible(self):
        a = unit_rng(42, 1, 7, 3).permutation(10)
        b = unit_rng(42, 1, 7, 3).permutation(10)
        c = unit_rng(42, 1, 8, 3).permutation(10)
        assert (a == b).all()
        assert not (a == c).all()


class TestCascadeSweep:

    def test_writes_one_file_per_run(self, food_web, tmp_path):
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5, 1.0], iterations=3, seed=1, resume=True)

        assert report["written"] == 2 * 3 * 5
        assert report["failed"] == []
        assert len(list(tmp_path.glob("cascade_*.csv"))) == 30
        assert (tmp_path / run_file_name("bird_resident", 0.5, 2)).exists()

    def test_run_file_columns(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=1, seed=1, resume=True)

        mammal = pd.read_csv(tmp_path / run_file_name("mammal", 0.5, 0))
        assert "subgroup" not in mammal.columns
        assert set(mammal["taxon"]) == {"mammal"}

        resident = pd.read_csv(tmp_path / run_file_name("bird_resident", 0.5, 0))
        assert set(resident["subgroup"]) == {"resident"}
        assert set(resident["taxon"]) == {"bird"}
        assert resident["iteration"].tolist() == [0]

    def test_resume_skips_existing_runs(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=2, seed=1, resume=True)
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=2, seed=1, resume=True)
        assert report["written"] == 0
        assert report["skipped"] == 10

    def test_interrupted_write_is_recomputed(self, food_web, tmp_path, monkeypatch):
        original = pd.DataFrame.to_csv

        def truncated(self, path, *args, **kwargs):
            Path(path).write_text("primary_extinctions\n")
            raise OSError("write interrupted")

        monkeypatch.setattr(pd.DataFrame, "to_csv", truncated)
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=1, seed=1, resume=True)
        assert report["written"] == 0
        assert list(tmp_path.iterdir()) == []

        monkeypatch.setattr(pd.DataFrame, "to_csv", original)
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=1, seed=1, resume=True)
        assert report["written"] == 5
        assert report["skipped"] == 0

    def test_same_seed_same_runs(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path / "a", thresholds=[0.5], iterations=2, seed=9, resume=True)
        run_cascade_sweep(food_web, tmp_path / "b", thresholds=[0.5], iterations=2, seed=9, resume=True)
        name = run_file_name("bird", 0.5, 1)
        pd.testing.assert_frame_equal(pd.read_csv(tmp_path / "a" / name), pd.read_csv(tmp_path / "b" / name))

    def test_failed_run_does_not_abort_sweep(self, food_web, tmp_path, monkeypatch):
        original = experiments.simulate_extinctions

        def flaky(G, order, threshold):
            if threshold == 1.0:
                raise RuntimeError("simulated failure")
            return original(G, order, threshold)

        monkeypatch.setattr(experiments, "simulate_extinctions", flaky)
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5, 1.0], iterations=3, seed=1, resume=True)

        assert report["written"] == 15
        assert len(report["failed"]) == 15
        assert not (tmp_path / run_file_name("mammal", 1.0, 0)).exists()

        # Re-running recomputes only the missing runs
        monkeypatch.setattr(experiments, "simulate_extinctions", original)
        report = run_cascade_sweep(food_web, tmp_path, thresholds=[0.5, 1.0], iterations=3, seed=1, resume=True)
        assert report["written"] == 15
        assert report["skipped"] == 15


class TestAggregation:

    def test_load_fills_default_subgroup(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.5], iterations=2, seed=1, resume=True)
        runs = load_cascade_runs(tmp_path)

        assert set(runs["subgroup"]) == {DEFAULT_SUBGROUP, "resident", "non-resident"}
        assert set(runs.loc[runs["taxon"] == "mammal", "subgroup"]) == {DEFAULT_SUBGROUP}

    def test_load_without_runs(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_cascade_runs(tmp_path)

    def test_load_ignores_runs_outside_requested_grid(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.6, 0.9], iterations=4, seed=1, resume=True)
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.6], iterations=2, seed=1, resume=True)

        runs = load_cascade_runs(tmp_path, thresholds=[0.6], iterations=2)
        assert set(runs["threshold"]) == {0.6}
        assert set(runs["iteration"]) == {0, 1}

        summary = summarize_cascades(runs)
        assert (summary["n"] == 2).all()

    def test_load_grid_without_matching_runs(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.6], iterations=1, seed=1, resume=True)
        with pytest.raises(FileNotFoundError):
            load_cascade_runs(tmp_path, thresholds=[0.8])

    def test_summary_mean_and_standard_error(self):
        runs = pd.DataFrame({
            "primary_extinctions": [1, 1, 1, 2, 2, 2],
            "secondary_extinctions": [0, 1, 2, 2, 2, 2],
            "taxon": "bird",
            "threshold": 0.6,
            "iteration": [0, 1, 2, 0, 1, 2],
            "subgroup": "resident",
        })
        summary = summarize_cascades(runs)

        first = summary[summary["primary_extinctions"] == 1].iloc[0]
        assert first["mean"] == pytest.approx(1.0)
        assert first["sem"] == pytest.approx(1.0 / np.sqrt(3))
        assert first["n"] == 3
        assert first["group"] == "bird (resident)"

        second = summary[summary["primary_extinctions"] == 2].iloc[0]
        assert second["sem"] == pytest.approx(0.0)

    def test_summary_from_sweep(self, food_web, tmp_path):
        run_cascade_sweep(food_web, tmp_path, thresholds=[0.6, 0.9], iterations=4, seed=3, resume=True)
        summary = summarize_cascades(load_cascade_runs(tmp_path))

        assert set(summary["group"]) == {"mammal", "reptile", "bird", "bird (resident)", "bird (non-resident)"}
        assert (summary["n"] == 4).all()
        assert set(summary["threshold"]) == {0.6, 0.9}

"""Per-horizon accuracy, win rates, confusion matrices and bias."""

import math

import pytest

from conftest import make_row
from election_core.data import records_to_frame
from election_core.metrics_accuracy import (
    accuracy_at,
    compute_confusion_matrix,
    compute_directional_bias,
    compute_failed_predictions,
    compute_statistics,
)


def by_day(points):
    return {p["day"]: p for p in points}


class TestAccuracy:
    def test_perfect_week_out_calls(self, accuracy_df):
        stats = compute_statistics(accuracy_df)
        day7 = by_day(stats["accuracy_by_horizon"])[7]
        assert day7["correct_count"] == 10
        assert day7["total_count"] == 10
        assert day7["accuracy_pct"] == pytest.approx(100.0)

    def test_horizons_ordered_seven_to_one(self, sample_df):
        stats = compute_statistics(sample_df)
        assert [p["day"] for p in stats["accuracy_by_horizon"]] == [7, 6, 5, 4, 3, 2, 1]
        assert [p["day"] for p in stats["win_rate_by_horizon"]] == [7, 6, 5, 4, 3, 2, 1]

    def test_denominator_only_counts_covered_rows(self, sample_df):
        points = by_day(compute_statistics(sample_df)["accuracy_by_horizon"])
        # Maryland only has 2d/1d probabilities.
        assert points[7]["total_count"] == 5
        assert points[1]["total_count"] == 6

    def test_sample_accuracy_values(self, sample_df):
        points = by_day(compute_statistics(sample_df)["accuracy_by_horizon"])
        # 7d: Presidential R/R ok, popular vote D/R miss, Arizona D/D ok, NYC D/D ok, Senate 0.5 -> R/R ok.
        assert points[7]["correct_count"] == 4
        assert points[7]["accuracy_pct"] == pytest.approx(80.0)
        assert points[1]["correct_count"] == 5
        assert points[1]["accuracy_pct"] == pytest.approx(500 / 6)

    def test_zero_coverage_horizon_is_unavailable(self):
        rows = [make_row("a", 0.7, True), make_row("b", 0.2, False)]
        for r in rows:
            r["d_prob_3d"] = None
        stats = compute_statistics(records_to_frame(rows))
        day3 = by_day(stats["accuracy_by_horizon"])[3]
        assert day3["accuracy_pct"] is None
        assert day3["total_count"] == 0
        assert by_day(stats["win_rate_by_horizon"])[3]["predicted_pct"] is None
        assert by_day(stats["accuracy_by_horizon"])[4]["accuracy_pct"] == pytest.approx(100.0)

    def test_half_is_a_republican_call(self):
        df = records_to_frame([make_row("coin flip", 0.5, False), make_row("coin flip 2", 0.5, True)])
        point = accuracy_at(df, 7)
        assert point.correct_count == 1
        stats = compute_statistics(df)
        assert by_day(stats["win_rate_by_horizon"])[7]["predicted_pct"] == pytest.approx(0.0)
        matrix = compute_confusion_matrix(df, 7)
        assert matrix["cells"]["predicted_r_actual_r"]["count"] == 1
        assert matrix["cells"]["predicted_r_actual_d"]["count"] == 1
        assert matrix["cells"]["predicted_d_actual_d"]["count"] == 0

    def test_empty_dataset(self, empty_df):
        stats = compute_statistics(empty_df)
        assert stats["total_markets"] == 0
        assert stats["actual_d_wins"] == 0
        for p in stats["accuracy_by_horizon"]:
            assert p["accuracy_pct"] is None
        for p in stats["win_rate_by_horizon"]:
            assert p["predicted_pct"] is None and p["actual_pct"] is None

    def test_no_nan_anywhere(self, sample_df):
        stats = compute_statistics(sample_df)
        for p in stats["accuracy_by_horizon"] + stats["win_rate_by_horizon"]:
            for v in p.values():
                assert not (isinstance(v, float) and math.isnan(v))

    def test_input_not_mutated(self, sample_df):
        before = sample_df.copy()
        compute_statistics(sample_df)
        assert before.equals(sample_df)


class TestWinRates:
    def test_actual_rate_same_at_every_horizon(self, sample_df):
        rates = compute_statistics(sample_df)["win_rate_by_horizon"]
        actual = {p["actual_pct"] for p in rates}
        assert len(actual) == 1
        # 3 of 6 markets went Democrat, including Maryland which lacks 7d..3d data.
        assert actual.pop() == pytest.approx(50.0)

    def test_predicted_rate_uses_covered_rows(self, sample_df):
        rates = by_day(compute_statistics(sample_df)["win_rate_by_horizon"])
        # 7d: popular vote, Arizona, NYC above 0.5 out of 5 covered.
        assert rates[7]["predicted_pct"] == pytest.approx(60.0)
        # 1d: Maryland joins, 4 of 6.
        assert rates[1]["predicted_pct"] == pytest.approx(400 / 6)

    def test_counts(self, sample_df):
        stats = compute_statistics(sample_df)
        assert stats["total_markets"] == 6
        assert stats["actual_d_wins"] == 3


class TestConfusionMatrix:
    def test_cells_sum_to_covered(self, sample_df):
        matrix = compute_confusion_matrix(sample_df, 7)
        counts = [c["count"] for c in matrix["cells"].values()]
        assert sum(counts) == matrix["total"] == 5
        assert sum(c["pct"] for c in matrix["cells"].values()) == pytest.approx(100.0)
        assert matrix["cells"]["predicted_d_actual_r"]["count"] == 1
        assert matrix["accuracy_pct"] == pytest.approx(80.0)

    def test_uncovered_horizon(self):
        df = records_to_frame([make_row("a", None, True)])
        matrix = compute_confusion_matrix(df, 7)
        assert matrix["total"] == 0
        assert matrix["accuracy_pct"] is None
        assert all(c["pct"] is None for c in matrix["cells"].values())


class TestFailedPredictions:
    def test_misses_listed_by_volume(self):
        df = records_to_frame([
            make_row("small miss", 0.7, False, 10),
            make_row("hit", 0.7, True, 1_000),
            make_row("big miss", 0.3, True, 5_000),
            make_row("no data", None, True, 9_999),
        ])
        rows = compute_failed_predictions(df, 7)
        assert [r["name"] for r in rows] == ["big miss", "small miss"]
        assert rows[0]["error"] == "Predicted R, D won"
        assert rows[0]["actual"] == "D"
        assert rows[1]["error"] == "Predicted D, R won"
        assert rows[1]["d_prob"] == pytest.approx(0.7)

    def test_all_correct(self, accuracy_df):
        assert compute_failed_predictions(accuracy_df, 7) == []


class TestDirectionalBias:
    def test_bias_in_percentage_points(self):
        df = records_to_frame([make_row("a", 0.8, True), make_row("b", 0.6, False)])
        bias = by_day(compute_directional_bias(df))
        # mean prob 70% vs 50% Democrat wins
        assert bias[7]["bias_pp"] == pytest.approx(20.0)
        assert bias[7]["total"] == 2

    def test_uncovered_horizon_has_no_bias(self):
        df = records_to_frame([make_row("a", None, True, d_prob_1d=0.4)])
        bias = by_day(compute_directional_bias(df))
        assert bias[7]["bias_pp"] is None
        assert bias[1]["bias_pp"] == pytest.approx(-60.0)

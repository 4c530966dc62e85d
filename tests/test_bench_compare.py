"""Tests for execbench.bench.compare: median ratios between cells."""

from __future__ import annotations

import unittest

from bench_test_helpers import make_matrix

from execbench.bench.compare import compare_results, median_ratio_pct, strategy_label


class TestMedianRatio(unittest.TestCase):
    """Tests for median_ratio_pct()."""

    def test_ratio(self) -> None:
        self.assertAlmostEqual(median_ratio_pct(182.35, 100.0), 182.35)

    def test_equal_medians(self) -> None:
        self.assertEqual(median_ratio_pct(5.0, 5.0), 100.0)

    def test_zero_denominator(self) -> None:
        self.assertIsNone(median_ratio_pct(5.0, 0.0))

    def test_zero_numerator(self) -> None:
        self.assertEqual(median_ratio_pct(0.0, 4.0), 0.0)

    def test_rounds_to_hundredths(self) -> None:
        self.assertEqual(median_ratio_pct(2.0, 3.0), 66.67)
        self.assertEqual(median_ratio_pct(1.0, 3.0), 33.33)

    def test_half_rounds_up(self) -> None:
        self.assertEqual(median_ratio_pct(1.0, 800.0), 0.13)
        self.assertEqual(median_ratio_pct(5.0, 800.0), 0.63)


class TestStrategyLabel(unittest.TestCase):
    def test_labels(self) -> None:
        self.assertEqual(strategy_label(True), "async")
        self.assertEqual(strategy_label(False), "sync")


class TestCompareResults(unittest.TestCase):
    """Tests for compare_results()."""

    def test_two_executors_two_modes(self) -> None:
        results = make_matrix(
            {
                ("Duration", True, "python"): 300.0,
                ("Duration", True, "native"): 100.0,
                ("Duration", False, "python"): 200.0,
                ("Duration", False, "native"): 80.0,
            }
        )
        comparisons = compare_results(results)
        self.assertEqual(
            [(c.label, c.ratio_pct) for c in comparisons],
            [
                ("python/native median (async)", 300.0),
                ("python/native median (sync)", 250.0),
                ("python async/sync median", 150.0),
                ("native async/sync median", 125.0),
            ],
        )
        self.assertTrue(all(c.metric == "Duration" for c in comparisons))

    def test_metrics_kept_separate(self) -> None:
        results = make_matrix(
            {
                ("Duration", False, "python"): 10.0,
                ("Duration", False, "native"): 5.0,
                ("Instructions", False, "python"): 400.0,
                ("Instructions", False, "native"): 100.0,
            }
        )
        comparisons = compare_results(results)
        self.assertEqual(
            [(c.metric, c.ratio_pct) for c in comparisons],
            [("Duration", 200.0), ("Instructions", 400.0)],
        )

    def test_zero_denominator_ratio_is_none(self) -> None:
        results = make_matrix(
            {
                ("CPU migrations", False, "python"): 2.0,
                ("CPU migrations", False, "native"): 0.0,
            }
        )
        [comparison] = compare_results(results)
        self.assertIsNone(comparison.ratio_pct)

    def test_single_cell_has_no_comparisons(self) -> None:
        results = make_matrix({("Duration", True, "python"): 1.0})
        self.assertEqual(compare_results(results), [])

    def test_missing_cell_skipped(self) -> None:
        results = make_matrix(
            {
                ("Duration", True, "python"): 4.0,
                ("Duration", True, "native"): 2.0,
                ("Duration", False, "python"): 1.0,
            }
        )
        labels = [c.label for c in compare_results(results)]
        self.assertEqual(labels, ["python/native median (async)", "python async/sync median"])

    def test_empty(self) -> None:
        self.assertEqual(compare_results([]), [])


if __name__ == "__main__":
    unittest.main()

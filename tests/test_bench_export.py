"""Tests for execbench.bench.export: CSV and Markdown export."""

from __future__ import annotations

import csv
import io
import unittest

from bench_test_helpers import make_matrix, make_meta, make_result

from execbench.bench.export import CSV_COLUMNS, export_csv, export_markdown, parse_csv


class TestExportCsv(unittest.TestCase):
    """Tests for export_csv()."""

    def test_header(self) -> None:
        text = export_csv([])
        self.assertEqual(text, "name,async,executor,runs,mean,median,min,max,stdDev\n")

    def test_rows_in_order(self) -> None:
        results = [
            make_result("Duration", [1.0, 2.0, 3.0], async_=True, executor="python"),
            make_result("Duration", [4.0], async_=False, executor="native"),
        ]
        rows = list(csv.reader(io.StringIO(export_csv(results))))
        self.assertEqual(rows[0], CSV_COLUMNS)
        self.assertEqual(rows[1][:4], ["Duration", "true", "python", "3"])
        self.assertEqual(rows[2][:4], ["Duration", "false", "native", "1"])
        self.assertEqual(rows[1][5], "2.0")

    def test_names_with_spaces_and_commas(self) -> None:
        results = [make_result("Hit rate, L1", [0.5])]
        parsed = parse_csv(export_csv(results))
        self.assertEqual(parsed[0].name, "Hit rate, L1")

    def test_values_read_back_exactly(self) -> None:
        results = [make_result("Instructions per cycle", [0.1, 0.2, 0.7])]
        parsed = parse_csv(export_csv(results))
        self.assertEqual(parsed, results)


class TestParseCsv(unittest.TestCase):
    """Tests for parse_csv() error handling."""

    def test_bad_header(self) -> None:
        with self.assertRaises(ValueError):
            parse_csv("a,b,c\n1,2,3\n")

    def test_bad_async_value(self) -> None:
        text = export_csv([make_result("Duration", [1.0])]).replace("false", "maybe")
        with self.assertRaises(ValueError):
            parse_csv(text)

    def test_bad_number(self) -> None:
        header = ",".join(CSV_COLUMNS)
        with self.assertRaises(ValueError):
            parse_csv(f"{header}\nDuration,true,python,x,1,1,1,1,0\n")


class TestExportMarkdown(unittest.TestCase):
    """Tests for export_markdown()."""

    def test_markdown_report(self) -> None:
        results = make_matrix(
            {
                ("Duration", True, "python"): 2_000_000.0,
                ("Duration", True, "native"): 1_000_000.0,
                ("Instructions", True, "python"): 500.0,
                ("Instructions", True, "native"): 250.0,
            }
        )
        md = export_markdown(make_meta(name="Report"), results)
        self.assertTrue(md.startswith("# Report"))
        self.assertIn("| Metric | Mode | Executor |", md)
        self.assertIn("| Duration | async | python | 1 | 2.000 ms |", md)
        self.assertIn("| Instructions | async | native | 1 | 250 |", md)
        self.assertIn("## Comparison", md)
        self.assertIn("- Duration: python/native median (async): 200.00 %", md)
        self.assertIn("- **Samples per cell:** 5", md)

    def test_markdown_without_comparisons(self) -> None:
        md = export_markdown(make_meta(), [make_result("Duration", [1.0])])
        self.assertNotIn("## Comparison", md)


if __name__ == "__main__":
    unittest.main()

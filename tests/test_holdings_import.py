import io
import unittest

import pandas as pd

from services.portfolio.holdings_import import (
    NO_HEADER_MESSAGE,
    NO_VALID_ROWS_MESSAGE,
    UNREADABLE_MESSAGE,
    HoldingsImportError,
    import_portfolio_file,
    parse_holdings,
    portfolio_name_from_filename,
    read_csv_rows,
)


def _import_csv(text: str, filename: str = "portfolio.csv"):
    return import_portfolio_file(filename, text.encode("utf-8"))


class HeaderDetectionTests(unittest.TestCase):
    def test_standard_export_with_percent_weights(self) -> None:
        imported = _import_csv("Ticker,Name,Weight\nNVDA,NVIDIA,20%\nmsft,Microsoft,15%\n")
        self.assertEqual(imported.name, "portfolio")
        self.assertEqual([h.ticker for h in imported.holdings], ["NVDA", "MSFT"])
        self.assertEqual(imported.holdings[0].name, "NVIDIA")
        self.assertAlmostEqual(imported.holdings[0].weight, 0.20)
        self.assertAlmostEqual(imported.holdings[1].weight, 0.15)

    def test_header_below_broker_preamble(self) -> None:
        text = (
            "Account Summary,,\n"
            "Generated 2026-03-01,,\n"
            "Company,Symbol,Allocation %\n"
            "Apple Inc,AAPL,12.5\n"
            "Alphabet,GOOGL,0.3\n"
        )
        holdings = _import_csv(text).holdings
        self.assertEqual([h.ticker for h in holdings], ["AAPL", "GOOGL"])
        self.assertEqual(holdings[0].name, "Apple Inc")
        self.assertAlmostEqual(holdings[0].weight, 0.125)
        # fractions stay fractions
        self.assertAlmostEqual(holdings[1].weight, 0.3)

    def test_missing_name_column_falls_back_to_ticker(self) -> None:
        holdings = _import_csv("Symbol,Percent\nTSM,40\n").holdings
        self.assertEqual(holdings[0].name, "TSM")
        self.assertAlmostEqual(holdings[0].weight, 0.4)

    def test_invalid_rows_are_skipped(self) -> None:
        text = (
            "Ticker,Name,Weight\n"
            "NVDA,NVIDIA,20%\n"
            ",Cash,5%\n"
            "XOM,Exxon,0\n"
            "CVX,Chevron,-3\n"
            "BRK,Berkshire,n/a\n"
            "LMT,Lockheed,7.5 approx\n"
        )
        holdings = _import_csv(text).holdings
        self.assertEqual([h.ticker for h in holdings], ["NVDA", "LMT"])
        self.assertAlmostEqual(holdings[1].weight, 0.075)

    def test_quoted_cells_are_cleaned(self) -> None:
        holdings = _import_csv('"Ticker","Name","Weight"\n"aapl","Apple, Inc.","12.5%"\n').holdings
        self.assertEqual(holdings[0].ticker, "AAPL")
        self.assertEqual(holdings[0].name, "Apple, Inc.")
        self.assertAlmostEqual(holdings[0].weight, 0.125)

    def test_header_without_valid_rows_fails(self) -> None:
        with self.assertRaises(HoldingsImportError) as ctx:
            _import_csv("Ticker,Name,Weight\nNVDA,NVIDIA,0\n")
        self.assertEqual(str(ctx.exception), NO_VALID_ROWS_MESSAGE)


class PositionalFallbackTests(unittest.TestCase):
    def test_positional_columns_skip_first_row(self) -> None:
        rows = read_csv_rows("My holdings,,\nAAPL,Apple,10\nmsft,30\nX\n")
        holdings = parse_holdings(rows)
        self.assertEqual([h.ticker for h in holdings], ["AAPL", "MSFT"])
        self.assertEqual(holdings[0].name, "Apple")
        self.assertAlmostEqual(holdings[0].weight, 0.10)
        # two-cell rows are (ticker, weight)
        self.assertEqual(holdings[1].name, "MSFT")
        self.assertAlmostEqual(holdings[1].weight, 0.30)

    def test_unrecognised_layout_fails_with_expected_columns_hint(self) -> None:
        with self.assertRaises(HoldingsImportError) as ctx:
            _import_csv("hello\nworld\n")
        self.assertEqual(str(ctx.exception), NO_HEADER_MESSAGE)


class FileHandlingTests(unittest.TestCase):
    def test_portfolio_name_strips_spreadsheet_extension(self) -> None:
        self.assertEqual(portfolio_name_from_filename("My Fund.XLSX"), "My Fund")
        self.assertEqual(portfolio_name_from_filename("q1.export.csv"), "q1.export")
        self.assertEqual(portfolio_name_from_filename("notes.txt"), "notes.txt")

    def test_xlsx_first_sheet_is_read(self) -> None:
        buf = io.BytesIO()
        pd.DataFrame([["Symbol", "Allocation"], ["aapl", 0.4], ["nvda", 60]]).to_excel(
            buf, header=False, index=False
        )
        imported = import_portfolio_file("growth.xlsx", buf.getvalue())
        self.assertEqual(imported.name, "growth")
        self.assertEqual([h.ticker for h in imported.holdings], ["AAPL", "NVDA"])
        self.assertAlmostEqual(imported.holdings[0].weight, 0.4)
        self.assertAlmostEqual(imported.holdings[1].weight, 0.6)

    def test_corrupt_workbook_reports_generic_failure(self) -> None:
        with self.assertRaises(HoldingsImportError) as ctx:
            import_portfolio_file("broken.xlsx", b"definitely not a zip archive")
        self.assertEqual(str(ctx.exception), UNREADABLE_MESSAGE)


if __name__ == "__main__":
    unittest.main()

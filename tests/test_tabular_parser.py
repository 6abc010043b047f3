from __future__ import annotations

import io
import unittest
from datetime import datetime

import pandas as pd

from app.services.tabular_parser import TabularParseError, TabularParser


class TestCsvParsing(unittest.TestCase):
    def setUp(self) -> None:
        self.parser = TabularParser()

    def test_headers_and_rows(self) -> None:
        table = self.parser.parse(
            file_name="orders.csv",
            content=b"\xef\xbb\xbforder_id, customer ,amount\n1,Ada,10.5\n2, Bo ,\n",
        )

        self.assertEqual(table.headers, ["order_id", "customer", "amount"])
        self.assertEqual(
            table.rows,
            [
                {"order_id": "1", "customer": "Ada", "amount": "10.5"},
                {"order_id": "2", "customer": "Bo", "amount": None},
            ],
        )
        self.assertEqual(table.row_count, 2)
        self.assertEqual(table.column_count, 3)

    def test_empty_lines_are_skipped(self) -> None:
        table = self.parser.parse(file_name="a.csv", content=b"a,b\n1,2\n,\n\n3,4\n")
        self.assertEqual(table.row_count, 2)
        self.assertEqual(table.skipped_empty_rows, 2)

    def test_short_rows_are_padded(self) -> None:
        table = self.parser.parse(file_name="a.csv", content=b"a,b,c\n1\n")
        self.assertEqual(table.rows, [{"a": "1", "b": None, "c": None}])

    def test_quoted_values_keep_commas(self) -> None:
        table = self.parser.parse(file_name="a.csv", content=b'name,note\n"Smith, J","says ""hi"""\n')
        self.assertEqual(table.rows, [{"name": "Smith, J", "note": 'says "hi"'}])

    def test_too_many_values(self) -> None:
        with self.assertRaises(TabularParseError) as ctx:
            self.parser.parse(file_name="a.csv", content=b"a,b\n1,2,3\n")
        self.assertIn("Line 2", str(ctx.exception))

    def test_empty_file(self) -> None:
        with self.assertRaises(TabularParseError):
            self.parser.parse(file_name="a.csv", content=b"")

    def test_blank_and_duplicate_headers(self) -> None:
        with self.assertRaises(TabularParseError):
            self.parser.parse(file_name="a.csv", content=b"a,,c\n1,2,3\n")
        with self.assertRaises(TabularParseError) as ctx:
            self.parser.parse(file_name="a.csv", content=b"a,b,a\n1,2,3\n")
        self.assertIn("Duplicate column names: a", str(ctx.exception))

    def test_non_utf8_content(self) -> None:
        with self.assertRaises(TabularParseError):
            self.parser.parse(file_name="a.csv", content="name\nJosé\n".encode("latin-1"))


class TestExcelParsing(unittest.TestCase):
    def test_native_cell_types_are_normalized(self) -> None:
        frame = pd.DataFrame(
            {
                "order_id": [1, 2],
                "amount": [10.0, 12.5],
                "ordered_on": [datetime(2024, 3, 1), datetime(2024, 3, 2, 9, 30)],
                "note": ["first", None],
            }
        )
        buffer = io.BytesIO()
        frame.to_excel(buffer, index=False, engine="openpyxl")

        table = TabularParser().parse(file_name="orders.XLSX", content=buffer.getvalue())

        self.assertEqual(table.headers, ["order_id", "amount", "ordered_on", "note"])
        self.assertEqual(
            table.rows[0],
            {"order_id": 1, "amount": 10, "ordered_on": "2024-03-01", "note": "first"},
        )
        self.assertEqual(
            table.rows[1],
            {"order_id": 2, "amount": 12.5, "ordered_on": "2024-03-02 09:30:00", "note": None},
        )

    def test_unreadable_workbook(self) -> None:
        with self.assertRaises(TabularParseError):
            TabularParser().parse(file_name="broken.xlsx", content=b"not a workbook")


if __name__ == "__main__":
    unittest.main()

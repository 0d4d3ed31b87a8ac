"""
Unit tests for the tabular parser, question loader and sheet import.
"""
import unittest
from unittest.mock import Mock, patch

import requests

from quizmaster.sheet_loader import (
    FetchError,
    FormatError,
    InputError,
    QuestionSetLoader,
    QuizImportError,
    SheetImporter,
    TabularTextParser,
    build_export_url,
    extract_sheet_id,
    fetch_sheet_text,
)
from tests.test_fixtures import TestFixtures, async_test


HEADER = ["Question", "A", "B", "C", "D", "Answer", "Category"]
SHEET_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz_0123-456"


class TestTabularTextParser(unittest.TestCase):
    """Test cases for the quote-aware tokenizer."""

    def setUp(self):
        """Set up test fixtures."""
        self.parser = TabularTextParser()

    def test_quoted_comma_is_literal(self):
        """Test that commas inside quotes stay in the field."""
        rows = self.parser.parse('"A","B, C",D\n1,2,3\n')

        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0], ["A", "B, C", "D"])
        self.assertEqual(rows[1], ["1", "2", "3"])

    def test_doubled_quote_decodes_to_one(self):
        """Test escaped quotes inside a quoted field."""
        rows = self.parser.parse('"He said ""hi"""')

        self.assertEqual(rows, [['He said "hi"']])

    def test_row_terminators(self):
        """Test LF, CRLF and bare CR all end a row."""
        rows = self.parser.parse("a,b\nc,d\r\ne,f\rg,h")

        self.assertEqual(rows, [["a", "b"], ["c", "d"], ["e", "f"], ["g", "h"]])

    def test_newline_inside_quotes(self):
        """Test that quoted newlines do not end the row."""
        rows = self.parser.parse('"line one\nline two",x\n')

        self.assertEqual(rows, [["line one\nline two", "x"]])

    def test_flush_without_trailing_newline(self):
        """Test the final row is kept without a terminator."""
        self.assertEqual(self.parser.parse("a,b"), [["a", "b"]])

    def test_trailing_comma_keeps_empty_field(self):
        """Test that an empty last field is preserved."""
        self.assertEqual(self.parser.parse("a,\n"), [["a", ""]])

    def test_blank_line_is_single_empty_field(self):
        """Test that a blank line yields one empty field."""
        self.assertEqual(self.parser.parse("a\n\nb\n"), [["a"], [""], ["b"]])

    def test_empty_input(self):
        """Test that empty input yields no rows."""
        self.assertEqual(self.parser.parse(""), [])

    def test_unterminated_quote_degrades_gracefully(self):
        """Test malformed quoting runs to the end without raising."""
        rows = self.parser.parse('a,"unclosed,field\nnext')

        self.assertEqual(rows, [["a", "unclosed,field\nnext"]])

    def test_quote_in_middle_of_field(self):
        """Test a quote opening mid-field."""
        self.assertEqual(self.parser.parse('ab"c,d"e\n'), [['abc,de']])


class TestQuestionSetLoader(unittest.TestCase):
    """Test cases for row validation and mapping."""

    def setUp(self):
        """Set up test fixtures."""
        self.loader = QuestionSetLoader()

    def test_two_options_with_numeric_answer(self):
        """Test a row with blank option columns."""
        questions = self.loader.load([HEADER, ["Q?", "opt1", "opt2", "", "", "1", "Math"]])

        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].text, "Q?")
        self.assertEqual(list(questions[0].options), ["opt1", "opt2"])
        self.assertEqual(questions[0].correct_index, 0)
        self.assertEqual(questions[0].category, "Math")

    def test_single_option_row_is_skipped(self):
        """Test that rows with fewer than two options contribute nothing."""
        rows = [
            HEADER,
            ["Only one", "opt1", "", "", "", "A", "GK"],
            ["Valid", "x", "y", "", "", "B", "GK"],
        ]
        questions = self.loader.load(rows)

        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].text, "Valid")
        self.assertEqual(self.loader.skipped_rows, [1])

    def test_short_row_and_empty_question_are_skipped(self):
        """Test rows with fewer than six fields or no question text."""
        rows = [
            HEADER,
            ["Short", "a", "b", "c", "d"],
            ["   ", "a", "b", "c", "d", "A"],
            ["Kept", "a", "b", "c", "d", "D"],
        ]
        questions = self.loader.load(rows)

        self.assertEqual([q.text for q in questions], ["Kept"])
        self.assertEqual(questions[0].correct_index, 3)

    def test_answer_letters_and_digits(self):
        """Test every positional answer encoding."""
        options = ["w", "x", "y", "z"]
        for code, expected in [("A", 0), ("b", 1), (" C ", 2), ("d", 3),
                               ("1", 0), ("2", 1), ("3", 2), ("4", 3)]:
            self.assertEqual(self.loader.resolve_answer(code, options), expected, code)

    def test_answer_matches_option_text_case_insensitively(self):
        """Test answer given as the option text."""
        self.assertEqual(self.loader.resolve_answer("  paris ", ["London", "Paris"]), 1)

    def test_unrecognized_answer_falls_back_to_first_option(self):
        """Test the fallback for unknown answer encodings."""
        with self.assertLogs('quizmaster.sheet_loader', level='WARNING'):
            self.assertEqual(self.loader.resolve_answer("E", ["a", "b", "c"]), 0)

    def test_position_past_last_option_falls_back(self):
        """Test that the correct index always points at an existing option."""
        self.assertEqual(self.loader.resolve_answer("D", ["a", "b"]), 0)

    def test_options_trimmed_and_compacted(self):
        """Test that blank options are removed before indexing."""
        questions = self.loader.load([HEADER, ["Q", " apple ", "", " cherry ", "", "Cherry", ""]])

        self.assertEqual(list(questions[0].options), ["apple", "cherry"])
        self.assertEqual(questions[0].correct_index, 1)
        self.assertEqual(questions[0].category, "General")

    def test_missing_category_column_defaults(self):
        """Test a six-field row without a category."""
        questions = self.loader.load([HEADER, ["Q", "a", "b", "c", "d", "A"]])
        self.assertEqual(questions[0].category, "General")

    def test_question_ids_are_unique(self):
        """Test generated ids."""
        rows = [HEADER] + [[f"Q{i}", "a", "b", "", "", "A", ""] for i in range(5)]
        questions = self.loader.load(rows)

        ids = [q.id for q in questions]
        self.assertEqual(len(set(ids)), 5)
        self.assertTrue(all(qid.startswith("sq_") for qid in ids))

    def test_fewer_than_two_rows_raises(self):
        """Test that a header-only sheet is rejected."""
        with self.assertRaises(FormatError):
            self.loader.load([HEADER])
        with self.assertRaises(FormatError):
            self.loader.load([])

    def test_no_valid_questions_raises(self):
        """Test that a sheet with only invalid rows is rejected."""
        with self.assertRaises(FormatError) as context:
            self.loader.load([HEADER, ["Q", "a", "", "", "", "A", ""]])

        self.assertIn("No valid questions", str(context.exception))


class TestSheetReference(unittest.TestCase):
    """Test cases for identifier extraction and URL construction."""

    def test_extract_from_url(self):
        """Test the /d/<id> segment of a sheet URL."""
        url = f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit#gid=0"
        self.assertEqual(extract_sheet_id(url), SHEET_ID)

    def test_extract_short_id_from_url(self):
        """Test that the path pattern has no minimum length."""
        self.assertEqual(extract_sheet_id("https://example.com/d/abc/"), "abc")

    def test_extract_bare_id(self):
        """Test a bare identifier with surrounding whitespace."""
        self.assertEqual(extract_sheet_id(f"  {SHEET_ID}  "), SHEET_ID)

    def test_invalid_inputs_raise(self):
        """Test unrecognized inputs."""
        for bad in ["", "too-short", "not a sheet url at all!", "https://example.com/sheet"]:
            with self.assertRaises(InputError):
                extract_sheet_id(bad)

    def test_error_taxonomy(self):
        """Test all import errors share a base class."""
        for error_class in (InputError, FetchError, FormatError):
            self.assertTrue(issubclass(error_class, QuizImportError))

    def test_build_export_url(self):
        """Test the CSV export URL."""
        self.assertEqual(
            build_export_url("abc"),
            "https://docs.google.com/spreadsheets/d/abc/gviz/tq?tqx=out:csv"
        )

    def test_build_export_url_with_sheet_name(self):
        """Test the encoded sheet name parameter."""
        url = build_export_url("abc", " Week 1 & 2 ")
        self.assertTrue(url.endswith("&sheet=Week%201%20%26%202"))

    def test_blank_sheet_name_is_ignored(self):
        """Test that whitespace-only sheet names add nothing."""
        self.assertNotIn("sheet=", build_export_url("abc", "   "))


class TestFetchSheetText(unittest.TestCase):
    """Test cases for the HTTP fetch."""

    @patch('quizmaster.sheet_loader.requests.get')
    def test_success_returns_text(self, mock_get):
        """Test a successful download."""
        mock_get.return_value = Mock(ok=True, status_code=200, text="a,b\n")

        self.assertEqual(fetch_sheet_text("https://example.com/x", timeout=3), "a,b\n")
        mock_get.assert_called_once_with("https://example.com/x", timeout=3)

    @patch('quizmaster.sheet_loader.requests.get')
    def test_non_success_status_raises(self, mock_get):
        """Test that HTTP errors surface as FetchError."""
        mock_get.return_value = Mock(ok=False, status_code=404, text="")

        with self.assertRaises(FetchError):
            fetch_sheet_text("https://example.com/x")

    @patch('quizmaster.sheet_loader.requests.get')
    def test_transport_error_raises(self, mock_get):
        """Test that connection failures surface as FetchError."""
        mock_get.side_effect = requests.ConnectionError("unreachable")

        with self.assertRaises(FetchError):
            fetch_sheet_text("https://example.com/x")


class TestSheetImporter(unittest.TestCase):
    """Test cases for the full import pipeline."""

    def setUp(self):
        """Set up test fixtures."""
        self.importer = SheetImporter()

    @patch('quizmaster.sheet_loader.requests.get')
    @async_test
    async def test_load_parses_fetched_csv(self, mock_get):
        """Test fetch, parse and load end to end."""
        mock_get.return_value = Mock(ok=True, status_code=200, text=TestFixtures.create_sheet_csv())

        questions = await self.importer.load(SHEET_ID, "Sheet1")

        self.assertEqual(len(questions), 3)
        self.assertEqual(questions[0].correct_index, 1)
        self.assertEqual(questions[1].text, 'Which city is called "the Big Apple"?')
        self.assertEqual(questions[1].correct_index, 1)
        self.assertEqual(questions[1].category, "General")
        self.assertEqual(questions[2].text, "Pick the prime, please")
        self.assertEqual(questions[2].correct_index, 2)
        called_url = mock_get.call_args[0][0]
        self.assertIn(f"/d/{SHEET_ID}/gviz/tq?tqx=out:csv&sheet=Sheet1", called_url)

    @patch('quizmaster.sheet_loader.requests.get')
    @async_test
    async def test_invalid_input_never_fetches(self, mock_get):
        """Test that identifier errors stop the import before any request."""
        with self.assertRaises(InputError):
            await self.importer.load("nope")

        mock_get.assert_not_called()

    @patch('quizmaster.sheet_loader.requests.get')
    @async_test
    async def test_fetch_error_propagates(self, mock_get):
        """Test that fetch failures are not retried."""
        mock_get.return_value = Mock(ok=False, status_code=500, text="")

        with self.assertRaises(FetchError):
            await self.importer.load(SHEET_ID)

        self.assertEqual(mock_get.call_count, 1)

    @patch('quizmaster.sheet_loader.requests.get')
    @async_test
    async def test_header_only_sheet_raises_format_error(self, mock_get):
        """Test an empty published sheet."""
        mock_get.return_value = Mock(ok=True, status_code=200, text="Question,A,B,C,D,Answer\n")

        with self.assertRaises(FormatError):
            await self.importer.load(SHEET_ID)


if __name__ == '__main__':
    unittest.main()

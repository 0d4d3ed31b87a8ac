"""
Import of question sets published as spreadsheets.

The import pipeline is: extract the sheet identifier from user input, fetch
the CSV export, tokenize it into rows, and map rows to Question records.
"""
import asyncio
import logging
import re
import time
from typing import List, Optional
from urllib.parse import quote

import requests

from .models import Question, DEFAULT_CATEGORY


logger = logging.getLogger(__name__)

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv"
FETCH_TIMEOUT = 15

_PATH_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_BARE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{20,}$")

# Answer column encodings accepted besides the literal option text
_ANSWER_CODES = {
    'A': 0, '1': 0,
    'B': 1, '2': 1,
    'C': 2, '3': 2,
    'D': 3, '4': 3,
}

MIN_FIELDS = 6
MIN_OPTIONS = 2


class QuizImportError(Exception):
    """Base exception for question set import failures."""
    pass


class InputError(QuizImportError):
    """Raised when the sheet URL or identifier cannot be recognized."""
    pass


class FetchError(QuizImportError):
    """Raised when the import source answers with a non-success response."""
    pass


class FormatError(QuizImportError):
    """Raised when the fetched data holds no usable questions."""
    pass


class TabularTextParser:
    """Quote-aware comma separated text tokenizer."""

    def parse(self, text: str) -> List[List[str]]:
        """
        Split delimited text into rows of fields.

        Commas separate fields and ``\\n``, ``\\r\\n`` or a bare ``\\r`` end a
        row. Double quotes wrap fields that contain separators, with ``""``
        standing for a literal quote inside them. Malformed quoting never
        raises; an unterminated quote simply runs to the end of input.

        Args:
            text: Raw delimited text

        Returns:
            List of rows, each a list of field strings
        """
        rows: List[List[str]] = []
        row: List[str] = []
        current: List[str] = []
        in_quotes = False
        i = 0
        length = len(text)

        while i < length:
            char = text[i]
            following = text[i + 1] if i + 1 < length else ''

            if in_quotes:
                if char == '"' and following == '"':
                    current.append('"')
                    i += 1
                elif char == '"':
                    in_quotes = False
                else:
                    current.append(char)
            elif char == '"':
                in_quotes = True
            elif char == ',':
                row.append(''.join(current))
                current = []
            elif char == '\n' or char == '\r':
                row.append(''.join(current))
                rows.append(row)
                row = []
                current = []
                if char == '\r' and following == '\n':
                    i += 1
            else:
                current.append(char)
            i += 1

        if current or row:
            row.append(''.join(current))
            rows.append(row)

        return rows


class QuestionSetLoader:
    """Validates parsed rows and maps them into Question records."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.skipped_rows: List[int] = []

    def load(self, rows: List[List[str]]) -> List[Question]:
        """
        Build questions from tabular rows.

        Expected columns after the header row:
        question, option A, option B, option C, option D, answer, category

        Args:
            rows: Parsed rows including the header row

        Returns:
            List of valid Question objects in row order

        Raises:
            FormatError: If fewer than 2 rows are given or no row is valid
        """
        self.skipped_rows = []

        if len(rows) < 2:
            raise FormatError("No data rows found in sheet")

        stamp = int(time.time() * 1000)
        questions = []
        for row_number in range(1, len(rows)):
            question = self._parse_row(rows[row_number], f"sq_{stamp}_{row_number}")
            if question is None:
                self.skipped_rows.append(row_number)
                continue
            questions.append(question)

        if self.skipped_rows:
            self.logger.info(f"Skipped {len(self.skipped_rows)} invalid rows: {self.skipped_rows}")

        if not questions:
            raise FormatError("No valid questions found. Check sheet format.")

        self.logger.info(f"Loaded {len(questions)} questions from {len(rows) - 1} data rows")
        return questions

    def _parse_row(self, row: List[str], question_id: str) -> Optional[Question]:
        if len(row) < MIN_FIELDS or not row[0].strip():
            return None

        options = [field.strip() for field in row[1:5]]
        options = [option for option in options if option]
        if len(options) < MIN_OPTIONS:
            return None

        correct_index = self.resolve_answer(row[5], options)

        category = row[6].strip() if len(row) > 6 else ''
        return Question(
            id=question_id,
            text=row[0].strip(),
            options=options,
            correct_index=correct_index,
            category=category or DEFAULT_CATEGORY,
        )

    def resolve_answer(self, raw_answer: str, options: List[str]) -> int:
        """
        Normalize the answer column into an option index.

        Letters A-D and digits 1-4 select by position, otherwise the text is
        matched case-insensitively against the options. Anything else, or a
        position past the last option, falls back to the first option.
        """
        answer = raw_answer.strip()
        code = answer.upper()
        if code in _ANSWER_CODES:
            index = _ANSWER_CODES[code]
            if index < len(options):
                return index
        else:
            lowered = answer.lower()
            for index, option in enumerate(options):
                if option.lower() == lowered:
                    return index

        self.logger.warning(f"Unrecognized answer '{raw_answer}', defaulting to first option")
        return 0


def extract_sheet_id(sheet_input: str) -> str:
    """
    Extract a spreadsheet identifier from a URL or bare identifier.

    Raises:
        InputError: If neither a ``/d/<id>`` segment nor a bare identifier of
            at least 20 characters is found
    """
    match = _PATH_ID_PATTERN.search(sheet_input)
    if match:
        return match.group(1)
    candidate = sheet_input.strip()
    if _BARE_ID_PATTERN.match(candidate):
        return candidate
    raise InputError("Invalid Google Sheet URL or ID")


def build_export_url(sheet_id: str, sheet_name: Optional[str] = None) -> str:
    url = EXPORT_URL_TEMPLATE.format(sheet_id=sheet_id)
    if sheet_name and sheet_name.strip():
        url += f"&sheet={quote(sheet_name.strip(), safe='')}"
    return url


def fetch_sheet_text(url: str, timeout: float = FETCH_TIMEOUT) -> str:
    """
    Download the CSV export of a published sheet.

    Raises:
        FetchError: On a non-success status or a transport failure
    """
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        logger.error(f"Sheet request failed for {url}: {exc}")
        raise FetchError(f"Failed to fetch sheet: {exc}") from exc

    if not response.ok:
        logger.error(f"Sheet request to {url} returned HTTP {response.status_code}")
        raise FetchError("Failed to fetch. Make sure the sheet is published to the web.")

    return response.text


class SheetImporter:
    """Turns a sheet URL or identifier into validated questions."""

    def __init__(self, parser: Optional[TabularTextParser] = None,
                 loader: Optional[QuestionSetLoader] = None,
                 timeout: float = FETCH_TIMEOUT):
        self.parser = parser or TabularTextParser()
        self.loader = loader or QuestionSetLoader()
        self.timeout = timeout

    def parse_text(self, text: str) -> List[Question]:
        """Parse already fetched CSV text into questions."""
        return self.loader.load(self.parser.parse(text))

    async def load(self, sheet_input: str, sheet_name: Optional[str] = None) -> List[Question]:
        """
        Fetch and parse a published sheet.

        The HTTP request runs in a worker thread so the event loop keeps
        serving ticks while the import is in flight.

        Raises:
            InputError: Unrecognized sheet URL or identifier
            FetchError: Non-success response from the import source
            FormatError: No usable question rows
        """
        sheet_id = extract_sheet_id(sheet_input)
        url = build_export_url(sheet_id, sheet_name)
        logger.info(f"Importing question set from sheet {sheet_id}")
        text = await asyncio.to_thread(fetch_sheet_text, url, self.timeout)
        return self.parse_text(text)

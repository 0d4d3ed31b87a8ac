"""
Persistence adapters, the quiz registry, and bookmarks.

Every store speaks the same small surface: put, get, get_all, delete and
clear on named collections of id-keyed records.
"""
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .containers import KeyedTable
from .default_quizzes import get_default_quizzes
from .models import Question, QuizDefinition, Result


CUSTOM_QUIZZES = "custom_quizzes"
RESULTS = "results"
BOOKMARKS = "bookmarks"

MAX_COLLECTION_FILE_SIZE = 10 * 1024 * 1024  # 10MB limit


class Store:
    """Persistence surface consumed by the engine."""

    def put(self, collection: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def delete(self, collection: str, key: str) -> bool:
        raise NotImplementedError

    def clear(self, collection: str) -> None:
        raise NotImplementedError


class MemoryStore(Store):
    """Process-local store keeping one KeyedTable per collection."""

    def __init__(self):
        self._collections = KeyedTable()

    def _table(self, collection: str) -> KeyedTable:
        table = self._collections.get(collection)
        if table is None:
            table = KeyedTable()
            self._collections.set(collection, table)
        return table

    def put(self, collection: str, record: Dict[str, Any]) -> None:
        self._table(collection).set(record['id'], dict(record))

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        record = self._table(collection).get(key)
        return dict(record) if record is not None else None

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        return [dict(record) for record in self._table(collection).values()]

    def delete(self, collection: str, key: str) -> bool:
        return self._table(collection).delete(key)

    def clear(self, collection: str) -> None:
        self._table(collection).clear()


class JsonFileStore(Store):
    """Store writing each collection to ``<directory>/<collection>.json``."""

    def __init__(self, directory: str = "./data/"):
        """
        Initialize the store.

        Args:
            directory: Directory holding the collection files; created on
                first write
        """
        self.directory = Path(directory)
        self.logger = logging.getLogger(__name__)

    def _collection_path(self, collection: str) -> Path:
        return self.directory / f"{collection}.json"

    def _ensure_directory(self) -> None:
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Created data directory: {self.directory}")

    def _read_collection(self, collection: str) -> List[Dict[str, Any]]:
        """
        Load every record of a collection.

        Missing, oversized, unreadable or malformed files are logged and
        read as empty.
        """
        path = self._collection_path(collection)
        if not path.exists():
            return []

        try:
            file_size = path.stat().st_size
            if file_size > MAX_COLLECTION_FILE_SIZE:
                self.logger.error(
                    f"Collection file {path} too large ({file_size / 1024 / 1024:.1f}MB), ignoring it"
                )
                return []
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {path}: {e}")
            return []
        except OSError as e:
            self.logger.error(f"Failed to read collection file {path}: {e}")
            return []

        if not isinstance(data, list):
            self.logger.error(f"Collection file {path} must contain a JSON array")
            return []
        return [record for record in data if isinstance(record, dict) and 'id' in record]

    def _write_collection(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._ensure_directory()
        path = self._collection_path(collection)
        temp_path = path.with_suffix('.json.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=2, ensure_ascii=False)
        os.replace(temp_path, path)

    def put(self, collection: str, record: Dict[str, Any]) -> None:
        records = self._read_collection(collection)
        for position, existing in enumerate(records):
            if existing['id'] == record['id']:
                records[position] = record
                break
        else:
            records.append(record)
        self._write_collection(collection, records)

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        for record in self._read_collection(collection):
            if record['id'] == key:
                return record
        return None

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        return self._read_collection(collection)

    def delete(self, collection: str, key: str) -> bool:
        records = self._read_collection(collection)
        remaining = [record for record in records if record['id'] != key]
        if len(remaining) == len(records):
            return False
        self._write_collection(collection, remaining)
        return True

    def clear(self, collection: str) -> None:
        self._write_collection(collection, [])


def validate_quiz_record(data: Any, logger: Optional[logging.Logger] = None) -> bool:
    """
    Validate that a persisted record has the structure of a quiz.

    Expected structure:
    {
        "id": str,
        "title": str,
        "questions": [
            {"id": str, "text": str, "options": [str, ...], "correct_index": int}
        ]
    }

    Returns:
        True if structure is valid, False otherwise
    """
    logger = logger or logging.getLogger(__name__)

    if not isinstance(data, dict):
        logger.error("Quiz record must be a JSON object")
        return False

    for key in ("id", "title"):
        if not isinstance(data.get(key), str) or not data[key]:
            logger.error(f"Quiz record missing '{key}' field")
            return False

    questions = data.get("questions")
    if not isinstance(questions, list) or not questions:
        logger.error(f"Quiz {data['id']} must contain a non-empty 'questions' array")
        return False

    for i, question in enumerate(questions):
        if not isinstance(question, dict):
            logger.error(f"Quiz {data['id']} question {i} must be an object")
            return False
        if not isinstance(question.get("text"), str) or not isinstance(question.get("id"), str):
            logger.error(f"Quiz {data['id']} question {i} needs string 'id' and 'text' fields")
            return False
        options = question.get("options")
        if not isinstance(options, list) or not 2 <= len(options) <= 4:
            logger.error(f"Quiz {data['id']} question {i} must have 2-4 options")
            return False
        correct_index = question.get("correct_index")
        if not isinstance(correct_index, int) or not 0 <= correct_index < len(options):
            logger.error(f"Quiz {data['id']} question {i} has an invalid 'correct_index'")
            return False

    return True


class BookmarkBook:
    """Questions the user flagged for later review."""

    def __init__(self, store: Store):
        self.logger = logging.getLogger(__name__)
        self._store = store
        self._entries = KeyedTable()
        for record in store.get_all(BOOKMARKS):
            self._entries.set(record['id'], record)

    def add(self, question: Question) -> None:
        record = question.to_record()
        record['ts'] = time.time()
        self._entries.set(question.id, record)
        _persist(self.logger, self._store.put, BOOKMARKS, record)

    def remove(self, question_id: str) -> bool:
        removed = self._entries.delete(question_id)
        if removed:
            _persist(self.logger, self._store.delete, BOOKMARKS, question_id)
        return removed

    def toggle(self, question: Question) -> bool:
        """
        Flip the bookmark on a question.

        Returns:
            True if the question is bookmarked afterwards
        """
        if self._entries.has(question.id):
            self.remove(question.id)
            return False
        self.add(question)
        return True

    def has(self, question_id: str) -> bool:
        return self._entries.has(question_id)

    def all(self) -> List[Dict[str, Any]]:
        """Bookmarked question records, newest first."""
        return sorted(self._entries.values(), key=lambda r: r.get('ts', 0), reverse=True)

    @property
    def count(self) -> int:
        return self._entries.count


def _persist(logger: logging.Logger, operation, *args) -> bool:
    """Run a store write after the in-memory update; failures are logged only."""
    try:
        operation(*args)
        return True
    except OSError as e:
        logger.error(f"Persistence write failed ({operation.__name__} {args[0]}): {e}")
        return False


class DataManager:
    """Registry of available quizzes backed by a store."""

    def __init__(self, store: Optional[Store] = None, include_defaults: bool = True):
        """
        Initialize DataManager.

        Args:
            store: Persistence adapter, an in-memory store when omitted
            include_defaults: Whether the bundled quizzes are registered
        """
        self.logger = logging.getLogger(__name__)
        self.store = store or MemoryStore()
        self.include_defaults = include_defaults
        self.quizzes = KeyedTable()
        self.load_errors: List[str] = []
        self.bookmarks = BookmarkBook(self.store)

    def load_quizzes(self) -> List[QuizDefinition]:
        """
        Register the bundled quizzes and every valid persisted custom quiz.

        Returns:
            The registered quizzes in display order
        """
        self.quizzes.clear()
        self.load_errors.clear()

        if self.include_defaults:
            for quiz in get_default_quizzes():
                self.quizzes.set(quiz.id, quiz)

        for record in self.store.get_all(CUSTOM_QUIZZES):
            if not validate_quiz_record(record, self.logger):
                self.load_errors.append(f"Invalid custom quiz record: {record.get('id', '?')}")
                continue
            quiz = QuizDefinition.from_record(record)
            quiz.is_custom = True
            self.quizzes.set(quiz.id, quiz)

        self.logger.info(f"Loaded {self.quizzes.count} quizzes")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")
        return self.list_quizzes()

    def list_quizzes(self) -> List[QuizDefinition]:
        """Custom quizzes first, then newest first."""
        return sorted(self.quizzes.values(), key=lambda q: (not q.is_custom, -q.created_at))

    def get_quiz(self, quiz_id: str) -> Optional[QuizDefinition]:
        return self.quizzes.get(quiz_id)

    def quiz_exists(self, quiz_id: str) -> bool:
        return self.quizzes.has(quiz_id)

    def get_quiz_count(self) -> int:
        return self.quizzes.count

    def add_custom_quiz(self, quiz: QuizDefinition) -> None:
        quiz.is_custom = True
        self.quizzes.set(quiz.id, quiz)
        self.logger.info(f"Registered custom quiz '{quiz.id}' with {len(quiz.questions)} questions")
        _persist(self.logger, self.store.put, CUSTOM_QUIZZES, quiz.to_record())

    def delete_quiz(self, quiz_id: str) -> bool:
        """
        Delete a custom quiz. Bundled quizzes cannot be deleted.

        Returns:
            True if the quiz was removed
        """
        quiz = self.quizzes.get(quiz_id)
        if quiz is None or not quiz.is_custom:
            return False
        self.quizzes.delete(quiz_id)
        self.logger.info(f"Deleted custom quiz '{quiz_id}'")
        _persist(self.logger, self.store.delete, CUSTOM_QUIZZES, quiz_id)
        return True

    def save_result(self, result: Result) -> bool:
        return _persist(self.logger, self.store.put, RESULTS, result.to_record())

    def load_result_records(self) -> List[Dict[str, Any]]:
        return self.store.get_all(RESULTS)

    def get_loading_summary(self) -> Dict[str, Any]:
        return {
            'total_quizzes': self.quizzes.count,
            'custom_quizzes': sum(1 for q in self.quizzes.values() if q.is_custom),
            'has_errors': bool(self.load_errors),
            'errors': list(self.load_errors),
        }

"""
History and ranking of finished quiz attempts.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .containers import RankHeap
from .models import Result, percentage_of, round_half_up


def compare_by_percentage(a: Result, b: Result) -> int:
    return a.percentage - b.percentage


@dataclass(frozen=True)
class LedgerStats:
    """Aggregate figures across every recorded result."""
    count: int
    average: int
    best: int
    questions: int
    correct: int
    accuracy: int


class ResultLedger:
    """Keeps every Result in completion order and ranks them by percentage."""

    DEFAULT_TOP_COUNT = 5

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._results: List[Result] = []
        self._heap = RankHeap(compare_by_percentage)

    def add(self, result: Result) -> None:
        self._results.append(result)
        self._heap.insert(result)
        self.logger.debug(f"Recorded result {result.id} for quiz '{result.quiz_id}' ({result.percentage}%)")

    def load(self, records: Iterable[Dict[str, Any]]) -> int:
        """
        Restore results from persisted records.

        Records are replayed in completion order; those that cannot be
        converted are logged and skipped.

        Returns:
            Number of results restored
        """
        restored = 0
        for record in sorted(records, key=lambda r: str(r.get('completed_at', ''))):
            try:
                result = Result.from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                self.logger.error(f"Skipping unreadable result record {record.get('id', '?')}: {e}")
                continue
            self.add(result)
            restored += 1
        return restored

    def history(self) -> List[Result]:
        """All results, most recent first."""
        return list(reversed(self._results))

    def top_scores(self, n: int = DEFAULT_TOP_COUNT) -> List[Result]:
        return self._heap.to_sorted_list()[:max(n, 0)]

    def stats(self) -> Optional[LedgerStats]:
        """
        Summarize the history.

        Returns:
            LedgerStats, or None when nothing has been recorded yet
        """
        if not self._results:
            return None
        count = len(self._results)
        questions = sum(r.total for r in self._results)
        correct = sum(r.score for r in self._results)
        return LedgerStats(
            count=count,
            average=round_half_up(sum(r.percentage for r in self._results) / count),
            best=max(r.percentage for r in self._results),
            questions=questions,
            correct=correct,
            accuracy=percentage_of(correct, questions),
        )

    def clear(self) -> None:
        self._results = []
        self._heap.clear()

    def __len__(self) -> int:
        return len(self._results)

"""
Unit tests for ResultLedger ranking and statistics.
"""
import unittest

from quizmaster.models import Result
from quizmaster.result_ledger import LedgerStats, ResultLedger


def make_result(score, total, completed_at="2024-01-01T12:00:00", quiz_id="quiz_test", result_id=None):
    kwargs = {}
    if result_id is not None:
        kwargs['id'] = result_id
    return Result(
        quiz_id=quiz_id,
        quiz_title="Test Quiz",
        score=score,
        total=total,
        answers=[],
        time_taken=30,
        completed_at=completed_at,
        **kwargs
    )


class TestResultLedger(unittest.TestCase):
    """Test cases for the result history."""

    def setUp(self):
        """Set up test fixtures."""
        self.ledger = ResultLedger()

    def test_empty_ledger(self):
        """Test queries before anything is recorded."""
        self.assertIsNone(self.ledger.stats())
        self.assertEqual(self.ledger.top_scores(), [])
        self.assertEqual(self.ledger.history(), [])
        self.assertEqual(len(self.ledger), 0)

    def test_stats_use_half_up_rounding(self):
        """Test aggregate figures over three attempts."""
        for score in (8, 6, 9):
            self.ledger.add(make_result(score, 10))

        stats = self.ledger.stats()

        self.assertEqual(stats, LedgerStats(count=3, average=77, best=90,
                                            questions=30, correct=23, accuracy=77))

    def test_average_rounds_half_up(self):
        """Test that .5 averages round upward."""
        self.ledger.add(make_result(1, 2))    # 50%
        self.ledger.add(make_result(1, 1))    # 100%
        self.ledger.add(make_result(0, 1))    # 0%
        self.ledger.add(make_result(1, 4))    # 25%

        # (50 + 100 + 0 + 25) / 4 = 43.75
        self.assertEqual(self.ledger.stats().average, 44)

    def test_top_scores_ordered_by_percentage(self):
        """Test ranking across attempts of different sizes."""
        for score, total in [(1, 4), (9, 10), (3, 3), (2, 5), (7, 10)]:
            self.ledger.add(make_result(score, total))

        top = self.ledger.top_scores(3)

        self.assertEqual([r.percentage for r in top], [100, 90, 70])

    def test_top_scores_is_repeatable(self):
        """Test that ranking does not consume the ledger."""
        for score in (4, 5, 6):
            self.ledger.add(make_result(score, 10))

        self.assertEqual(len(self.ledger.top_scores(5)), 3)
        self.assertEqual(len(self.ledger.top_scores(5)), 3)

    def test_top_scores_non_positive_n(self):
        """Test a zero or negative count."""
        self.ledger.add(make_result(1, 1))
        self.assertEqual(self.ledger.top_scores(0), [])
        self.assertEqual(self.ledger.top_scores(-2), [])

    def test_history_newest_first(self):
        """Test history order."""
        first = make_result(1, 2)
        second = make_result(2, 2)
        self.ledger.add(first)
        self.ledger.add(second)

        self.assertEqual(self.ledger.history(), [second, first])

    def test_zero_total_result_scores_zero_percent(self):
        """Test an empty attempt."""
        self.ledger.add(make_result(0, 0))

        stats = self.ledger.stats()
        self.assertEqual(stats.best, 0)
        self.assertEqual(stats.accuracy, 0)

    def test_load_replays_in_completion_order(self):
        """Test restoring persisted records."""
        records = [
            make_result(2, 4, completed_at="2024-01-02T09:00:00", result_id="r_late").to_record(),
            make_result(4, 4, completed_at="2024-01-01T09:00:00", result_id="r_early").to_record(),
        ]

        restored = self.ledger.load(records)

        self.assertEqual(restored, 2)
        self.assertEqual([r.id for r in self.ledger.history()], ["r_late", "r_early"])
        self.assertEqual(self.ledger.top_scores(1)[0].id, "r_early")

    def test_load_skips_unreadable_records(self):
        """Test that malformed records are logged and ignored."""
        records = [
            {'id': 'broken', 'completed_at': '2024-01-01T00:00:00'},
            make_result(1, 2, result_id="r_ok").to_record(),
        ]

        with self.assertLogs('quizmaster.result_ledger', level='ERROR'):
            restored = self.ledger.load(records)

        self.assertEqual(restored, 1)
        self.assertEqual(len(self.ledger), 1)

    def test_clear(self):
        """Test emptying the ledger."""
        self.ledger.add(make_result(1, 1))
        self.ledger.clear()

        self.assertIsNone(self.ledger.stats())
        self.assertEqual(self.ledger.top_scores(), [])


class TestResultModel(unittest.TestCase):
    """Test cases for derived Result values."""

    def test_percentage_half_up(self):
        """Test percentage rounding."""
        self.assertEqual(make_result(1, 8).percentage, 13)    # 12.5
        self.assertEqual(make_result(2, 3).percentage, 67)
        self.assertEqual(make_result(1, 3).percentage, 33)

    def test_grades(self):
        """Test grade thresholds."""
        self.assertEqual(make_result(8, 10).grade, "excellent")
        self.assertEqual(make_result(6, 10).grade, "good")
        self.assertEqual(make_result(4, 10).grade, "average")
        self.assertEqual(make_result(3, 10).grade, "poor")

    def test_record_includes_percentage(self):
        """Test the persisted form."""
        record = make_result(3, 4, result_id="r_x").to_record()

        self.assertEqual(record['percentage'], 75)
        self.assertEqual(record['id'], "r_x")
        self.assertEqual(Result.from_record(record), make_result(3, 4, result_id="r_x"))


if __name__ == '__main__':
    unittest.main()

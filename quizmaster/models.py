"""
Core data models for the QuizMaster engine.
"""
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4


# Sentinel recorded in a result detail for a question that was never answered
UNANSWERED = -1

DEFAULT_CATEGORY = "General"
DEFAULT_TIME_LIMIT = 900


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def percentage_of(score: int, total: int) -> int:
    """Percentage of correct answers, 0 for an empty attempt."""
    if total <= 0:
        return 0
    return round_half_up(score / total * 100)


@dataclass(frozen=True)
class Question:
    """Represents a single multiple-choice question."""
    id: str
    text: str
    options: List[str]
    correct_index: int
    category: str = DEFAULT_CATEGORY

    def __post_init__(self):
        if not 2 <= len(self.options) <= 4:
            raise ValueError(f"Question {self.id} must have 2-4 options, got {len(self.options)}")
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"Question {self.id} correct_index {self.correct_index} out of range")
        # Keep the option list immutable along with the rest of the record
        object.__setattr__(self, 'options', tuple(self.options))

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_index

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'text': self.text,
            'options': list(self.options),
            'correct_index': self.correct_index,
            'category': self.category,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Question":
        return cls(
            id=str(record['id']),
            text=record['text'],
            options=list(record['options']),
            correct_index=int(record['correct_index']),
            category=record.get('category') or DEFAULT_CATEGORY,
        )


@dataclass
class QuizDefinition:
    """A named quiz owning its full question list."""
    id: str
    title: str
    questions: List[Question]
    time_limit: int = DEFAULT_TIME_LIMIT
    category: str = DEFAULT_CATEGORY
    icon: str = "📝"
    created_at: float = field(default_factory=lambda: datetime.now().timestamp())
    is_custom: bool = False
    question_count: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'questions': [q.to_record() for q in self.questions],
            'time_limit': self.time_limit,
            'category': self.category,
            'icon': self.icon,
            'created_at': self.created_at,
            'is_custom': self.is_custom,
            'question_count': self.question_count,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "QuizDefinition":
        return cls(
            id=str(record['id']),
            title=record['title'],
            questions=[Question.from_record(q) for q in record['questions']],
            time_limit=int(record.get('time_limit') or DEFAULT_TIME_LIMIT),
            category=record.get('category') or DEFAULT_CATEGORY,
            icon=record.get('icon') or "📝",
            created_at=float(record.get('created_at') or 0),
            is_custom=bool(record.get('is_custom', False)),
            question_count=record.get('question_count'),
        )


@dataclass
class QuizSettings:
    """Configuration settings for starting a quiz session."""
    question_count: Optional[int] = None
    random_order: bool = True
    time_limit: int = DEFAULT_TIME_LIMIT


@dataclass(frozen=True)
class AnswerDetail:
    """Per-question outcome recorded in a Result."""
    question_id: str
    text: str
    options: List[str]
    correct_index: int
    user_answer: int
    correct: bool

    @property
    def skipped(self) -> bool:
        return self.user_answer == UNANSWERED


@dataclass(frozen=True)
class Result:
    """Immutable outcome of one finished session."""
    quiz_id: str
    quiz_title: str
    score: int
    total: int
    answers: List[AnswerDetail]
    time_taken: int
    completed_at: str = field(default_factory=lambda: datetime.now().isoformat())
    id: str = field(default_factory=lambda: f"r_{uuid4().hex[:12]}")

    def __post_init__(self):
        object.__setattr__(self, 'answers', tuple(self.answers))

    @property
    def percentage(self) -> int:
        return percentage_of(self.score, self.total)

    @property
    def skipped(self) -> int:
        return sum(1 for a in self.answers if a.skipped)

    @property
    def wrong(self) -> int:
        return self.total - self.score - self.skipped

    @property
    def grade(self) -> str:
        pct = self.percentage
        if pct >= 80:
            return "excellent"
        if pct >= 60:
            return "good"
        if pct >= 40:
            return "average"
        return "poor"

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record['answers'] = [asdict(a) for a in self.answers]
        for answer in record['answers']:
            answer['options'] = list(answer['options'])
        record['percentage'] = self.percentage
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Result":
        answers = [
            AnswerDetail(
                question_id=str(a['question_id']),
                text=a['text'],
                options=tuple(a['options']),
                correct_index=int(a['correct_index']),
                user_answer=int(a['user_answer']),
                correct=bool(a['correct']),
            )
            for a in record.get('answers', [])
        ]
        return cls(
            quiz_id=str(record['quiz_id']),
            quiz_title=record['quiz_title'],
            score=int(record['score']),
            total=int(record['total']),
            answers=answers,
            time_taken=int(record.get('time_taken', 0)),
            completed_at=record.get('completed_at') or datetime.now().isoformat(),
            id=str(record['id']),
        )

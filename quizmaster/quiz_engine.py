"""
Quiz engine core logic for QuizMaster.
Handles question selection, the session state machine, scoring, and the
per-session countdown timer.
"""
import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from .containers import HistoryStack, KeyedTable
from .models import (
    AnswerDetail,
    Question,
    QuizDefinition,
    QuizSettings,
    Result,
    UNANSWERED,
)

# Set up logger for session and timer operations
logger = logging.getLogger(__name__)

LOW_TIME_THRESHOLD = 60


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(session_id: str, duration: int) -> None:
        """Log timer countdown start."""
        logger.info(
            f"Timer lifecycle: COUNTDOWN_START - Session {session_id}, Remaining {duration}s",
            extra={
                'event_type': 'timer_countdown_start',
                'session_id': session_id,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(session_id: str, completion_type: str, remaining: int) -> None:
        """Log how a countdown ended."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Session {session_id}, Type {completion_type}, Remaining {remaining}s",
            extra={
                'event_type': 'timer_completion',
                'session_id': session_id,
                'completion_type': completion_type,
                'remaining': remaining,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(session_id: str, error_type: str, details: str, context: str) -> None:
        """Log timer errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Session {session_id}, Type {error_type}, Context {context}: {details}",
            extra={
                'event_type': 'timer_error',
                'session_id': session_id,
                'error_type': error_type,
                'details': details,
                'context': context,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cancelled(session_id: str, was_running: bool) -> None:
        """Log an explicit cancellation at teardown."""
        logger.debug(
            f"Timer lifecycle: CANCELLED - Session {session_id}, Was running: {was_running}",
            extra={
                'event_type': 'timer_cancelled',
                'session_id': session_id,
                'was_running': was_running,
                'timestamp': time.time()
            }
        )


class SessionState(Enum):
    """Enumeration of quiz session states."""
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(frozen=True)
class QuestionView:
    """Read-only view of the question being displayed."""
    id: str
    number: int
    text: str
    category: str
    options: Tuple[str, ...]
    selected: Tuple[bool, ...]
    bookmarked: bool = False


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only rendering snapshot of a session, rebuilt on every request."""
    quiz_id: str
    quiz_title: str
    state: SessionState
    current_index: int
    total: int
    progress: float
    remaining_time: int
    clock: str
    low_time: bool
    question: QuestionView
    answered: Tuple[bool, ...]
    answered_count: int
    is_first: bool
    is_last: bool
    result: Optional[Result] = None


def format_clock(seconds: int) -> str:
    """Format seconds as MM:SS."""
    seconds = max(seconds, 0)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class QuizSession:
    """
    State machine for one attempt at a quiz.

    A session is ACTIVE until it is submitted explicitly or its remaining
    time runs out, then FINISHED for good. Every mutating call on a finished
    session is a no-op that reports failure; a retake needs a new session.
    """

    def __init__(
        self,
        quiz: QuizDefinition,
        questions: Optional[List[Question]] = None,
        time_limit: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Start a session.

        Args:
            quiz: Quiz being attempted; referenced, never modified
            questions: Working question subset, defaults to all quiz questions
            time_limit: Time budget in seconds, defaults to the quiz's budget
            clock: Source of the current time
        """
        self.quiz = quiz
        self.questions: List[Question] = list(questions if questions is not None else quiz.questions)
        if not self.questions:
            raise ValueError("Cannot start a session without questions")

        self._clock = clock
        self._answers = KeyedTable()
        self._question_ids = {q.id for q in self.questions}
        self.history = HistoryStack()
        self.current_index = 0
        self.start_time = clock()
        self.time_limit = time_limit if time_limit is not None else quiz.time_limit
        self.remaining_time = self.time_limit
        self.state = SessionState.ACTIVE
        self.result: Optional[Result] = None

        logger.info(
            f"Session started for quiz '{quiz.id}' with {len(self.questions)} questions, "
            f"{self.time_limit}s budget",
            extra={
                'event_type': 'session_started',
                'quiz_id': quiz.id,
                'question_count': len(self.questions),
                'time_limit': self.time_limit,
                'timestamp': time.time()
            }
        )

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def is_finished(self) -> bool:
        return self.state is SessionState.FINISHED

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == len(self.questions) - 1

    @property
    def answered_count(self) -> int:
        return self._answers.count

    def current_question(self) -> Question:
        return self.questions[self.current_index]

    def go_to(self, index: int) -> bool:
        """
        Move to the question at index.

        Returns:
            True if the position changed, False if the session is finished or
            index is out of range or already current
        """
        if not self.is_active:
            return False
        if not 0 <= index < len(self.questions) or index == self.current_index:
            return False
        self.history.push(self.current_index)
        self.current_index = index
        return True

    def next(self) -> bool:
        return self.go_to(self.current_index + 1)

    def prev(self) -> bool:
        return self.go_to(self.current_index - 1)

    def back(self) -> bool:
        """Return to the position held before the most recent move."""
        if not self.is_active or self.history.is_empty():
            return False
        self.current_index = self.history.pop()
        return True

    def select_answer(self, option_index: int, question_id: Optional[str] = None) -> bool:
        """
        Record the chosen option for the current or a named question.

        Returns:
            True if recorded, False if the session is finished, the question
            is not part of this session, or the option does not exist
        """
        if not self.is_active:
            return False
        question = self._lookup(question_id)
        if question is None:
            return False
        if not 0 <= option_index < len(question.options):
            return False
        self._answers.set(question.id, option_index)
        return True

    def clear_answer(self, question_id: Optional[str] = None) -> bool:
        if not self.is_active:
            return False
        question = self._lookup(question_id)
        if question is None:
            return False
        return self._answers.delete(question.id)

    def get_answer(self, question_id: str) -> Optional[int]:
        return self._answers.get(question_id)

    def is_answered(self, question_id: str) -> bool:
        return self._answers.has(question_id)

    def tick(self) -> bool:
        """
        Consume one unit of remaining time.

        Reaching zero finishes the session and scores it, exactly as an
        explicit submit would.

        Returns:
            True if the tick was applied, False if the session is finished
        """
        if not self.is_active:
            return False
        self.remaining_time = max(self.remaining_time - 1, 0)
        if self.remaining_time == 0:
            logger.info(
                f"Time expired for quiz '{self.quiz.id}', submitting automatically",
                extra={
                    'event_type': 'session_time_expired',
                    'quiz_id': self.quiz.id,
                    'timestamp': time.time()
                }
            )
            self._finish()
        return True

    def submit(self) -> Optional[Result]:
        """
        Finish the session and score it.

        Returns:
            The Result, or None if the session was already finished
        """
        if not self.is_active:
            return None
        return self._finish()

    def _finish(self) -> Result:
        self.state = SessionState.FINISHED
        self.result = self._calculate_result()
        logger.info(
            f"Session finished for quiz '{self.quiz.id}': "
            f"{self.result.score}/{self.result.total} ({self.result.percentage}%)",
            extra={
                'event_type': 'session_finished',
                'quiz_id': self.quiz.id,
                'score': self.result.score,
                'total': self.result.total,
                'timestamp': time.time()
            }
        )
        return self.result

    def _calculate_result(self) -> Result:
        score = 0
        details = []
        for question in self.questions:
            user_answer = self._answers.get(question.id, UNANSWERED)
            correct = user_answer != UNANSWERED and question.is_correct(user_answer)
            if correct:
                score += 1
            details.append(AnswerDetail(
                question_id=question.id,
                text=question.text,
                options=question.options,
                correct_index=question.correct_index,
                user_answer=user_answer,
                correct=correct,
            ))

        now = self._clock()
        elapsed = max(int((now - self.start_time).total_seconds()), 0)
        return Result(
            quiz_id=self.quiz.id,
            quiz_title=self.quiz.title,
            score=score,
            total=len(self.questions),
            answers=details,
            time_taken=elapsed,
            completed_at=now.isoformat(),
        )

    def _lookup(self, question_id: Optional[str]) -> Optional[Question]:
        if question_id is None:
            return self.current_question()
        if question_id not in self._question_ids:
            return None
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def snapshot(self, bookmarked: Callable[[str], bool] = lambda _: False) -> SessionSnapshot:
        """
        Build a fresh read-only view of the session for rendering.

        Args:
            bookmarked: Predicate telling whether a question id is bookmarked
        """
        question = self.current_question()
        selected = self._answers.get(question.id, UNANSWERED)
        view = QuestionView(
            id=question.id,
            number=self.current_index + 1,
            text=question.text,
            category=question.category,
            options=tuple(question.options),
            selected=tuple(i == selected for i in range(len(question.options))),
            bookmarked=bookmarked(question.id),
        )
        total = len(self.questions)
        return SessionSnapshot(
            quiz_id=self.quiz.id,
            quiz_title=self.quiz.title,
            state=self.state,
            current_index=self.current_index,
            total=total,
            progress=(self.current_index + 1) / total,
            remaining_time=self.remaining_time,
            clock=format_clock(self.remaining_time),
            low_time=self.remaining_time <= LOW_TIME_THRESHOLD,
            question=view,
            answered=tuple(self._answers.has(q.id) for q in self.questions),
            answered_count=self._answers.count,
            is_first=self.is_first,
            is_last=self.is_last,
            result=self.result,
        )


class SessionTimer:
    """Owned, cancelable once-per-interval ticker for a single session."""

    def __init__(self, session: QuizSession, interval: float = 1.0, session_id: Optional[str] = None):
        self.session = session
        self.interval = interval
        self.session_id = session_id or session.quiz.id
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False

    def start(
        self,
        update_callback: Optional[Callable[[QuizSession], Any]] = None,
        completion_callback: Optional[Callable[[QuizSession], Any]] = None
    ) -> asyncio.Task:
        """
        Start ticking as a background task on the running event loop.

        Args:
            update_callback: Called after every applied tick
            completion_callback: Called once if a tick expires the session

        Raises:
            RuntimeError: If the timer is already running or was cancelled
        """
        if self._is_cancelled:
            raise RuntimeError(f"Timer for session {self.session_id} was cancelled")
        if self.is_running:
            raise RuntimeError(f"Timer for session {self.session_id} is already running")
        self._task = asyncio.create_task(self._run(update_callback, completion_callback))
        return self._task

    async def _run(self, update_callback, completion_callback) -> None:
        TimerLifecycleLogger.log_timer_start(self.session_id, self.session.remaining_time)
        try:
            while self.session.is_active:
                await asyncio.sleep(self.interval)
                if self._is_cancelled or not self.session.tick():
                    break
                if update_callback is not None:
                    await _maybe_await(update_callback(self.session))
                if self.session.is_finished:
                    TimerLifecycleLogger.log_timer_completion(self.session_id, "natural_expiry", 0)
                    if completion_callback is not None:
                        await _maybe_await(completion_callback(self.session))
                    return
            TimerLifecycleLogger.log_timer_completion(
                self.session_id, "session_finished", self.session.remaining_time
            )
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_completion(
                self.session_id, "asyncio_cancelled", self.session.remaining_time
            )
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self.session_id, "countdown_execution_error", str(e), "SessionTimer._run"
            )
            raise

    async def cancel(self) -> bool:
        """
        Cancel the ticking task and wait for it to unwind.

        Returns:
            True if a running task was cancelled, False if nothing was running
        """
        was_running = self.is_running
        self._is_cancelled = True
        if was_running and self._task is asyncio.current_task():
            # Called from a tick callback; the loop exits on its own
            was_running = False
        elif was_running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                TimerLifecycleLogger.log_timer_error(
                    self.session_id, "cancellation_error", str(e), "SessionTimer.cancel"
                )
        TimerLifecycleLogger.log_timer_cancelled(self.session_id, was_running)
        return was_running

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled


async def _maybe_await(value: Any) -> Any:
    if asyncio.iscoroutine(value):
        return await value
    return value


class QuizEngine:
    """Selects and orders the working question set for new sessions."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def select_questions(self, questions: List[Question], settings: QuizSettings) -> List[Question]:
        """
        Select and order questions based on quiz settings.

        Args:
            questions: List of available questions
            settings: Quiz configuration settings

        Returns:
            List of selected and ordered questions

        Raises:
            ValueError: If questions list is empty
        """
        if not questions:
            raise ValueError("Cannot select questions from empty list")

        # Make a copy to avoid modifying the original list
        selected_questions = list(questions)

        if settings.random_order:
            selected_questions = self.shuffle_questions(selected_questions)

        if settings.question_count is not None:
            selected_questions = self.limit_question_count(selected_questions, settings.question_count)

        return selected_questions

    def shuffle_questions(self, questions: List[Question]) -> List[Question]:
        """
        Shuffle questions with a Fisher-Yates pass.

        Returns:
            New list with questions in uniformly random order
        """
        shuffled = list(questions)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self._rng.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def limit_question_count(self, questions: List[Question], count: int) -> List[Question]:
        """
        Limit the number of questions to the specified count.

        Note:
            If count is greater than available questions, returns all questions.
            If count is less than 1, returns empty list.
        """
        if count < 1:
            return []
        return questions[:count]

    def create_session(
        self,
        quiz: QuizDefinition,
        settings: QuizSettings,
        clock: Callable[[], datetime] = datetime.now
    ) -> QuizSession:
        """
        Build a new session for a quiz.

        A question count stored on the quiz overrides the one in settings.
        """
        if quiz.question_count is not None:
            settings = QuizSettings(
                question_count=quiz.question_count,
                random_order=settings.random_order,
                time_limit=settings.time_limit,
            )
        questions = self.select_questions(quiz.questions, settings)
        return QuizSession(quiz, questions, time_limit=quiz.time_limit, clock=clock)

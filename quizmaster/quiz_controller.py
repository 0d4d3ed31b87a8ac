"""
Quiz session controller for QuizMaster.
Owns the single live session, its timer, the result history, and the
import of custom quizzes.
"""
import logging
import time
from typing import Callable, List, Optional

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import QuizDefinition, QuizSettings, Result
from .quiz_engine import QuizEngine, QuizSession, SessionSnapshot, SessionTimer
from .result_ledger import LedgerStats, ResultLedger
from .sheet_loader import InputError, SheetImporter


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class QuizNotFoundError(QuizControllerError):
    """Raised when a quiz id is not registered."""
    pass


class NoActiveSessionError(QuizControllerError):
    """Raised when an operation needs a session but none exists."""
    pass


class QuizController:
    """
    Orchestrates quiz sessions for one user.

    At most one session exists at a time. Starting, retaking or exiting
    always cancels the previous session's timer before the session is
    dropped, so no tick can ever reach a discarded session. Rendering is
    pluggable through an ``on_change`` listener that receives a fresh
    SessionSnapshot after every successful mutation and every tick.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        importer: Optional[SheetImporter] = None,
        engine: Optional[QuizEngine] = None,
        on_change: Optional[Callable[[SessionSnapshot], None]] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            data_manager: Quiz registry and persistence
            config_manager: Source of default settings
            importer: Sheet importer used for custom quizzes
            engine: Working-set selection
            on_change: Render listener
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.importer = importer or SheetImporter()
        self.quiz_engine = engine or QuizEngine()
        self.on_change = on_change

        self.ledger = ResultLedger()
        self._session: Optional[QuizSession] = None
        self._timer: Optional[SessionTimer] = None
        self._recorded_result_id: Optional[str] = None

        if not self.data_manager.quizzes.count:
            self.data_manager.load_quizzes()
        restored = self.ledger.load(self.data_manager.load_result_records())
        self.logger.info(f"QuizController initialized with {restored} stored results")

    @property
    def session(self) -> Optional[QuizSession]:
        return self._session

    @property
    def timer(self) -> Optional[SessionTimer]:
        return self._timer

    def has_active_session(self) -> bool:
        return self._session is not None and self._session.is_active

    def _require_session(self) -> QuizSession:
        if self._session is None:
            raise NoActiveSessionError("No quiz session in progress")
        return self._session

    async def start_quiz(self, quiz_id: str, settings: Optional[QuizSettings] = None) -> SessionSnapshot:
        """
        Start a new session, replacing any existing one.

        Args:
            quiz_id: Registered quiz id
            settings: Optional quiz settings, uses global config if None

        Returns:
            Snapshot of the new session

        Raises:
            QuizNotFoundError: If the quiz is not registered
        """
        quiz = self.data_manager.get_quiz(quiz_id)
        if quiz is None:
            raise QuizNotFoundError(f"No quiz found with id: {quiz_id}")

        await self._teardown()

        if settings is None:
            settings = self.config_manager.get_quiz_settings()

        self._session = self.quiz_engine.create_session(quiz, settings)
        self._timer = SessionTimer(
            self._session,
            interval=self.config_manager.get_tick_interval(),
            session_id=f"{quiz.id}@{int(time.time() * 1000)}"
        )
        self._timer.start(update_callback=self._handle_tick, completion_callback=self._handle_expiry)

        self.logger.info(
            f"Started quiz '{quiz.id}' with {self._session.question_count} questions",
            extra={
                'event_type': 'quiz_started',
                'quiz_id': quiz.id,
                'question_count': self._session.question_count,
                'timestamp': time.time()
            }
        )
        return self._notify()

    async def _teardown(self) -> None:
        """Cancel the current timer and drop the current session."""
        if self._timer is not None:
            await self._timer.cancel()
        self._timer = None
        self._session = None

    async def exit_quiz(self) -> bool:
        """
        Abandon the current session without recording a result.

        Returns:
            True if a session was discarded
        """
        if self._session is None:
            return False
        quiz_id = self._session.quiz.id
        await self._teardown()
        self.logger.info(f"Exited quiz '{quiz_id}'")
        return True

    async def retake(self) -> SessionSnapshot:
        """Start a brand-new session on the current session's quiz."""
        session = self._require_session()
        return await self.start_quiz(session.quiz.id)

    async def submit(self) -> Optional[Result]:
        """
        Submit the current session and record its result.

        Returns:
            The session's Result; a session already finished by its timer
            returns the result recorded at expiry
        """
        session = self._require_session()
        if self._timer is not None:
            await self._timer.cancel()
        result = session.submit()
        if result is None:
            return session.result
        self._record_result(result)
        self._notify()
        return result

    def _handle_tick(self, session: QuizSession) -> None:
        if session is self._session:
            self._notify()

    def _handle_expiry(self, session: QuizSession) -> None:
        if session is not self._session:
            self.logger.warning("Ignoring expiry of a discarded session")
            return
        self._record_result(session.result)

    def _record_result(self, result: Result) -> None:
        if result.id == self._recorded_result_id:
            return
        self._recorded_result_id = result.id
        self.ledger.add(result)
        self.data_manager.save_result(result)
        self.logger.info(
            f"Recorded result for quiz '{result.quiz_id}': {result.score}/{result.total}",
            extra={
                'event_type': 'result_recorded',
                'quiz_id': result.quiz_id,
                'percentage': result.percentage,
                'timestamp': time.time()
            }
        )

    def select_option(self, option_index: int, question_id: Optional[str] = None) -> bool:
        return self._mutate(self._require_session().select_answer(option_index, question_id))

    def clear_option(self, question_id: Optional[str] = None) -> bool:
        return self._mutate(self._require_session().clear_answer(question_id))

    def next_question(self) -> bool:
        return self._mutate(self._require_session().next())

    def prev_question(self) -> bool:
        return self._mutate(self._require_session().prev())

    def go_to_question(self, index: int) -> bool:
        return self._mutate(self._require_session().go_to(index))

    def back(self) -> bool:
        return self._mutate(self._require_session().back())

    def toggle_bookmark(self) -> bool:
        """
        Bookmark or un-bookmark the current question.

        Returns:
            True if the question is bookmarked afterwards
        """
        session = self._require_session()
        bookmarked = self.data_manager.bookmarks.toggle(session.current_question())
        self._notify()
        return bookmarked

    def _mutate(self, changed: bool) -> bool:
        if changed:
            self._notify()
        return changed

    def snapshot(self) -> Optional[SessionSnapshot]:
        if self._session is None:
            return None
        return self._session.snapshot(bookmarked=self.data_manager.bookmarks.has)

    def _notify(self) -> Optional[SessionSnapshot]:
        snapshot = self.snapshot()
        if snapshot is not None and self.on_change is not None:
            self.on_change(snapshot)
        return snapshot

    async def import_quiz(
        self,
        title: str,
        sheet_input: str,
        sheet_name: Optional[str] = None,
        question_count: int = 10,
        time_limit_minutes: Optional[int] = None
    ) -> QuizDefinition:
        """
        Create a custom quiz from a published spreadsheet.

        Args:
            title: Display title of the new quiz
            sheet_input: Spreadsheet URL or bare identifier
            sheet_name: Optional worksheet name
            question_count: Questions asked per session
            time_limit_minutes: Time budget, the configured default if None

        Returns:
            The registered QuizDefinition

        Raises:
            InputError: Missing title or unrecognized sheet reference
            FetchError: Non-success response from the import source
            FormatError: No usable question rows
        """
        if not title or not title.strip():
            raise InputError("Quiz title is required")

        questions = await self.importer.load(sheet_input, sheet_name)

        if time_limit_minutes is not None and time_limit_minutes > 0:
            time_limit = time_limit_minutes * 60
        else:
            time_limit = self.config_manager.get_time_limit()

        quiz = QuizDefinition(
            id=f"custom_{int(time.time() * 1000)}",
            title=title.strip(),
            questions=questions,
            time_limit=time_limit,
            category="Custom",
            icon="✨",
            is_custom=True,
            question_count=min(max(question_count, 1), len(questions)),
        )
        self.data_manager.add_custom_quiz(quiz)
        self.logger.info(f"Imported quiz '{quiz.title}' with {len(questions)} questions")
        return quiz

    def delete_quiz(self, quiz_id: str) -> bool:
        return self.data_manager.delete_quiz(quiz_id)

    def list_quizzes(self) -> List[QuizDefinition]:
        return self.data_manager.list_quizzes()

    def top_scores(self, n: int = ResultLedger.DEFAULT_TOP_COUNT) -> List[Result]:
        return self.ledger.top_scores(n)

    def stats(self) -> Optional[LedgerStats]:
        return self.ledger.stats()

    def history(self) -> List[Result]:
        return self.ledger.history()

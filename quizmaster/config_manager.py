"""
Configuration manager for QuizMaster settings and parameters.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import QuizSettings, DEFAULT_TIME_LIMIT


class ConfigError(Exception):
    """Raised when a configuration file cannot be loaded."""
    pass


def load_config_file(path: str = "config.json") -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a JSON object
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error loading {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration in {config_path} must be a JSON object")
    return config


class ConfigManager:
    """Manages quiz settings and engine parameters."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = None  # Use all questions by default
    DEFAULT_RANDOM_ORDER = True
    DEFAULT_TIME_LIMIT = DEFAULT_TIME_LIMIT
    DEFAULT_DATA_DIRECTORY = "./data/"
    DEFAULT_TICK_INTERVAL = 1.0

    # Validation limits
    MIN_TIME_LIMIT = 30
    MAX_TIME_LIMIT = 7200  # 2 hours
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            random_order=self.DEFAULT_RANDOM_ORDER,
            time_limit=self.DEFAULT_TIME_LIMIT
        )
        self._data_directory = self.DEFAULT_DATA_DIRECTORY
        self._tick_interval = self.DEFAULT_TICK_INTERVAL

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            A copy of the current QuizSettings
        """
        return QuizSettings(
            question_count=self._global_settings.question_count,
            random_order=self._global_settings.random_order,
            time_limit=self._global_settings.time_limit
        )

    def set_question_count(self, count: Optional[int]) -> Dict[str, Any]:
        """
        Set the number of questions asked per session.

        Args:
            count: Number of questions, or None to use all questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if count is None:
            self._global_settings.question_count = None
            self.logger.info("Question count set to use all available questions")
            return {
                'success': True,
                'message': "Question count set to use all available questions",
                'user_message': "✅ Will use all available questions from each quiz"
            }

        # bool is an int subclass but never a valid count
        if not isinstance(count, int) or isinstance(count, bool):
            return self._reject(
                f"Question count must be an integer, got {type(count).__name__}",
                f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            )

        if count < self.MIN_QUESTION_COUNT:
            return self._reject(
                f"Question count must be at least {self.MIN_QUESTION_COUNT}",
                f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            )

        if count > self.MAX_QUESTION_COUNT:
            return self._reject(
                f"Question count cannot exceed {self.MAX_QUESTION_COUNT}",
                f"❌ Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            )

        self._global_settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> Optional[int]:
        return self._global_settings.question_count

    def set_random_order(self, random_order: bool) -> Dict[str, Any]:
        """
        Set whether the working question set is shuffled.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(random_order, bool):
            return self._reject(
                f"Random order must be a boolean, got {type(random_order).__name__}",
                f"❌ Invalid input: Expected true/false, got {type(random_order).__name__}"
            )

        self._global_settings.random_order = random_order
        order_type = "random" if random_order else "sequential"
        self.logger.info(f"Question order set to {order_type}")
        return {
            'success': True,
            'message': f"Question order set to {order_type}",
            'user_message': f"✅ Questions will be presented in {order_type} order"
        }

    def get_random_order(self) -> bool:
        return self._global_settings.random_order

    def toggle_random_order(self) -> Dict[str, Any]:
        new_value = not self._global_settings.random_order
        result = self.set_random_order(new_value)
        if result['success']:
            result['new_value'] = new_value
        return result

    def set_time_limit(self, seconds: int) -> Dict[str, Any]:
        """
        Set the default time budget for new quizzes.

        Args:
            seconds: Time budget in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(seconds, int) or isinstance(seconds, bool):
            return self._reject(
                f"Time limit must be an integer, got {type(seconds).__name__}",
                f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            )

        if seconds < self.MIN_TIME_LIMIT:
            return self._reject(
                f"Time limit must be at least {self.MIN_TIME_LIMIT} seconds",
                f"❌ Time limit too short: Minimum is {self.MIN_TIME_LIMIT} seconds"
            )

        if seconds > self.MAX_TIME_LIMIT:
            return self._reject(
                f"Time limit cannot exceed {self.MAX_TIME_LIMIT} seconds",
                f"❌ Time limit too long: Maximum is {self.MAX_TIME_LIMIT // 60} minutes"
            )

        self._global_settings.time_limit = seconds
        self.logger.info(f"Time limit set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Time limit set to {seconds} seconds",
            'user_message': f"✅ Time limit set to {seconds // 60} minutes {seconds % 60} seconds"
        }

    def get_time_limit(self) -> int:
        return self._global_settings.time_limit

    def set_data_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory used by the JSON file store.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            return self._reject(
                f"Data directory must be a string, got {type(directory).__name__}",
                f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            )

        if not directory.strip():
            return self._reject("Data directory cannot be empty", "❌ Directory path cannot be empty")

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            return self._reject(
                f"Invalid directory path format: {e}",
                f"❌ Invalid path format: {directory}"
            )

        system_dirs = ['/bin', '/usr', '/etc', '/sys', '/proc', 'C:\\Windows', 'C:\\Program Files']
        if any(normalized_path.startswith(sys_dir) for sys_dir in system_dirs):
            return self._reject(
                f"Cannot use system directory: {normalized_path}",
                f"❌ Cannot use system directory: {directory}"
            )

        self._data_directory = normalized_path
        self.logger.info(f"Data directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Data directory set to {normalized_path}",
            'user_message': f"✅ Data directory set to {normalized_path}"
        }

    def get_data_directory(self) -> str:
        return self._data_directory

    def set_tick_interval(self, interval: float) -> Dict[str, Any]:
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
            return self._reject(
                f"Tick interval must be a positive number, got {interval!r}",
                "❌ Tick interval must be a positive number of seconds"
            )
        self._tick_interval = float(interval)
        self.logger.info(f"Tick interval set to {interval} seconds")
        return {
            'success': True,
            'message': f"Tick interval set to {interval} seconds",
            'user_message': f"✅ Timer ticks every {interval} seconds"
        }

    def get_tick_interval(self) -> float:
        return self._tick_interval

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the ``quiz`` and ``storage`` sections of a parsed config file.

        Invalid values are logged and the defaults kept.

        Returns:
            Error messages for every rejected value
        """
        errors = []
        quiz_config = config.get('quiz', {})
        storage_config = config.get('storage', {})

        results = []
        if 'default_question_count' in quiz_config:
            results.append(self.set_question_count(quiz_config['default_question_count']))
        if 'default_random_order' in quiz_config:
            results.append(self.set_random_order(quiz_config['default_random_order']))
        if 'default_time_limit' in quiz_config:
            results.append(self.set_time_limit(quiz_config['default_time_limit']))
        if 'tick_interval' in quiz_config:
            results.append(self.set_tick_interval(quiz_config['tick_interval']))
        if 'data_directory' in storage_config:
            results.append(self.set_data_directory(storage_config['data_directory']))

        for result in results:
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected values")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._global_settings = QuizSettings(
            question_count=self.DEFAULT_QUESTION_COUNT,
            random_order=self.DEFAULT_RANDOM_ORDER,
            time_limit=self.DEFAULT_TIME_LIMIT
        )
        self._data_directory = self.DEFAULT_DATA_DIRECTORY
        self._tick_interval = self.DEFAULT_TICK_INTERVAL
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._global_settings

        if settings.question_count is not None:
            if (not isinstance(settings.question_count, int) or
                settings.question_count < self.MIN_QUESTION_COUNT or
                settings.question_count > self.MAX_QUESTION_COUNT):
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid question count: {settings.question_count}")

        if not isinstance(settings.random_order, bool):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid random order setting: {settings.random_order}")

        if (not isinstance(settings.time_limit, int) or
            settings.time_limit < self.MIN_TIME_LIMIT or
            settings.time_limit > self.MAX_TIME_LIMIT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid time limit: {settings.time_limit}")

        if not isinstance(self._data_directory, str) or not self._data_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid data directory: {self._data_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """Human-readable summary of current settings."""
        settings = self._global_settings
        question_count_str = (
            str(settings.question_count)
            if settings.question_count is not None
            else "all available"
        )
        order_str = "random" if settings.random_order else "sequential"

        return (
            f"Quiz Settings:\n"
            f"• Questions: {question_count_str}\n"
            f"• Order: {order_str}\n"
            f"• Time limit: {settings.time_limit} seconds\n"
            f"• Data Directory: {self._data_directory}"
        )

    def _reject(self, error_msg: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error_msg)
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message
        }

"""
Logging setup for QuizMaster.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Set up logging based on the ``logging`` section of a config dict.

    Recognized keys are ``level`` (default INFO), ``log_directory`` (default
    ``./logs/``) and ``log_to_file`` (default True).

    Returns:
        The package logger
    """
    log_config = (config or {}).get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if log_config.get('log_to_file', True):
        log_directory = Path(log_config.get('log_directory', './logs/'))
        log_directory.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_directory / "quizmaster.log", encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers
    )

    # The HTTP stack is chatty at INFO
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('quizmaster')

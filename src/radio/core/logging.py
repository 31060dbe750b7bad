"""
Radio Logging Configuration
Structured logging setup with file rotation and domain loggers
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from .config import get_settings


def setup_logging() -> logging.Logger:
    """Set up structured logging for Radio"""

    settings = get_settings()

    log_dir = Path(settings.LOG_FILE_PATH).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Console handler with colored output for development
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)

    if settings.is_development:
        console_formatter = logging.Formatter(
            '\033[92m%(asctime)s\033[0m - '
            '\033[94m%(name)s\033[0m - '
            '%(levelname)s - '
            '%(message)s',
            datefmt='%H:%M:%S'
        )
    else:
        console_formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(name)s %(levelname)s %(message)s'
        )

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # File handler with rotation
    file_handler = logging.handlers.RotatingFileHandler(
        settings.LOG_FILE_PATH,
        maxBytes=settings.LOG_MAX_SIZE,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(pathname)s %(lineno)d %(funcName)s %(message)s'
    ))
    root_logger.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if not settings.is_development
            else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Adjust third-party library log levels
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("radio.generation").setLevel(logging.DEBUG)
    logging.getLogger("radio.room").setLevel(logging.INFO)
    logging.getLogger("radio.baas").setLevel(logging.INFO)

    logger = logging.getLogger("radio")
    logger.info(f"Logging configured - Level: {settings.LOG_LEVEL}")

    return logger


class GenerationLogger:
    """Specialized logger for music generation requests and callbacks"""

    def __init__(self):
        self.logger = structlog.get_logger("radio.generation")

    def log_submission(self, record_id: str, model: str, custom_mode: bool, user_id: Optional[str] = None) -> None:
        self.logger.info(
            "Generation request saved",
            record_id=record_id,
            model=model,
            custom_mode=custom_mode,
            user_id=user_id
        )

    def log_upstream_response(self, record_id: str, status_code: int, task_id: Optional[str]) -> None:
        self.logger.info(
            "Generation API responded",
            record_id=record_id,
            status_code=status_code,
            task_id=task_id
        )

    def log_upstream_error(self, record_id: Optional[str], error: str) -> None:
        self.logger.error(
            "Generation API call failed",
            record_id=record_id,
            error=error
        )

    def log_callback_received(self, task_id: Optional[str], callback_type: Optional[str], code: Any, msg: Any) -> None:
        self.logger.info(
            "Received music generation callback",
            task_id=task_id,
            callback_type=callback_type,
            code=code,
            msg=msg
        )

    def log_track_saved(self, track_id: str, created: bool, title: Optional[str] = None, duration: Any = None) -> None:
        self.logger.info(
            "Created music track" if created else "Updated music track",
            track_id=track_id,
            title=title,
            duration=duration
        )

    def log_callback_failure(self, task_id: Optional[str], code: Any, msg: Any, callback_type: Optional[str]) -> None:
        """Log a failed generation reported by the provider"""
        reasons = {
            400: "Bad Request - Parameter error or content violation",
            451: "Download Failed - Unable to download related files",
            500: "Server Error - Please try again later",
        }
        self.logger.error(
            "Music generation failed",
            task_id=task_id,
            code=code,
            msg=msg,
            callback_type=callback_type,
            reason=reasons.get(code, f"Unknown error code: {code}")
        )

    def log_processing_error(self, operation: str, error: str, **kwargs: Any) -> None:
        self.logger.error(
            "Generation processing failed",
            operation=operation,
            error=error,
            **kwargs
        )


class RoomLogger:
    """Specialized logger for room state changes"""

    def __init__(self):
        self.logger = structlog.get_logger("radio.room")

    def log_advance(self, room_id: str, changes: dict) -> None:
        self.logger.info("Room advanced", room_id=room_id, changes=changes)

    def log_random_pick(self, room_id: str, track_id: str, reason: str) -> None:
        self.logger.info(
            "Randomly selected next track",
            room_id=room_id,
            track_id=track_id,
            reason=reason
        )

    def log_conflict(self, room_id: str, field: str) -> None:
        self.logger.warning("Room changed concurrently", room_id=room_id, field=field)

    def log_error(self, operation: str, error: str, room_id: Optional[str] = None) -> None:
        self.logger.error("Room operation failed", operation=operation, error=error, room_id=room_id)


class BaaSLogger:
    """Logger for backend-as-a-service calls"""

    def __init__(self):
        self.logger = structlog.get_logger("radio.baas")

    def log_request_failed(self, method: str, path: str, status: int, message: str) -> None:
        self.logger.warning(
            "Backend request failed",
            method=method,
            path=path,
            status=status,
            message=message[:200]
        )

    def log_health(self, healthy: bool, error: Optional[str] = None) -> None:
        if healthy:
            self.logger.debug("Backend health check passed")
        else:
            self.logger.error("Backend health check failed", error=error)


# Create global logger instances
generation_logger = GenerationLogger()
room_logger = RoomLogger()
baas_logger = BaaSLogger()

__all__ = [
    "setup_logging",
    "GenerationLogger",
    "RoomLogger",
    "BaaSLogger",
    "generation_logger",
    "room_logger",
    "baas_logger"
]

import json
import logging
import os

from datetime import datetime, timezone
from typing import Optional

_LOGGER_CONFIGURED = False
_LOG_FILE_PATH: Optional[str] = None

# Campos passados via extra={...} que vão para o JSON
_CONTEXT_FIELDS = ("channel", "rule", "path", "sound_id")


class JsonFormatter(logging.Formatter):
    """Uma linha JSON por registro, com o contexto do engine quando houver."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = str(value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_entry["stack"] = record.stack_info

        return json.dumps(log_entry, ensure_ascii=False)


def _log_dir() -> str:
    env_dir = os.environ.get("SOUNDSENSE_LOG_DIR")
    if env_dir:
        return env_dir
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "logs")


def _log_level() -> int:
    level_name = os.environ.get("SOUNDSENSE_LOG_LEVEL", "DEBUG").upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.DEBUG


def _file_handler(level: int) -> logging.FileHandler:
    global _LOG_FILE_PATH
    log_dir = _log_dir()
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y_%m_%d_%H_%M_%S")
    _LOG_FILE_PATH = os.path.join(log_dir, f"soundsense_{timestamp}.log")

    handler = logging.FileHandler(_LOG_FILE_PATH, encoding="utf-8", mode="a")
    handler.setFormatter(JsonFormatter())
    handler.setLevel(level)
    return handler


def _configure_root_logger():
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    level = _log_level()
    root_logger = logging.getLogger()
    # Apenas arquivo de log; o terminal fica livre para o uvicorn.
    # Se alguém já configurou o root (ex.: pytest), não mexe nos handlers.
    if not root_logger.handlers:
        root_logger.addHandler(_file_handler(level))

    root_logger.setLevel(level)
    _LOGGER_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    _configure_root_logger()
    return logging.getLogger(name)


def get_current_log_file_path() -> Optional[str]:
    _configure_root_logger()
    return _LOG_FILE_PATH

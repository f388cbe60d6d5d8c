"""
Centralized logging: console and rotating (optionally compressed) file handlers,
a sensitive-data filter, and a structured logger wrapper shared by the services.
"""
import atexit
import gzip
import logging
import logging.handlers
import os
import re
import shutil
import sys
import threading
from pathlib import Path
from typing import Any, Dict

import structlog
from pythonjsonlogger import jsonlogger

from core.config import settings


class ComponentFilter(logging.Filter):
    """Ensure every record carries a ``component`` attribute."""

    PREFIXES = {
        "sqlalchemy": "database",
        "alembic": "database",
        "aiosqlite": "database",
        "uvicorn": "http",
        "httpx": "http",
        "stripe": "billing",
        "openai": "ai",
    }

    def __init__(self, default_component: str = "unknown"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        if not hasattr(record, "component"):
            record.component = next(
                (component for prefix, component in self.PREFIXES.items() if record.name.startswith(prefix)),
                self.default_component,
            )
        return True


class SecurityFilter(logging.Filter):
    """Redact tokens, keys and credentials before a record is written."""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "api_key", "authorization",
        "credential", "jwt", "bearer", "session_token", "stripe_secret_key",
    }

    _long_token = re.compile(r"\b[A-Za-z0-9]{32,}\b")
    _bearer = re.compile(r"Bearer\s+[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+")
    _url_credentials = re.compile(r"://[^:/]+:[^@]+@")
    _stripe_key = re.compile(r"\b(sk|rk)_(live|test)_[A-Za-z0-9]+")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self.sanitize(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = self._sanitize_value(record.args)
            else:
                record.args = tuple(self._sanitize_value(arg) for arg in record.args)
        return True

    def sanitize(self, message: str) -> str:
        message = self._stripe_key.sub("[REDACTED]", message)
        message = self._long_token.sub("[REDACTED]", message)
        message = self._bearer.sub("Bearer [REDACTED]", message)
        return self._url_credentials.sub("://[REDACTED]:[REDACTED]@", message)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.sanitize(value)
        if isinstance(value, dict):
            return {
                k: "[REDACTED]" if any(s in str(k).lower() for s in self.SENSITIVE_KEYS) else v
                for k, v in value.items()
            }
        return value


def _gzip_in_place(path: str) -> None:
    with open(path, "rb") as f_in, gzip.open(f"{path}.gz", "wb") as f_out:
        shutil.copyfileobj(f_in, f_out)
    os.remove(path)


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size based rotation; the freshest backup is gzipped after each rollover."""

    def __init__(self, *args, compress_logs: bool = True, **kwargs):
        self.compress_logs = compress_logs
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()
        if not (self.compress_logs and self.backupCount > 0):
            return

        for i in range(self.backupCount - 1, 0, -1):
            older = f"{self.baseFilename}.{i}.gz"
            if os.path.exists(older):
                os.replace(older, f"{self.baseFilename}.{i + 1}.gz")

        backup = f"{self.baseFilename}.1"
        if os.path.exists(backup):
            try:
                _gzip_in_place(backup)
            except OSError as e:
                sys.stderr.write(f"Failed to compress log file {backup}: {e}\n")


class CompressedTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """Time based rotation with gzip compression of rotated files."""

    def __init__(self, *args, compress_logs: bool = True, **kwargs):
        self.compress_logs = compress_logs
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()
        if not self.compress_logs:
            return
        directory, base = os.path.split(self.baseFilename)
        for name in os.listdir(directory or "."):
            if name.startswith(base + ".") and not name.endswith(".gz"):
                try:
                    _gzip_in_place(os.path.join(directory, name))
                except OSError as e:
                    sys.stderr.write(f"Failed to compress log file {name}: {e}\n")


_RESERVED_ATTRS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class StructuredLogger:
    """Thin wrapper that accepts keyword fields alongside the message."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _log(self, level: int, msg: str, /, *args, **kwargs):
        exc_info = kwargs.pop("exc_info", False)
        extra = kwargs.pop("extra", {})
        extra["component"] = self.name

        if kwargs:
            if settings.log_format == "json":
                # JsonFormatter serialises extra attributes as fields
                extra.update({
                    (f"field_{k}" if k in _RESERVED_ATTRS else k): v for k, v in kwargs.items()
                })
            else:
                fields = ", ".join(f"{k}={v}" for k, v in kwargs.items())
                msg = f"{msg} [{fields}]"

        self._logger.log(level, msg, *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


class CentralizedLogManager:
    """Singleton owning every handler the application installs."""

    _instance = None
    _lock = threading.Lock()
    _initialized = False

    # component -> (file setting, loggers routed to it, isolated from root)
    COMPONENTS = {
        "security": ("security_log_file", ["security", "auth"], True),
        "ai": ("ai_log_file", ["ai_manager", "ai", "openai"], True),
        "database": ("database_log_file", ["database", "sqlalchemy.engine", "alembic"], False),
        "access": ("access_log_file", ["access", "uvicorn.access"], False),
    }

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            self._loggers: Dict[str, StructuredLogger] = {}
            self._handlers: Dict[str, logging.Handler] = {}
            self._log_directory = Path(settings.log_directory)
            self._setup_root_logger()
            self._setup_component_loggers()
            self._configure_structlog()
            type(self)._initialized = True

    def _create_formatter(self, include_component: bool) -> logging.Formatter:
        if settings.log_format == "json":
            fmt = "%(asctime)s %(name)s %(levelname)s %(message)s"
            if include_component:
                fmt = "%(asctime)s %(name)s %(levelname)s %(component)s %(message)s"
            return jsonlogger.JsonFormatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        if include_component:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s"
        return logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def _create_file_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        self._log_directory.mkdir(parents=True, exist_ok=True)
        path = str(self._log_directory / log_file)

        if settings.log_rotation_when == "size":
            handler = CompressedRotatingFileHandler(
                filename=path,
                maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
                encoding="utf-8",
            )
        else:
            handler = CompressedTimedRotatingFileHandler(
                filename=path,
                when=settings.log_rotation_when,
                interval=settings.log_rotation_interval,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
                encoding="utf-8",
            )

        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=True))
        return handler

    def _setup_root_logger(self):
        root = logging.getLogger()
        root.handlers.clear()
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
        root.setLevel(level)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.addFilter(ComponentFilter())
        console.addFilter(SecurityFilter())
        console.setFormatter(self._create_formatter(include_component=False))
        root.addHandler(console)
        self._handlers["console"] = console

        if settings.enable_file_logging:
            self._handlers["app"] = self._create_file_handler(settings.app_log_file)
            self._handlers["error"] = self._create_file_handler(settings.error_log_file, logging.ERROR)
            root.addHandler(self._handlers["app"])
            root.addHandler(self._handlers["error"])

    def _setup_component_loggers(self):
        if not settings.enable_file_logging:
            return

        for component, (file_setting, logger_names, isolated) in self.COMPONENTS.items():
            level = logging.INFO
            if component == "database" and not settings.enable_sql_logging:
                level = logging.WARNING
            handler = self._create_file_handler(getattr(settings, file_setting), level)
            self._handlers[component] = handler

            for logger_name in logger_names:
                logger = logging.getLogger(logger_name)
                logger.addHandler(handler)
                logger.setLevel(level)
                if isolated:
                    # keep the console handler, skip the shared app log
                    logger.propagate = False
                    logger.addHandler(self._handlers["console"])

    def _configure_structlog(self):
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.format_exc_info,
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str) -> StructuredLogger:
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        for name, handler in list(self._handlers.items()):
            try:
                handler.flush()
                handler.close()
            except (OSError, ValueError) as e:
                sys.stderr.write(f"Error closing log handler {name}: {e}\n")
        self._handlers.clear()
        self._loggers.clear()
        type(self)._initialized = False


_log_manager = None


def setup_logging() -> CentralizedLogManager:
    """Install handlers once and return the manager."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    return setup_logging().get_logger(name)


def shutdown_logging():
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


# Pre-configured loggers
app_logger = get_logger("app")
security_logger = get_logger("security")
ai_logger = get_logger("ai_manager")
database_logger = get_logger("database")
access_logger = get_logger("access")

atexit.register(shutdown_logging)

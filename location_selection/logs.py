import functools
import logging
import reprlib
import time
from collections.abc import Callable
from inspect import signature
from pathlib import Path
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import sentry_sdk
import yaml
from loguru import logger
from rich.logging import RichHandler
from sentry_sdk.integrations.logging import LoggingIntegration

if TYPE_CHECKING:
    from loguru import HandlerConfig, Record

from location_selection.settings import settings

# topics whose records are also kept as JSON lines in the log file
LOG_FILE_TOPICS = frozenset(["recents_store", "recents_controller"])
LOG_FILE_NAME = "recents.log"


def setup_logging(
    level: str | None = None, logs_dir: Path | None = None, verbose: bool | None = None
):
    """Route loguru to the console and the recents log file, and start Sentry if configured.

    Arguments default to the LOG_LEVEL, DATA_DIR and VERBOSE settings.
    """
    level = level or settings.LOG_LEVEL
    verbose = settings.VERBOSE if verbose is None else verbose

    handlers: list[HandlerConfig] = [
        {
            "sink": RichHandler(rich_tracebacks=True, log_time_format="%X", markup=True),
            "format": _console_format,
            "level": level,
            "backtrace": True,
            "diagnose": True,
            "filter": None if verbose else _without_decorator_logs,
        },
        {
            "sink": (logs_dir or settings.logs_dir) / LOG_FILE_NAME,
            "format": "{message}",
            "level": "INFO",
            "rotation": "10 MB",
            "retention": "30 days",
            "serialize": True,
            "diagnose": False,
            "filter": lambda record: record["extra"].get("topic") in LOG_FILE_TOPICS,
        },
    ]
    logger.configure(handlers=handlers)

    if not settings.SENTRY_DSN:
        logger.warning("No SENTRY_DSN provided, Sentry is disabled")
        return
    logger.info("Initializing Sentry", environment=settings.ENVIRONMENT)
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        integrations=[LoggingIntegration(level=logging.getLevelNamesMapping()[level])],
    )


def _console_format(record: "Record") -> str:
    """Message followed by the bound fields as YAML, escaped for loguru and rich markup."""
    if not record["extra"]:
        return record["message"]
    fields = yaml.dump(record["extra"], sort_keys=False, default_flow_style=False).rstrip()
    for raw, escaped in [("{", "{{"), ("}", "}}"), ("<", r"\<"), (">", r"\>")]:
        fields = fields.replace(raw, escaped)
    return f"{record['message']}\n{fields}"


def _without_decorator_logs(record: "Record") -> bool:
    return not record["extra"].get("decorator_log")


_arguments_repr = reprlib.Repr()
_arguments_repr.maxstring = 200
_arguments_repr.maxother = 200


def _describe_arguments(func: Callable[..., Any], args: tuple, kwargs: dict) -> dict[str, str]:
    bound = signature(func).bind_partial(*args, **kwargs)
    return {name: _arguments_repr.repr(value) for name, value in bound.arguments.items()}


P = ParamSpec("P")
R = TypeVar("R")


def log_decorator(func: Callable[P, R]) -> Callable[P, R]:
    """Log start, finish and failure of `func`.

    Failures are tagged on the Sentry scope and re-raised. The start and finish
    records carry `decorator_log` and only reach the console in verbose mode.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        fields: dict[str, Any] = {"func": func.__name__, "decorator_log": True}
        try:
            fields["args"] = _describe_arguments(func, args, kwargs)
        except TypeError:
            pass

        started = time.perf_counter()
        logger.debug(f"Starting {func.__name__}", **fields)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            sentry_sdk.set_tag("func", func.__name__)
            logger.exception(f"{func.__name__} failed", error=str(e), **fields)
            raise
        logger.debug(
            f"Finished {func.__name__}",
            duration_sec=round(time.perf_counter() - started, 6),
            **fields,
        )
        return result

    return wrapper

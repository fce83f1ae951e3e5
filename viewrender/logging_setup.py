import logging
import sys
from typing import IO, Any, Optional
import structlog

LOGGER_NAME = "viewrender"

# rendered output goes to stdout, so log lines always go to stderr.
_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _event_renderer(force_json_logs: bool, stream: IO[str]) -> Any:
    if force_json_logs:
        return structlog.processors.JSONRenderer(sort_keys=True)
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def configure_logging(
    log_level_str: str = "warning",
    force_json_logs: bool = False,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Routes structlog events through one stderr handler on the ``viewrender`` logger.

    Calling it again replaces the previous handler, so the CLI can reconfigure
    per invocation. Returns the installed handler.
    """
    log_level = logging.getLevelName(log_level_str.upper())
    if not isinstance(log_level, int):
        log_level = logging.WARNING
    stream = stream if stream is not None else sys.stderr

    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_event_renderer(force_json_logs, stream),
            foreign_pre_chain=_PRE_CHAIN,
        )
    )

    package_logger = logging.getLogger(LOGGER_NAME)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    structlog.get_logger(__name__).info(
        "logging_configured", level=logging.getLevelName(log_level), json=force_json_logs
    )
    return handler

import logging
import os
import sys

from loguru import logger

# stdlib loggers that would otherwise bypass the sinks below
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records into loguru under their original logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        def _origin(r: dict) -> None:
            r.update(name=record.name, function=record.funcName, line=record.lineno)

        logger.patch(_origin).opt(exception=record.exc_info).log(level, record.getMessage())


def intercept_stdlib_logging(names: tuple[str, ...] = FORWARDED_LOGGERS) -> None:
    handler = InterceptHandler()
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False


def setup_logger(*, json_logs: bool = False, level: str = "INFO") -> None:
    """Configure loguru for the API process.

    Console level controlled by LOG_LEVEL env (default: ``level``).
    File always captures DEBUG so refresh failures can be traced afterwards.
    uvicorn and httpx log through the stdlib; their records are forwarded here.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    logger.add(
        "logs/memebubbles_{time:YYYY-MM-DD}.log",
        rotation="20 MB",
        retention="3 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
    intercept_stdlib_logging()

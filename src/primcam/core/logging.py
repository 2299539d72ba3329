"""
Structured logging configuration for primcam.

primcam logs through two front ends. The pipeline, slicer and G-code
emitter use structlog event loggers (``get_logger``) with keyword fields;
the pure geometry modules (``slicing.contour``, ``slicing.toolpath_generator``)
use plain ``logging.getLogger`` with %-style messages. Both end up in the
same stdlib handlers, rendered by one structlog formatter, so a run reads
as a single stream in either console or JSON form.

Usage::

    from primcam.core.logging import component_context, configure_logging, get_logger

    configure_logging(level="DEBUG")  # Call once at startup
    logger = get_logger(__name__)
    with component_context("cube"):
        logger.info("slice_complete", levels=11, contours=11)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

# Loggers that write %-style messages through the standard library.
STDLIB_LOGGERS = ("primcam.slicing.contour", "primcam.slicing.toolpath_generator")


def _stdlib_pre_chain() -> list[structlog.types.Processor]:
    """Processors applied to records that did not come from structlog."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        # logger.info("Generated toolpath: %d points", n)
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for both structlog and stdlib loggers.

    Call this once at application startup (cli.py does).

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: If True, output JSON lines. If False, output colored
                     console-friendly lines.
        log_file: Optional path to write logs to in addition to stderr.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )
    for name in STDLIB_LOGGERS:
        logging.getLogger(name).setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_stdlib_pre_chain(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger for the given module name.

    Args:
        name: Module name, typically ``__name__``.

    Returns:
        A bound structlog logger instance.
    """
    return structlog.get_logger(name)


@contextmanager
def component_context(component_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``component``."""
    with structlog.contextvars.bound_contextvars(component=component_id):
        yield

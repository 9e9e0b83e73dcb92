import logging
import sys
from typing import Optional

import structlog
from structlog.stdlib import add_log_level, add_logger_name


def setup_logging(level: int = logging.INFO, colors: Optional[bool] = None) -> None:
    """
    Route structlog through standard logging at ``level`` with console output.
    Colours default to on only when stderr is a terminal.
    """
    if colors is None:
        colors = sys.stderr.isatty()
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_logger_name,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

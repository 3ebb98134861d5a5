"""
Structured logging for the handover engine.

All modules log through structlog with dotted event names
('handover.started', 'ros_merger.stale_section', ...). Request-scoped ids
(trace, workspace, deal, event) are bound with logging_context() and merged
into every entry by structlog's contextvars processor; values passed
explicitly to a log call win over bound ones.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

SERVICE_NAME = 'handover-engine'


def add_service(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Tag entries with the service name so shared log sinks can filter."""
    event_dict.setdefault('service', SERVICE_NAME)
    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the process.

    Args:
        json_output: JSON lines (deployed service) instead of console output
        log_level: Override log level (defaults to config.LOG_LEVEL)
    """
    level_num = getattr(logging, (log_level or config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(format='%(message)s', stream=sys.stdout, level=level_num)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso', utc=True),
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def current_context() -> dict[str, Any]:
    """Ids currently bound by logging_context()."""
    return structlog.contextvars.get_contextvars()


@contextmanager
def logging_context(**ids: str | None) -> Generator[None, None, None]:
    """
    Bind request ids for the duration of the block.

    None values are skipped, so callers can pass optional ids straight
    through. Nested blocks restore the outer values on exit.

    Usage:
        with logging_context(workspace_id=ws, deal_id=deal_id, trace_id=None):
            logger.info('handover.started')
    """
    bound = {k: v for k, v in ids.items() if v is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


class OperationTimer:
    """
    Per-stage wall-clock timings for a multi-step operation.

    Usage:
        timer = OperationTimer()
        with timer.stage('derive_roles'):
            ...
        logger.info('handover.complete', **timer.summary())
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self._started = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        began = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - began) * 1000

    def record(self, name: str, duration_ms: float) -> None:
        self.stages[name] = duration_ms

    @property
    def total_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def summary(self) -> dict[str, float]:
        """Flat log fields: total_ms plus one <stage>_ms per stage."""
        fields = {f'{name}_ms': round(ms, 2) for name, ms in self.stages.items()}
        fields['total_ms'] = round(self.total_ms, 2)
        return fields


# Console output until the HTTP service reconfigures from its settings
configure_logging(json_output=config.LOG_JSON)

"""Server-side log output.

The CLI logs through rich (``utils.config.setup_logging``). The API server
instead renders every record, from structlog or from a plain module logger,
through one structlog formatter so background jobs can be followed by their
``job_id``.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

from utils.config import NOISY_LOGGERS

# Set by the background job runner for the lifetime of one job task
job_id_var: ContextVar[str | None] = ContextVar("job_id", default=None)


def _inject_job_id(_logger, _method_name, event_dict):
    job_id = job_id_var.get()
    if job_id:
        event_dict.setdefault("job_id", job_id)
    return event_dict


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_server_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Route all server logging through structlog.

    Args:
        log_level: Root level name, e.g. "INFO"
        json_output: One JSON object per line instead of the console layout
    """
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _inject_job_id,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Plain logging.getLogger(__name__) records only get these steps
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_log_level, _inject_job_id, timestamper],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level.upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_job_context(job_id: str) -> None:
    job_id_var.set(job_id)


def clear_job_context() -> None:
    job_id_var.set(None)

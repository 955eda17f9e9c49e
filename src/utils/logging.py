"""
Logging Configuration

All modules log through loguru with a bound ``name``. Records emitted while
a scheduler job runs also carry the job name in ``extra[job]``, so a cycle's
ingestion, matching and draft lines can be filtered together.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> [{extra[job]}] - <level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_logs: bool = False,
) -> None:
    """
    Replace loguru's default sink with the reconciler's sinks.

    Args:
        level: Minimum level for every sink
        log_file: Also write rotated logs to this path
        json_logs: Serialize records as JSON instead of the text format
    """
    logger.remove()
    logger.configure(extra={"name": "reconciler", "job": "-"})

    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, format=TEXT_FORMAT, level=level, colorize=True)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="50 MB",
            retention="14 days",
            format=TEXT_FORMAT,
            level=level,
            colorize=False,
            serialize=json_logs,
        )

    logger.bind(name=__name__).debug(f"Logging to stderr at {level} (json={json_logs})")


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    return logger.bind(name=name)


def job_context(job: str):  # type: ignore[no-untyped-def]
    """Tag every record logged inside the block with the scheduler job name."""
    return logger.contextualize(job=job)

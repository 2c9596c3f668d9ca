"""
Utility functions for pdtemplate.

Includes logging setup and the formatter for faulted batch outcomes.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from pdtemplate.schemas import BatchOutcome, MutationRequest, describe_request


# Global console for pretty output
console = Console()


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: str = "INFO",
    log_format: str = "pretty",
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for a deployment run.

    Args:
        log_file: Optional path to a log file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        console_output: Also log to console

    Returns:
        Configured logger
    """
    logger = logging.getLogger("pdtemplate")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=console, rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())

        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "step"):
            log_data["step"] = record.step
        if hasattr(record, "entity"):
            log_data["entity"] = record.entity
        if hasattr(record, "request_index"):
            log_data["request_index"] = record.request_index

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def log_execute_multiple_errors(
    logger: logging.Logger,
    outcome: BatchOutcome,
    requests: Optional[Sequence[MutationRequest]] = None,
) -> int:
    """
    Log one error line per failed item of a batch outcome.

    Positions are reported 1-based ("Request 2 of 3"). When the submitted
    requests are supplied, the line also names the request kind and target.

    Args:
        logger: Logger to write to
        outcome: Outcome returned by execute_multiple
        requests: The submitted requests, in submission order

    Returns:
        Number of error lines written
    """
    total = len(outcome)
    count = 0
    for fault in outcome.faults:
        target = ""
        if requests is not None and 0 <= fault.index < len(requests):
            target = f" ({describe_request(requests[fault.index])})"
        code = f" [{fault.code}]" if fault.code else ""
        logger.error(
            f"Request {fault.index + 1} of {total}{target} failed{code}: {fault.message}",
            extra={"request_index": fault.index},
        )
        count += 1
    return count

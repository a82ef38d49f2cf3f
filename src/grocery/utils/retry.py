"""Re-run a command when a concurrent writer got to the aggregate first.

Protean checks the aggregate version on save and raises ExpectedVersionError
on a mismatch. The whole command is processed again rather than the write,
because the competing change may have altered which transitions are legal.
"""

import os

import structlog
from protean.exceptions import ExpectedVersionError

from grocery.domain import grocery

logger = structlog.get_logger(__name__)

DEFAULT_ATTEMPTS = 3


def max_attempts() -> int:
    return max(1, int(os.getenv("COMMAND_RETRY_ATTEMPTS", DEFAULT_ATTEMPTS)))


def process_with_retry(command, attempts: int | None = None):
    """Process `command` synchronously, retrying on version conflicts."""
    attempts = attempts or max_attempts()
    for attempt in range(1, attempts + 1):
        try:
            return grocery.process(command, asynchronous=False)
        except ExpectedVersionError:
            logger.info(
                "Version conflict, retrying command",
                command=command.__class__.__name__,
                attempt=attempt,
                max_attempts=attempts,
            )
            if attempt == attempts:
                raise

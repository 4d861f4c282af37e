"""Command processing with optimistic-concurrency retries.

Every aggregate carries a version. When a command handler persists an
aggregate that another request changed in the meantime, Protean raises
``ExpectedVersionError`` and the handler's Unit of Work is discarded. The
command is then processed again against freshly loaded state, so a losing
checkout sees the post-debit stock counter.
"""

import os

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from storefront.errors import ConcurrencyConflict

logger = structlog.get_logger(__name__)

DEFAULT_RETRIES = 3


def conflict_retries() -> int:
    try:
        return max(int(os.environ.get("STOREFRONT_CONFLICT_RETRIES", DEFAULT_RETRIES)), 0)
    except ValueError:
        return DEFAULT_RETRIES


def process(command, retries: int | None = None):
    """Process ``command`` synchronously and return the handler's result."""
    retries = conflict_retries() if retries is None else retries
    command_name = type(command).__name__

    for attempt in range(retries + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError as exc:
            if attempt < retries:
                logger.warning("Concurrent update, retrying command", command=command_name, attempt=attempt + 1)
                continue
            logger.error("Concurrent update, giving up", command=command_name, attempts=attempt + 1)
            raise ConcurrencyConflict(
                "The resource was changed by another request, please retry",
                command=command_name,
            ) from exc

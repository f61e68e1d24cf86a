"""Outcome classification for completed outbound calls."""

from collections.abc import Collection

FAILURE_STATUS_FLOOR = 400


def is_success_status(
    status_code: int,
    allowed_status: Collection[int] | None = None,
) -> bool:
    """Return true when ``status_code`` counts as a successful outcome.

    With a non-empty allow-list the status must be a member of it; otherwise
    any status below 400 is a success.
    """
    if allowed_status:
        return status_code in allowed_status
    return status_code < FAILURE_STATUS_FLOOR

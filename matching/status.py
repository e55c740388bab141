"""
matching/status.py

Match status rules.

Automatic matching runs may create records and refresh ``pending`` or
``confirmed`` ones. ``manual`` and ``rejected`` are reviewer decisions and
only a reviewer can change them.
"""

from __future__ import annotations

from matching.settings import DEFAULT_MATCHING_SETTINGS, MatchingSettings
from matching.types import MatchMethod, MatchStatus

TRUSTED_STATUSES = frozenset({MatchStatus.CONFIRMED, MatchStatus.MANUAL})
PROTECTED_STATUSES = frozenset({MatchStatus.MANUAL, MatchStatus.REJECTED})
ALL_STATUSES = frozenset(
    {MatchStatus.CONFIRMED, MatchStatus.PENDING, MatchStatus.MANUAL, MatchStatus.REJECTED}
)

# current status -> statuses a reviewer may move it to
_REVIEW_TRANSITIONS: dict[str, frozenset[str]] = {
    MatchStatus.PENDING: frozenset({MatchStatus.CONFIRMED, MatchStatus.MANUAL, MatchStatus.REJECTED}),
    MatchStatus.CONFIRMED: frozenset({MatchStatus.CONFIRMED, MatchStatus.MANUAL, MatchStatus.REJECTED}),
    MatchStatus.MANUAL: frozenset({MatchStatus.MANUAL, MatchStatus.REJECTED}),
    MatchStatus.REJECTED: frozenset({MatchStatus.MANUAL, MatchStatus.PENDING}),
}


class InvalidMatchTransitionError(ValueError):
    """Raised when a review action is not allowed from the current status."""


def status_for_confidence(
    confidence: int,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> str:
    if confidence >= settings.high_confidence:
        return MatchStatus.CONFIRMED
    return MatchStatus.PENDING


def method_for_confidence(
    confidence: int,
    settings: MatchingSettings = DEFAULT_MATCHING_SETTINGS,
) -> str:
    if confidence >= settings.high_confidence:
        return MatchMethod.AUTO_EXACT
    if confidence >= settings.medium_confidence:
        return MatchMethod.AUTO_FUZZY
    return MatchMethod.NONE


def is_trusted(status: str | None) -> bool:
    return status in TRUSTED_STATUSES


def automatic_write_allowed(current_status: str | None) -> bool:
    """
    True when an automatic run may overwrite a record in ``current_status``.

    ``None`` means no record exists yet.
    """

    return current_status not in PROTECTED_STATUSES


def review_transition(current_status: str, target_status: str) -> str:
    """
    Validate a reviewer action and return the new status.

    Raises InvalidMatchTransitionError for unknown or illegal moves.
    """

    if target_status not in ALL_STATUSES:
        raise InvalidMatchTransitionError(f"Unknown match status '{target_status}'.")
    allowed = _REVIEW_TRANSITIONS.get(current_status, frozenset())
    if target_status not in allowed:
        raise InvalidMatchTransitionError(
            f"Cannot move match from '{current_status}' to '{target_status}'."
        )
    return target_status

"""Verification state machine for (run, employee) pairs."""

from __future__ import annotations

from enum import Enum


class VerificationState(str, Enum):
    """Verification status values."""

    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    FLAGGED = "flagged"
    AUTO_OK = "auto_ok"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class VerificationStateMachine:
    """State machine for per-employee verification within a run.

    Unverified is never stored: a missing row means unverified, so nothing
    can transition back to it.

    Allowed transitions:
    - unverified → verified | flagged | auto_ok
    - verified → verified (re-verification overwrites) | flagged
    - flagged → verified | flagged
    - auto_ok → verified | flagged

    There is no terminal state; a run can be re-verified indefinitely.
    """

    # Define valid transitions: {from_status: [allowed_to_statuses]}
    VALID_TRANSITIONS: dict[str, list[str]] = {
        VerificationState.UNVERIFIED: [
            VerificationState.VERIFIED,
            VerificationState.FLAGGED,
            VerificationState.AUTO_OK,
        ],
        VerificationState.VERIFIED: [VerificationState.VERIFIED, VerificationState.FLAGGED],
        VerificationState.FLAGGED: [VerificationState.VERIFIED, VerificationState.FLAGGED],
        VerificationState.AUTO_OK: [VerificationState.VERIFIED, VerificationState.FLAGGED],
    }

    @classmethod
    def current_state(cls, stored_status: str | None) -> str:
        """Resolve the effective state of a pair from its stored row (or absence)."""
        if stored_status is None:
            return VerificationState.UNVERIFIED
        return stored_status

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def is_reviewed(cls, status: str | None) -> bool:
        """Check if a pair needs no further reviewer attention."""
        return cls.current_state(status) in (
            VerificationState.VERIFIED,
            VerificationState.AUTO_OK,
        )

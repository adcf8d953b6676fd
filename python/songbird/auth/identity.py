"""Caller identity and the saga auth gate.

The auth middleware resolves a SessionContext from the bearer token (or None
for anonymous callers). Every mutating service receives that context as an
explicit argument and calls verify_identity() before doing anything else.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from songbird.errors import AuthFailure


@dataclass(frozen=True)
class SessionContext:
    """An authenticated session as resolved from a verified JWT.

    Attributes:
        user_id: The caller's user ID (from the JWT sub claim).
        expires_at: When the session stops being valid (JWT exp claim).
    """

    user_id: UUID
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "SessionContext":
        """Build a session from verified JWT claims."""
        return cls(
            user_id=UUID(claims["sub"]),
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
        )


@dataclass(frozen=True)
class Identity:
    """The verified caller of a mutating operation."""

    user_id: UUID


def verify_identity(
    session: SessionContext | None,
    action: str = "do that",
    now: datetime | None = None,
) -> Identity:
    """Confirm the caller holds a valid, unexpired session.

    Args:
        session: Session resolved by the auth middleware, or None.
        action: Verb phrase for the user-facing message ("upload songs").
        now: Clock override for tests.

    Returns:
        The caller's Identity.

    Raises:
        AuthFailure: No session, or the session has expired.
    """
    message = f"You must be logged in to {action}"
    if session is None:
        raise AuthFailure(message)

    now = now or datetime.now(UTC)
    if session.expires_at <= now:
        raise AuthFailure(message)

    return Identity(user_id=session.user_id)

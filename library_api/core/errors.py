"""Domain errors raised by the catalog, membership and lending services.

Services raise these instead of HTTP errors; ``library_api.main`` maps each
``code`` onto a status code and renders ``detail`` the same way for every
endpoint.
"""

from __future__ import annotations

from typing import Any, Optional


class LibraryError(Exception):
    """Base class for business-rule failures."""

    code = "library_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NotFound(LibraryError):
    """Raised when an id does not resolve to an entity."""

    code = "not_found"


class DuplicateKey(LibraryError):
    """Raised when an isbn or email is already taken."""

    code = "duplicate_key"


class PolicyViolation(LibraryError):
    """Raised when a lending rule rejects the request.

    ``rule`` names the rule that was violated, e.g. ``"unavailable"``.
    """

    code = "policy_violation"

    def __init__(self, rule: str, message: Optional[str] = None) -> None:
        super().__init__(message or rule)
        self.rule = rule

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["rule"] = self.rule
        return detail


class InvalidState(LibraryError):
    """Raised when a mutation would break a stored invariant."""

    code = "invalid_state"


class Conflict(LibraryError):
    """Raised when dependent records block a deletion."""

    code = "conflict"


class LockTimeout(LibraryError):
    """Raised when an entity lock could not be acquired in time."""

    code = "lock_timeout"


RULE_INACTIVE_MEMBER = "inactive member"
RULE_UNAVAILABLE = "unavailable"
RULE_LIMIT_EXCEEDED = "limit exceeded"
RULE_ALREADY_RETURNED = "already returned"

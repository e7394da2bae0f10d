"""
aaas_core.validation
--------------------
Input checks shared by the registry, the authorization store and the role
registry. Each helper raises the matching LedgerError and returns the
normalized value on success.
"""

from __future__ import annotations
from typing import Optional, Sequence, Union

from .constants import ZERO_ADDRESS, Role
from .errors import (
    EmptyInputError, InvalidPrincipalError, LengthMismatchError,
    MissingExpirationError, UnknownRoleError,
)


def is_null_principal(principal: Optional[str]) -> bool:
    if principal is None:
        return True
    p = principal.strip()
    return p == "" or p.lower() == ZERO_ADDRESS


def normalize_principal(principal: Optional[str]) -> str:
    """Canonical form used for storage and comparison: trimmed, lowercase hex."""
    return (principal or "").strip().lower()


def require_principal(principal: Optional[str], what: str = "principal") -> str:
    if is_null_principal(principal):
        raise InvalidPrincipalError(f"Invalid {what} address")
    return normalize_principal(principal)


def require_text(value: Optional[str], what: str) -> str:
    if value is None or value == "":
        raise EmptyInputError(f"{what} cannot be empty")
    return value


def parse_role(role: Union[Role, str, None]) -> Role:
    if isinstance(role, Role):
        return role
    if role is None or str(role).strip() == "":
        raise EmptyInputError("Role cannot be empty")
    try:
        return Role(str(role).strip().lower())
    except ValueError:
        raise UnknownRoleError(f"Unknown role: {role!r}") from None


def require_duration(role: Role, duration: Optional[int]) -> int:
    """Normalize a grant duration in seconds. 0 means no expiry."""
    duration = int(duration or 0)
    if duration < 0:
        raise MissingExpirationError("Duration cannot be negative")
    if role is Role.TEMPORARY and duration == 0:
        raise MissingExpirationError("Temporary roles must have expiration duration")
    return duration


def require_batch(*columns: Sequence) -> int:
    """Check that parallel batch inputs are non-empty and equally long."""
    lengths = {len(c) for c in columns}
    if len(lengths) > 1:
        raise LengthMismatchError("Array length mismatch")
    n = lengths.pop() if lengths else 0
    if n == 0:
        raise EmptyInputError("Empty arrays provided")
    return n

"""
AAAS Core Package
=================
Access-as-a-Service ledger core: asset ownership, time-scoped authorization
grants, access decisions and change notifications.

Provides:
- AccessLedger entry points (atomic operations with injected `now`)
- AssetRegistry, AuthorizationStore, AccessDecisionEngine, RoleRegistry
- Pluggable storage (memory, SQLite) and event transports (local, HTTP, Kafka)
"""

from .constants import Role, ZERO_ADDRESS, SUPERADMIN_ROLE
from .errors import (
    LedgerError, EmptyInputError, DuplicateKeyError, NotFoundError, UnauthorizedError,
    InvalidPrincipalError, MissingExpirationError, LengthMismatchError,
    IndexOutOfRangeError, UnknownRoleError,
)
from .events import LedgerEvent
from .authorization import AccessEntry
from .ledger import AccessLedger, load_ledger

__version__ = "0.1.0"
__all__ = [
    "AccessLedger",
    "load_ledger",
    "AccessEntry",
    "LedgerEvent",
    "Role",
    "ZERO_ADDRESS",
    "SUPERADMIN_ROLE",
    "LedgerError",
    "EmptyInputError",
    "DuplicateKeyError",
    "NotFoundError",
    "UnauthorizedError",
    "InvalidPrincipalError",
    "MissingExpirationError",
    "LengthMismatchError",
    "IndexOutOfRangeError",
    "UnknownRoleError",
]

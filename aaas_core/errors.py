"""
aaas_core.errors
----------------
Typed failure signals for ledger operations.

Every mutating entry point raises one of these and leaves no partial state
behind. Read-only lookups never raise for a missing key.
"""

from __future__ import annotations
from typing import Any, Dict


class LedgerError(Exception):
    code: str = "LedgerError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class EmptyInputError(LedgerError):
    code = "EmptyInput"


class DuplicateKeyError(LedgerError):
    code = "DuplicateKey"


class NotFoundError(LedgerError):
    code = "NotFound"


class UnauthorizedError(LedgerError):
    code = "Unauthorized"


class InvalidPrincipalError(LedgerError):
    code = "InvalidPrincipal"


class MissingExpirationError(LedgerError):
    code = "MissingExpiration"


class LengthMismatchError(LedgerError):
    code = "LengthMismatch"


class IndexOutOfRangeError(LedgerError):
    code = "IndexOutOfRange"


class UnknownRoleError(LedgerError):
    code = "UnknownRole"

# aaas_core/role_registry.py
"""
RoleRegistry: global (principal, role) flags with a single bootstrap
creator.

The creator is written once to the store's metadata and never changes; it
holds every role implicitly. Anyone holding SUPERADMIN_ROLE may also assign
and unassign roles. This model is independent of assets.
"""

from __future__ import annotations

from . import events
from .constants import SUPERADMIN_ROLE
from .errors import UnauthorizedError
from .logger import get_logger
from .notifier import ChangeNotifier
from .storage.provider import StorageProvider
from .validation import normalize_principal, require_principal, require_text, is_null_principal

log = get_logger("AAAS.Roles")

CREATOR_META_KEY = "role_registry.creator"


class RoleRegistry:
    def __init__(self, store: StorageProvider, notifier: ChangeNotifier, creator: str):
        self.store = store
        self.notifier = notifier

        stored = store.get_meta(CREATOR_META_KEY)
        if stored is None:
            creator = require_principal(creator, "creator")
            with store.transaction():
                store.set_meta(CREATOR_META_KEY, creator)
            stored = creator
            log.info(f"[ROLES] bootstrap creator={creator}")
        elif not is_null_principal(creator) and normalize_principal(creator) != stored:
            log.warning(f"[ROLES] creator already bootstrapped as {stored}; ignoring {creator}")
        self.creator = stored

    def _require_superadmin(self, caller: str) -> str:
        caller = require_principal(caller, "caller")
        if caller != self.creator and not self.store.get_role_flag(caller, SUPERADMIN_ROLE):
            raise UnauthorizedError("Only the creator or a superadmin can change roles")
        return caller

    def assign_role(self, caller: str, principal: str, role: str, now: int) -> None:
        self._set(caller, principal, role, True, now)

    def unassign_role(self, caller: str, principal: str, role: str, now: int) -> None:
        self._set(caller, principal, role, False, now)

    def _set(self, caller: str, principal: str, role: str, assigned: bool, now: int) -> None:
        self._require_superadmin(caller)
        principal = require_principal(principal)
        role = require_text(role, "Role")
        self.store.set_role_flag(principal, role, assigned)
        self.notifier.emit(events.role_change(principal, role, assigned, now))
        log.info(f"[ROLES] {principal} {role!r} assigned={assigned}")

    def is_assigned_role(self, principal: str, role: str) -> bool:
        if is_null_principal(principal) or not role:
            return False
        return self.store.get_role_flag(normalize_principal(principal), role)

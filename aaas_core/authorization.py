"""
aaas_core.authorization
-----------------------
Per-asset grants and the access decision built on top of them.

AuthorizationStore keeps one AuthorizationRecord per (asset, principal).
The per-asset principal list only grows: re-granting updates the record in
place and revoking only clears `active`. Expiry is never written anywhere;
it is derived on every read from `expires_at` and the `now` supplied by the
caller, so a grant that lapsed yesterday needs no cleanup.

    Unset ──add──▶ Active(no expiry | expiry) ──remove──▶ Revoked
                       ▲        │ add (overwrite)            │
                       └────────┴────────────add─────────────┘

AccessDecisionEngine combines ownership and grants into allow/deny:
ownership always wins, then an effective grant, else deny.
"""

from __future__ import annotations
from typing import List, NamedTuple, Optional, Sequence, Union

from . import events
from .constants import POLICY_ANY_ACTIVE, POLICY_ADMIN_ONLY, MANAGEMENT_POLICIES, Role
from .errors import IndexOutOfRangeError, NotFoundError, UnauthorizedError
from .logger import get_logger
from .notifier import ChangeNotifier
from .registry import AssetRegistry
from .storage.models import AssetRecord, AuthorizationRecord
from .storage.provider import StorageProvider
from .validation import (
    normalize_principal, parse_role, require_batch, require_duration, require_principal, require_text,
)

log = get_logger("AAAS.Authorization")

RoleLike = Union[Role, str]


class AuthorizationStore:
    def __init__(
        self,
        store: StorageProvider,
        notifier: ChangeNotifier,
        registry: AssetRegistry,
        management_policy: str = POLICY_ANY_ACTIVE,
        allow_non_temporary_expiry: bool = True,
    ):
        if management_policy not in MANAGEMENT_POLICIES:
            raise ValueError(f"Unknown management policy: {management_policy}")
        self.store = store
        self.notifier = notifier
        self.registry = registry
        self.management_policy = management_policy
        self.allow_non_temporary_expiry = allow_non_temporary_expiry

    # ------------------------------------------------------------------
    # management rights
    # ------------------------------------------------------------------
    def can_manage(self, asset: AssetRecord, caller: str, now: int) -> bool:
        if caller == asset.owner:
            return True
        rec = self.store.get_authorization(asset.key, caller)
        if not rec or not rec.is_effective(now):
            return False
        if self.management_policy == POLICY_ADMIN_ONLY:
            return rec.role is Role.ADMIN
        return True

    def _require_manager(self, key: str, caller: str, now: int, action: str) -> AssetRecord:
        caller = require_principal(caller, "caller")
        require_text(key, "Asset key")
        asset = self.registry.require_asset(key)
        if not self.can_manage(asset, caller, now):
            raise UnauthorizedError(f"Only the owner or admins can {action} authorizations.")
        return asset

    # ------------------------------------------------------------------
    # single-item transitions
    # ------------------------------------------------------------------
    def add_authorization(
        self,
        caller: str,
        key: str,
        principal: str,
        role: RoleLike,
        now: int,
        duration: Optional[int] = None,
    ) -> AuthorizationRecord:
        self._require_manager(key, caller, now, "add")
        principal = require_principal(principal)
        role = parse_role(role)
        duration = require_duration(role, duration)

        if duration and role is not Role.TEMPORARY and not self.allow_non_temporary_expiry:
            log.warning(f"[AUTH] ignoring duration={duration} for {role.value} grant on {key!r}")
            duration = 0

        expires_at = now + duration if duration else 0
        rec = self.store.upsert_authorization(
            AuthorizationRecord(asset_key=key, principal=principal, role=role, active=True, expires_at=expires_at)
        )
        self.notifier.emit(events.authorization_created(
            principal, key, role.value, expires_at, normalize_principal(caller), now))
        log.info(f"[AUTH] {key!r} +{principal} role={role.value} expires_at={expires_at}")
        return rec

    def remove_authorization(self, caller: str, key: str, principal: str, now: int) -> AuthorizationRecord:
        self._require_manager(key, caller, now, "remove")
        principal = require_principal(principal)
        rec = self.store.get_authorization(key, principal)
        if not rec:
            raise NotFoundError(f"No authorization for {principal} on {key!r}")

        rec.active = False
        rec = self.store.upsert_authorization(rec)
        self.notifier.emit(events.authorization_removed(principal, key, normalize_principal(caller), now))
        log.info(f"[AUTH] {key!r} -{principal}")
        return rec

    # ------------------------------------------------------------------
    # batches; callers wrap these in one transaction so that any failing
    # element discards the whole batch
    # ------------------------------------------------------------------
    def add_authorization_batch(
        self, caller: str, key: str, principals: Sequence[str], roles: Sequence[RoleLike], now: int
    ) -> List[AuthorizationRecord]:
        require_batch(principals, roles)
        return [self.add_authorization(caller, key, p, r, now) for p, r in zip(principals, roles)]

    def add_authorization_batch_with_duration(
        self,
        caller: str,
        key: str,
        principals: Sequence[str],
        roles: Sequence[RoleLike],
        durations: Sequence[int],
        now: int,
    ) -> List[AuthorizationRecord]:
        require_batch(principals, roles, durations)
        return [
            self.add_authorization(caller, key, p, r, now, duration=d)
            for p, r, d in zip(principals, roles, durations)
        ]

    def remove_authorization_batch(
        self, caller: str, key: str, principals: Sequence[str], now: int
    ) -> List[AuthorizationRecord]:
        require_batch(principals)
        return [self.remove_authorization(caller, key, p, now) for p in principals]

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_authorization_count(self, key: str) -> int:
        return self.store.authorization_count(key)

    def get_authorization_at_index(self, key: str, index: int) -> str:
        principal = self.store.authorization_principal_at(key, index) if index >= 0 else None
        if principal is None:
            raise IndexOutOfRangeError(f"Authorization index {index} out of range for {key!r}")
        return principal

    def get_authorization(self, key: str, principal: str) -> Optional[Role]:
        """Role of an active grant, None when absent or revoked."""
        rec = self.store.get_authorization(key, normalize_principal(principal))
        return rec.role if rec and rec.active else None

    def get_authorization_record(self, key: str, principal: str) -> Optional[AuthorizationRecord]:
        return self.store.get_authorization(key, normalize_principal(principal))

    def is_authorized(self, key: str, principal: str, now: int) -> bool:
        rec = self.store.get_authorization(key, normalize_principal(principal))
        return bool(rec and rec.is_effective(now))


class AccessEntry(NamedTuple):
    principal: str
    key: str
    timestamp: int
    granted: bool


class AccessDecisionEngine:
    def __init__(self, registry: AssetRegistry, authorizations: AuthorizationStore, notifier: ChangeNotifier):
        self.registry = registry
        self.authorizations = authorizations
        self.notifier = notifier

    def decide(self, key: str, caller: str, now: int) -> bool:
        caller = normalize_principal(caller)
        asset = self.registry.require_asset(key)
        if caller == asset.owner:
            return True
        return self.authorizations.is_authorized(key, caller, now)

    def can_access(self, key: str, principal: str, now: int) -> bool:
        """decide() without the NotFound failure; no audit event."""
        try:
            return self.decide(key, principal, now)
        except NotFoundError:
            return False

    def get_access(self, caller: str, key: str, now: int) -> bool:
        caller = require_principal(caller, "caller")
        granted = self.can_access(key, caller, now)
        self.notifier.emit(events.access_log(caller, key, granted, now))
        log.info(f"[ACCESS] {caller} {key!r} granted={granted}")
        return granted

    def log_access_batch(self, caller: str, entries: Sequence[AccessEntry], now: int) -> int:
        """
        Record access attempts verified outside the ledger (e.g. by a door
        controller working from a cached permission set).
        """
        caller = require_principal(caller, "caller")
        require_batch(entries)
        for entry in entries:
            entry = AccessEntry(*entry)
            asset = self.registry.require_asset(entry.key)
            if not self.authorizations.can_manage(asset, caller, now):
                raise UnauthorizedError(f"Only the owner or admins can log access for {entry.key!r}")
            principal = require_principal(entry.principal)
            self.notifier.emit(events.access_log(principal, entry.key, bool(entry.granted), int(entry.timestamp)))
        log.info(f"[ACCESS] {caller} logged {len(entries)} external access attempt(s)")
        return len(entries)

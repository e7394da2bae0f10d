"""
aaas_core.ledger
----------------
AccessLedger: the entry points external callers use.

Every mutating call runs as one operation: a global writer lock, a store
transaction, the component call, then event fan-out after commit. Any
LedgerError rolls the store back, drops the staged events and propagates
to the caller unchanged. `now` is always supplied by the caller; the ledger
never consults a wall clock for decisions.
"""

from __future__ import annotations
import os
import threading
from typing import Callable, List, Optional, Sequence, TypeVar

from . import events
from .authorization import AccessDecisionEngine, AccessEntry, AuthorizationStore, RoleLike
from .constants import DUPLICATE_KEY_REASON, POLICY_ANY_ACTIVE, Role
from .errors import DuplicateKeyError, LedgerError
from .events import LedgerEvent
from .logger import get_logger
from .notifier import ChangeNotifier
from .registry import AssetRegistry, AssetView
from .role_registry import RoleRegistry
from .storage import StorageProvider, InMemoryStorage, load_storage_provider
from .storage.models import AssetRecord, AuthorizationRecord
from .transport import BaseTransport, transport_factory

log = get_logger("AAAS.Ledger")

T = TypeVar("T")


class AccessLedger:
    def __init__(
        self,
        store: Optional[StorageProvider] = None,
        transport: Optional[BaseTransport] = None,
        role_creator: Optional[str] = None,
        management_policy: str = POLICY_ANY_ACTIVE,
        allow_non_temporary_expiry: bool = True,
        signing_key: Optional[bytes] = None,
        key_id: Optional[str] = None,
    ):
        self.store = store or InMemoryStorage()
        self.transport = transport
        self.notifier = ChangeNotifier(self.store, transport, signing_key=signing_key, key_id=key_id)
        self.registry = AssetRegistry(self.store, self.notifier)
        self.authorizations = AuthorizationStore(
            self.store, self.notifier, self.registry,
            management_policy=management_policy,
            allow_non_temporary_expiry=allow_non_temporary_expiry,
        )
        self.access = AccessDecisionEngine(self.registry, self.authorizations, self.notifier)
        self.roles = RoleRegistry(self.store, self.notifier, role_creator) if role_creator else None
        self._write_lock = threading.RLock()

    # ------------------------------------------------------------------
    # operation wrapper
    # ------------------------------------------------------------------
    def _run(self, name: str, fn: Callable[[], T]) -> T:
        with self._write_lock:
            try:
                with self.store.transaction():
                    result = fn()
            except LedgerError as e:
                self.notifier.discard()
                log.warning(f"[LEDGER] {name} rejected: {e.code}: {e.message}")
                raise
            except Exception:
                self.notifier.discard()
                log.exception(f"[LEDGER] {name} failed")
                raise
            self.notifier.flush()
            return result

    # ------------------------------------------------------------------
    # AssetRegistry
    # ------------------------------------------------------------------
    def create_asset(self, caller: str, key: str, description: str, *, now: int) -> AssetRecord:
        try:
            return self._run("create_asset", lambda: self.registry.create_asset(caller, key, description, now))
        except DuplicateKeyError:
            # rejection notice survives the discarded operation
            self._run("create_rejected", lambda: self.notifier.emit(
                events.create_rejected(caller, key, DUPLICATE_KEY_REASON, now)))
            raise

    def transfer_ownership(self, caller: str, key: str, new_owner: str, *, now: int) -> AssetRecord:
        return self._run("transfer_ownership", lambda: self.registry.transfer_ownership(caller, key, new_owner, now))

    def get_asset(self, key: str) -> AssetView:
        return self.registry.get_asset(key)

    def get_asset_count(self) -> int:
        return self.registry.get_asset_count()

    def get_asset_at_index(self, index: int) -> str:
        return self.registry.get_asset_at_index(index)

    def is_owner_of(self, principal: str, key: str) -> bool:
        return self.registry.is_owner_of(principal, key)

    # ------------------------------------------------------------------
    # AuthorizationStore
    # ------------------------------------------------------------------
    def add_authorization(
        self, caller: str, key: str, principal: str, role: RoleLike, *, now: int, duration: Optional[int] = None
    ) -> AuthorizationRecord:
        return self._run("add_authorization", lambda: self.authorizations.add_authorization(
            caller, key, principal, role, now, duration=duration))

    def remove_authorization(self, caller: str, key: str, principal: str, *, now: int) -> AuthorizationRecord:
        return self._run("remove_authorization", lambda: self.authorizations.remove_authorization(
            caller, key, principal, now))

    def add_authorization_batch(
        self, caller: str, key: str, principals: Sequence[str], roles: Sequence[RoleLike], *, now: int
    ) -> List[AuthorizationRecord]:
        return self._run("add_authorization_batch", lambda: self.authorizations.add_authorization_batch(
            caller, key, principals, roles, now))

    def add_authorization_batch_with_duration(
        self,
        caller: str,
        key: str,
        principals: Sequence[str],
        roles: Sequence[RoleLike],
        durations: Sequence[int],
        *,
        now: int,
    ) -> List[AuthorizationRecord]:
        return self._run("add_authorization_batch_with_duration",
                         lambda: self.authorizations.add_authorization_batch_with_duration(
                             caller, key, principals, roles, durations, now))

    def remove_authorization_batch(
        self, caller: str, key: str, principals: Sequence[str], *, now: int
    ) -> List[AuthorizationRecord]:
        return self._run("remove_authorization_batch", lambda: self.authorizations.remove_authorization_batch(
            caller, key, principals, now))

    def get_asset_authorization_count(self, key: str) -> int:
        return self.authorizations.get_authorization_count(key)

    def get_asset_authorization_at_index(self, key: str, index: int) -> str:
        return self.authorizations.get_authorization_at_index(key, index)

    def get_asset_authorization(self, key: str, principal: str) -> Optional[Role]:
        return self.authorizations.get_authorization(key, principal)

    def get_authorization_record(self, key: str, principal: str) -> Optional[AuthorizationRecord]:
        return self.authorizations.get_authorization_record(key, principal)

    def is_authorized(self, key: str, principal: str, now: int) -> bool:
        return self.authorizations.is_authorized(key, principal, now)

    # ------------------------------------------------------------------
    # AccessDecisionEngine
    # ------------------------------------------------------------------
    def get_access(self, caller: str, key: str, *, now: int) -> bool:
        return self._run("get_access", lambda: self.access.get_access(caller, key, now))

    def verify_access(self, key: str, caller: str, now: int) -> bool:
        return self.access.decide(key, caller, now)

    def can_access(self, key: str, principal: str, now: int) -> bool:
        return self.access.can_access(key, principal, now)

    def log_access_batch(self, caller: str, entries: Sequence[AccessEntry], *, now: int) -> int:
        return self._run("log_access_batch", lambda: self.access.log_access_batch(caller, entries, now))

    # ------------------------------------------------------------------
    # RoleRegistry
    # ------------------------------------------------------------------
    def _role_registry(self) -> RoleRegistry:
        if self.roles is None:
            raise RuntimeError("RoleRegistry not configured; pass role_creator")
        return self.roles

    def assign_role(self, caller: str, principal: str, role: str, *, now: int) -> None:
        roles = self._role_registry()
        self._run("assign_role", lambda: roles.assign_role(caller, principal, role, now))

    def unassign_role(self, caller: str, principal: str, role: str, *, now: int) -> None:
        roles = self._role_registry()
        self._run("unassign_role", lambda: roles.unassign_role(caller, principal, role, now))

    def is_assigned_role(self, principal: str, role: str) -> bool:
        return self._role_registry().is_assigned_role(principal, role)

    # ------------------------------------------------------------------
    # audit log
    # ------------------------------------------------------------------
    def event_log(self, since_seq: int = 0) -> List[LedgerEvent]:
        """Committed events in sequence order, for indexers rebuilding state."""
        return [LedgerEvent.from_dict({**r.payload, "seq": r.seq}) for r in self.store.list_events(since_seq)]

    def close(self) -> None:
        if self.transport:
            self.transport.close()
        self.store.close()


def load_ledger(config: dict | None = None) -> AccessLedger:
    """
    Build an AccessLedger from config/env:

      AAAS_STORAGE_PROVIDER, AAAS_DB_PATH       → storage
      AAAS_TRANSPORT, AAAS_INDEXER_URL, KAFKA_* → transport
      AAAS_MANAGEMENT_POLICY                     → any_active | admin_only
      AAAS_ALLOW_NON_TEMPORARY_EXPIRY            → 1 | 0
      AAAS_ROLE_CREATOR                          → RoleRegistry bootstrap
    """
    config = config or {}
    return AccessLedger(
        store=load_storage_provider(config),
        transport=transport_factory(config),
        role_creator=config.get("role_creator") or os.getenv("AAAS_ROLE_CREATOR"),
        management_policy=(config.get("management_policy")
                           or os.getenv("AAAS_MANAGEMENT_POLICY", POLICY_ANY_ACTIVE)).lower(),
        allow_non_temporary_expiry=str(config.get("allow_non_temporary_expiry",
                                                  os.getenv("AAAS_ALLOW_NON_TEMPORARY_EXPIRY", "1"))) == "1",
    )

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Optional, Dict, Any, List

from aaas_core.storage.models import AssetRecord, AuditRecord, AuthorizationRecord
from aaas_core.storage.provider import StorageProvider
from aaas_core.utils import now_ts


class InMemoryStorage(StorageProvider):
    """
    Dict/list ledger state guarded by one RLock.

    A transaction holds the lock from entry to commit, and every read takes
    it too, so readers only ever see committed state. Writes inside a
    transaction push an undo step; rollback replays them newest first and
    truncates the audit log back to its length on entry.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._undo: List[Callable[[], None]] = []
        self.assets: Dict[str, AssetRecord] = {}
        self.asset_keys: List[str] = []
        self.authorizations: Dict[tuple, AuthorizationRecord] = {}
        self.authorization_lists: Dict[str, List[str]] = {}
        self.role_flags = set()
        self.meta: Dict[str, str] = {}
        self.audit: List[AuditRecord] = []

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth:
                # nested blocks join the outer transaction
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            audit_len = len(self.audit)
            self._depth = 1
            self._undo = []
            try:
                yield
            except BaseException:
                for step in reversed(self._undo):
                    step()
                del self.audit[audit_len:]
                raise
            finally:
                self._undo = []
                self._depth = 0

    def _on_rollback(self, step: Callable[[], None]) -> None:
        if self._depth:
            self._undo.append(step)

    # assets
    def get_asset(self, key: str) -> Optional[AssetRecord]:
        with self._lock:
            rec = self.assets.get(key)
            return replace(rec) if rec else None

    def insert_asset(self, rec: AssetRecord) -> None:
        with self._lock:
            new_list = rec.key not in self.authorization_lists
            self.assets[rec.key] = replace(rec)
            self.asset_keys.append(rec.key)
            self.authorization_lists.setdefault(rec.key, [])

            def undo():
                self.assets.pop(rec.key, None)
                self.asset_keys.pop()
                if new_list:
                    self.authorization_lists.pop(rec.key, None)
            self._on_rollback(undo)

    def update_asset_owner(self, key: str, owner: str) -> None:
        with self._lock:
            rec = self.assets.get(key)
            if not rec:
                return
            self.assets[key] = replace(rec, owner=owner)
            self._on_rollback(lambda: self.assets.__setitem__(key, rec))

    def asset_count(self) -> int:
        with self._lock:
            return len(self.asset_keys)

    def asset_key_at(self, index: int) -> Optional[str]:
        with self._lock:
            if 0 <= index < len(self.asset_keys):
                return self.asset_keys[index]
            return None

    # authorizations
    def get_authorization(self, asset_key: str, principal: str) -> Optional[AuthorizationRecord]:
        with self._lock:
            rec = self.authorizations.get((asset_key, principal))
            return replace(rec) if rec else None

    def upsert_authorization(self, rec: AuthorizationRecord) -> AuthorizationRecord:
        with self._lock:
            slot = (rec.asset_key, rec.principal)
            existing = self.authorizations.get(slot)
            if existing:
                # index is fixed at first grant
                stored = replace(existing, role=rec.role, active=rec.active, expires_at=rec.expires_at)
                self.authorizations[slot] = stored
                self._on_rollback(lambda: self.authorizations.__setitem__(slot, existing))
                return replace(stored)

            principals = self.authorization_lists.setdefault(rec.asset_key, [])
            stored = replace(rec, index=len(principals))
            principals.append(rec.principal)
            self.authorizations[slot] = stored

            def undo():
                self.authorizations.pop(slot, None)
                principals.pop()
            self._on_rollback(undo)
            return replace(stored)

    def authorization_count(self, asset_key: str) -> int:
        with self._lock:
            return len(self.authorization_lists.get(asset_key, []))

    def authorization_principal_at(self, asset_key: str, index: int) -> Optional[str]:
        with self._lock:
            principals = self.authorization_lists.get(asset_key, [])
            if 0 <= index < len(principals):
                return principals[index]
            return None

    # role flags
    def set_role_flag(self, principal: str, role: str, assigned: bool) -> None:
        with self._lock:
            flag = (principal, role)
            had = flag in self.role_flags
            if assigned:
                self.role_flags.add(flag)
            else:
                self.role_flags.discard(flag)
            self._on_rollback(lambda: (self.role_flags.add if had else self.role_flags.discard)(flag))

    def get_role_flag(self, principal: str, role: str) -> bool:
        with self._lock:
            return (principal, role) in self.role_flags

    # metadata
    def get_meta(self, name: str) -> Optional[str]:
        with self._lock:
            return self.meta.get(name)

    def set_meta(self, name: str, value: str) -> None:
        with self._lock:
            old = self.meta.get(name)
            self.meta[name] = value

            def undo():
                if old is None:
                    self.meta.pop(name, None)
                else:
                    self.meta[name] = old
            self._on_rollback(undo)

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> int:
        with self._lock:
            seq = len(self.audit) + 1
            self.audit.append(AuditRecord(seq, event_type, copy.deepcopy(payload), now_ts()))
            return seq

    def update_event(self, seq: int, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.audit[seq - 1] = replace(self.audit[seq - 1], payload=copy.deepcopy(payload))

    def list_events(self, since_seq: int = 0) -> List[AuditRecord]:
        with self._lock:
            return [replace(r, payload=copy.deepcopy(r.payload)) for r in self.audit[max(since_seq, 0):]]

# aaas_core/storage/provider.py
from __future__ import annotations
from typing import Any, ContextManager, Dict, List, Optional

from aaas_core.storage.models import AssetRecord, AuditRecord, AuthorizationRecord


class StorageProvider:
    """
    Ledger state interface.

    Mutations are only valid inside `transaction()`, which serializes writers
    and either commits everything done in the block or restores the state
    seen on entry. Reads may run outside a transaction but never observe
    the writes of one that has not committed.
    """

    # transactions
    def transaction(self) -> ContextManager[None]: ...

    # assets
    def get_asset(self, key: str) -> Optional[AssetRecord]: ...
    def insert_asset(self, rec: AssetRecord) -> None: ...
    def update_asset_owner(self, key: str, owner: str) -> None: ...
    def asset_count(self) -> int: ...
    def asset_key_at(self, index: int) -> Optional[str]: ...

    # authorizations
    def get_authorization(self, asset_key: str, principal: str) -> Optional[AuthorizationRecord]: ...
    def upsert_authorization(self, rec: AuthorizationRecord) -> AuthorizationRecord: ...
    def authorization_count(self, asset_key: str) -> int: ...
    def authorization_principal_at(self, asset_key: str, index: int) -> Optional[str]: ...

    # role flags
    def set_role_flag(self, principal: str, role: str, assigned: bool) -> None: ...
    def get_role_flag(self, principal: str, role: str) -> bool: ...

    # metadata
    def get_meta(self, name: str) -> Optional[str]: ...
    def set_meta(self, name: str, value: str) -> None: ...

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> int: ...
    def update_event(self, seq: int, payload: Dict[str, Any]) -> None: ...
    def list_events(self, since_seq: int = 0) -> List[AuditRecord]: ...

    def close(self) -> None:
        return

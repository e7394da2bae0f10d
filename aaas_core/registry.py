"""
aaas_core.registry
------------------
AssetRegistry: creation, enumeration and ownership transfer of uniquely
keyed assets. Mutations expect to run inside a store transaction opened by
the caller (see AccessLedger).
"""

from __future__ import annotations
from typing import NamedTuple

from . import events
from .constants import ZERO_ADDRESS
from .errors import DuplicateKeyError, IndexOutOfRangeError, InvalidPrincipalError, NotFoundError, UnauthorizedError
from .logger import get_logger
from .notifier import ChangeNotifier
from .storage.models import AssetRecord
from .storage.provider import StorageProvider
from .validation import normalize_principal, require_principal, require_text, is_null_principal

log = get_logger("AAAS.Registry")


class AssetView(NamedTuple):
    owner: str
    description: str
    initialized: bool
    authorization_count: int


EMPTY_ASSET = AssetView(ZERO_ADDRESS, "", False, 0)


class AssetRegistry:
    def __init__(self, store: StorageProvider, notifier: ChangeNotifier):
        self.store = store
        self.notifier = notifier

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    def create_asset(self, caller: str, key: str, description: str, now: int) -> AssetRecord:
        caller = require_principal(caller, "caller")
        require_text(key, "Asset key")
        require_text(description, "Description")

        if self.store.get_asset(key):
            raise DuplicateKeyError(f"Asset {key!r} already exists")

        rec = AssetRecord(key=key, description=description, owner=caller)
        self.store.insert_asset(rec)
        self.notifier.emit(events.asset_created(caller, key, description, now))
        log.info(f"[REGISTRY] created {key!r} owner={caller}")
        return rec

    def transfer_ownership(self, caller: str, key: str, new_owner: str, now: int) -> AssetRecord:
        caller = require_principal(caller, "caller")
        require_text(key, "Asset key")
        rec = self.require_asset(key)
        if caller != rec.owner:
            raise UnauthorizedError("Only the owner can transfer ownership")
        new_owner = require_principal(new_owner, "new owner")

        old_owner = rec.owner
        self.store.update_asset_owner(key, new_owner)
        self.notifier.emit(events.ownership_transferred(key, old_owner, new_owner, now))
        log.info(f"[REGISTRY] transferred {key!r} {old_owner} -> {new_owner}")
        rec.owner = new_owner
        return rec

    # ------------------------------------------------------------------
    # reads (total over the key space)
    # ------------------------------------------------------------------
    def require_asset(self, key: str) -> AssetRecord:
        rec = self.store.get_asset(key)
        if not rec or not rec.initialized:
            raise NotFoundError("Asset does not exist")
        return rec

    def get_asset(self, key: str) -> AssetView:
        rec = self.store.get_asset(key)
        if not rec:
            return EMPTY_ASSET
        return AssetView(rec.owner, rec.description, rec.initialized, self.store.authorization_count(key))

    def get_asset_count(self) -> int:
        return self.store.asset_count()

    def get_asset_at_index(self, index: int) -> str:
        key = self.store.asset_key_at(index) if index >= 0 else None
        if key is None:
            raise IndexOutOfRangeError(f"Asset index {index} out of range")
        return key

    def is_owner_of(self, principal: str, key: str) -> bool:
        if is_null_principal(principal):
            raise InvalidPrincipalError("Invalid principal address")
        rec = self.store.get_asset(key)
        return bool(rec and rec.initialized and rec.owner == normalize_principal(principal))

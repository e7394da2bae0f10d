# aaas_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from aaas_core.constants import Role


@dataclass
class AssetRecord:
    """
    Storage-level representation of an asset.

    Storage-agnostic; every provider (SQLite, memory) round-trips it as is.
    `owner` is the only field that changes after creation.
    """
    key: str
    description: str
    owner: str
    initialized: bool = True


@dataclass
class AuthorizationRecord:
    """
    One grant for (asset_key, principal).

    Records are never deleted: revocation flips `active`, and `index` is the
    principal's fixed position in the asset's authorization list.
    `expires_at` is an absolute ledger timestamp, 0 meaning "never".
    """
    asset_key: str
    principal: str
    role: Role
    active: bool = True
    expires_at: int = 0
    index: int = 0

    def is_effective(self, now: int) -> bool:
        return self.active and (self.expires_at == 0 or now < self.expires_at)


@dataclass
class AuditRecord:
    seq: int
    event_type: str
    payload: dict
    recorded_at: Optional[str] = None

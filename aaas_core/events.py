"""
aaas_core.events
----------------
Defines LedgerEvent, the canonical change notification emitted by every
mutating ledger operation and consumed by indexers/observers.

Key features:
- Deterministic canonicalization for signing
- Monotonic sequence numbers assigned by the store's audit log
- Payloads carry enough data to rebuild ledger state without re-querying
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional

from .constants import (
    SCHEMA_VERSION, PRODUCER, ASSET_CREATED, CREATE_REJECTED,
    AUTHORIZATION_CREATED, AUTHORIZATION_REMOVED, ACCESS_LOG,
    OWNERSHIP_TRANSFERRED, ROLE_CHANGE,
)
from .utils import new_id, canonical_json


@dataclass
class LedgerEvent:
    event_type: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    ts: int = 0                 # ledger time supplied with the operation
    seq: int = 0                # position in the audit log, 0 until staged
    schema_ver: str = SCHEMA_VERSION
    event_id: str = field(default_factory=new_id)
    producer: str = PRODUCER
    key_id: str = ""            # identifies signing key/pubkey
    sig: Optional[str] = None   # base64 signature over to_signing_bytes()

    @property
    def topic(self) -> str:
        return f"aaas.{self.event_type}"

    def to_dict(self, include_sig: bool = True) -> Dict[str, Any]:
        d = asdict(self)
        if not include_sig:
            d["sig"] = None
        return d

    def to_signing_bytes(self) -> bytes:
        body = {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "payload": self.payload,
            "producer": self.producer,
            "seq": self.seq,
            "ts": self.ts,
        }
        return canonical_json(body)

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerEvent":
        """Inverse of to_dict; used by observers rebuilding events from the wire."""
        return cls(
            event_type=data.get("event_type", ""),
            payload=dict(data.get("payload") or {}),
            ts=int(data.get("ts", 0)),
            seq=int(data.get("seq", 0)),
            schema_ver=data.get("schema_ver", SCHEMA_VERSION),
            event_id=data.get("event_id") or new_id(),
            producer=data.get("producer", PRODUCER),
            key_id=data.get("key_id", ""),
            sig=data.get("sig"),
        )


# ----------------------------------------------------------------------
# Event constructors
# ----------------------------------------------------------------------
def asset_created(creator: str, key: str, description: str, now: int) -> LedgerEvent:
    return LedgerEvent(ASSET_CREATED, {"creator": creator, "key": key, "description": description}, now)


def create_rejected(creator: str, key: str, reason: str, now: int) -> LedgerEvent:
    return LedgerEvent(CREATE_REJECTED, {"creator": creator, "key": key, "reason": reason}, now)


def authorization_created(principal: str, key: str, role: str, expires_at: int,
                          granted_by: str, now: int) -> LedgerEvent:
    return LedgerEvent(AUTHORIZATION_CREATED, {
        "principal": principal,
        "key": key,
        "role": role,
        "expires_at": expires_at,
        "granted_by": granted_by,
    }, now)


def authorization_removed(principal: str, key: str, removed_by: str, now: int) -> LedgerEvent:
    return LedgerEvent(AUTHORIZATION_REMOVED, {"principal": principal, "key": key, "removed_by": removed_by}, now)


def access_log(principal: str, key: str, granted: bool, now: int) -> LedgerEvent:
    return LedgerEvent(ACCESS_LOG, {"principal": principal, "key": key, "granted": granted}, now)


def ownership_transferred(key: str, old_owner: str, new_owner: str, now: int) -> LedgerEvent:
    return LedgerEvent(OWNERSHIP_TRANSFERRED, {"key": key, "old_owner": old_owner, "new_owner": new_owner}, now)


def role_change(principal: str, role: str, assigned: bool, now: int) -> LedgerEvent:
    return LedgerEvent(ROLE_CHANGE, {"principal": principal, "role": role, "assigned": assigned}, now)

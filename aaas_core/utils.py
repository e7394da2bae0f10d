"""
aaas_core.utils
---------------
Lightweight helpers for event identifiers, wall-clock audit stamps, base64
utilities, and canonical JSON serialization.
Canonical JSON keeps event signing and audit persistence deterministic.
"""

from __future__ import annotations
import base64, json, time, uuid
from typing import Any, Dict

def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")

def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"))

def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision. Audit bookkeeping only,
    # never used for access decisions.
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def new_id() -> str:
    return uuid.uuid4().hex

def canonical_json(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")

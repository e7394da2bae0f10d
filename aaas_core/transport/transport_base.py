from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import json

Headers = Dict[str, str]


class TransportError(Exception):
    pass


class TransportTransientError(TransportError):
    pass


class TransportPermanentError(TransportError):
    pass


class BaseTransport:
    """
    Change-notification fan-out contract.

    Topics are `aaas.<EventName>`. Canonical payload at the transport
    boundary is bytes; adapters accept a dict and convert it.
    Publishing happens after the ledger commits, so adapters must never
    assume they can veto an operation.
    """
    name: str = "base"

    def publish(
        self,
        topic: str,
        payload: bytes | dict,
        headers: Optional[Headers] = None,
        key: Optional[str] = None,
    ) -> Any:
        raise NotImplementedError

    def subscribe(self, topic: str, handler: Callable[[dict], Any]) -> Any:
        raise NotImplementedError

    def healthz(self) -> dict:
        return {"status": "ok", "transport": self.name}

    def close(self) -> None:
        return

    # ---------------------------
    # Helpers for adapters
    # ---------------------------
    @staticmethod
    def to_bytes(payload: bytes | dict) -> bytes:
        if isinstance(payload, bytes):
            return payload
        return json.dumps(payload, ensure_ascii=False, sort_keys=True).encode("utf-8")

    @staticmethod
    def to_dict(payload: bytes | dict) -> dict:
        if isinstance(payload, dict):
            return payload
        return json.loads(payload.decode("utf-8"))

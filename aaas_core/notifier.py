"""
aaas_core.notifier
------------------
ChangeNotifier: structured event emission for ledger operations.

emit() is called from inside an operation's store transaction. It assigns
the event its audit sequence number by appending it to the store's audit
log, so the event commits or rolls back together with the state change.
Transport fan-out is deferred until flush(), which the ledger calls only
after the transaction committed; discard() drops staged events after a
rollback.
"""

from __future__ import annotations
from typing import List, Optional

from .crypto import sign_event, pubkey_fingerprint, ed25519_generate
from .events import LedgerEvent
from .logger import get_logger
from .storage.provider import StorageProvider
from .transport.transport_base import BaseTransport, TransportError
from .utils import b64e

log = get_logger("AAAS.Notifier")


class ChangeNotifier:
    def __init__(
        self,
        store: StorageProvider,
        transport: Optional[BaseTransport] = None,
        signing_key: Optional[bytes] = None,
        key_id: Optional[str] = None,
    ):
        self.store = store
        self.transport = transport
        self._signing_key = signing_key
        self._key_id = key_id or ""
        self._pending: List[LedgerEvent] = []

    @classmethod
    def with_generated_key(cls, store: StorageProvider, transport: Optional[BaseTransport] = None):
        """Convenience constructor; returns (notifier, public_key_raw)."""
        priv, pub = ed25519_generate()
        return cls(store, transport, signing_key=priv, key_id=pubkey_fingerprint(b64e(pub))), pub

    @property
    def pending(self) -> List[LedgerEvent]:
        return list(self._pending)

    def emit(self, event: LedgerEvent) -> LedgerEvent:
        # seq must be known before signing
        event.seq = self.store.log_event(event.event_type, event.to_dict())
        if self._signing_key:
            sign_event(event, self._signing_key, self._key_id)
            self.store.update_event(event.seq, event.to_dict())
        self._pending.append(event)
        log.debug(f"[NOTIFY] staged {event.event_type} seq={event.seq}")
        return event

    def flush(self) -> List[LedgerEvent]:
        """Publish staged events in order; transport failures never undo the commit."""
        events, self._pending = self._pending, []
        if not self.transport:
            return events

        for event in events:
            try:
                self.transport.publish(event.topic, event.to_dict(), key=event.payload.get("key"))
            except TransportError as e:
                log.error(f"[NOTIFY] publish failed {event.event_type} seq={event.seq}: {e}")
            except Exception:
                log.exception(f"[NOTIFY] publish crashed {event.event_type} seq={event.seq}")
        return events

    def discard(self) -> None:
        if self._pending:
            log.debug(f"[NOTIFY] discarded {len(self._pending)} staged event(s)")
        self._pending = []

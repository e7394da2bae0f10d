from aaas_core import AccessLedger, DuplicateKeyError, UnauthorizedError, load_ledger
from aaas_core.crypto import verify_event
from aaas_core.events import LedgerEvent
from aaas_core.notifier import ChangeNotifier
from aaas_core.storage import InMemoryStorage, SQLiteStorage
from aaas_core.transport import LocalAdapter, TransportTransientError
from conftest import P1, P2, P3, T

import pytest


def test_events_published_in_commit_order(ledger, bus):
    received = []
    bus.subscribe("aaas.*", received.append)

    ledger.create_asset(P1, "A1", "d", now=T)
    ledger.add_authorization(P1, "A1", P2, "permanent", now=T + 1)
    ledger.get_access(P2, "A1", now=T + 2)

    assert [e["event_type"] for e in received] == ["AssetCreated", "AuthorizationCreated", "AccessLog"]
    assert [e["seq"] for e in received] == [1, 2, 3]
    assert [e["ts"] for e in received] == [T, T + 1, T + 2]


def test_rejected_operation_publishes_nothing(ledger, bus):
    ledger.create_asset(P1, "A1", "d", now=T)
    published = len(bus.published)

    with pytest.raises(UnauthorizedError):
        ledger.add_authorization(P3, "A1", P2, "admin", now=T)
    assert len(bus.published) == published
    assert ledger.notifier.pending == []


def test_event_log_rebuilds_state(ledger):
    ledger.create_asset(P1, "A1", "d", now=T)
    ledger.add_authorization(P1, "A1", P2, "temporary", now=T, duration=30)
    ledger.transfer_ownership(P1, "A1", P3, now=T + 1)
    with pytest.raises(DuplicateKeyError):
        ledger.create_asset(P2, "A1", "again", now=T + 2)

    log = ledger.event_log()
    assert [e.event_type for e in log] == [
        "AssetCreated", "AuthorizationCreated", "OwnershipTransferred", "CreateRejected",
    ]
    assert log[1].payload["expires_at"] == T + 30
    assert [e.event_type for e in ledger.event_log(since_seq=2)] == ["OwnershipTransferred", "CreateRejected"]


def test_signed_notifier(store):
    bus = LocalAdapter(record=True)
    notifier, pub = ChangeNotifier.with_generated_key(store, bus)
    with store.transaction():
        notifier.emit(LedgerEvent("AccessLog", {"principal": P1, "key": "A1", "granted": False}, ts=T))
    notifier.flush()

    _, message = bus.published[0]
    event = LedgerEvent.from_dict(message)
    assert event.key_id
    assert verify_event(event, pub)


def test_ledger_signs_events_when_keyed(tmp_path):
    from aaas_core.crypto import ed25519_generate

    priv, pub = ed25519_generate()
    bus = LocalAdapter(record=True)
    ledger = AccessLedger(store=SQLiteStorage(str(tmp_path / "l.db")), transport=bus, signing_key=priv, key_id="k1")
    ledger.create_asset(P1, "A1", "d", now=T)
    assert verify_event(LedgerEvent.from_dict(bus.published[0][1]), pub)
    ledger.close()


def test_transport_failure_does_not_undo_commit():
    class FlakyTransport(LocalAdapter):
        def publish(self, topic, payload, headers=None, key=None):
            raise TransportTransientError("indexer down")

    ledger = AccessLedger(store=InMemoryStorage(), transport=FlakyTransport())
    ledger.create_asset(P1, "A1", "d", now=T)
    assert ledger.get_asset("A1").initialized
    assert [e.event_type for e in ledger.event_log()] == ["AssetCreated"]


def test_load_ledger_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("AAAS_STORAGE_PROVIDER", "sqlite")
    monkeypatch.setenv("AAAS_DB_PATH", str(tmp_path / "ledger.db"))
    monkeypatch.setenv("AAAS_TRANSPORT", "local")
    monkeypatch.setenv("AAAS_MANAGEMENT_POLICY", "admin_only")
    monkeypatch.setenv("AAAS_ROLE_CREATOR", P1)

    ledger = load_ledger()
    assert isinstance(ledger.store, SQLiteStorage)
    assert isinstance(ledger.transport, LocalAdapter)
    assert ledger.authorizations.management_policy == "admin_only"
    assert ledger.roles.creator == P1
    ledger.close()


def test_publish_crash_does_not_stop_remaining_events():
    class CrashOnP2(LocalAdapter):
        def publish(self, topic, payload, headers=None, key=None):
            if payload["payload"].get("principal") == P2:
                raise RuntimeError("bad ack")
            return super().publish(topic, payload, headers=headers, key=key)

    bus = CrashOnP2(record=True)
    ledger = AccessLedger(transport=bus)
    ledger.create_asset(P1, "A1", "d", now=T)
    ledger.add_authorization_batch(P1, "A1", [P2, P3], ["admin", "permanent"], now=T)

    assert [t for t, _ in bus.published] == ["aaas.AssetCreated", "aaas.AuthorizationCreated"]
    assert bus.published[-1][1]["payload"]["principal"] == P3
    assert len(ledger.event_log()) == 3


def test_event_log_keeps_signatures(store):
    from aaas_core.crypto import ed25519_generate

    priv, pub = ed25519_generate()
    ledger = AccessLedger(store=store, signing_key=priv, key_id="k1")
    ledger.create_asset(P1, "A1", "d", now=T)
    ledger.get_access(P2, "A1", now=T + 1)

    log = ledger.event_log()
    assert [e.seq for e in log] == [1, 2]
    assert all(e.key_id == "k1" and verify_event(e, pub) for e in log)

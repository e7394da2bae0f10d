import pytest

from aaas_core import LedgerEvent, Role, NotFoundError, EmptyInputError, LengthMismatchError
from aaas_core.crypto import (
    ed25519_generate, principal_from_pubkey, sign_event, verify_event,
)
from aaas_core.storage import AssetRecord, AuthorizationRecord, SQLiteStorage, load_storage_provider, InMemoryStorage
from aaas_core.utils import canonical_json
from aaas_core.validation import is_null_principal, parse_role, require_batch, require_principal
from conftest import P1, P2, P3, T


def test_sign_verify_event():
    priv, pub = ed25519_generate()
    event = LedgerEvent("AssetCreated", {"creator": P1, "key": "A1", "description": "d"}, ts=T, seq=1)
    sign_event(event, priv, "ledger-ed25519-1")
    assert verify_event(event, pub)

    event.payload["key"] = "A2"
    assert not verify_event(event, pub)


def test_event_dict_roundtrip_keeps_signature_valid():
    priv, pub = ed25519_generate()
    event = sign_event(LedgerEvent("AccessLog", {"principal": P1, "key": "A1", "granted": True}, ts=T, seq=7), priv, "k")
    restored = LedgerEvent.from_dict(event.to_dict())
    assert restored.topic == "aaas.AccessLog"
    assert verify_event(restored, pub)


def test_principal_from_pubkey_shape():
    _, pub = ed25519_generate()
    addr = principal_from_pubkey(pub)
    assert addr.startswith("0x") and len(addr) == 42
    assert addr == principal_from_pubkey(pub)


def test_canonical_json_is_order_independent():
    assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})


def test_validation_helpers():
    assert is_null_principal(None)
    assert is_null_principal("  ")
    assert is_null_principal("0x" + "0" * 40)
    assert not is_null_principal(P1)
    assert parse_role(" Admin ") is Role.ADMIN
    assert require_principal(" 0xAbCd ") == "0xabcd"
    assert require_batch([1, 2], ["a", "b"]) == 2
    with pytest.raises(LengthMismatchError):
        require_batch([1], [])
    with pytest.raises(EmptyInputError):
        require_batch([], [])


def test_storage_roundtrip(store):
    with store.transaction():
        store.insert_asset(AssetRecord("A1", "d", P1))
        store.upsert_authorization(AuthorizationRecord("A1", P2, Role.TEMPORARY, expires_at=T + 5))
    assert store.get_asset("A1") == AssetRecord("A1", "d", P1, True)
    assert store.asset_key_at(0) == "A1"
    got = store.get_authorization("A1", P2)
    assert got.role is Role.TEMPORARY and got.expires_at == T + 5 and got.index == 0
    assert store.authorization_principal_at("A1", 0) == P2
    assert store.get_asset("missing") is None


def test_storage_rollback(store):
    with store.transaction():
        store.insert_asset(AssetRecord("A1", "d", P1))

    with pytest.raises(NotFoundError):
        with store.transaction():
            store.insert_asset(AssetRecord("A2", "d", P1))
            store.update_asset_owner("A1", P2)
            store.set_role_flag(P2, "admin", True)
            store.log_event("AssetCreated", {"key": "A2"})
            raise NotFoundError("boom")

    assert store.asset_count() == 1
    assert store.get_asset("A2") is None
    assert store.get_asset("A1").owner == P1
    assert store.get_role_flag(P2, "admin") is False
    assert store.list_events() == []


def test_rollback_restores_grants_and_keeps_history(store):
    with store.transaction():
        store.insert_asset(AssetRecord("A1", "d", P1))
        store.upsert_authorization(AuthorizationRecord("A1", P2, Role.PERMANENT))
        store.set_meta("creator", P1)
        store.log_event("AssetCreated", {"key": "A1"})

    with pytest.raises(NotFoundError):
        with store.transaction():
            store.upsert_authorization(AuthorizationRecord("A1", P2, Role.ADMIN, active=False))
            store.upsert_authorization(AuthorizationRecord("A1", P3, Role.TEMPORARY, expires_at=T))
            store.set_meta("creator", P2)
            store.log_event("AuthorizationRemoved", {"key": "A1"})
            raise NotFoundError("boom")

    got = store.get_authorization("A1", P2)
    assert (got.role, got.active, got.index) == (Role.PERMANENT, True, 0)
    assert store.get_authorization("A1", P3) is None
    assert store.authorization_count("A1") == 1
    assert store.get_meta("creator") == P1
    assert [e.event_type for e in store.list_events()] == ["AssetCreated"]

    with store.transaction():
        store.upsert_authorization(AuthorizationRecord("A1", P3, Role.ADMIN))
        assert store.log_event("AccessLog", {"key": "A1"}) == 2
    assert store.authorization_principal_at("A1", 1) == P3


def test_nested_transactions_join_outer(store):
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.insert_asset(AssetRecord("A1", "d", P1))
            with store.transaction():
                store.insert_asset(AssetRecord("A2", "d", P1))
            raise RuntimeError("abort outer")
    assert store.asset_count() == 0


def test_sqlite_persists_across_connections(tmp_path):
    path = str(tmp_path / "state.db")
    s = SQLiteStorage(path)
    with s.transaction():
        s.insert_asset(AssetRecord("A1", "d", P1))
        s.set_meta("role_registry.creator", P1)
    s.close()

    s2 = SQLiteStorage(path)
    assert s2.get_asset("A1").owner == P1
    assert s2.get_meta("role_registry.creator") == P1
    s2.close()


def test_load_storage_provider(monkeypatch, tmp_path):
    monkeypatch.delenv("AAAS_STORAGE_PROVIDER", raising=False)
    assert isinstance(load_storage_provider(), InMemoryStorage)

    monkeypatch.setenv("AAAS_STORAGE_PROVIDER", "sqlite")
    monkeypatch.setenv("AAAS_DB_PATH", str(tmp_path / "db" / "ledger.db"))
    s = load_storage_provider()
    assert isinstance(s, SQLiteStorage)
    s.close()

    with pytest.raises(ValueError):
        load_storage_provider({"provider": "postgres"})


def test_logger_writes_file(tmp_path):
    from aaas_core.logger import get_logger

    path = tmp_path / "logs" / "ledger.log"
    log = get_logger("AAAS.Test.File", to_file=str(path))
    log.info("[LEDGER] hello")
    for h in log.handlers:
        h.flush()
    assert '"msg": "[LEDGER] hello"' in path.read_text()


def test_memory_transactions_do_not_copy_history():
    store = InMemoryStorage()
    with store.transaction():
        store.log_event("AssetCreated", {"key": "A1"})
    first = store.audit[0]

    with pytest.raises(NotFoundError):
        with store.transaction():
            store.log_event("AccessLog", {"key": "A1"})
            raise NotFoundError("boom")

    assert store.audit == [first] and store.audit[0] is first

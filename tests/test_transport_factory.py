import pytest
import requests

from aaas_core.transport import (
    HTTPAdapter, KafkaAdapter, LocalAdapter, TransportPermanentError,
    TransportTransientError, transport_factory,
)

# CMD Line Usage: pytest -v -s --log-cli-level=DEBUG tests/test_transport_factory.py


def test_local_pubsub_loopback(caplog):
    """Ensure LocalAdapter can publish and immediately receive messages."""
    bus = LocalAdapter()
    received = []

    bus.subscribe("aaas.*", received.append)
    bus.subscribe("aaas.AccessLog", received.append)
    bus.publish("aaas.AssetCreated", {"key": "TEST123"})

    assert received == [{"key": "TEST123"}]
    assert "LOCAL PUB" in caplog.text
    assert bus.published == []


def test_local_handler_failure_does_not_propagate():
    bus = LocalAdapter(record=True)

    def broken(msg):
        raise RuntimeError("observer bug")

    bus.subscribe("aaas.*", broken)
    bus.publish("aaas.AssetCreated", b'{"key": "A1"}')
    assert bus.published == [("aaas.AssetCreated", {"key": "A1"})]


def test_transport_factory_modes(monkeypatch):
    """Verify that transport_factory returns the adapter selected by AAAS_TRANSPORT."""
    monkeypatch.delenv("AAAS_TRANSPORT", raising=False)
    assert isinstance(transport_factory(), LocalAdapter)

    monkeypatch.setenv("AAAS_TRANSPORT", "http")
    assert isinstance(transport_factory(), HTTPAdapter)

    monkeypatch.setenv("AAAS_TRANSPORT", "kafka")
    monkeypatch.setenv("KAFKA_ENABLED", "0")
    adapter = transport_factory()
    assert isinstance(adapter, KafkaAdapter)
    assert adapter.enabled is False
    assert adapter.publish("aaas.AccessLog", {"key": "A1"}) is None


class _Response:
    def __init__(self, status_code, body=b"{}", json_ok=True):
        self.json_ok = json_ok
        self.status_code = status_code
        self.content = body
        self.text = body.decode()
        self.ok = 200 <= status_code < 300

    def json(self):
        if not self.json_ok:
            raise requests.JSONDecodeError("Expecting value", self.text, 0)
        return {"accepted": True}


def test_http_publish(monkeypatch):
    adapter = HTTPAdapter("http://indexer:8080/")
    adapter.set_grant("tok")
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers))
        return _Response(202)

    monkeypatch.setattr(adapter._session, "post", fake_post)
    assert adapter.publish("aaas.AssetCreated", {"key": "A1"}, key="A1") == {"accepted": True}

    url, body, headers = calls[0]
    assert url == "http://indexer:8080/events"
    assert body == {"topic": "aaas.AssetCreated", "key": "A1", "event": {"key": "A1"}}
    assert headers["Authorization"] == "Bearer tok"


def test_http_publish_errors(monkeypatch):
    adapter = HTTPAdapter("http://indexer:8080")

    monkeypatch.setattr(adapter._session, "post", lambda *a, **k: _Response(503, b"down"))
    with pytest.raises(TransportTransientError):
        adapter.publish("aaas.AccessLog", {})

    monkeypatch.setattr(adapter._session, "post", lambda *a, **k: _Response(400, b"bad"))
    with pytest.raises(TransportPermanentError):
        adapter.publish("aaas.AccessLog", {})

    def refuse(*a, **k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(adapter._session, "post", refuse)
    with pytest.raises(TransportTransientError):
        adapter.publish("aaas.AccessLog", {})


def test_http_publish_accepts_non_json_ack(monkeypatch):
    adapter = HTTPAdapter("http://indexer:8080")
    monkeypatch.setattr(adapter._session, "post", lambda *a, **k: _Response(200, b"OK", json_ok=False))
    assert adapter.publish("aaas.AccessLog", {"key": "A1"}) == {}


def test_ledger_survives_indexer_plain_text_ack(monkeypatch):
    from aaas_core import AccessLedger

    adapter = HTTPAdapter("http://indexer:8080")
    posted = []

    def plain_ack(url, json=None, headers=None, timeout=None):
        posted.append(json["topic"])
        return _Response(200, b"OK", json_ok=False)

    monkeypatch.setattr(adapter._session, "post", plain_ack)
    ledger = AccessLedger(transport=adapter)
    owner = "0x" + "11" * 20

    ledger.create_asset(owner, "A1", "d", now=1)
    ledger.add_authorization_batch(owner, "A1", ["0x" + "22" * 20, "0x" + "33" * 20], ["admin", "permanent"], now=2)

    assert ledger.get_asset("A1").initialized
    assert posted == ["aaas.AssetCreated", "aaas.AuthorizationCreated", "aaas.AuthorizationCreated"]


def test_kafka_publish_keys_by_asset():
    class FakeProducer:
        def __init__(self):
            self.sent = []

        def send(self, topic, value=None, key=None, headers=None):
            if topic == "aaas.Broken":
                raise RuntimeError("broker gone")
            self.sent.append((topic, key, value))

        def flush(self, timeout=None):
            pass

    adapter = KafkaAdapter(enabled=False)
    adapter._producer, adapter.enabled = FakeProducer(), True

    adapter.publish("aaas.AccessLog", {"key": "A1"}, key="A1")
    assert adapter._producer.sent == [("aaas.AccessLog", b"A1", b'{"key": "A1"}')]
    with pytest.raises(TransportTransientError):
        adapter.publish("aaas.Broken", {}, key="A1")

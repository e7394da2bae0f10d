# aaas_core/transport/transport_kafka.py
from typing import Optional

from aaas_core.logger import get_logger
from aaas_core.transport.transport_base import BaseTransport, TransportTransientError

log = get_logger("AAAS.Transport.Kafka")


class KafkaAdapter(BaseTransport):
    """
    Publishes committed ledger events to Kafka, one topic per event type.

    The record key is the asset key, so all events for one asset land on one
    partition and indexers consume them in ledger order. When the producer
    cannot be created the adapter stays usable but drops events, leaving the
    audit log as the only record.
    """
    name = "kafka"

    def __init__(self, brokers: str = "localhost:9092", enabled: bool = True):
        self.brokers = brokers
        self.enabled = enabled
        self._producer = None
        if enabled:
            self._producer = self._connect()
            self.enabled = self._producer is not None
        else:
            log.warning("[KAFKA] transport disabled by config")

    def _connect(self):
        from kafka import KafkaProducer

        try:
            producer = KafkaProducer(bootstrap_servers=self.brokers, acks="all", linger_ms=5)
        except Exception:
            log.exception(f"[KAFKA] no producer for {self.brokers}; events stay in the audit log only")
            return None
        log.info(f"[KAFKA] producer ready brokers={self.brokers}")
        return producer

    def publish(self, topic: str, payload, headers=None, key: Optional[str] = None):
        if not self.enabled:
            log.debug(f"[KAFKA] dropped {topic}")
            return None

        data = self.to_bytes(payload)
        try:
            self._producer.send(
                topic,
                value=data,
                key=key.encode("utf-8") if key else None,
                headers=[(k, str(v).encode("utf-8")) for k, v in (headers or {}).items()],
            )
            # block briefly so a dead broker surfaces here, not on close()
            self._producer.flush(timeout=1.0)
        except Exception as e:
            log.error(f"[KAFKA] {topic} key={key} failed: {e}")
            raise TransportTransientError(str(e)) from e
        log.info(f"[KAFKA] {topic} key={key} bytes={len(data)}")

    def close(self) -> None:
        if self._producer:
            self._producer.close()
            self._producer = None

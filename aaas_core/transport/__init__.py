# aaas_core/transport/__init__.py
import os
from aaas_core.transport.transport_base import (
    BaseTransport, TransportError, TransportTransientError, TransportPermanentError,
)
from aaas_core.transport.transport_local import LocalAdapter
from aaas_core.transport.transport_http import HTTPAdapter
from aaas_core.transport.transport_kafka import KafkaAdapter


def transport_factory(config: dict | None = None) -> BaseTransport:
    """
    Select the change-notification transport.

      - "local" → in-process pub/sub (default)
      - "http"  → POST to an indexer
      - "kafka" → Kafka producer
    """
    config = config or {}
    mode = (config.get("transport") or os.getenv("AAAS_TRANSPORT", "local")).lower()

    if mode == "kafka":
        return KafkaAdapter(
            brokers=config.get("kafka_brokers") or os.getenv("KAFKA_BROKERS", "localhost:9092"),
            enabled=os.getenv("KAFKA_ENABLED", "1") == "1",
        )

    if mode == "http":
        return HTTPAdapter(config.get("indexer_url") or os.getenv("AAAS_INDEXER_URL", "http://localhost:8080"))

    return LocalAdapter()


__all__ = [
    "BaseTransport",
    "TransportError",
    "TransportTransientError",
    "TransportPermanentError",
    "LocalAdapter",
    "HTTPAdapter",
    "KafkaAdapter",
    "transport_factory",
]

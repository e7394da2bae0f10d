# aaas_core/transport/transport_local.py
import fnmatch
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from aaas_core.logger import get_logger
from aaas_core.transport.transport_base import BaseTransport

log = get_logger("AAAS.Transport.Local")


class LocalAdapter(BaseTransport):
    """
    In-process pub/sub loopback.

    Handlers run synchronously inside publish(). Topic patterns use shell
    wildcards, so `aaas.*` observes every ledger event.
    """
    name = "local"

    def __init__(self, record: bool = False):
        self.handlers: Dict[str, List[Callable[[dict], None]]] = defaultdict(list)
        # (topic, message) history, kept only when record=True
        self.record = record
        self.published: List[tuple] = []

    def subscribe(self, topic: str, handler: Callable[[dict], None]):
        self.handlers[topic].append(handler)
        log.info(f"[LOCAL SUB] {topic}")

    def publish(self, topic: str, payload, headers=None, key: Optional[str] = None):
        message = self.to_dict(payload)
        if self.record:
            self.published.append((topic, message))
        log.info(f"[LOCAL PUB] {topic}")

        for pattern, handlers in list(self.handlers.items()):
            if not fnmatch.fnmatchcase(topic, pattern):
                continue
            for handler in handlers:
                try:
                    handler(message)
                except Exception:
                    log.exception(f"[LOCAL PUB] handler failed topic={topic}")

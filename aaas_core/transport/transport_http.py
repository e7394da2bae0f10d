# aaas_core/transport/transport_http.py
import requests
from typing import Optional

from aaas_core.logger import get_logger
from aaas_core.transport.transport_base import BaseTransport, TransportPermanentError, TransportTransientError

log = get_logger("AAAS.Transport.HTTP")


class HTTPAdapter(BaseTransport):
    """
    HTTP transport adapter posting ledger events to an indexer's /events
    endpoint.

    Supports Bearer token authentication via set_grant().
    """
    name = "http"

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._grant = None
        self._session = requests.Session()

    def set_grant(self, grant: str):
        self._grant = grant

    def _headers(self, extra=None) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._grant:
            headers["Authorization"] = f"Bearer {self._grant}"
        headers.update(extra or {})
        return headers

    def publish(self, topic: str, payload, headers=None, key: Optional[str] = None):
        """
        POST one event. 5xx and connection failures raise
        TransportTransientError, other non-2xx raise TransportPermanentError.
        """
        url = f"{self.base_url}/events"
        body = {"topic": topic, "key": key, "event": self.to_dict(payload)}
        log.debug(f"[HTTP PUB] → {url} | topic={topic}")

        try:
            res = self._session.post(url, json=body, headers=self._headers(headers), timeout=self.timeout)
        except requests.RequestException as e:
            log.error(f"[HTTP PUB] {topic} failed: {e}")
            raise TransportTransientError(str(e)) from e

        if res.ok:
            log.info(f"[HTTP PUB] {res.status_code} {topic}")
            if not res.content:
                return {}
            try:
                return res.json()
            except ValueError:
                # indexer acknowledged without a JSON body
                log.warning(f"[HTTP PUB] {topic} non-JSON ack ignored")
                return {}
        log.error(f"[HTTP PUB] {res.status_code}: {res.text}")
        if res.status_code >= 500:
            raise TransportTransientError(f"{res.status_code}: {res.text}")
        raise TransportPermanentError(f"{res.status_code}: {res.text}")

    def healthz(self) -> dict:
        try:
            res = self._session.get(f"{self.base_url}/healthz", timeout=self.timeout)
            status = "ok" if res.ok else "degraded"
        except requests.RequestException:
            status = "unreachable"
        return {"status": status, "transport": self.name}

    def close(self) -> None:
        self._session.close()

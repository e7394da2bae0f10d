from __future__ import annotations
from contextlib import contextmanager
from typing import Optional, Dict, Any, List
import json, sqlite3, os, threading

from aaas_core.constants import Role
from aaas_core.logger import get_logger
from aaas_core.storage.provider import StorageProvider
from aaas_core.storage.models import AssetRecord, AuditRecord, AuthorizationRecord
from aaas_core.utils import now_ts

log = get_logger("AAAS.Storage.SQLite")


class SQLiteStorage(StorageProvider):
    def __init__(self, path="db/aaas_ledger.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        # autocommit mode; transaction() issues BEGIN/COMMIT itself
        self.db = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
        self._lock = threading.RLock()
        self._depth = 0

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        c.execute("""CREATE TABLE IF NOT EXISTS assets(
            key TEXT PRIMARY KEY,
            description TEXT NOT NULL,
            owner TEXT NOT NULL,
            initialized INTEGER NOT NULL DEFAULT 1,
            position INTEGER NOT NULL UNIQUE
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS authorizations(
            asset_key TEXT NOT NULL,
            principal TEXT NOT NULL,
            role TEXT NOT NULL,
            active INTEGER NOT NULL,
            expires_at INTEGER NOT NULL DEFAULT 0,
            idx INTEGER NOT NULL,
            PRIMARY KEY (asset_key, principal),
            UNIQUE (asset_key, idx)
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS role_flags(
            principal TEXT NOT NULL,
            role TEXT NOT NULL,
            PRIMARY KEY (principal, role)
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS meta(
            name TEXT PRIMARY KEY,
            value TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS audit(
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            ts TEXT,
            event_type TEXT,
            payload TEXT
        )""")

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self.db.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                self.db.execute("ROLLBACK")
                log.debug("[SQLITE] rollback")
                raise
            else:
                self.db.execute("COMMIT")
            finally:
                self._depth = 0

    def _one(self, sql: str, params: tuple = ()):
        with self._lock:
            return self.db.execute(sql, params).fetchone()

    # assets
    def get_asset(self, key: str) -> Optional[AssetRecord]:
        row = self._one("SELECT key,description,owner,initialized FROM assets WHERE key=?", (key,))
        if not row: return None
        return AssetRecord(row[0], row[1], row[2], bool(row[3]))

    def insert_asset(self, rec: AssetRecord) -> None:
        with self._lock:
            self.db.execute(
                "INSERT INTO assets(key,description,owner,initialized,position) "
                "VALUES(?,?,?,?,(SELECT COUNT(*) FROM assets))",
                (rec.key, rec.description, rec.owner, int(rec.initialized)),
            )

    def update_asset_owner(self, key: str, owner: str) -> None:
        with self._lock:
            self.db.execute("UPDATE assets SET owner=? WHERE key=?", (owner, key))

    def asset_count(self) -> int:
        return self._one("SELECT COUNT(*) FROM assets")[0]

    def asset_key_at(self, index: int) -> Optional[str]:
        row = self._one("SELECT key FROM assets WHERE position=?", (index,))
        return row[0] if row else None

    # authorizations
    def get_authorization(self, asset_key: str, principal: str) -> Optional[AuthorizationRecord]:
        row = self._one(
            "SELECT asset_key,principal,role,active,expires_at,idx FROM authorizations "
            "WHERE asset_key=? AND principal=?",
            (asset_key, principal),
        )
        if not row: return None
        return AuthorizationRecord(row[0], row[1], Role(row[2]), bool(row[3]), row[4], row[5])

    def upsert_authorization(self, rec: AuthorizationRecord) -> AuthorizationRecord:
        with self._lock:
            self.db.execute(
                "INSERT INTO authorizations(asset_key,principal,role,active,expires_at,idx) "
                "VALUES(?,?,?,?,?,(SELECT COUNT(*) FROM authorizations WHERE asset_key=?)) "
                "ON CONFLICT(asset_key,principal) DO UPDATE SET role=excluded.role, "
                "active=excluded.active, expires_at=excluded.expires_at",
                (rec.asset_key, rec.principal, rec.role.value, int(rec.active),
                 int(rec.expires_at), rec.asset_key),
            )
            return self.get_authorization(rec.asset_key, rec.principal)

    def authorization_count(self, asset_key: str) -> int:
        return self._one("SELECT COUNT(*) FROM authorizations WHERE asset_key=?", (asset_key,))[0]

    def authorization_principal_at(self, asset_key: str, index: int) -> Optional[str]:
        row = self._one(
            "SELECT principal FROM authorizations WHERE asset_key=? AND idx=?",
            (asset_key, index),
        )
        return row[0] if row else None

    # role flags
    def set_role_flag(self, principal: str, role: str, assigned: bool) -> None:
        with self._lock:
            if assigned:
                self.db.execute("INSERT OR IGNORE INTO role_flags(principal,role) VALUES(?,?)", (principal, role))
            else:
                self.db.execute("DELETE FROM role_flags WHERE principal=? AND role=?", (principal, role))

    def get_role_flag(self, principal: str, role: str) -> bool:
        return self._one("SELECT 1 FROM role_flags WHERE principal=? AND role=?", (principal, role)) is not None

    # metadata
    def get_meta(self, name: str) -> Optional[str]:
        row = self._one("SELECT value FROM meta WHERE name=?", (name,))
        return row[0] if row else None

    def set_meta(self, name: str, value: str) -> None:
        with self._lock:
            self.db.execute(
                "INSERT INTO meta(name,value) VALUES(?,?) "
                "ON CONFLICT(name) DO UPDATE SET value=excluded.value",
                (name, value),
            )

    # audit
    def log_event(self, event_type: str, payload: Dict[str, Any]) -> int:
        with self._lock:
            cur = self.db.execute(
                "INSERT INTO audit(ts,event_type,payload) VALUES(?,?,?)",
                (now_ts(), event_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)),
            )
            return cur.lastrowid

    def update_event(self, seq: int, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.db.execute(
                "UPDATE audit SET payload=? WHERE seq=?",
                (json.dumps(payload, separators=(",", ":"), sort_keys=True), seq),
            )

    def list_events(self, since_seq: int = 0) -> List[AuditRecord]:
        with self._lock:
            rows = self.db.execute(
                "SELECT seq,event_type,payload,ts FROM audit WHERE seq>? ORDER BY seq",
                (since_seq,),
            ).fetchall()
        return [AuditRecord(seq, event_type, json.loads(payload), ts) for seq, event_type, payload, ts in rows]

    def close(self):
        self.db.close()

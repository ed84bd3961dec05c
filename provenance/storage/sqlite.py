# provenance/storage/sqlite.py
import os
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from provenance.core.types import Item, Checkpoint, Status
from provenance.core.canon import canonical_json_str
from . import StorageBackend


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for the custody ledger."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("PROVENANCE_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "provenance-ledger.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0
        self._connect()

    def _connect(self):
        # Autocommit mode; multi-statement writes go through transaction().
        # The ledger serialises all access under its own lock.
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS items (
                item_id             TEXT    PRIMARY KEY,
                description         TEXT    NOT NULL,
                creator             TEXT    NOT NULL,
                current_custodian   TEXT    NOT NULL,
                current_status      TEXT    NOT NULL,
                active              INTEGER NOT NULL,
                created_at          TEXT    NOT NULL,
                position            INTEGER NOT NULL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS checkpoints (
                item_id         TEXT    NOT NULL,
                sequence        INTEGER NOT NULL,
                prev_hash       TEXT    NOT NULL,
                checkpoint_hash TEXT    NOT NULL,
                timestamp       TEXT    NOT NULL,
                actor           TEXT    NOT NULL,
                status          TEXT    NOT NULL,
                canonical_json  TEXT    NOT NULL,
                PRIMARY KEY (item_id, sequence)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS holdings (
                actor       TEXT    NOT NULL,
                position    INTEGER NOT NULL,
                item_id     TEXT    NOT NULL,
                PRIMARY KEY (actor, position)
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS participants (
                actor       TEXT    PRIMARY KEY,
                position    INTEGER NOT NULL
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS meta (
                key     TEXT    PRIMARY KEY,
                value   TEXT    NOT NULL
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_items_position ON items(position)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_cp_actor ON checkpoints(actor)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_holdings_item ON holdings(item_id)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    @contextmanager
    def transaction(self):
        conn = self.conn
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._depth = 0

    # ── items

    @staticmethod
    def _row_to_item(row) -> Item:
        item_id, desc, creator, custodian, status, active, created_at = row
        return Item(
            id=item_id,
            description=desc,
            creator=creator,
            current_custodian=custodian,
            current_status=Status(status),
            active=bool(active),
            created_at=created_at,
        )

    def get_item(self, item_id: str) -> Optional[Item]:
        row = self.conn.execute("""
            SELECT item_id, description, creator, current_custodian,
                   current_status, active, created_at
            FROM items WHERE item_id = ?
        """, (item_id,)).fetchone()
        return self._row_to_item(row) if row else None

    def put_item(self, item: Item) -> None:
        values = (
            item.description, item.creator, item.current_custodian,
            item.current_status.value, int(item.active), item.created_at,
        )
        updated = self.conn.execute("""
            UPDATE items
            SET description = ?, creator = ?, current_custodian = ?,
                current_status = ?, active = ?, created_at = ?
            WHERE item_id = ?
        """, values + (item.id,))
        if updated.rowcount:
            return
        self.conn.execute("""
            INSERT INTO items
            (description, creator, current_custodian, current_status, active,
             created_at, item_id, position)
            VALUES (?, ?, ?, ?, ?, ?, ?, (SELECT COUNT(*) FROM items))
        """, values + (item.id,))

    def list_item_ids(self, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        cursor = self.conn.execute(
            "SELECT item_id FROM items ORDER BY position ASC LIMIT ? OFFSET ?",
            (-1 if limit is None else limit, offset),
        )
        return [row[0] for row in cursor]

    def count_items(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]

    # ── checkpoints

    def append_checkpoint(self, cp: Checkpoint) -> None:
        if cp.hash is None:
            raise ValueError("Cannot persist unsealed checkpoint")

        payload = cp.payload()
        canon_str = canonical_json_str(payload)

        # Plain INSERT: a duplicate (item_id, sequence) is an error, never a silent overwrite
        self.conn.execute("""
            INSERT INTO checkpoints
            (item_id, sequence, prev_hash, checkpoint_hash, timestamp,
             actor, status, canonical_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            cp.item_id, cp.sequence, cp.prev_hash, cp.hash,
            cp.timestamp, cp.actor, cp.status.value, canon_str,
        ))

    def history_length(self, item_id: str) -> int:
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM checkpoints WHERE item_id = ?",
            (item_id,)
        )
        return cursor.fetchone()[0]

    def load_checkpoints(self, item_id: str, offset: int = 0, limit: Optional[int] = None) -> List[Checkpoint]:
        cursor = self.conn.execute("""
            SELECT checkpoint_hash, canonical_json
            FROM checkpoints
            WHERE item_id = ?
            ORDER BY sequence ASC
            LIMIT ? OFFSET ?
        """, (item_id, -1 if limit is None else limit, offset))

        loaded = []
        for row in cursor:
            stored_hash, cjson = row
            payload = json.loads(cjson)
            payload["hash"] = stored_hash
            loaded.append(Checkpoint.from_dict(payload))
        return loaded

    # ── ownership index

    def append_holding(self, actor: str, item_id: str) -> None:
        self.conn.execute("""
            INSERT INTO holdings (actor, position, item_id)
            VALUES (?, (SELECT COUNT(*) FROM holdings WHERE actor = ?), ?)
        """, (actor, actor, item_id))

    def load_holdings(self, actor: str) -> List[str]:
        cursor = self.conn.execute(
            "SELECT item_id FROM holdings WHERE actor = ? ORDER BY position ASC",
            (actor,)
        )
        return [row[0] for row in cursor]

    def list_holders(self) -> List[str]:
        cursor = self.conn.execute("SELECT DISTINCT actor FROM holdings ORDER BY actor ASC")
        return [row[0] for row in cursor]

    # ── access control

    def get_meta(self, key: str) -> Optional[str]:
        row = self.conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        self.conn.execute("""
            INSERT INTO meta (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """, (key, value))

    def add_participant(self, actor: str) -> None:
        self.conn.execute("""
            INSERT OR IGNORE INTO participants (actor, position)
            VALUES (?, (SELECT COALESCE(MAX(position), -1) + 1 FROM participants))
        """, (actor,))

    def remove_participant(self, actor: str) -> None:
        self.conn.execute("DELETE FROM participants WHERE actor = ?", (actor,))

    def is_participant(self, actor: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM participants WHERE actor = ?", (actor,)).fetchone()
        return row is not None

    def list_participants(self) -> List[str]:
        cursor = self.conn.execute("SELECT actor FROM participants ORDER BY position ASC")
        return [row[0] for row in cursor]

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

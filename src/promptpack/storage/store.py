"""SQLite-backed store for imported files and their cached artifacts."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from promptpack.models import StoredFile, now_millis
from promptpack.storage.schema import COLUMNS, SCHEMA

logger = logging.getLogger(__name__)

Listener = Callable[[list[StoredFile]], None]

_ORDER = "ORDER BY is_favorite DESC, last_accessed_at DESC, id DESC"


class FileStore:
    """SQLite-backed implementation of the ArtifactCache protocol.

    Each call opens its own connection, so the store can be shared by
    worker threads. Writes are last-writer-wins.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA temp_store = MEMORY")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)

    # Writes

    def upsert(self, file: StoredFile) -> int:
        """Insert a file, or update the row that already owns its path.

        An update keeps the row id and creation time; cached artifacts are
        replaced by whatever the given record carries.
        """
        values = (
            file.display_name,
            file.file_path,
            file.language,
            file.size_bytes,
            file.extension,
            file.created_at,
            file.last_accessed_at,
            file.last_known_tree,
            file.summary,
            file.custom_ignore_patterns,
            int(file.is_favorite),
            int(file.is_archived),
        )
        with self.connection() as conn:
            if file.id is not None:
                cursor = conn.execute(
                    """UPDATE files SET display_name = ?, file_path = ?, language = ?,
                       size_bytes = ?, extension = ?, created_at = ?, last_accessed_at = ?,
                       last_known_tree = ?, summary = ?, custom_ignore_patterns = ?,
                       is_favorite = ?, is_archived = ?
                       WHERE id = ?""",
                    (*values, file.id),
                )
                if cursor.rowcount:
                    file_id = file.id
                else:
                    file_id = self._insert(conn, values)
            else:
                file_id = self._insert(conn, values)
        self._notify()
        return file_id

    @staticmethod
    def _insert(conn: sqlite3.Connection, values: tuple) -> int:
        conn.execute(
            """INSERT INTO files
               (display_name, file_path, language, size_bytes, extension, created_at,
                last_accessed_at, last_known_tree, summary, custom_ignore_patterns,
                is_favorite, is_archived)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(file_path) DO UPDATE SET
                   display_name = excluded.display_name,
                   language = excluded.language,
                   size_bytes = excluded.size_bytes,
                   extension = excluded.extension,
                   last_accessed_at = excluded.last_accessed_at,
                   last_known_tree = excluded.last_known_tree,
                   summary = excluded.summary,
                   custom_ignore_patterns = excluded.custom_ignore_patterns,
                   is_favorite = excluded.is_favorite,
                   is_archived = excluded.is_archived""",
            values,
        )
        row = conn.execute("SELECT id FROM files WHERE file_path = ?", (values[1],)).fetchone()
        return row["id"]

    def update_tree(self, file_id: int, tree: str) -> None:
        self._update(file_id, "last_known_tree = ?", (tree,))

    def update_metadata_index(self, file_id: int, tree: str, summary: str) -> None:
        """Store a tree together with the summary computed from the same run."""
        self._update(file_id, "last_known_tree = ?, summary = ?", (tree, summary))

    def update_last_accessed(self, file_id: int, timestamp: Optional[int] = None) -> None:
        ts = now_millis() if timestamp is None else timestamp
        self._update(file_id, "last_accessed_at = ?", (ts,))

    def set_favorite(self, file_id: int, favorite: bool) -> None:
        self._update(file_id, "is_favorite = ?", (int(favorite),))

    def set_archived(self, file_id: int, archived: bool) -> None:
        self._update(file_id, "is_archived = ?", (int(archived),))

    def delete(self, file_id: int) -> None:
        with self.connection() as conn:
            conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
        self._notify()

    def _update(self, file_id: int, assignments: str, params: tuple) -> None:
        with self.connection() as conn:
            conn.execute(f"UPDATE files SET {assignments} WHERE id = ?", (*params, file_id))
        self._notify()

    # Queries

    def get_by_id(self, file_id: int) -> Optional[StoredFile]:
        with self.connection() as conn:
            row = conn.execute("SELECT * FROM files WHERE id = ? LIMIT 1", (file_id,)).fetchone()
            return self._to_file(row) if row else None

    def list_files(self) -> list[StoredFile]:
        with self.connection() as conn:
            cursor = conn.execute(f"SELECT * FROM files WHERE is_archived = 0 {_ORDER}")
            return [self._to_file(row) for row in cursor]

    def search(self, query: str) -> list[StoredFile]:
        """Substring match on display name, exact match on extension."""
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        extension = query.strip().lstrip(".").lower()
        with self.connection() as conn:
            cursor = conn.execute(
                f"""SELECT * FROM files
                    WHERE is_archived = 0 AND (
                        display_name LIKE ? ESCAPE '\\'
                        OR extension = ?
                    )
                    {_ORDER}""",
                (f"%{escaped}%", extension),
            )
            return [self._to_file(row) for row in cursor]

    # Live query

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for the ordered file list; returns an unsubscribe."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        files = self.list_files()
        for listener in listeners:
            try:
                listener(files)
            except Exception:
                logger.exception("File list listener failed")

    @staticmethod
    def _to_file(row: sqlite3.Row) -> StoredFile:
        data = {column: row[column] for column in COLUMNS}
        data["is_favorite"] = bool(data["is_favorite"])
        data["is_archived"] = bool(data["is_archived"])
        return StoredFile(**data)

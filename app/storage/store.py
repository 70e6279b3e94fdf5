import logging
import sqlite3
from pathlib import Path
from typing import Optional

from app.storage.models import (
    Download,
    DownloadCreate,
    Feedback,
    FeedbackCreate,
    HistoryCreate,
    HistoryEntry,
    utc_timestamp,
)

logger = logging.getLogger("uvicorn.error")


class BrowserStore:
    """
    SQLite-backed store for browsing history, downloads and feedback.
    Every call opens its own connection.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        if not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info(f"[Storage] Using database at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL,
                    title TEXT NOT NULL DEFAULT '',
                    timestamp TEXT NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS downloads (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    filename TEXT NOT NULL,
                    url TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    progress INTEGER NOT NULL DEFAULT 0,
                    timestamp TEXT NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feedback (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message TEXT NOT NULL,
                    rating INTEGER NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """
            )
            conn.commit()

    # History
    def list_history(self, limit: int) -> list[HistoryEntry]:
        with self._connect() as conn:
            cur = conn.execute(
                "SELECT id, url, title, timestamp FROM history "
                "ORDER BY timestamp DESC, id DESC LIMIT ?",
                (limit,),
            )
            rows = cur.fetchall()
        return [HistoryEntry.from_row(row) for row in rows]

    def create_history(self, item: HistoryCreate) -> HistoryEntry:
        timestamp = utc_timestamp()
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO history (url, title, timestamp) VALUES (?, ?, ?)",
                (item.url, item.title, timestamp),
            )
            conn.commit()
            entry_id = cur.lastrowid
        return HistoryEntry(id=entry_id, timestamp=timestamp, **item.model_dump())

    # Downloads
    def list_downloads(self) -> list[Download]:
        with self._connect() as conn:
            cur = conn.execute(
                "SELECT id, filename, url, status, progress, timestamp FROM downloads "
                "ORDER BY timestamp DESC, id DESC"
            )
            rows = cur.fetchall()
        return [Download.from_row(row) for row in rows]

    def load_download(self, download_id: int) -> Optional[Download]:
        with self._connect() as conn:
            cur = conn.execute(
                "SELECT id, filename, url, status, progress, timestamp FROM downloads "
                "WHERE id = ?",
                (download_id,),
            )
            row = cur.fetchone()
        return Download.from_row(row)

    def create_download(self, item: DownloadCreate) -> Download:
        timestamp = utc_timestamp()
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO downloads (filename, url, status, progress, timestamp) "
                "VALUES (:filename, :url, :status, :progress, :timestamp)",
                {**item.model_dump(), "timestamp": timestamp},
            )
            conn.commit()
            download_id = cur.lastrowid
        return Download(id=download_id, timestamp=timestamp, **item.model_dump())

    def update_download_status(
        self, download_id: int, status: str, progress: Optional[int] = None
    ) -> Optional[Download]:
        """Set a download's status, and its progress when given. None if unknown."""
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE downloads SET status = ?, progress = COALESCE(?, progress) "
                "WHERE id = ?",
                (status, progress, download_id),
            )
            conn.commit()
            if cur.rowcount == 0:
                return None
        return self.load_download(download_id)

    # Feedback
    def create_feedback(self, item: FeedbackCreate) -> Feedback:
        timestamp = utc_timestamp()
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO feedback (message, rating, timestamp) VALUES (?, ?, ?)",
                (item.message, item.rating, timestamp),
            )
            conn.commit()
            feedback_id = cur.lastrowid
        return Feedback(id=feedback_id, timestamp=timestamp, **item.model_dump())

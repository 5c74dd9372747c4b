"""SQLite-backed local translation store.

One row per cache key. Rows are written once (``INSERT OR IGNORE``); the
store reports ``QuotaExceeded`` once it holds ``max_entries`` rows so the
cache can prune and retry.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from dualsub.core.errors import QuotaExceeded
from dualsub.core.models import CacheKey, TranslationRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS translations (
    key TEXT PRIMARY KEY,
    video_id TEXT NOT NULL,
    model TEXT NOT NULL,
    source_lang TEXT NOT NULL,
    target_lang TEXT NOT NULL,
    source_text TEXT NOT NULL,
    translation TEXT NOT NULL,
    updated_at REAL NOT NULL
)
"""

_COLUMNS = "video_id, model, source_lang, target_lang, source_text, translation, updated_at"


def _row_to_record(row: sqlite3.Row) -> TranslationRecord:
    return TranslationRecord(
        video_id=row["video_id"],
        model=row["model"],
        source_lang=row["source_lang"],
        target_lang=row["target_lang"],
        source_text=row["source_text"],
        translation=row["translation"],
        updated_at=row["updated_at"],
    )


class SqliteTranslationStore:
    """Local persistent tier. Queries are small, so they run on the loop thread."""

    def __init__(self, path: Path | str, max_entries: int = 5000) -> None:
        self.max_entries = max_entries
        if str(path) == ":memory:":
            target = ":memory:"
        else:
            db_path = Path(path).expanduser()
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        self._conn = sqlite3.connect(target)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute(_SCHEMA)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_translations_updated ON translations(updated_at)"
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    async def get(self, key: CacheKey) -> TranslationRecord | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM translations WHERE key = ?", (key.digest(),)
        ).fetchone()
        return _row_to_record(row) if row else None

    async def put(self, record: TranslationRecord) -> None:
        digest = record.key.digest()
        exists = self._conn.execute(
            "SELECT 1 FROM translations WHERE key = ?", (digest,)
        ).fetchone()
        if exists:
            return
        if await self.count() >= self.max_entries:
            raise QuotaExceeded(f"Local store full ({self.max_entries} entries)")
        try:
            self._conn.execute(
                f"INSERT OR IGNORE INTO translations (key, {_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    digest,
                    record.video_id,
                    record.model,
                    record.source_lang,
                    record.target_lang,
                    record.source_text,
                    record.translation,
                    record.updated_at,
                ),
            )
            self._conn.commit()
        except sqlite3.OperationalError as e:
            self._conn.rollback()
            if "full" in str(e).lower():
                raise QuotaExceeded(str(e)) from e
            raise

    async def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM translations").fetchone()[0]

    async def prune_oldest(self, n: int) -> int:
        """Delete the ``n`` least recently updated rows, return how many went."""
        if n <= 0:
            return 0
        cursor = self._conn.execute(
            "DELETE FROM translations WHERE key IN "
            "(SELECT key FROM translations ORDER BY updated_at ASC LIMIT ?)",
            (n,),
        )
        self._conn.commit()
        return cursor.rowcount

    async def records(self, video_id: str | None = None) -> list[TranslationRecord]:
        if video_id:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM translations WHERE video_id = ? ORDER BY updated_at",
                (video_id,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM translations ORDER BY updated_at"
            ).fetchall()
        return [_row_to_record(row) for row in rows]

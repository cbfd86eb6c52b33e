"""SQLite vendor memory store for extraction patterns and static corrections."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..models.correction import decode_value, encode_value
from ..models.memory import ExtractionPattern, ValueCorrection, VendorMemory, reinforce
from .store import MemoryStoreError, VendorMemoryStore

logger = logging.getLogger(__name__)


class SqliteVendorMemoryStore(VendorMemoryStore):
    """Manages the SQLite memory database.

    One row per pattern and per static correction, scoped by vendor_name.
    Upserts look up the row by its identity key and update it in place inside
    a single write transaction, so concurrent learners cannot lose an update.
    """

    def __init__(self, db_path: Path):
        """Initialize memory database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)

        # Ensure data directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    @contextmanager
    def _connection(self, vendor: Optional[str], operation: str) -> Iterator[sqlite3.Connection]:
        """Open a connection; commit on success, roll back and wrap errors on failure."""
        try:
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        except sqlite3.Error as e:
            raise MemoryStoreError(
                f"Cannot open memory database {self.db_path}: {e}",
                vendor=vendor,
                operation=operation,
            ) from e
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            logger.error(f"Memory database {operation} failed (vendor={vendor}): {e}")
            raise MemoryStoreError(
                f"Memory database {operation} failed: {e}",
                vendor=vendor,
                operation=operation,
            ) from e
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._connection(vendor=None, operation="init_schema") as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS patterns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vendor_name TEXT NOT NULL,
                    field TEXT NOT NULL,
                    regex_pattern TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    usage_count INTEGER DEFAULT 1,
                    last_used TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (vendor_name, field, regex_pattern)
                )
            """)

            # trigger_value NULL is a distinct identity; lookups use IS, not =
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS static_corrections (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vendor_name TEXT NOT NULL,
                    field TEXT NOT NULL,
                    trigger_value TEXT,
                    corrected_value TEXT NOT NULL,
                    condition TEXT,
                    confidence REAL NOT NULL,
                    usage_count INTEGER DEFAULT 1,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_patterns_vendor
                ON patterns(vendor_name)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_static_corrections_vendor
                ON static_corrections(vendor_name, field)
            """)

            logger.debug(f"Database schema initialized: {self.db_path}")

    def get_vendor_memory(self, vendor: str) -> VendorMemory:
        with self._connection(vendor=vendor, operation="get_vendor_memory") as conn:
            cursor = conn.cursor()

            cursor.execute("""
                SELECT * FROM patterns
                WHERE vendor_name = ?
                ORDER BY id
            """, (vendor,))
            patterns = [
                ExtractionPattern(
                    field=row['field'],
                    regex_pattern=row['regex_pattern'],
                    confidence=row['confidence'],
                    usage_count=row['usage_count'],
                    last_used=row['last_used'] or "",
                )
                for row in cursor.fetchall()
            ]

            cursor.execute("""
                SELECT * FROM static_corrections
                WHERE vendor_name = ?
                ORDER BY id
            """, (vendor,))
            corrections = [
                ValueCorrection(
                    field=row['field'],
                    corrected_value=decode_value(row['corrected_value']),
                    trigger_value=row['trigger_value'],
                    condition=row['condition'],
                    confidence=row['confidence'],
                    usage_count=row['usage_count'],
                )
                for row in cursor.fetchall()
            ]

        return VendorMemory(vendor_name=vendor, patterns=patterns, static_corrections=corrections)

    def apply_updates(
        self,
        vendor: str,
        patterns: Sequence[ExtractionPattern] = (),
        corrections: Sequence[ValueCorrection] = (),
    ) -> None:
        with self._connection(vendor=vendor, operation="apply_updates") as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            for pattern in patterns:
                self._upsert_pattern(cursor, vendor, pattern)
            for correction in corrections:
                self._upsert_static_correction(cursor, vendor, correction)
            cursor.execute("COMMIT")

        logger.debug(
            f"Stored {len(patterns)} patterns and {len(corrections)} static corrections for {vendor}"
        )

    def _upsert_pattern(self, cursor: sqlite3.Cursor, vendor: str, pattern: ExtractionPattern) -> None:
        now = datetime.now().isoformat()
        cursor.execute("""
            SELECT id, confidence FROM patterns
            WHERE vendor_name = ? AND field = ? AND regex_pattern = ?
        """, (vendor, pattern.field, pattern.regex_pattern))
        row = cursor.fetchone()

        if row is not None:
            cursor.execute("""
                UPDATE patterns
                SET usage_count = usage_count + 1,
                    last_used = ?,
                    confidence = ?
                WHERE id = ?
            """, (now, reinforce(row['confidence']), row['id']))
            return

        cursor.execute("""
            INSERT INTO patterns (
                vendor_name, field, regex_pattern, confidence,
                usage_count, last_used, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            vendor,
            pattern.field,
            pattern.regex_pattern,
            pattern.confidence,
            pattern.usage_count,
            pattern.last_used or now,
            now,
        ))

    def _upsert_static_correction(
        self, cursor: sqlite3.Cursor, vendor: str, correction: ValueCorrection
    ) -> None:
        encoded = encode_value(correction.corrected_value)
        cursor.execute("""
            SELECT id, confidence FROM static_corrections
            WHERE vendor_name = ? AND field = ?
              AND trigger_value IS ? AND corrected_value = ?
        """, (vendor, correction.field, correction.trigger_value, encoded))
        row = cursor.fetchone()

        if row is not None:
            cursor.execute("""
                UPDATE static_corrections
                SET usage_count = usage_count + 1,
                    confidence = ?
                WHERE id = ?
            """, (reinforce(row['confidence']), row['id']))
            return

        cursor.execute("""
            INSERT INTO static_corrections (
                vendor_name, field, trigger_value, corrected_value,
                condition, confidence, usage_count, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            vendor,
            correction.field,
            correction.trigger_value,
            encoded,
            correction.condition,
            correction.confidence,
            correction.usage_count,
            datetime.now().isoformat(),
        ))

    def reset(self) -> None:
        with self._connection(vendor=None, operation="reset") as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute("DELETE FROM patterns")
            cursor.execute("DELETE FROM static_corrections")
            cursor.execute("COMMIT")
        logger.info(f"Cleared all vendor memory in {self.db_path}")

    def list_vendors(self) -> List[str]:
        with self._connection(vendor=None, operation="list_vendors") as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT vendor_name FROM patterns
                UNION
                SELECT vendor_name FROM static_corrections
                ORDER BY vendor_name
            """)
            return [row['vendor_name'] for row in cursor.fetchall()]

"""SQLite store for inquiries and their pass schedule.

One database per agent. Passes are stored as a JSON column on the inquiry
row since they are always read and written together with it.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from contemplation.core.config import PassConfig

from .models import (
    DuePass,
    GapRecord,
    Inquiry,
    InquiryPass,
    InquiryStatus,
    utcnow,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Schema Definition
# =============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS inquiries (
    id TEXT PRIMARY KEY,
    question TEXT NOT NULL,
    source TEXT NOT NULL,
    context TEXT,
    entropy REAL DEFAULT 0,
    tags JSON,
    status TEXT DEFAULT 'in_progress',
    created DATETIME NOT NULL,
    completed DATETIME,
    persisted INTEGER DEFAULT 0,
    passes JSON NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_inquiries_status ON inquiries(status);
CREATE INDEX IF NOT EXISTS idx_inquiries_created ON inquiries(created);
"""


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a datetime string from SQLite."""
    if value is None:
        return None
    return datetime.fromisoformat(value)


# =============================================================================
# InquiryStore Class
# =============================================================================


class InquiryStore:
    """SQLite-based storage for one agent's inquiries."""

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        agent_id: str = "main",
        passes: Optional[dict[str, PassConfig]] = None,
    ):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory.
            agent_id: Agent owning these inquiries
            passes: Pass schedule keyed by pass number ("1", "2", ...)
        """
        self.db_path = str(db_path)
        self.agent_id = agent_id
        self.passes = passes or {"1": PassConfig()}
        self._is_memory = self.db_path == ":memory:"
        self._persistent_conn: Optional[sqlite3.Connection] = None

        if self._is_memory:
            self._persistent_conn = sqlite3.connect(":memory:")
            self._persistent_conn.row_factory = sqlite3.Row
        else:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize database with schema."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def connection(self):
        """Get a database connection with proper cleanup.

        For in-memory databases, returns the persistent connection.
        For file-based databases, creates a new connection each time.
        """
        if self._is_memory:
            yield self._persistent_conn
            self._persistent_conn.commit()
        else:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def _pass_numbers(self) -> list[int]:
        return sorted(int(n) for n in self.passes)

    def _delay(self, number: int) -> timedelta:
        config = self.passes.get(str(number))
        return timedelta(minutes=config.delay_minutes if config else 0)

    # =========================================================================
    # Inquiry Operations
    # =========================================================================

    def add_inquiry(self, gap: GapRecord, now: Optional[datetime] = None) -> Inquiry:
        """Queue a gap for contemplation.

        The first pass is scheduled at creation plus its delay; later passes
        are scheduled as their predecessor completes.

        Args:
            gap: The wrapped gap
            now: Creation time (defaults to current UTC time)

        Returns:
            The created Inquiry, or the existing one if the id is taken
        """
        existing = self.get(gap.id)
        if existing is not None:
            logger.info(f"Inquiry {gap.id} already queued")
            return existing

        now = now or utcnow()
        numbers = self._pass_numbers()
        passes = [
            InquiryPass(
                number=number,
                scheduled=now + self._delay(number) if i == 0 else None,
            )
            for i, number in enumerate(numbers)
        ]

        inquiry = Inquiry(
            id=gap.id,
            question=gap.question,
            source=gap.source,
            context=gap.context,
            entropy=gap.entropy,
            created=now,
            passes=passes,
        )

        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO inquiries (
                    id, question, source, context, entropy, tags, status,
                    created, completed, persisted, passes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    inquiry.id,
                    inquiry.question,
                    inquiry.source,
                    inquiry.context,
                    inquiry.entropy,
                    json.dumps(inquiry.tags),
                    inquiry.status.value,
                    inquiry.created.isoformat(),
                    None,
                    0,
                    self._dump_passes(inquiry.passes),
                ),
            )

        logger.info(f"[{self.agent_id}] Added inquiry {inquiry.id}: {inquiry.question[:80]}")
        return inquiry

    def get(self, inquiry_id: str) -> Optional[Inquiry]:
        """Get an inquiry by ID."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM inquiries WHERE id = ?", (inquiry_id,)
            ).fetchone()
            if row is None:
                return None
            return self._row_to_inquiry(row)

    def list_inquiries(self, status: Optional[InquiryStatus] = None) -> list[Inquiry]:
        """All inquiries, oldest first, optionally filtered by status."""
        with self.connection() as conn:
            if status:
                rows = conn.execute(
                    "SELECT * FROM inquiries WHERE status = ? ORDER BY created, rowid",
                    (status.value,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM inquiries ORDER BY created, rowid"
                ).fetchall()
            return [self._row_to_inquiry(row) for row in rows]

    def update(self, inquiry: Inquiry) -> None:
        """Write back an inquiry's mutable fields."""
        with self.connection() as conn:
            conn.execute(
                """
                UPDATE inquiries SET
                    tags = ?,
                    status = ?,
                    completed = ?,
                    persisted = ?,
                    passes = ?
                WHERE id = ?
                """,
                (
                    json.dumps(inquiry.tags),
                    inquiry.status.value,
                    inquiry.completed.isoformat() if inquiry.completed else None,
                    1 if inquiry.persisted else 0,
                    self._dump_passes(inquiry.passes),
                    inquiry.id,
                ),
            )

    # =========================================================================
    # Pass Scheduling
    # =========================================================================

    def get_due_pass(self, now: Optional[datetime] = None) -> Optional[DuePass]:
        """The oldest in-progress inquiry whose next pass is due.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            DuePass, or None if nothing is due
        """
        now = now or utcnow()
        for inquiry in self.list_inquiries(InquiryStatus.IN_PROGRESS):
            next_pass = inquiry.next_pass()
            if next_pass and next_pass.scheduled and next_pass.scheduled <= now:
                return DuePass(inquiry=inquiry, pass_number=next_pass.number)
        return None

    def complete_pass(
        self,
        inquiry_id: str,
        pass_number: int,
        output: str,
        now: Optional[datetime] = None,
    ) -> Optional[Inquiry]:
        """Record a pass's output and schedule the next one.

        Args:
            inquiry_id: The inquiry
            pass_number: The pass that ran
            output: Reflection text
            now: Completion time (defaults to current UTC time)

        Returns:
            The updated inquiry, or None if the inquiry or pass is unknown

        Raises:
            ValueError: If an earlier pass is still incomplete
        """
        inquiry = self.get(inquiry_id)
        if inquiry is None:
            logger.warning(f"[{self.agent_id}] Inquiry not found: {inquiry_id}")
            return None

        target = inquiry.get_pass(pass_number)
        if target is None:
            logger.warning(f"[{self.agent_id}] Inquiry {inquiry_id} has no pass {pass_number}")
            return None
        if target.is_complete:
            logger.info(f"[{self.agent_id}] Pass {pass_number} of {inquiry_id} already complete")
            return inquiry

        expected = inquiry.next_pass()
        if expected.number != pass_number:
            raise ValueError(
                f"Pass {pass_number} of {inquiry_id} cannot complete before pass {expected.number}"
            )

        now = now or utcnow()
        target.completed = now
        target.output = output

        following = inquiry.next_pass()
        if following is not None:
            following.scheduled = now + self._delay(following.number)
        else:
            inquiry.status = InquiryStatus.COMPLETED
            inquiry.completed = now

        self.update(inquiry)
        return inquiry

    # =========================================================================
    # Persistence Tracking
    # =========================================================================

    def get_completed_unpersisted(self) -> list[Inquiry]:
        """Completed inquiries whose insights have not been written yet."""
        return [i for i in self.list_inquiries(InquiryStatus.COMPLETED) if not i.persisted]

    def mark_persisted(self, inquiry_id: str) -> Optional[Inquiry]:
        """Flag an inquiry's insights as written."""
        inquiry = self.get(inquiry_id)
        if inquiry is None:
            logger.warning(f"[{self.agent_id}] Inquiry not found: {inquiry_id}")
            return None
        inquiry.persisted = True
        self.update(inquiry)
        return inquiry

    def set_tags(self, inquiry_id: str, tags: list[str]) -> Optional[Inquiry]:
        """Replace an inquiry's topic tags."""
        inquiry = self.get(inquiry_id)
        if inquiry is None:
            logger.warning(f"[{self.agent_id}] Inquiry not found: {inquiry_id}")
            return None
        inquiry.tags = list(tags)
        self.update(inquiry)
        return inquiry

    # =========================================================================
    # Row Conversion
    # =========================================================================

    @staticmethod
    def _dump_passes(passes: list[InquiryPass]) -> str:
        return json.dumps([p.model_dump(mode="json") for p in passes])

    def _row_to_inquiry(self, row: sqlite3.Row) -> Inquiry:
        """Convert a database row to an Inquiry model."""
        return Inquiry(
            id=row["id"],
            question=row["question"],
            source=row["source"],
            context=row["context"] or "",
            entropy=row["entropy"] or 0.0,
            tags=json.loads(row["tags"]) if row["tags"] else [],
            status=InquiryStatus(row["status"]),
            created=_parse_datetime(row["created"]),
            completed=_parse_datetime(row["completed"]),
            persisted=bool(row["persisted"]),
            passes=[InquiryPass.model_validate(p) for p in json.loads(row["passes"])],
        )

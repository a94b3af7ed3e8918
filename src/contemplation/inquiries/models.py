"""Pydantic models for inquiries and their contemplative passes.

An Inquiry is a gap queued for reflective work. Each inquiry carries an
ordered list of passes; a pass is due once its scheduled time has arrived
and every earlier pass is complete.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

PASS_LABELS = ["initial", "settling", "synthesis"]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def pass_label(number: int) -> str:
    """Human label for a pass number (1-based)."""
    if 1 <= number <= len(PASS_LABELS):
        return PASS_LABELS[number - 1]
    return f"pass {number}"


class InquiryStatus(str, Enum):
    """Lifecycle of an inquiry."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class InquiryPass(BaseModel):
    """One scheduled pass over an inquiry."""

    number: int
    scheduled: Optional[datetime] = None  # None until the previous pass completes
    completed: Optional[datetime] = None
    output: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.completed is not None


class GapRecord(BaseModel):
    """An extracted gap wrapped with its origin, ready to become an inquiry."""

    id: str
    question: str
    source: str
    context: str = ""
    entropy: float = 0.0


class Inquiry(BaseModel):
    """A gap under contemplation."""

    id: str
    question: str
    source: str
    context: str = ""
    entropy: float = 0.0
    tags: list[str] = Field(default_factory=list)
    status: InquiryStatus = InquiryStatus.IN_PROGRESS
    created: datetime = Field(default_factory=utcnow)
    completed: Optional[datetime] = None
    persisted: bool = False
    passes: list[InquiryPass] = Field(default_factory=list)

    def next_pass(self) -> Optional[InquiryPass]:
        """First incomplete pass, or None when all are done."""
        return next((p for p in self.passes if not p.is_complete), None)

    def get_pass(self, number: int) -> Optional[InquiryPass]:
        return next((p for p in self.passes if p.number == number), None)

    @property
    def completed_pass_count(self) -> int:
        return sum(1 for p in self.passes if p.is_complete)

    @property
    def final_output(self) -> str:
        """Output of the last pass, empty until it completes."""
        if not self.passes:
            return ""
        return self.passes[-1].output or ""


class DuePass(BaseModel):
    """A pass that is ready to run."""

    inquiry: Inquiry
    pass_number: int

"""Inquiry queue - models and the per-agent pass-scheduling store."""

from .models import (
    PASS_LABELS,
    DuePass,
    GapRecord,
    Inquiry,
    InquiryPass,
    InquiryStatus,
    pass_label,
    utcnow,
)
from .store import InquiryStore

__all__ = [
    "PASS_LABELS",
    "DuePass",
    "GapRecord",
    "Inquiry",
    "InquiryPass",
    "InquiryStatus",
    "InquiryStore",
    "pass_label",
    "utcnow",
]

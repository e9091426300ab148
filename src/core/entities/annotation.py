"""
Journal annotations attached to trades by the user.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JournalAnnotation(BaseModel):
    trade_id: str
    notes: str = ""
    tags: List[str] = []
    rating: int = Field(default=0, ge=0, le=5)
    screenshot_url: str = ""
    updated_at: datetime = Field(default_factory=_utcnow)


class AnnotationPatch(BaseModel):
    """
    Partial update; only fields that are set are applied.
    """
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    rating: Optional[int] = Field(default=None, ge=0, le=5)
    screenshot_url: Optional[str] = None


def apply_patch(current: Optional[JournalAnnotation], trade_id: str, patch: AnnotationPatch) -> JournalAnnotation:
    base = current or JournalAnnotation(trade_id=trade_id)
    changes = patch.model_dump(exclude_none=True)
    changes["updated_at"] = _utcnow()
    return base.model_copy(update=changes)

"""
Annotation repositories that need no database.
"""
import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import ValidationError

from src.core.entities.annotation import AnnotationPatch, JournalAnnotation, apply_patch
from src.core.interfaces.annotations import IAnnotationRepository

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATIONS_PATH = "data/annotations.json"


class InMemoryAnnotationRepository(IAnnotationRepository):
    def __init__(self):
        self._items: Dict[str, JournalAnnotation] = {}

    def get(self, trade_id: str) -> Optional[JournalAnnotation]:
        return self._items.get(trade_id)

    def upsert(self, trade_id: str, patch: AnnotationPatch) -> JournalAnnotation:
        updated = apply_patch(self._items.get(trade_id), trade_id, patch)
        self._items[trade_id] = updated
        return updated

    def list_all(self) -> List[JournalAnnotation]:
        return list(self._items.values())


class JsonFileAnnotationRepository(InMemoryAnnotationRepository):
    """
    Keeps every annotation in memory and rewrites one JSON file
    (trade_id -> annotation) on each upsert.
    """

    def __init__(self, path: Optional[str] = None):
        super().__init__()
        self.path = path or os.getenv("ANNOTATIONS_PATH", DEFAULT_ANNOTATIONS_PATH)
        self._load()

    def _load(self):
        """
        Loads every row that validates. If the file or any row is unreadable,
        the original file is moved to `<path>.corrupt` before anything is
        rewritten, so no stored annotation is lost.
        """
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            if not isinstance(raw, dict):
                raise ValueError("expected an object keyed by trade id")
        except (OSError, ValueError) as e:
            logger.error(f"Could not read annotations from {self.path}: {e}")
            self._quarantine()
            return

        failed = 0
        for trade_id, item in raw.items():
            try:
                self._items[trade_id] = JournalAnnotation.model_validate(item)
            except ValidationError as e:
                failed += 1
                logger.warning(f"Skipping invalid annotation {trade_id}: {e}")

        logger.info(f"Loaded {len(self._items)} annotations from {self.path}")
        if failed:
            self._quarantine()

    def _quarantine(self):
        corrupt_path = f"{self.path}.corrupt"
        os.replace(self.path, corrupt_path)
        logger.error(f"Moved unreadable annotations file to {corrupt_path}")

    def _save(self):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        data = {trade_id: a.model_dump(mode="json") for trade_id, a in self._items.items()}
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_path, self.path)

    def upsert(self, trade_id: str, patch: AnnotationPatch) -> JournalAnnotation:
        updated = super().upsert(trade_id, patch)
        self._save()
        return updated

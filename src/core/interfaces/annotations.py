from abc import ABC, abstractmethod
from typing import List, Optional

from src.core.entities.annotation import AnnotationPatch, JournalAnnotation


class IAnnotationRepository(ABC):
    @abstractmethod
    def get(self, trade_id: str) -> Optional[JournalAnnotation]:
        pass

    @abstractmethod
    def upsert(self, trade_id: str, patch: AnnotationPatch) -> JournalAnnotation:
        """
        Applies the set fields of the patch over the stored (or blank)
        annotation and stamps updated_at.
        """
        pass

    @abstractmethod
    def list_all(self) -> List[JournalAnnotation]:
        pass

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

ImageType = Literal["leaf", "fruit", "unknown"]


@dataclass(frozen=True)
class ImageRecord:
    """Canonical in-memory shape of one classified image.

    Built once at the ingestion boundary by `dal.record_adapter`, so nothing
    downstream has to re-derive label or filename fallbacks.

    Attributes:
        id: Backend primary key.
        disease_label: Predicted disease label ("Unknown" when absent).
        confidence_score: Raw score as supplied (0-1 fraction or 0-100 percentage).
        verified: Whether an administrator verified the prediction.
        uploaded_at: Upload time (timezone aware), None when the source omitted it.
        model_used: Optional model-assigned type hint (leaf/fruit).
        disease_type: Optional backend-assigned type hint.
        filename: Original upload filename, if known.
        image_url: Stored media URL or path, if known.
        user_id: Id of the uploading user.
        username: Username of the uploading user.
    """

    id: int
    disease_label: str = "Unknown"
    confidence_score: float = 0.0
    verified: bool = False
    uploaded_at: Optional[datetime] = None
    model_used: Optional[str] = None
    disease_type: Optional[str] = None
    filename: Optional[str] = None
    image_url: Optional[str] = None
    user_id: Optional[int] = None
    username: Optional[str] = None


@dataclass(frozen=True)
class ClassifiedImage:
    """An ImageRecord with its inferred type and normalized confidence."""

    record: ImageRecord
    image_type: ImageType
    confidence: float = field(default=0.0)

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def disease_label(self) -> str:
        return self.record.disease_label

    @property
    def verified(self) -> bool:
        return self.record.verified

    @property
    def uploaded_at(self) -> Optional[datetime]:
        return self.record.uploaded_at

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        record = self.record
        return {
            "id": record.id,
            "disease_label": record.disease_label,
            "image_type": self.image_type,
            "confidence": round(self.confidence, 2),
            "verified": record.verified,
            "uploaded_at": record.uploaded_at.isoformat() if record.uploaded_at else None,
            "filename": record.filename,
            "image_url": record.image_url,
            "user_id": record.user_id,
            "username": record.username,
        }

"""Infer leaf/fruit/unknown types and normalize confidence scores."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from models.image_record import ClassifiedImage, ImageRecord, ImageType
from services.classification.disease_keywords import (
    HEALTHY_DEFAULT_TYPE,
    HEALTHY_KEYWORD,
    KEYWORD_TABLE,
)

_VALID_TYPES = ("leaf", "fruit", "unknown")


def normalize_confidence(score: Optional[float]) -> float:
    """Return `score` as a percentage.

    Scores at or below 1 are fractions and get scaled by 100; anything larger is
    already a percentage. Missing scores count as 0. Apply exactly once.
    """
    if not score:
        return 0.0
    value = float(score)
    return value * 100 if value <= 1 else value


class ImageTypeClassifier:
    """Resolve an image type from authoritative hints with a keyword fallback.

    Args:
        keyword_table: Ordered `(keyword, type)` pairs; defaults to the curated table.
    """

    def __init__(self, keyword_table: Sequence[Tuple[str, str]] = KEYWORD_TABLE) -> None:
        self.keyword_table = tuple(keyword_table)

    def infer_type(self, record: ImageRecord) -> ImageType:
        """Return the image type using the first rule that matches."""
        model_type = _clean_type(record.model_used)
        if model_type:
            return model_type

        backend_type = _clean_type(record.disease_type)
        if backend_type and backend_type != "unknown":
            return backend_type

        label = (record.disease_label or "").lower()
        for keyword, image_type in self.keyword_table:
            if keyword in label:
                return image_type  # type: ignore[return-value]

        if HEALTHY_KEYWORD in label:
            return HEALTHY_DEFAULT_TYPE  # type: ignore[return-value]
        return "unknown"

    def classify(self, record: ImageRecord) -> ClassifiedImage:
        """Attach the inferred type and normalized confidence to a record."""
        return ClassifiedImage(
            record=record,
            image_type=self.infer_type(record),
            confidence=normalize_confidence(record.confidence_score),
        )

    def classify_all(self, records: Iterable[ImageRecord]) -> List[ClassifiedImage]:
        return [self.classify(record) for record in records]


def _clean_type(value: Optional[str]) -> Optional[ImageType]:
    """Return a recognised type hint, or None for blank/unrecognised values."""
    if not value:
        return None
    cleaned = value.strip().lower()
    if cleaned not in _VALID_TYPES:
        return None
    return cleaned  # type: ignore[return-value]

"""Build the four-category folder hierarchy from classified images."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Sequence, Tuple

from models.folder_models import CATEGORIES, CATEGORY_NAMES, DiseaseFolder, MainFolder
from models.image_record import ClassifiedImage

UNKNOWN_CONFIDENCE_THRESHOLD = 50.0

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def folder_display_name(disease_label: str, image_type: str) -> str:
    """Return the label with a capitalized type suffix, e.g. "Anthracnose (Leaf)"."""
    if image_type == "unknown":
        return disease_label
    return f"{disease_label} ({image_type.capitalize()})"


def newest_first(images: Sequence[ClassifiedImage]) -> Tuple[ClassifiedImage, ...]:
    """Order images by upload time, newest first; undated images go last."""
    return tuple(sorted(images, key=lambda image: image.uploaded_at or _OLDEST, reverse=True))


def group_by_disease(images: Sequence[ClassifiedImage]) -> List[DiseaseFolder]:
    """Group images on (disease label, type), keeping first-appearance order."""
    groups: Dict[Tuple[str, str], List[ClassifiedImage]] = {}
    for image in images:
        groups.setdefault((image.disease_label, image.image_type), []).append(image)

    return [
        DiseaseFolder(
            disease_label=label,
            image_type=image_type,  # type: ignore[arg-type]
            name=folder_display_name(label, image_type),
            images=newest_first(members),
        )
        for (label, image_type), members in groups.items()
    ]


class FolderHierarchyBuilder:
    """Partition images into the All / Verified / Unverified / Unknown folders.

    Args:
        threshold: Normalized confidence below which an image is "unknown".
    """

    def __init__(self, threshold: float = UNKNOWN_CONFIDENCE_THRESHOLD) -> None:
        self.threshold = threshold

    def category_of(self, image: ClassifiedImage) -> str:
        """Return the non-"all" category an image belongs to."""
        if image.confidence < self.threshold:
            return "unknown"
        return "verified" if image.verified else "unverified"

    def partition(self, images: Sequence[ClassifiedImage]) -> Dict[str, List[ClassifiedImage]]:
        buckets: Dict[str, List[ClassifiedImage]] = {category: [] for category in CATEGORIES}
        for image in images:
            buckets["all"].append(image)
            buckets[self.category_of(image)].append(image)
        return buckets

    def build(self, images: Sequence[ClassifiedImage]) -> List[MainFolder]:
        """Rebuild the whole hierarchy; there is no incremental path."""
        buckets = self.partition(images)
        main_folders: List[MainFolder] = []
        for category in CATEGORIES:
            sub_folders = tuple(group_by_disease(buckets[category]))
            main_folders.append(
                MainFolder(
                    category=category,
                    name=CATEGORY_NAMES[category],
                    original_sub_folders=sub_folders,
                    sub_folders=list(sub_folders),
                )
            )
        return main_folders

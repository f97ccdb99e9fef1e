"""Folder hierarchy models for the image gallery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Tuple

from models.image_record import ClassifiedImage, ImageType

Category = Literal["all", "verified", "unverified", "unknown"]

CATEGORIES: Tuple[Category, ...] = ("all", "verified", "unverified", "unknown")

CATEGORY_NAMES: Dict[str, str] = {
	"all": "All Images",
	"verified": "Verified Images",
	"unverified": "Unverified Images",
	"unknown": "Unknown Images",
}


@dataclass(frozen=True)
class DiseaseFolder:
	"""Images sharing one disease label and inferred type."""

	disease_label: str
	image_type: ImageType
	name: str
	images: Tuple[ClassifiedImage, ...] = ()

	@property
	def count(self) -> int:
		return len(self.images)

	@property
	def key(self) -> Tuple[str, str]:
		return (self.disease_label, self.image_type)

	def image_ids(self) -> List[int]:
		return [image.id for image in self.images]

	def to_dict(self) -> dict:
		return {
			"name": self.name,
			"disease_label": self.disease_label,
			"image_type": self.image_type,
			"count": self.count,
			"images": [image.to_dict() for image in self.images],
		}


@dataclass
class MainFolder:
	"""One of the four top-level categories.

	`original_sub_folders` is the baseline produced by the hierarchy builder and
	is never touched by filtering; `sub_folders` is the current filtered view.
	"""

	category: Category
	name: str
	original_sub_folders: Tuple[DiseaseFolder, ...] = ()
	sub_folders: List[DiseaseFolder] = field(default_factory=list)

	@property
	def count(self) -> int:
		return sum(folder.count for folder in self.sub_folders)

	def to_dict(self) -> dict:
		return {
			"category": self.category,
			"name": self.name,
			"count": self.count,
			"sub_folders": [folder.to_dict() for folder in self.sub_folders],
		}

"""Selection helpers over immutable sets of image ids.

Every operation takes the current selection and returns a new frozenset, so a
caller can detect changes by comparing values. Membership is keyed purely by
image id and survives hierarchy rebuilds.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Sequence

from models.folder_models import DiseaseFolder, MainFolder
from models.image_record import ClassifiedImage

Selection = FrozenSet[int]

EMPTY_SELECTION: Selection = frozenset()


def toggle(image_id: int, selection: AbstractSet[int]) -> Selection:
	"""Add `image_id` if absent, remove it otherwise."""
	if image_id in selection:
		return frozenset(selection) - {image_id}
	return frozenset(selection) | {image_id}


def select_all_in_folder(folder: DiseaseFolder, selection: AbstractSet[int]) -> Selection:
	"""Add every image id of the folder's current (filtered) image list."""
	return frozenset(selection) | frozenset(folder.image_ids())


def deselect_all_in_folder(folder: DiseaseFolder, selection: AbstractSet[int]) -> Selection:
	return frozenset(selection) - frozenset(folder.image_ids())


def select_all(main_folders: Sequence[MainFolder]) -> Selection:
	"""Union of every image id in every materialized sub folder."""
	return frozenset(
		image.id
		for main_folder in main_folders
		for folder in main_folder.sub_folders
		for image in folder.images
	)


def deselect_all() -> Selection:
	return EMPTY_SELECTION


def is_selected(image_id: int, selection: AbstractSet[int]) -> bool:
	return image_id in selection


def is_folder_fully_selected(folder: DiseaseFolder, selection: AbstractSet[int]) -> bool:
	"""True iff the folder has images and every one of them is selected."""
	if not folder.images:
		return False
	return all(image.id in selection for image in folder.images)


def selected_ids(selection: Iterable[int]) -> List[int]:
	return sorted(selection)


def selected_images(main_folders: Sequence[MainFolder], selection: AbstractSet[int]) -> List[ClassifiedImage]:
	"""Resolve selected ids to records from the current view, without duplicates."""
	found: Dict[int, ClassifiedImage] = {}
	for image in unique_images(main_folders):
		if image.id in selection:
			found[image.id] = image
	return list(found.values())


def unique_images(main_folders: Sequence[MainFolder]) -> List[ClassifiedImage]:
	"""Every image of the current view once, in first-seen order."""
	seen: Dict[int, ClassifiedImage] = {}
	for main_folder in main_folders:
		for folder in main_folder.sub_folders:
			for image in folder.images:
				seen.setdefault(image.id, image)
	return list(seen.values())

"""Non-destructive filter/sort pipeline over the folder hierarchy.

Every pass starts again from `MainFolder.original_sub_folders`, so clearing the
filters always reproduces the grouping the hierarchy builder produced.
"""

from __future__ import annotations

import calendar
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from models.filter_criteria import FilterCriteria
from models.folder_models import DiseaseFolder, MainFolder

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move `moment` by whole calendar months, clamping the day to the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def date_cutoff(date_range: str, now: datetime) -> Optional[datetime]:
    """Return the oldest upload time kept by `date_range`, or None for "all"."""
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        return shift_months(now, -1)
    if date_range == "year":
        return shift_months(now, -12)
    return None


def latest_upload(folder: DiseaseFolder) -> datetime:
    """Return the most recent upload time in a folder (oldest sentinel if none)."""
    dates = [image.uploaded_at for image in folder.images if image.uploaded_at is not None]
    return max(dates) if dates else _OLDEST


class FolderFilter:
    """Apply FilterCriteria to disease folders.

    Args:
        clock: Callable returning the current aware datetime; injectable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self.clock = clock

    def apply(
        self, original_sub_folders: Sequence[DiseaseFolder], criteria: FilterCriteria
    ) -> List[DiseaseFolder]:
        """Return the filtered and sorted view without touching the input."""
        filtered = self.filter_sub_folders(original_sub_folders, criteria)
        return self.apply_sorting(filtered, criteria.sort_by)

    def apply_to_main_folders(
        self, main_folders: Sequence[MainFolder], criteria: FilterCriteria
    ) -> Sequence[MainFolder]:
        """Recompute every main folder's `sub_folders` view from its baseline."""
        for main_folder in main_folders:
            main_folder.sub_folders = self.apply(main_folder.original_sub_folders, criteria)
        return main_folders

    def filter_sub_folders(
        self, sub_folders: Sequence[DiseaseFolder], criteria: FilterCriteria
    ) -> List[DiseaseFolder]:
        filtered = list(sub_folders)

        if criteria.image_type != "all":
            filtered = [folder for folder in filtered if folder.image_type == criteria.image_type]

        term = criteria.search.strip().lower()
        if term:
            filtered = [folder for folder in filtered if term in folder.name.lower()]

        if criteria.date_range != "all":
            filtered = self.apply_date_filter(filtered, criteria.date_range)

        return filtered

    def apply_date_filter(self, folders: Sequence[DiseaseFolder], date_range: str) -> List[DiseaseFolder]:
        """Keep only recent images in each folder; folders left empty are dropped."""
        cutoff = date_cutoff(date_range, self.clock())
        if cutoff is None:
            return list(folders)

        result: List[DiseaseFolder] = []
        for folder in folders:
            recent = tuple(
                image for image in folder.images if image.uploaded_at is not None and image.uploaded_at >= cutoff
            )
            if recent:
                result.append(replace(folder, images=recent))
        return result

    @staticmethod
    def apply_sorting(folders: Sequence[DiseaseFolder], sort_by: str) -> List[DiseaseFolder]:
        # sorted() is stable, including with reverse=True
        if sort_by == "disease":
            return sorted(folders, key=lambda folder: folder.name.casefold())
        if sort_by == "count":
            return sorted(folders, key=lambda folder: folder.count, reverse=True)
        if sort_by == "date":
            return sorted(folders, key=latest_upload, reverse=True)
        return list(folders)

    @staticmethod
    def has_active_filters(criteria: FilterCriteria) -> bool:
        return criteria.is_active()

    @staticmethod
    def filtered_totals(main_folders: Sequence[MainFolder], criteria: Optional[FilterCriteria] = None) -> Dict[str, object]:
        """Return per-category image counts of the current view."""
        counts = {folder.category: folder.count for folder in main_folders}
        return {
            "total": counts.get("all", 0),
            "verified": counts.get("verified", 0),
            "unverified": counts.get("unverified", 0),
            "unknown": counts.get("unknown", 0),
            "is_filtered": bool(criteria and criteria.is_active()),
        }

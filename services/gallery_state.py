"""In-memory gallery state: hierarchy, filter criteria and selection.

One instance lives on `app.state` and is the single writer of the hierarchy
and the selection. Any mutation of records triggers a full reload rather
than a patch of the existing folders.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from dal.record_source import AuthorizationError, RecordSource, RecordSourceError
from models.action_models import ArchiveResult, BulkAction, BulkActionResult
from models.filter_criteria import FilterCriteria
from models.folder_models import CATEGORIES, DiseaseFolder, MainFolder
from models.image_record import ClassifiedImage
from services import selection as sel
from services.archive_exporter import ArchiveExporter, ConfirmCallback
from services.bulk_actions import BulkActionExecutor
from services.classification.image_type_classifier import ImageTypeClassifier
from services.folder_filter import FolderFilter
from services.hierarchy_builder import FolderHierarchyBuilder
from services.operation_guard import OperationGuard
from utils.media_urls import image_filename

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load images. Please try again."


class GalleryState:
    """Coordinate ingestion, view filtering, selection, bulk actions and exports.

    Args:
        source: Record source supplying and mutating records.
        threshold: Confidence percentage below which images are "unknown".
        max_concurrency: Per-item requests in flight for bulk actions and exports.
        folder_filter: Optional preconfigured filter pipeline (e.g. with a fixed clock).
    """

    def __init__(
        self,
        source: RecordSource,
        threshold: float = 50.0,
        max_concurrency: int = 1,
        folder_filter: Optional[FolderFilter] = None,
    ) -> None:
        self.source = source
        self.classifier = ImageTypeClassifier()
        self.builder = FolderHierarchyBuilder(threshold)
        self.folder_filter = folder_filter or FolderFilter()
        self.guard = OperationGuard()
        self.executor = BulkActionExecutor(source, self.guard, max_concurrency)
        self.exporter = ArchiveExporter(source, self.guard, max_concurrency)

        self.main_folders: List[MainFolder] = []
        self.criteria = FilterCriteria()
        self.selection: sel.Selection = sel.EMPTY_SELECTION
        self.loading = False
        self.error: Optional[str] = None
        self.loaded_at: Optional[datetime] = None

    async def load(self) -> bool:
        """Refetch every record and rebuild the hierarchy from scratch.

        Returns:
            True on success; False when the source failed (see `error`).

        Raises:
            AuthorizationError: If the source rejected the credentials.
        """
        self.loading = True
        self.error = None
        try:
            records = await self.source.fetch_records()
        except AuthorizationError:
            raise
        except RecordSourceError as exc:
            logger.error("Error loading images: %s", exc)
            self.error = LOAD_ERROR_MESSAGE
            return False
        finally:
            self.loading = False

        classified = self.classifier.classify_all(records)
        self.main_folders = self.builder.build(classified)
        self.folder_filter.apply_to_main_folders(self.main_folders, self.criteria)
        self.loaded_at = datetime.now(timezone.utc)
        logger.info("Rebuilt hierarchy from %d images", len(classified))
        return True

    # View -----------------------------------------------------------------

    def apply_filters(self, criteria: Optional[FilterCriteria] = None) -> List[MainFolder]:
        """Store `criteria` (when given) and recompute the view from the baseline."""
        if criteria is not None:
            self.criteria = criteria
        self.folder_filter.apply_to_main_folders(self.main_folders, self.criteria)
        return self.main_folders

    def clear_filters(self) -> List[MainFolder]:
        return self.apply_filters(FilterCriteria())

    def totals(self) -> dict:
        return self.folder_filter.filtered_totals(self.main_folders, self.criteria)

    def find_folder(self, category: str, index: int) -> DiseaseFolder:
        """Return a disease folder of the current view.

        Raises:
            LookupError: If the category or index does not exist.
        """
        if category not in CATEGORIES:
            raise LookupError(f"Unknown category '{category}'")
        for main_folder in self.main_folders:
            if main_folder.category == category:
                if 0 <= index < len(main_folder.sub_folders):
                    return main_folder.sub_folders[index]
                break
        raise LookupError(f"No folder {index} in category '{category}'")

    def find_image(self, image_id: int) -> ClassifiedImage:
        """Return a loaded image by id, regardless of the active filters.

        Raises:
            LookupError: If no loaded image has that id.
        """
        for main_folder in self.main_folders:
            if main_folder.category != "all":
                continue
            for folder in main_folder.original_sub_folders:
                for image in folder.images:
                    if image.id == image_id:
                        return image
        raise LookupError(f"Image {image_id} not found")

    # Selection ------------------------------------------------------------

    def toggle_image(self, image_id: int) -> sel.Selection:
        self.selection = sel.toggle(image_id, self.selection)
        return self.selection

    def select_folder(self, category: str, index: int) -> sel.Selection:
        self.selection = sel.select_all_in_folder(self.find_folder(category, index), self.selection)
        return self.selection

    def deselect_folder(self, category: str, index: int) -> sel.Selection:
        self.selection = sel.deselect_all_in_folder(self.find_folder(category, index), self.selection)
        return self.selection

    def select_all(self) -> sel.Selection:
        self.selection = sel.select_all(self.main_folders)
        return self.selection

    def deselect_all(self) -> sel.Selection:
        self.selection = sel.deselect_all()
        return self.selection

    def selection_summary(self) -> dict:
        folders = {
            main_folder.category: [sel.is_folder_fully_selected(folder, self.selection) for folder in main_folder.sub_folders]
            for main_folder in self.main_folders
        }
        return {
            "count": len(self.selection),
            "ids": sel.selected_ids(self.selection),
            "has_selection": bool(self.selection),
            "fully_selected_folders": folders,
        }

    # Bulk actions ---------------------------------------------------------

    async def run_bulk_action(self, action: BulkAction) -> BulkActionResult:
        """Apply `action` to the current selection.

        On any success the selection is cleared and the hierarchy reloaded, so
        the view reflects whatever the source accepted.
        """
        result = await self.executor.execute(action, sel.selected_ids(self.selection))
        if result.success:
            self.selection = sel.deselect_all()
            await self.load()
        return result

    # Exports --------------------------------------------------------------

    async def export_folder(
        self, category: str, index: int, confirm: Optional[ConfirmCallback] = None
    ) -> Optional[ArchiveResult]:
        folder = self.find_folder(category, index)
        return await self.exporter.export(
            folder.images, folder.name, kind="folder", confirm=confirm, guard_key=f"folder:{category}:{index}"
        )

    async def export_all(self, confirm: Optional[ConfirmCallback] = None) -> Optional[ArchiveResult]:
        """Export every image of the current (filtered) view."""
        return await self.exporter.export(sel.unique_images(self.main_folders), "all", kind="all", confirm=confirm)

    async def export_selected(self, confirm: Optional[ConfirmCallback] = None) -> Optional[ArchiveResult]:
        images = sel.selected_images(self.main_folders, self.selection)
        return await self.exporter.export(images, "selected", kind="selected", confirm=confirm)

    async def download_image(self, image_id: int) -> Tuple[str, bytes]:
        """Return `(filename, bytes)` for a single loaded image."""
        image = self.find_image(image_id)
        content = await self.source.download_image(image_id)
        return image_filename(image.record), content

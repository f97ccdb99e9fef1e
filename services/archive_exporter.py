"""Package classified images into a disease/type grouped ZIP archive.

Each image is fetched on its own; a failed fetch is logged and skipped so one
broken file never sinks the whole export. Unverified images carry an
`_unverified` marker in their archive filename.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import aiofiles

from dal.record_source import AuthorizationError, RecordSource
from models.action_models import ArchiveResult
from models.image_record import ClassifiedImage
from services.operation_guard import OperationGuard, OperationInProgressError
from services.worker_pool import run_bounded
from utils.media_urls import image_filename, mark_unverified, safe_component

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

_WARNING_OPENERS = {
    "folder": "This folder contains",
    "selected": "Your selection includes",
    "all": "Your download includes",
}


def unverified_warning(unverified_count: int, kind: str = "all") -> str:
    """Return the confirmation prompt shown before exporting unverified images."""
    opener = _WARNING_OPENERS.get(kind, _WARNING_OPENERS["all"])
    return (
        f"{opener} {unverified_count} unverified image(s). "
        'These will be downloaded with "unverified" appended to their filenames. '
        "Do you want to continue?"
    )


def archive_folder_name(image: ClassifiedImage) -> str:
    return safe_component(f"{image.disease_label} ({image.image_type})")


def archive_filename(scope: str, today: Optional[date] = None) -> str:
    """Return `{scope}_{YYYY-MM-DD}.zip`."""
    today = today or date.today()
    return f"{safe_component(scope)}_{today.isoformat()}.zip"


def entry_filename(image: ClassifiedImage) -> str:
    name = image_filename(image.record)
    return name if image.verified else mark_unverified(name)


class ArchiveExporter:
    """Build ZIP archives from any subset of classified images.

    Args:
        source: Record source used to fetch image bytes.
        guard: Shared in-progress flags; one is created when omitted.
        max_concurrency: Image downloads allowed in flight at once.
    """

    def __init__(self, source: RecordSource, guard: OperationGuard | None = None, max_concurrency: int = 1) -> None:
        self.source = source
        self.guard = guard or OperationGuard()
        self.max_concurrency = max(1, max_concurrency)

    async def export(
        self,
        images: Sequence[ClassifiedImage],
        scope: str,
        *,
        kind: str = "all",
        confirm: Optional[ConfirmCallback] = None,
        today: Optional[date] = None,
        guard_key: Optional[str] = None,
    ) -> Optional[ArchiveResult]:
        """Fetch every image and return the finished archive.

        Args:
            images: Images to package; duplicates (by id) are ignored.
            scope: Prefix of the archive filename (folder name, "all", "selected").
            kind: Which call site asked for the export; selects the warning wording.
            confirm: Called with a warning when unverified images are included;
                returning False cancels the export.
            today: Date stamped into the filename.
            guard_key: In-progress key; defaults to `scope`. Folder exports pass
                their category and index so same-named folders do not collide.

        Returns:
            The archive, or None when the operator declined the confirmation.

        Raises:
            ValueError: If there are no images to export.
            OperationInProgressError: If an export with the same key is running.
        """
        unique = list({image.id: image for image in images}.values())
        if not unique:
            raise ValueError("No images selected for download.")

        unverified_count = sum(1 for image in unique if not image.verified)
        if unverified_count and confirm is not None:
            if not confirm(unverified_warning(unverified_count, kind)):
                logger.info("Export of %s cancelled: %d unverified image(s) not confirmed", scope, unverified_count)
                return None

        async with self.guard.hold(f"export:{guard_key or scope}") as acquired:
            if not acquired:
                raise OperationInProgressError(f"An export of '{scope}' is already in progress.")
            payloads = await run_bounded(unique, self._fetch, self.max_concurrency)

        groups: Dict[str, List[Tuple[str, bytes]]] = {}
        failed_ids: List[int] = []
        for image, payload in zip(unique, payloads):
            folder = groups.setdefault(archive_folder_name(image), [])
            if payload is None:
                failed_ids.append(image.id)
                continue
            folder.append((self._unique_name(folder, entry_filename(image), image.id), payload))

        content, entries = await asyncio.to_thread(self._write_zip, groups)
        logger.info(
            "Built archive %s with %d file(s), %d failed",
            archive_filename(scope, today),
            len(entries),
            len(failed_ids),
        )
        return ArchiveResult(
            filename=archive_filename(scope, today),
            content=content,
            entries=entries,
            failed_ids=failed_ids,
            unverified_count=unverified_count,
        )

    async def _fetch(self, image: ClassifiedImage) -> Optional[bytes]:
        try:
            return await self.source.fetch_image(image.record)
        except AuthorizationError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Failed to download image %s (%s): %s", image.id, image.record.filename, exc)
            return None

    @staticmethod
    def _unique_name(folder: List[Tuple[str, bytes]], name: str, image_id: int) -> str:
        taken = {existing for existing, _ in folder}
        if name not in taken:
            return name
        dot = name.rfind(".")
        if dot <= 0:
            return f"{name}_{image_id}"
        return f"{name[:dot]}_{image_id}{name[dot:]}"

    @staticmethod
    def _write_zip(groups: Dict[str, List[Tuple[str, bytes]]]) -> Tuple[bytes, List[str]]:
        buffer = io.BytesIO()
        entries: List[str] = []
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for folder_name, files in groups.items():
                zf.writestr(f"{folder_name}/", b"")
                for name, payload in files:
                    arcname = f"{folder_name}/{name}"
                    zf.writestr(arcname, payload)
                    entries.append(arcname)
        return buffer.getvalue(), entries


async def save_archive(archive: ArchiveResult, directory: Path) -> Path:
    """Write an archive under `directory` and return the written path."""
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / archive.filename
    async with aiofiles.open(target, "wb") as f:
        await f.write(archive.content)
    return target

"""Controllers translating gallery operations into HTTP responses."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import HTTPException, Request
from fastapi.responses import Response

from dal.record_source import AuthorizationError, RecordSourceError
from models.action_models import ArchiveResult
from models.filter_criteria import FilterCriteria
from services.archive_exporter import save_archive
from services.gallery_state import GalleryState
from services.operation_guard import OperationInProgressError


def _get_state(request: Request) -> GalleryState:
    """Retrieve the shared gallery state from the app state."""
    state = getattr(request.app.state, "gallery", None)
    if state is None:
        raise HTTPException(status_code=500, detail="Gallery state not initialized.")
    return state


async def _ensure_loaded(state: GalleryState) -> None:
    if state.loaded_at is None and not state.loading:
        try:
            await state.load()
        except AuthorizationError as exc:
            raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


def _view(state: GalleryState) -> Dict[str, Any]:
    return {
        "folders": [folder.to_dict() for folder in state.main_folders],
        "totals": state.totals(),
        "criteria": state.criteria.model_dump(),
        "error": state.error,
        "loaded_at": state.loaded_at.isoformat() if state.loaded_at else None,
    }


async def refresh(request: Request) -> Dict[str, Any]:
    """Refetch all records and rebuild the hierarchy.

    Raises:
        HTTPException(401) on authorization failure, 502 when the source failed.
    """
    state = _get_state(request)
    try:
        ok = await state.load()
    except AuthorizationError as exc:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc
    if not ok:
        raise HTTPException(status_code=502, detail=state.error)
    return _view(state)


async def get_folders(request: Request, criteria: FilterCriteria) -> Dict[str, Any]:
    """Apply `criteria` to the loaded hierarchy and return the view."""
    state = _get_state(request)
    await _ensure_loaded(state)
    state.apply_filters(criteria)
    return _view(state)


async def clear_filters(request: Request) -> Dict[str, Any]:
    state = _get_state(request)
    await _ensure_loaded(state)
    state.clear_filters()
    return _view(state)


async def get_totals(request: Request) -> Dict[str, Any]:
    state = _get_state(request)
    await _ensure_loaded(state)
    return state.totals()


async def get_image(request: Request, image_id: int) -> Dict[str, Any]:
    state = _get_state(request)
    await _ensure_loaded(state)
    try:
        image = state.find_image(image_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {**image.to_dict(), "selected": image.id in state.selection}


async def download_image(request: Request, image_id: int) -> Response:
    """Return the raw bytes of one image as an attachment."""
    state = _get_state(request)
    await _ensure_loaded(state)
    try:
        filename, content = await state.download_image(image_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AuthorizationError as exc:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc
    except RecordSourceError as exc:
        raise HTTPException(status_code=502, detail="Failed to download image. Please try again.") from exc
    return Response(content=content, media_type="application/octet-stream", headers=_attachment(filename))


async def get_selection(request: Request) -> Dict[str, Any]:
    return _get_state(request).selection_summary()


async def toggle_selection(request: Request, image_id: int) -> Dict[str, Any]:
    state = _get_state(request)
    state.toggle_image(image_id)
    return state.selection_summary()


async def select_folder(request: Request, category: str, index: int, selected: bool) -> Dict[str, Any]:
    """Select (or deselect) every image of one folder in the current view."""
    state = _get_state(request)
    await _ensure_loaded(state)
    try:
        if selected:
            state.select_folder(category, index)
        else:
            state.deselect_folder(category, index)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return state.selection_summary()


async def select_all(request: Request) -> Dict[str, Any]:
    state = _get_state(request)
    await _ensure_loaded(state)
    state.select_all()
    return state.selection_summary()


async def deselect_all(request: Request) -> Dict[str, Any]:
    state = _get_state(request)
    state.deselect_all()
    return state.selection_summary()


async def run_action(request: Request, action: str, confirm: bool) -> Dict[str, Any]:
    """Run verify/unverify/delete on the current selection.

    Deleting cannot be undone, so it requires `confirm=True` from the caller.
    """
    state = _get_state(request)
    if action not in ("verify", "unverify", "delete"):
        raise HTTPException(status_code=404, detail=f"Unknown action '{action}'")
    if action == "delete" and not confirm:
        raise HTTPException(
            status_code=400,
            detail=f"Deleting {len(state.selection)} selected images cannot be undone; repeat with confirm=true.",
        )

    try:
        result = await state.run_bulk_action(action)  # type: ignore[arg-type]
    except AuthorizationError as exc:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc

    if result.status == "empty":
        raise HTTPException(status_code=400, detail=result.message)
    if result.status == "busy":
        raise HTTPException(status_code=409, detail=result.message)
    return {**result.to_dict(), "totals": state.totals(), "selection": state.selection_summary()}


async def export_archive(
    request: Request,
    scope: str,
    confirm: bool,
    save: bool,
    category: Optional[str] = None,
    index: Optional[int] = None,
) -> Any:
    """Build an archive for a folder, the whole view, or the selection.

    When the archive would include unverified images and `confirm` is False the
    export is not started and a 409 carries the confirmation prompt.
    """
    state = _get_state(request)
    await _ensure_loaded(state)

    prompts: List[str] = []

    def _confirm(message: str) -> bool:
        prompts.append(message)
        return confirm

    try:
        archive: Optional[ArchiveResult]
        if scope == "folder":
            archive = await state.export_folder(category or "", index if index is not None else -1, _confirm)
        elif scope == "selected":
            archive = await state.export_selected(_confirm)
        else:
            archive = await state.export_all(_confirm)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OperationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except AuthorizationError as exc:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc

    if archive is None:
        raise HTTPException(status_code=409, detail=prompts[0] if prompts else "Export cancelled.")

    if save:
        path = await save_archive(archive, request.app.state.settings.export_dir)
        return {
            "saved_to": str(path),
            "filename": archive.filename,
            "entries": archive.entries,
            "failed_ids": archive.failed_ids,
            "unverified_count": archive.unverified_count,
        }

    headers = _attachment(archive.filename)
    headers["X-Failed-Image-Ids"] = ",".join(str(image_id) for image_id in archive.failed_ids)
    return Response(content=archive.content, media_type="application/zip", headers=headers)

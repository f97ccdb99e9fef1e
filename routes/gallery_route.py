from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request

from controllers.gallery_controller import (
	clear_filters,
	deselect_all,
	download_image,
	export_archive,
	get_folders,
	get_image,
	get_selection,
	get_totals,
	refresh,
	run_action,
	select_all,
	select_folder,
	toggle_selection,
)
from models.filter_criteria import FilterCriteria

router = APIRouter(prefix="/gallery")


@router.post("/refresh")
async def refresh_gallery(request: Request):
	"""Refetch every record and rebuild the folder hierarchy."""
	try:
		return await refresh(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/folders")
async def list_folders(request: Request, criteria: FilterCriteria = Depends()):
	"""Return the four main folders filtered and sorted by the query parameters."""
	try:
		return await get_folders(request, criteria)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/filters/clear")
async def reset_filters(request: Request):
	try:
		return await clear_filters(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/totals")
async def gallery_totals(request: Request):
	"""Return image counts of the current view."""
	try:
		return await get_totals(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/images/{image_id}")
async def image_details(request: Request, image_id: int):
	try:
		return await get_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/images/{image_id}/download")
async def image_download(request: Request, image_id: int):
	"""Return the original image bytes as an attachment."""
	try:
		return await download_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/selection")
async def current_selection(request: Request):
	try:
		return await get_selection(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/selection/toggle/{image_id}")
async def toggle_image(request: Request, image_id: int):
	try:
		return await toggle_selection(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/selection/folders/{category}/{index}")
async def select_folder_images(request: Request, category: str, index: int):
	"""Add every image of one folder in the current view to the selection."""
	try:
		return await select_folder(request, category, index, True)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/selection/folders/{category}/{index}")
async def deselect_folder_images(request: Request, category: str, index: int):
	try:
		return await select_folder(request, category, index, False)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/selection/all")
async def select_everything(request: Request):
	try:
		return await select_all(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/selection")
async def clear_selection(request: Request):
	try:
		return await deselect_all(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/actions/{action}")
async def bulk_action(request: Request, action: Literal["verify", "unverify", "delete"], confirm: bool = False):
	"""Verify, unverify or delete the selected images."""
	try:
		return await run_action(request, action, confirm)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/export/folder/{category}/{index}")
async def export_folder(request: Request, category: str, index: int, confirm: bool = False, save: bool = False):
	"""Download one folder as a ZIP archive grouped by disease and type."""
	try:
		return await export_archive(request, "folder", confirm, save, category=category, index=index)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/export/all")
async def export_all(request: Request, confirm: bool = False, save: bool = False):
	"""Download every image of the current view as a ZIP archive."""
	try:
		return await export_archive(request, "all", confirm, save)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/export/selected")
async def export_selected(request: Request, confirm: bool = False, save: bool = False):
	"""Download the selected images as a ZIP archive."""
	try:
		return await export_archive(request, "selected", confirm, save)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))

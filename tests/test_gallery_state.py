import asyncio

import pytest

from dal.record_source import AuthorizationError, RecordSourceError
from models.filter_criteria import FilterCriteria
from services.folder_filter import FolderFilter
from services.gallery_state import LOAD_ERROR_MESSAGE, GalleryState
from services.operation_guard import OperationInProgressError
from tests.factories import FIXED_NOW, UnauthorizedSource


def _state(source):
    state = GalleryState(source, folder_filter=FolderFilter(clock=lambda: FIXED_NOW))
    assert asyncio.run(state.load())
    return state


def test_load_builds_all_four_categories(fake_source):
    state = _state(fake_source)

    assert state.totals() == {"total": 4, "verified": 1, "unverified": 2, "unknown": 1, "is_filtered": False}
    assert state.loaded_at is not None
    assert state.error is None


def test_failed_load_keeps_previous_view_and_sets_error(fake_source):
    state = _state(fake_source)
    fake_source.fetch_error = RecordSourceError("connection refused")

    assert asyncio.run(state.load()) is False
    assert state.error == LOAD_ERROR_MESSAGE
    assert state.totals()["total"] == 4
    assert not state.loading


def test_authorization_failure_propagates():
    state = GalleryState(UnauthorizedSource())
    with pytest.raises(AuthorizationError):
        asyncio.run(state.load())


def test_filters_persist_across_reload(fake_source):
    state = _state(fake_source)
    state.apply_filters(FilterCriteria(image_type="fruit"))

    asyncio.run(state.load())

    assert state.criteria.image_type == "fruit"
    assert state.totals()["total"] == 1
    state.clear_filters()
    assert state.totals()["total"] == 4


def test_bulk_verify_clears_selection_and_rebuilds(fake_source):
    state = _state(fake_source)
    fake_source.failing_ids = {4}
    state.select_all()
    state.toggle_image(2)
    state.toggle_image(3)

    result = asyncio.run(state.run_bulk_action("verify"))

    assert (result.success_count, result.failure_count) == (1, 1)
    assert state.selection == frozenset()
    assert state.totals() == {"total": 4, "verified": 2, "unverified": 1, "unknown": 1, "is_filtered": False}


def test_failed_bulk_action_keeps_selection(fake_source):
    state = _state(fake_source)
    fake_source.failing_ids = {1}
    state.toggle_image(1)

    result = asyncio.run(state.run_bulk_action("delete"))

    assert not result.success
    assert state.selection == frozenset({1})


def test_folder_lookup_and_selection(fake_source):
    state = _state(fake_source)

    state.select_folder("all", 0)
    summary = state.selection_summary()
    assert summary["ids"] == [1, 2]
    assert summary["fully_selected_folders"]["all"][0] is True

    state.deselect_folder("all", 0)
    assert state.selection_summary()["has_selection"] is False

    with pytest.raises(LookupError):
        state.find_folder("all", 9)
    with pytest.raises(LookupError):
        state.find_folder("archived", 0)


def test_find_image_ignores_active_filters(fake_source):
    state = _state(fake_source)
    state.apply_filters(FilterCriteria(search="rot"))

    assert state.find_image(1).disease_label == "Anthracnose"
    with pytest.raises(LookupError):
        state.find_image(42)


def test_export_selected_uses_current_view(fake_source):
    state = _state(fake_source)
    state.toggle_image(2)
    state.toggle_image(3)

    archive = asyncio.run(state.export_selected(confirm=lambda message: True))

    assert archive.entries == ["Anthracnose (leaf)/img_2.jpg", "Stem End Rot (fruit)/img_3.jpg"]
    assert archive.unverified_count == 0


def test_download_image_returns_filename_and_bytes(fake_source):
    state = _state(fake_source)
    assert asyncio.run(state.download_image(3)) == ("img_3.jpg", b"bytes-3")


def test_folder_exports_are_keyed_by_category_and_index(fake_source):
    state = _state(fake_source)
    assert state.find_folder("all", 0).name == state.find_folder("unverified", 0).name

    async def run():
        async with state.guard.hold("export:folder:all:0"):
            other = await state.export_folder("unverified", 0, confirm=lambda message: True)
            with pytest.raises(OperationInProgressError):
                await state.export_folder("all", 0, confirm=lambda message: True)
        return other

    archive = asyncio.run(run())

    assert archive.entries == ["Anthracnose (leaf)/img_1_unverified.jpg"]

from dataclasses import replace

from services import selection as sel
from services.classification.image_type_classifier import ImageTypeClassifier
from services.hierarchy_builder import FolderHierarchyBuilder
from tests.factories import make_record


def _main_folders():
    records = [
        make_record(1, "Anthracnose", 0.9),
        make_record(2, "Anthracnose", 0.9, verified=True),
        make_record(3, "Stem End Rot", 0.9),
    ]
    return FolderHierarchyBuilder().build(ImageTypeClassifier().classify_all(records))


def test_toggle_adds_then_removes():
    selection = sel.toggle(5, sel.EMPTY_SELECTION)
    assert sel.is_selected(5, selection)
    assert sel.toggle(5, selection) == sel.EMPTY_SELECTION


def test_folder_select_and_deselect_only_touch_that_folder():
    all_folder = _main_folders()[0]
    anthracnose, stem_end_rot = all_folder.sub_folders

    selection = sel.select_all_in_folder(anthracnose, {3})
    assert sel.selected_ids(selection) == [1, 2, 3]
    assert sel.is_folder_fully_selected(anthracnose, selection)

    selection = sel.deselect_all_in_folder(anthracnose, selection)
    assert sel.selected_ids(selection) == [3]
    assert sel.is_folder_fully_selected(stem_end_rot, selection)


def test_empty_folder_is_never_fully_selected():
    folder = replace(_main_folders()[0].sub_folders[0], images=())
    assert not sel.is_folder_fully_selected(folder, {1, 2, 3})


def test_select_all_collects_unique_ids_across_categories():
    selection = sel.select_all(_main_folders())
    assert sel.selected_ids(selection) == [1, 2, 3]
    assert sel.deselect_all() == sel.EMPTY_SELECTION


def test_selected_images_resolve_once_from_current_view():
    main_folders = _main_folders()
    images = sel.selected_images(main_folders, {2, 3, 99})
    assert sorted(image.id for image in images) == [2, 3]
    assert len(sel.unique_images(main_folders)) == 3


def test_toggling_twice_restores_a_non_empty_selection():
    selection = frozenset({1, 2, 3})
    for image_id in (2, 7):
        assert sel.toggle(image_id, sel.toggle(image_id, selection)) == selection
    assert sel.toggle(7, selection) == {1, 2, 3, 7}
    assert sel.toggle(2, selection) == {1, 3}

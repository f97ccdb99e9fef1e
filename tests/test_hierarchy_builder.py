from datetime import timedelta

from services.classification.image_type_classifier import ImageTypeClassifier
from services.hierarchy_builder import FolderHierarchyBuilder, folder_display_name
from tests.factories import FIXED_NOW, make_record


def _build(records, threshold=50.0):
    images = ImageTypeClassifier().classify_all(records)
    return {folder.category: folder for folder in FolderHierarchyBuilder(threshold).build(images)}


def test_confident_unverified_record_lands_in_unverified_folder():
    folders = _build([make_record(1, "Anthracnose", 0.92, verified=False)])

    unverified = folders["unverified"]
    assert [folder.name for folder in unverified.sub_folders] == ["Anthracnose (Leaf)"]
    assert unverified.count == 1
    assert folders["verified"].count == 0
    assert folders["unknown"].count == 0
    assert folders["all"].count == 1


def test_low_confidence_goes_to_unknown_even_when_verified():
    folders = _build([make_record(1, "Stem End Rot", 38, verified=True)])

    unknown = folders["unknown"]
    assert unknown.count == 1
    folder = unknown.sub_folders[0]
    assert folder.name == "Stem End Rot (Fruit)"
    assert folder.image_type == "fruit"
    assert folders["verified"].count == 0


def test_threshold_is_inclusive_for_known_categories():
    folders = _build([make_record(1, "Anthracnose", 0.5, verified=True)])
    assert folders["verified"].count == 1
    assert folders["unknown"].count == 0


def test_all_category_contains_every_record(fake_source):
    folders = _build(list(fake_source.records.values()))
    assert folders["all"].count == 4
    assert folders["verified"].count + folders["unverified"].count + folders["unknown"].count == 4
    assert [main.name for main in folders.values()] == [
        "All Images",
        "Verified Images",
        "Unverified Images",
        "Unknown Images",
    ]


def test_same_label_with_different_types_gets_two_folders():
    folders = _build(
        [
            make_record(1, "Anthracnose", 0.9, model_used="leaf"),
            make_record(2, "Anthracnose", 0.9, model_used="fruit"),
        ]
    )
    names = sorted(folder.name for folder in folders["all"].sub_folders)
    assert names == ["Anthracnose (Fruit)", "Anthracnose (Leaf)"]


def test_folder_images_are_newest_first_with_undated_last():
    folders = _build(
        [
            make_record(1, uploaded_at=FIXED_NOW - timedelta(days=3)),
            make_record(2, uploaded_at=None),
            make_record(3, uploaded_at=FIXED_NOW),
        ]
    )
    folder = folders["all"].sub_folders[0]
    assert folder.image_ids() == [3, 1, 2]


def test_baseline_and_view_start_identical():
    folders = _build([make_record(1), make_record(2, "Stem End Rot")])
    for main in folders.values():
        assert list(main.original_sub_folders) == main.sub_folders


def test_unknown_type_has_no_suffix():
    assert folder_display_name("Mystery", "unknown") == "Mystery"
    assert folder_display_name("Healthy", "leaf") == "Healthy (Leaf)"

from models.image_record import ImageRecord
from utils.media_urls import image_filename, mark_unverified, resolve_image_url, safe_component

BASE = "http://127.0.0.1:8000"


def test_resolve_image_url_variants():
    assert resolve_image_url(ImageRecord(1, image_url="https://cdn.example.com/a.jpg"), BASE) == "https://cdn.example.com/a.jpg"
    assert resolve_image_url(ImageRecord(1, image_url="/media/mango_images/a.jpg"), BASE) == f"{BASE}/api/media/mango_images/a.jpg"
    assert resolve_image_url(ImageRecord(1, image_url="media/x/b.jpg"), BASE + "/") == f"{BASE}/api/media/x/b.jpg"
    assert (
        resolve_image_url(ImageRecord(1, image_url="uploads/mango_images/c.jpg"), BASE)
        == f"{BASE}/api/media/mango_images/c.jpg"
    )
    assert resolve_image_url(ImageRecord(1, filename="d.jpg"), BASE) == f"{BASE}/api/media/mango_images/d.jpg"


def test_image_filename_fallbacks():
    assert image_filename(ImageRecord(1, filename="orig.png", image_url="/media/x.jpg")) == "orig.png"
    assert image_filename(ImageRecord(2, image_url="/media/mango_images/photo.jpeg?v=2")) == "photo.jpeg"
    assert image_filename(ImageRecord(3, image_url="/media/blob")) == "blob.jpg"
    assert image_filename(ImageRecord(4)) == "image_4.jpg"


def test_mark_unverified():
    assert mark_unverified("leaf.jpg") == "leaf_unverified.jpg"
    assert mark_unverified("archive.tar.gz") == "archive.tar_unverified.gz"
    assert mark_unverified("README") == "README_unverified"
    assert mark_unverified(".hidden") == ".hidden_unverified"


def test_safe_component():
    assert safe_component("Rot/Decay (fruit)") == "Rot-Decay (fruit)"
    assert safe_component("  ") == "archive"


def test_image_filename_strips_directory_parts():
    assert image_filename(ImageRecord(1, filename="../../evil.jpg")) == "evil.jpg"
    assert image_filename(ImageRecord(2, filename="C:\\tmp\\shot.png")) == "shot.png"
    assert image_filename(ImageRecord(3, filename="..")) == "image_3.jpg"
    assert image_filename(ImageRecord(4, filename="sub/", image_url="/media/y.jpg")) == "sub"

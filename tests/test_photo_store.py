"""Tests for the filesystem photo store."""

import io
import json
from pathlib import Path

import pytest
from PIL import Image

from fruit_catalog.adapters.filesystem_photo_store import (
    FilesystemPhotoStore,
    encode_jpeg,
    sanitize,
)
from fruit_catalog.errors import PhotoWriteError
from tests.conftest import make_image_bytes


@pytest.fixture
def store(tmp_path: Path) -> FilesystemPhotoStore:
    return FilesystemPhotoStore(directory=tmp_path / "photos")


def test_sanitize_is_identity_without_separators() -> None:
    assert sanitize("Apple") == "Apple"
    assert sanitize("Passion fruit") == "Passion fruit"


def test_sanitize_replaces_path_separators() -> None:
    assert sanitize("Kiwi/Gold") == "Kiwi_Gold"
    assert sanitize("a\\b/c") == "a_b_c"


def test_persist_then_load_all_round_trips(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes(width=64, height=48))

    photos = store.load_all()

    assert list(photos) == ["Apple"]
    with Image.open(io.BytesIO(photos["Apple"])) as img:
        assert img.format == "JPEG"
        assert img.size == (64, 48)
    assert store.image_path("Apple").name == "Apple.jpg"


def test_persist_overwrites_existing_photo(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes(width=10, height=10))
    store.persist("Apple", make_image_bytes(width=20, height=10))

    photos = store.load_all()

    with Image.open(io.BytesIO(photos["Apple"])) as img:
        assert img.size == (20, 10)


def test_persist_converts_transparent_png(store: FilesystemPhotoStore) -> None:
    buffer = io.BytesIO()
    Image.new("RGBA", (8, 8), (0, 255, 0, 128)).save(buffer, format="PNG")

    store.persist("Lime", buffer.getvalue())

    with Image.open(store.image_path("Lime")) as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_persist_rejects_undecodable_payload(store: FilesystemPhotoStore) -> None:
    with pytest.raises(PhotoWriteError):
        store.persist("Apple", b"not an image")

    assert not store.image_path("Apple").exists()


def test_persist_reports_filesystem_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "photos"
    blocker.write_text("a file where the directory should be")
    store = FilesystemPhotoStore(directory=blocker)

    with pytest.raises(PhotoWriteError):
        store.persist("Apple", make_image_bytes())


def test_persist_writes_sidecar_metadata(store: FilesystemPhotoStore) -> None:
    metadata = {"name": "Kiwi/Gold", "source": "camera"}

    store.persist("Kiwi/Gold", make_image_bytes(), metadata=metadata)

    assert store.metadata_path("Kiwi/Gold").name == "Kiwi_Gold.json"
    assert store.load_metadata("Kiwi/Gold") == metadata


def test_load_all_recovers_original_name_from_sidecar(
    store: FilesystemPhotoStore,
) -> None:
    store.persist("Kiwi/Gold", make_image_bytes(), metadata={"name": "Kiwi/Gold"})
    store.persist("Kiwi_Green", make_image_bytes())

    assert set(store.load_all()) == {"Kiwi/Gold", "Kiwi_Green"}


def test_load_all_skips_undecodable_files(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes())
    (store.directory / "Broken.jpg").write_bytes(b"garbage")
    (store.directory / "notes.txt").write_text("ignored")

    assert list(store.load_all()) == ["Apple"]


def test_load_all_on_missing_directory(store: FilesystemPhotoStore) -> None:
    assert store.load_all() == {}


def test_corrupt_sidecar_is_ignored(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes())
    store.metadata_path("Apple").write_text("{not json")

    assert store.load_metadata("Apple") is None
    assert list(store.load_all()) == ["Apple"]


def test_delete_removes_photo_and_sidecar(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes(), metadata={"name": "Apple"})

    store.delete("Apple")

    assert "Apple" not in store.load_all()
    assert not store.metadata_path("Apple").exists()


def test_delete_missing_photo_is_noop(store: FilesystemPhotoStore) -> None:
    store.delete("Durian")

    assert store.load_all() == {}


def test_encode_jpeg_respects_quality() -> None:
    noisy = Image.effect_noise((128, 128), 64).convert("RGB")
    buffer = io.BytesIO()
    noisy.save(buffer, format="PNG")

    high = encode_jpeg(buffer.getvalue(), quality=95)
    low = encode_jpeg(buffer.getvalue(), quality=30)

    assert len(low) < len(high)


def test_sidecar_is_plain_json(store: FilesystemPhotoStore) -> None:
    store.persist("Apple", make_image_bytes(), metadata={"name": "Apple"})

    with open(store.metadata_path("Apple")) as f:
        assert json.load(f) == {"name": "Apple"}


def test_persist_returns_the_bytes_on_disk(store: FilesystemPhotoStore) -> None:
    stored = store.persist("Lime", make_image_bytes(image_format="PNG"))

    assert stored == store.image_path("Lime").read_bytes()
    assert stored.startswith(b"\xff\xd8")


def test_key_for_matches_file_stem(store: FilesystemPhotoStore) -> None:
    assert store.key_for("Kiwi/Gold") == store.image_path("Kiwi/Gold").stem


def test_failed_sidecar_write_keeps_previous_photo(
    store: FilesystemPhotoStore,
) -> None:
    store.persist("Apple", make_image_bytes(width=10, height=10), {"name": "Apple"})
    previous = store.image_path("Apple").read_bytes()
    store.metadata_path("Apple").unlink()
    store.metadata_path("Apple").mkdir()

    with pytest.raises(PhotoWriteError):
        store.persist(
            "Apple", make_image_bytes(width=20, height=10), {"name": "Apple"}
        )

    assert store.image_path("Apple").read_bytes() == previous
    assert list(store.directory.glob("*.tmp")) == []


def test_unserializable_metadata_writes_nothing(store: FilesystemPhotoStore) -> None:
    with pytest.raises(PhotoWriteError):
        store.persist("Apple", make_image_bytes(), {"captured_at": object()})

    assert not store.image_path("Apple").exists()

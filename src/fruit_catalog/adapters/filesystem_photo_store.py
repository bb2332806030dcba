"""Filesystem-backed photo store."""

import io
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from fruit_catalog.errors import PhotoDeleteError, PhotoWriteError
from fruit_catalog.services.attachments import PhotoStore

_logger = logging.getLogger(__name__)

_PATH_SEPARATORS = ("/", "\\")
_SEPARATOR_SUBSTITUTE = "_"
_IMAGE_SUFFIX = ".jpg"
_METADATA_SUFFIX = ".json"


def sanitize(name: str) -> str:
    """Return a filesystem-safe key for a catalog entry name."""
    for separator in _PATH_SEPARATORS:
        name = name.replace(separator, _SEPARATOR_SUBSTITUTE)
    return name


def encode_jpeg(image: bytes, quality: int) -> bytes:
    """Decode an image payload and re-encode it as RGB JPEG."""
    with Image.open(io.BytesIO(image)) as img:
        img.load()
        if img.mode in ("RGBA", "LA", "P"):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            converted = background
        elif img.mode != "RGB":
            converted = img.convert("RGB")
        else:
            converted = img.copy()
    buffer = io.BytesIO()
    converted.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


@dataclass
class FilesystemPhotoStore(PhotoStore):
    """Stores one JPEG (plus a JSON sidecar) per catalog entry in a directory."""

    directory: Path
    jpeg_quality: int = 90

    def image_path(self, name: str) -> Path:
        """Return the JPEG path for a catalog entry name."""
        return self.directory / f"{sanitize(name)}{_IMAGE_SUFFIX}"

    def metadata_path(self, name: str) -> Path:
        """Return the sidecar path for a catalog entry name."""
        return self.directory / f"{sanitize(name)}{_METADATA_SUFFIX}"

    def key_for(self, name: str) -> str:
        """Return the sanitized file stem for a name."""
        return sanitize(name)

    def persist(
        self, name: str, image: bytes, metadata: dict[str, object] | None = None
    ) -> bytes:
        """Encode and write the photo, replacing any previous one.

        Both files are staged before either is moved into place, so a failed
        write leaves the previous photo and sidecar untouched. Returns the
        JPEG bytes that were written.
        """
        try:
            data = encode_jpeg(image, self.jpeg_quality)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise PhotoWriteError(name, "Image payload could not be decoded") from exc
        try:
            sidecar = (
                json.dumps(metadata, indent=2).encode() if metadata is not None else None
            )
        except (TypeError, ValueError) as exc:
            raise PhotoWriteError(name, "Metadata is not serializable") from exc
        image_path = self.image_path(name)
        metadata_path = self.metadata_path(name)
        staged: list[Path] = []
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            staged_image = _stage(image_path, data)
            staged.append(staged_image)
            staged_sidecar = None
            if sidecar is not None:
                staged_sidecar = _stage(metadata_path, sidecar)
                staged.append(staged_sidecar)
            previous_sidecar = (
                metadata_path.read_bytes() if metadata_path.is_file() else None
            )
            if staged_sidecar is not None:
                os.replace(staged_sidecar, metadata_path)
            else:
                metadata_path.unlink(missing_ok=True)
            try:
                os.replace(staged_image, image_path)
            except OSError:
                _restore_sidecar(metadata_path, previous_sidecar)
                raise
        except OSError as exc:
            for path in staged:
                path.unlink(missing_ok=True)
            raise PhotoWriteError(name, f"Could not write photo: {exc}") from exc
        _logger.debug("Wrote %s", image_path)
        return data

    def load_all(self) -> dict[str, bytes]:
        """Read every decodable JPEG in the directory."""
        if not self.directory.is_dir():
            return {}
        photos: dict[str, bytes] = {}
        for path in self.directory.glob(f"*{_IMAGE_SUFFIX}"):
            try:
                data = path.read_bytes()
                with Image.open(io.BytesIO(data)) as img:
                    img.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as exc:
                _logger.debug("Skipping unreadable photo %s: %s", path.name, exc)
                continue
            photos[self._name_for(path)] = data
        return photos

    def load_metadata(self, name: str) -> dict[str, object] | None:
        """Read the sidecar for a name, ignoring missing or corrupt files."""
        return _read_sidecar(self.metadata_path(name))

    def delete(self, name: str) -> None:
        """Remove the photo and sidecar for a name if present."""
        try:
            self.image_path(name).unlink(missing_ok=True)
            self.metadata_path(name).unlink(missing_ok=True)
        except OSError as exc:
            raise PhotoDeleteError(name, f"Could not delete photo: {exc}") from exc

    def _name_for(self, image_path: Path) -> str:
        """Recover the original name, preferring the sidecar over the file stem."""
        sidecar = _read_sidecar(image_path.with_suffix(_METADATA_SUFFIX))
        if sidecar and isinstance(sidecar.get("name"), str):
            return sidecar["name"]
        return image_path.stem


def _read_sidecar(path: Path) -> dict[str, object] | None:
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        _logger.warning("Ignoring unreadable metadata %s", path.name)
        return None
    if not isinstance(data, dict):
        return None
    return data


def _stage(path: Path, data: bytes) -> Path:
    """Write bytes to a temporary sibling of path and return the temporary path."""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return Path(tmp_name)


def _restore_sidecar(path: Path, previous: bytes | None) -> None:
    """Put back the sidecar that was in place before a failed write."""
    try:
        if previous is None:
            path.unlink(missing_ok=True)
        else:
            path.write_bytes(previous)
    except OSError:
        _logger.exception("Could not restore metadata %s", path.name)


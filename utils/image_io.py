"""Utility helpers for working with input images."""

import mimetypes
from pathlib import Path

HEIC_MEDIA_TYPES = frozenset({"image/heic", "image/heif", "image/heic-sequence", "image/heif-sequence"})
HEIC_EXTENSIONS = frozenset({".heic", ".heif"})

def ensure_image_path(image: str | Path) -> Path:
	"""Validate that the provided path exists and points to a file."""
	path = Path(image).expanduser().resolve()
	if not path.exists():
		raise FileNotFoundError(f"Image path not found: {path}")
	if not path.is_file():
		raise ValueError(f"Image path is not a file: {path}")
	return path

def read_image_bytes(path: Path) -> bytes:
	"""Read the raw bytes of an image."""
	return path.read_bytes()

def guess_media_type(filename: str) -> str | None:
	"""Infer a media type from a filename extension."""
	suffix = Path(filename).suffix.lower()
	if suffix in HEIC_EXTENSIONS:
		return "image/heic" if suffix == ".heic" else "image/heif"
	media_type, _ = mimetypes.guess_type(filename)
	return media_type

def is_heic(media_type: str | None, filename: str) -> bool:
	"""Return True when the declared type or the extension marks HEIC/HEIF."""
	if media_type and media_type.lower() in HEIC_MEDIA_TYPES:
		return True
	return Path(filename).suffix.lower() in HEIC_EXTENSIONS

def with_suffix(filename: str, suffix: str) -> str:
	"""Swap the extension of a bare filename."""
	name = Path(filename).name or "upload"
	return str(Path(name).with_suffix(suffix))

"""Value types passed between pipeline stages."""


from dataclasses import dataclass
from pathlib import Path
from typing import Final

UPLOAD_CEILING_BYTES: Final[int] = int(9.5 * 1024 * 1024)
QUALITY_STEPS: Final[tuple[float, ...]] = (0.8, 0.7, 0.6, 0.5)


@dataclass(frozen=True)
class RawImage:
	"""Bytes as acquired, with the declared or inferred media type."""
	data: bytes
	filename: str
	media_type: str | None = None


@dataclass(frozen=True)
class NormalizationOptions:
	"""Per-image configuration for the encoder."""
	max_dimension_px: int
	grayscale: bool = False

	def __post_init__(self) -> None:
		if self.max_dimension_px < 1:
			raise ValueError(f"max_dimension_px must be positive, got {self.max_dimension_px}")


@dataclass(frozen=True)
class EncodedImage:
	"""JPEG output of the encoder and the parameters that produced it."""
	data: bytes
	width: int
	height: int
	quality: float
	media_type: str = "image/jpeg"

	@property
	def size(self) -> int:
		return len(self.data)


@dataclass(frozen=True)
class PreviewHandle:
	"""Local display copy of a staged page."""
	path: Path


@dataclass(frozen=True)
class StagedImage:
	"""An uploaded page waiting in the staging queue."""
	preview: PreviewHandle
	remote_id: str
	url: str | None = None

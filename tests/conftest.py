"""Shared fixtures and fakes for the capture pipeline tests."""
from __future__ import annotations

import asyncio
import io
from collections.abc import Mapping, Sequence
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from errors import OcrError, UploadError
from pipeline.models import StagedImage
from pipeline.staging import PreviewStore
from schemas import UploadResult


def make_image_bytes(
	size: tuple[int, int] = (64, 48),
	color: tuple[int, ...] = (200, 120, 40),
	mode: str = "RGB",
	fmt: str = "PNG",
) -> bytes:
	"""Encode a solid-colour image."""
	buffer = io.BytesIO()
	Image.new(mode, size, color).save(buffer, format=fmt)
	return buffer.getvalue()


def noise_image_bytes(size: tuple[int, int] = (200, 200)) -> bytes:
	"""Encode a deterministic noisy RGB image that compresses poorly."""
	buffer = io.BytesIO()
	Image.effect_noise(size, 64).convert("RGB").save(buffer, format="PNG")
	return buffer.getvalue()


class FakeUploader:
	"""Records uploads and hands out sequential remote ids."""

	def __init__(self, fail_for: set[str] | None = None) -> None:
		self.fail_for = fail_for or set()
		self.calls: list[tuple[bytes, str, str]] = []

	async def upload(self, data: bytes, filename: str, mime_type: str) -> UploadResult:
		if filename in self.fail_for:
			raise UploadError(f"storage rejected {filename}")
		self.calls.append((data, filename, mime_type))
		remote_id = f"media-{len(self.calls)}"
		return UploadResult(remote_id=remote_id, url=f"https://blob.test/{remote_id}.jpg")


class FakeExtractor:
	"""OCR collaborator returning canned texts, or failing on demand."""

	def __init__(self, texts: Mapping[str, str] | None = None, error: Exception | None = None) -> None:
		self.texts = dict(texts or {})
		self.error = error
		self.calls: list[list[str]] = []
		self.gate: asyncio.Event | None = None

	async def extract_text(self, remote_ids: Sequence[str]) -> dict[str, str]:
		self.calls.append(list(remote_ids))
		if self.gate is not None:
			await self.gate.wait()
		if self.error is not None:
			raise self.error
		return dict(self.texts)


class FakeVideoCapture:
	"""Stand-in for ``cv2.VideoCapture``."""

	def __init__(self, device: int | str = 0, opened: bool = True, frame: np.ndarray | None = None) -> None:
		self.device = device
		self.opened = opened
		self.frame = np.full((48, 64, 3), 180, dtype=np.uint8) if frame is None else frame
		self.readable = True
		self.released = False
		self.properties: dict[int, float] = {}

	def isOpened(self) -> bool:
		return self.opened and not self.released

	def set(self, prop: int, value: float) -> bool:
		self.properties[prop] = value
		return True

	def read(self) -> tuple[bool, np.ndarray | None]:
		if not self.readable:
			return False, None
		return True, self.frame

	def release(self) -> None:
		self.released = True


@pytest.fixture
def previews(tmp_path: Path) -> PreviewStore:
	return PreviewStore(tmp_path / "previews")


@pytest.fixture
def stage_item(previews: PreviewStore):
	"""Build staged images backed by real preview files."""

	def _build(remote_id: str) -> StagedImage:
		return StagedImage(preview=previews.create(b"preview"), remote_id=remote_id, url=f"https://blob.test/{remote_id}")

	return _build


@pytest.fixture
def ocr_failure() -> OcrError:
	return OcrError("model unavailable")

"""Capture session wiring acquisition, normalization, upload and staging."""


import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from errors import CaptureError, QueueBusy, SessionBusy
from pipeline.acquisition import CameraDevice, load_file
from pipeline.encoder import compress_with
from pipeline.models import NormalizationOptions, RawImage, StagedImage
from pipeline.normalize import normalize_format
from pipeline.staging import CaptureCallback, PreviewStore, StagingQueue
from schemas import CaptureResult, UploadResult
from utils.image_io import with_suffix

ErrorHook = Callable[[str, Exception], None]


class Uploader(Protocol):
	"""Upload collaborator returning the remote id and URL of stored bytes."""

	async def upload(self, data: bytes, filename: str, mime_type: str) -> UploadResult:
		...


@dataclass
class BatchReport:
	"""Outcome of a multi-file selection."""
	accepted: list[StagedImage] = field(default_factory=list)
	failures: list[tuple[str, Exception]] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not self.failures


class CaptureSession:
	"""Runs pages through the pipeline one at a time and stages them."""

	def __init__(
		self,
		uploader: Uploader,
		queue: StagingQueue,
		previews: PreviewStore,
		options: NormalizationOptions,
		on_error: ErrorHook | None = None,
	) -> None:
		self.uploader = uploader
		self.queue = queue
		self.previews = previews
		self.options = options
		self.on_error = on_error
		self._processing = False
		self._logger = logging.getLogger(self.__class__.__name__)

	@property
	def processing(self) -> bool:
		return self._processing

	async def add_files(self, sources: Iterable[RawImage | str | Path]) -> BatchReport:
		"""Stage each source in order; a failing item is reported and skipped."""
		report = BatchReport()
		with self._busy():
			for source in sources:
				name = source.filename if isinstance(source, RawImage) else str(source)
				try:
					raw = source if isinstance(source, RawImage) else load_file(source)
					report.accepted.append(await self._stage(raw))
				except (CaptureError, OSError, ValueError) as exc:
					self._logger.error("Skipping %s: %s", name, exc)
					report.failures.append((name, exc))
					if self.on_error is not None:
						self.on_error(name, exc)
		return report

	async def capture_photo(self, camera: CameraDevice) -> StagedImage:
		"""Grab a frame from ``camera`` and stage it."""
		with self._busy():
			raw = await camera.capture_frame()
			return await self._stage(raw)

	async def finalize(self, on_capture: CaptureCallback | None = None) -> CaptureResult | None:
		with self._busy():
			return await self.queue.finalize(on_capture)

	async def _stage(self, raw: RawImage) -> StagedImage:
		normalized = normalize_format(raw)
		encoded = await asyncio.to_thread(compress_with, normalized.data, self.options)
		filename = with_suffix(normalized.filename, ".jpg")
		uploaded = await self.uploader.upload(encoded.data, filename, encoded.media_type)
		staged = StagedImage(
			preview=self.previews.create(encoded.data),
			remote_id=uploaded.remote_id,
			url=uploaded.url,
		)
		try:
			self.queue.append(staged)
		except QueueBusy:
			self.previews.release(staged.preview)
			raise
		self._logger.info(
			"Staged %s as page %d (%dx%d, quality %.1f, %d bytes)",
			filename,
			len(self.queue),
			encoded.width,
			encoded.height,
			encoded.quality,
			encoded.size,
		)
		return staged

	@contextmanager
	def _busy(self) -> Iterator[None]:
		if self._processing:
			raise SessionBusy("another capture operation is still processing")
		self._processing = True
		try:
			yield
		finally:
			self._processing = False

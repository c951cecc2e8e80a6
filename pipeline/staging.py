"""Ordered staging of uploaded pages and the batched OCR finalize."""


import logging
import tempfile
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol

from errors import QueueBusy
from pipeline.models import PreviewHandle, StagedImage
from schemas import CaptureResult

PAGE_HEADER_TEMPLATE = "--- Page {} ---"

CaptureCallback = Callable[[list[str], str], None]


class TextExtractor(Protocol):
	"""OCR collaborator: maps remote ids to their extracted text."""

	async def extract_text(self, remote_ids: Sequence[str]) -> Mapping[str, str]:
		...


class PreviewStore:
	"""Owns the temporary files backing page previews.

	Without an explicit ``directory`` the store creates its own temporary
	directory and removes it on :meth:`close`.
	"""

	def __init__(self, directory: Path | None = None) -> None:
		self._tempdir = None if directory else tempfile.TemporaryDirectory(prefix="journal-previews-")
		self.directory = Path(directory) if directory else Path(self._tempdir.name)
		self.directory.mkdir(parents=True, exist_ok=True)
		self._live: set[Path] = set()

	@property
	def active(self) -> int:
		return len(self._live)

	def create(self, data: bytes, suffix: str = ".jpg") -> PreviewHandle:
		with tempfile.NamedTemporaryFile(dir=self.directory, suffix=suffix, delete=False) as handle:
			handle.write(data)
		path = Path(handle.name)
		self._live.add(path)
		return PreviewHandle(path=path)

	def release(self, preview: PreviewHandle) -> None:
		self._live.discard(preview.path)
		preview.path.unlink(missing_ok=True)

	def close(self) -> None:
		"""Delete every remaining preview and the store's own directory."""
		for path in list(self._live):
			self.release(PreviewHandle(path=path))
		if self._tempdir is not None:
			self._tempdir.cleanup()
			self._tempdir = None

	def __enter__(self) -> "PreviewStore":
		return self

	def __exit__(self, *exc_info: object) -> None:
		self.close()


def assemble_pages(remote_ids: Sequence[str], texts: Mapping[str, str] | None) -> str:
	"""Join page texts in ``remote_ids`` order under numbered page headers.

	Ids missing from ``texts`` contribute an empty page.
	"""
	texts = texts or {}
	blocks = []
	for number, remote_id in enumerate(remote_ids, start=1):
		text = texts.get(remote_id)
		if not isinstance(text, str):
			text = ""
		blocks.append(f"{PAGE_HEADER_TEMPLATE.format(number)}\n\n{text}")
	return "\n\n".join(blocks)


class StagingQueue:
	"""Ordered, mutable list of uploaded pages awaiting OCR.

	The queue order is the page order. Every entry refers to an upload that
	already succeeded; previews are released when an entry leaves the queue.
	"""

	def __init__(self, extractor: TextExtractor, previews: PreviewStore) -> None:
		self._extractor = extractor
		self._previews = previews
		self._items: list[StagedImage] = []
		self._finalizing = False
		self._logger = logging.getLogger(self.__class__.__name__)

	def __len__(self) -> int:
		return len(self._items)

	@property
	def items(self) -> tuple[StagedImage, ...]:
		return tuple(self._items)

	@property
	def finalizing(self) -> bool:
		return self._finalizing

	def append(self, item: StagedImage) -> None:
		self._ensure_idle()
		self._items.append(item)

	def move_item(self, index: int, direction: int) -> tuple[StagedImage, ...]:
		"""Swap the item at ``index`` with its neighbour in ``direction`` (-1 or +1)."""
		if direction not in (-1, 1):
			raise ValueError(f"direction must be -1 or +1, got {direction}")
		self._ensure_idle()
		target = index + direction
		if 0 <= index < len(self._items) and 0 <= target < len(self._items):
			self._items[index], self._items[target] = self._items[target], self._items[index]
		return self.items

	def remove_item(self, index: int) -> StagedImage | None:
		self._ensure_idle()
		if not 0 <= index < len(self._items):
			return None
		item = self._items.pop(index)
		self._previews.release(item.preview)
		return item

	def clear(self) -> None:
		self._ensure_idle()
		self._release_all()

	async def finalize(self, on_capture: CaptureCallback | None = None) -> CaptureResult | None:
		"""Run OCR over the staged pages and emit the combined text.

		Does nothing on an empty queue. The queue is cleared and ``on_capture``
		called only after OCR succeeds; on failure the error propagates and the
		staged pages stay in place for a retry.
		"""
		self._ensure_idle()
		if not self._items:
			return None

		remote_ids = [item.remote_id for item in self._items]
		self._finalizing = True
		try:
			texts = await self._extractor.extract_text(remote_ids)
		finally:
			self._finalizing = False

		combined = assemble_pages(remote_ids, texts)
		self._release_all()
		self._logger.info("Finalized %d page(s)", len(remote_ids))
		if on_capture is not None:
			on_capture(remote_ids, combined)
		return CaptureResult(remote_ids=remote_ids, combined_text=combined, page_count=len(remote_ids))

	def _release_all(self) -> None:
		items, self._items = self._items, []
		for item in items:
			self._previews.release(item.preview)

	def _ensure_idle(self) -> None:
		if self._finalizing:
			raise QueueBusy("staging queue is being finalized")

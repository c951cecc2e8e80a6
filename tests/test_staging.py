"""Tests for the staging queue and finalize."""
from __future__ import annotations

import asyncio

import pytest

from conftest import FakeExtractor
from errors import OcrError, QueueBusy
from pipeline.staging import PreviewStore, StagingQueue, assemble_pages


def _ids(queue: StagingQueue) -> list[str]:
	return [item.remote_id for item in queue.items]


def _queue(extractor: FakeExtractor, previews: PreviewStore, stage_item, *ids: str) -> StagingQueue:
	queue = StagingQueue(extractor, previews)
	for remote_id in ids:
		queue.append(stage_item(remote_id))
	return queue


def test_move_item_swaps_with_neighbour(previews, stage_item) -> None:
	"""Moving swaps an item with the one in the given direction."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B", "C")
	queue.move_item(2, -1)
	assert _ids(queue) == ["A", "C", "B"]
	queue.move_item(0, 1)
	assert _ids(queue) == ["C", "A", "B"]


@pytest.mark.parametrize(("index", "direction"), [(0, -1), (2, 1), (5, -1), (-1, 1)])
def test_move_item_out_of_bounds_is_noop(previews, stage_item, index: int, direction: int) -> None:
	"""Out-of-range moves return the unchanged order."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B", "C")
	assert [item.remote_id for item in queue.move_item(index, direction)] == ["A", "B", "C"]


def test_move_item_rejects_other_directions(previews, stage_item) -> None:
	"""Only single steps are allowed."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B")
	with pytest.raises(ValueError):
		queue.move_item(0, 2)


def test_remove_item_releases_preview(previews, stage_item) -> None:
	"""Removing an item deletes its preview file."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B")
	preview_path = queue.items[0].preview.path
	removed = queue.remove_item(0)
	assert removed is not None and removed.remote_id == "A"
	assert not preview_path.exists()
	assert _ids(queue) == ["B"]
	assert previews.active == 1


@pytest.mark.parametrize("index", [2, 10, -1])
def test_remove_item_out_of_range_is_noop(previews, stage_item, index: int) -> None:
	"""Invalid indices leave the queue untouched."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B")
	assert queue.remove_item(index) is None
	assert _ids(queue) == ["A", "B"]
	assert previews.active == 2


def test_clear_releases_all_previews(previews, stage_item) -> None:
	"""Clearing empties the queue and its preview files."""
	queue = _queue(FakeExtractor(), previews, stage_item, "A", "B", "C")
	paths = [item.preview.path for item in queue.items]
	queue.clear()
	assert len(queue) == 0
	assert previews.active == 0
	assert not any(path.exists() for path in paths)


def test_assemble_pages_defaults_missing_text() -> None:
	"""Pages the OCR omitted contribute empty text."""
	assert assemble_pages(["A", "B"], {"A": "hello"}) == "--- Page 1 ---\n\nhello\n\n--- Page 2 ---\n\n"
	assert assemble_pages(["A"], None) == "--- Page 1 ---\n\n"


@pytest.mark.asyncio
async def test_finalize_follows_queue_order(previews, stage_item) -> None:
	"""OCR results are re-sorted into the staged page order."""
	extractor = FakeExtractor({"B": "y", "A": "x", "C": "z"})
	queue = _queue(extractor, previews, stage_item, "A", "B", "C")
	queue.move_item(2, -1)
	queue.move_item(1, -1)
	assert _ids(queue) == ["C", "A", "B"]
	captured: list[tuple[list[str], str]] = []

	result = await queue.finalize(lambda ids, text: captured.append((ids, text)))

	expected = "--- Page 1 ---\n\nz\n\n--- Page 2 ---\n\nx\n\n--- Page 3 ---\n\ny"
	assert extractor.calls == [["C", "A", "B"]]
	assert captured == [(["C", "A", "B"], expected)]
	assert result is not None and result.combined_text == expected
	assert result.page_count == 3
	assert len(queue) == 0
	assert previews.active == 0


@pytest.mark.asyncio
async def test_finalize_on_empty_queue_is_noop(previews) -> None:
	"""No OCR call and no callback for an empty queue."""
	extractor = FakeExtractor()
	queue = StagingQueue(extractor, previews)
	captured: list[object] = []
	assert await queue.finalize(lambda ids, text: captured.append(ids)) is None
	assert extractor.calls == []
	assert captured == []


@pytest.mark.asyncio
async def test_finalize_failure_keeps_staged_items(previews, stage_item, ocr_failure) -> None:
	"""An OCR error leaves the queue ready for a retry."""
	queue = _queue(FakeExtractor(error=ocr_failure), previews, stage_item, "A", "B")
	captured: list[object] = []
	with pytest.raises(OcrError):
		await queue.finalize(lambda ids, text: captured.append(ids))
	assert _ids(queue) == ["A", "B"]
	assert previews.active == 2
	assert captured == []
	assert not queue.finalizing


@pytest.mark.asyncio
async def test_queue_rejects_changes_while_finalizing(previews, stage_item) -> None:
	"""Mutations during an in-flight finalize raise instead of racing the snapshot."""
	extractor = FakeExtractor({"A": "one"})
	extractor.gate = asyncio.Event()
	queue = _queue(extractor, previews, stage_item, "A")

	task = asyncio.create_task(queue.finalize())
	await asyncio.sleep(0)
	assert queue.finalizing
	with pytest.raises(QueueBusy):
		queue.clear()
	with pytest.raises(QueueBusy):
		queue.append(stage_item("B"))
	with pytest.raises(QueueBusy):
		await queue.finalize()

	extractor.gate.set()
	result = await task
	assert result is not None and result.remote_ids == ["A"]
	assert len(queue) == 0


def test_preview_store_close_removes_own_directory() -> None:
	"""A store without a directory cleans up its files and temp directory."""
	store = PreviewStore()
	preview = store.create(b"jpeg")
	assert preview.path.parent == store.directory

	store.close()

	assert store.active == 0
	assert not preview.path.exists()
	assert not store.directory.exists()
	store.close()


def test_preview_store_close_keeps_given_directory(tmp_path) -> None:
	"""A caller-supplied directory outlives the store; only previews go."""
	with PreviewStore(tmp_path / "previews") as store:
		preview = store.create(b"jpeg")
	assert not preview.path.exists()
	assert (tmp_path / "previews").is_dir()

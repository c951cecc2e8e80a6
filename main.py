"""Command-line interface for capturing journal pages and extracting their text."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from config import AppConfig, configure_logging, load_config
from errors import CaptureError, OcrError
from pipeline.acquisition import CameraDevice
from pipeline.models import NormalizationOptions
from pipeline.session import CaptureSession
from pipeline.staging import PreviewStore, StagingQueue, TextExtractor
from providers.journal_api import JournalApiClient
from providers.qwen_ocr import QwenOcrClient
from schemas import CaptureResult
from utils.io_json import dump_json

CAMERA_PROMPT = "[Enter] capture  [u] remove last page  [d] done: "
RETRY_PROMPT = "OCR failed, staged pages kept. [r] retry  [a] abort: "


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
	"""Parse command-line arguments."""
	parser = argparse.ArgumentParser(description="Capture handwritten journal pages and extract their text")
	parser.add_argument("--source", choices=["files", "camera"], required=True, help="Where page images come from")
	parser.add_argument("--image", nargs="+", default=[], help="Page image files in page order")
	parser.add_argument("--pages", type=int, default=0, help="Stop the camera after this many pages (0 = until done)")
	parser.add_argument("--max_side", type=int, default=None, help="Longest side of the uploaded image in pixels")
	parser.add_argument("--grayscale", action="store_true", help="Desaturate pages before upload")
	parser.add_argument("--ocr", choices=["journal", "qwen"], default="journal", help="OCR backend to use")
	parser.add_argument("--outdir", default=None, help="Directory to store JSON outputs")
	args = parser.parse_args(argv)
	if args.source == "files" and not args.image:
		parser.error("--image is required when --source is files")
	return args


def build_extractor(args: argparse.Namespace, config: AppConfig, api: JournalApiClient) -> TextExtractor:
	if args.ocr == "qwen":
		if not config.dashscope:
			raise RuntimeError("DashScope API key is not configured.")
		return QwenOcrClient(config.dashscope, url_lookup=api.uploaded_urls)
	return api


async def capture_pages(
	session: CaptureSession,
	camera: CameraDevice,
	pages: int = 0,
	prompt: Callable[[str], str] = input,
) -> None:
	"""Interactively grab frames from ``camera`` into the session queue."""
	with camera:
		while not pages or len(session.queue) < pages:
			command = (await asyncio.to_thread(prompt, CAMERA_PROMPT)).strip().lower()
			if command == "d":
				break
			if command == "u":
				session.queue.remove_item(len(session.queue) - 1)
				continue
			try:
				await session.capture_photo(camera)
			except CaptureError as exc:
				logging.error("Capture failed: %s", exc)


async def finalize_pages(session: CaptureSession, prompt: Callable[[str], str] = input) -> CaptureResult | None:
	"""Finalize the staged pages, offering a manual retry after each OCR failure.

	The staged pages survive a failed attempt; anything but ``r`` at the
	prompt aborts with the last OCR error.
	"""
	while True:
		try:
			return await session.finalize()
		except OcrError as exc:
			logging.error("OCR failed for %d staged page(s): %s", len(session.queue), exc)
			command = (await asyncio.to_thread(prompt, RETRY_PROMPT)).strip().lower()
			if command != "r":
				raise


async def run(args: argparse.Namespace, config: AppConfig, prompt: Callable[[str], str] = input) -> dict[str, Any]:
	"""Execute page capture and OCR for the provided arguments."""
	output_dir = Path(args.outdir).expanduser().resolve() if args.outdir else config.output_dir
	options = NormalizationOptions(
		max_dimension_px=args.max_side or config.capture.max_side,
		grayscale=args.grayscale or config.capture.grayscale,
	)

	async with JournalApiClient(config.journal_api) as api:
		with PreviewStore() as previews:
			queue = StagingQueue(build_extractor(args, config, api), previews)
			session = CaptureSession(api, queue, previews, options)
			try:
				if args.source == "files":
					report = await session.add_files(args.image)
					for name, exc in report.failures:
						logging.warning("Page %s was skipped: %s", name, exc)
				else:
					await capture_pages(session, CameraDevice(config.capture.camera_device), args.pages, prompt)

				result = await finalize_pages(session, prompt)
				if result is None:
					raise RuntimeError("No pages were staged.")
			finally:
				if not queue.finalizing:
					queue.clear()

	json_payload = result.model_dump()
	output_path = dump_json(json_payload, output_dir, f"capture_{args.source}")
	logging.info("Saved capture output to %s", output_path)
	print(json.dumps(json_payload, ensure_ascii=False, indent=2))
	return json_payload


def main(argv: list[str] | None = None) -> int:
	"""Entry point for the CLI application."""
	config = load_config()
	configure_logging(config.log_level)
	try:
		args = parse_arguments(argv)
		asyncio.run(run(args, config))
	except Exception as exc:  # noqa: BLE001
		logging.exception("Page capture failed: %s", exc)
		return 1
	return 0


if __name__ == "__main__":
	raise SystemExit(main())

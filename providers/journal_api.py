"""Journal backend client for media upload and OCR."""


import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from config import JournalApiSettings
from errors import OcrError, UploadError
from schemas import OcrPageResult, OcrResponse, UploadResult

UPLOAD_PATH = "/api/upload-url"
OCR_PATH = "/api/ocr"
USER_ID_HEADER = "x-user-id"


@dataclass
class JournalApiClient:
	"""Async wrapper around the journal backend upload and OCR endpoints."""

	settings: JournalApiSettings
	client: httpx.AsyncClient | None = None
	transport: httpx.AsyncBaseTransport | None = None
	uploaded_urls: dict[str, str] = field(default_factory=dict)

	def __post_init__(self) -> None:
		self._logger = logging.getLogger(self.__class__.__name__)
		self._owns_client = self.client is None
		if self.client is None:
			self.client = httpx.AsyncClient(
				base_url=self.settings.base_url,
				timeout=self.settings.timeout,
				transport=self.transport,
			)

	async def aclose(self) -> None:
		if self._owns_client and self.client is not None:
			await self.client.aclose()

	async def __aenter__(self) -> "JournalApiClient":
		return self

	async def __aexit__(self, *exc_info: object) -> None:
		await self.aclose()

	async def upload(self, data: bytes, filename: str, mime_type: str) -> UploadResult:
		"""Upload page bytes as a multipart ``file`` field."""
		files = {"file": (filename, data, mime_type)}
		try:
			response = await self.client.post(UPLOAD_PATH, files=files, headers=self._headers())
			response.raise_for_status()
			result = UploadResult.model_validate(response.json())
		except httpx.HTTPStatusError as exc:
			raise UploadError(f"upload of {filename} failed with status {exc.response.status_code}") from exc
		except httpx.HTTPError as exc:
			raise UploadError(f"upload of {filename} failed: {exc}") from exc
		except ValueError as exc:
			raise UploadError(f"upload of {filename} returned an invalid body: {exc}") from exc

		self.uploaded_urls[result.remote_id] = result.url
		self._logger.info("Uploaded %s (%d bytes) as %s", filename, len(data), result.remote_id)
		return result

	async def extract_text(self, remote_ids: Sequence[str]) -> dict[str, str]:
		"""Request OCR for uploaded media; ids the backend omits are left out."""
		if not remote_ids:
			raise ValueError("at least one media id is required")
		pages = await self._request_ocr({"mediaIds": list(remote_ids)})
		return {page.remote_id: page.text for page in pages}

	async def extract_text_from_urls(self, urls: Sequence[str]) -> list[OcrPageResult]:
		"""Request OCR for images addressed by URL."""
		if not urls:
			raise ValueError("at least one url is required")
		return await self._request_ocr({"urls": list(urls)})

	async def _request_ocr(self, payload: dict[str, Any]) -> list[OcrPageResult]:
		try:
			response = await self.client.post(OCR_PATH, json=payload, headers=self._headers())
			response.raise_for_status()
			body = OcrResponse.model_validate(response.json())
		except httpx.HTTPStatusError as exc:
			raise OcrError(f"OCR request failed with status {exc.response.status_code}") from exc
		except httpx.HTTPError as exc:
			raise OcrError(f"OCR request failed: {exc}") from exc
		except ValueError as exc:
			raise OcrError(f"OCR response was not understood: {exc}") from exc
		return self._parse_pages(body.results)

	def _parse_pages(self, results: list[Any]) -> list[OcrPageResult]:
		pages: list[OcrPageResult] = []
		for entry in results:
			try:
				pages.append(OcrPageResult.model_validate(entry))
			except ValidationError:
				self._logger.warning("Skipping malformed OCR result: %r", entry)
		return pages

	def _headers(self) -> dict[str, str]:
		if self.settings.user_id:
			return {USER_ID_HEADER: self.settings.user_id}
		return {}

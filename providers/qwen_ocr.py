"""DashScope Qwen-VL OCR provider implementation."""


import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dashscope import MultiModalConversation

from config import DashScopeCredentials
from errors import OcrError

SYSTEM_PROMPT = (
	"You are an OCR engine. Extract verbatim text from the provided images. "
	"Preserve line breaks. Do not add or infer content. Output plain text only."
)
USER_PROMPT = "Extract verbatim text from this image."


@dataclass
class QwenOcrClient:
	"""Hosted-model OCR over DashScope multimodal conversations.

	Remote ids are resolved to image URLs through ``url_lookup``; ids with no
	known URL are treated as URLs themselves.
	"""

	credentials: DashScopeCredentials
	url_lookup: Mapping[str, str] = field(default_factory=dict)

	def __post_init__(self) -> None:
		self._logger = logging.getLogger(self.__class__.__name__)

	async def extract_text(self, remote_ids: Sequence[str]) -> dict[str, str]:
		if not remote_ids:
			raise ValueError("at least one media id is required")
		texts: dict[str, str] = {}
		for remote_id in remote_ids:
			url = self.url_lookup.get(remote_id, remote_id)
			texts[remote_id] = await asyncio.to_thread(self.transcribe, url)
		return texts

	def transcribe(self, url: str) -> str:
		"""Run OCR on a single image URL."""
		try:
			response = self._call_service(url)
		except Exception as exc:  # noqa: BLE001
			raise OcrError(f"Qwen OCR call failed for {url}: {exc}") from exc
		if getattr(response, "status_code", 500) != 200:
			raise OcrError(f"Qwen OCR request failed: {getattr(response, 'message', 'unknown error')}")
		text = self._extract_text(response)
		self._logger.info("Extracted %d characters from %s", len(text), url)
		return text

	def _call_service(self, url: str) -> Any:
		return MultiModalConversation.call(
			api_key=self.credentials.api_key,
			model=self.credentials.model,
			messages=[
				{"role": "system", "content": [{"text": SYSTEM_PROMPT}]},
				{"role": "user", "content": [{"image": url}, {"text": USER_PROMPT}]},
			],
		)

	def _extract_text(self, response: Any) -> str:
		try:
			content = response.output.choices[0].message.content
		except (AttributeError, IndexError, KeyError, TypeError):
			return ""
		if isinstance(content, str):
			return content.strip()
		parts = [item.get("text", "") for item in content if isinstance(item, dict)]
		return "".join(part for part in parts if isinstance(part, str)).strip()

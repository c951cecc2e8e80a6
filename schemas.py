"""Pydantic schemas for journal backend payloads and capture results."""


from typing import Any

from pydantic import BaseModel, ConfigDict, Field

class UploadResult(BaseModel):
	"""Remote media record returned by the upload endpoint."""
	model_config = ConfigDict(populate_by_name=True)

	remote_id: str = Field(alias="mediaId")
	url: str

class OcrPageResult(BaseModel):
	"""Extracted text for a single uploaded page."""
	model_config = ConfigDict(populate_by_name=True)

	remote_id: str = Field(alias="mediaId")
	text: str = ""

class OcrResponse(BaseModel):
	"""Body of the OCR endpoint response."""
	results: list[Any] = Field(default_factory=list)

class CaptureResult(BaseModel):
	"""Ordered pages and the combined text emitted by a finalize."""
	remote_ids: list[str]
	combined_text: str
	page_count: int

"""Exception hierarchy for the page capture pipeline."""


class CaptureError(Exception):
	"""Base class for recoverable capture pipeline failures."""


class FormatUnsupported(CaptureError):
	"""Raised when an image cannot be converted or decoded."""


class UnsupportedInput(CaptureError):
	"""Raised when the input is neither an image nor HEIC/HEIF."""


class CanvasUnavailable(CaptureError):
	"""Raised when an image cannot be rendered or encoded."""


class UploadError(CaptureError):
	"""Raised when the upload endpoint fails or is unreachable."""


class OcrError(CaptureError):
	"""Raised when text extraction fails."""


class CameraUnavailable(CaptureError):
	"""Raised when the video device cannot be opened or read."""


class CameraAlreadyActive(CaptureError):
	"""Raised when acquiring a camera that is already streaming."""


class QueueBusy(CaptureError):
	"""Raised when the staging queue is modified during finalize."""


class SessionBusy(CaptureError):
	"""Raised when an operation is submitted while another is processing."""

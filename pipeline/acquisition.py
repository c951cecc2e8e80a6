"""Raw image acquisition from a video device or from files."""


import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import cv2

from errors import CameraAlreadyActive, CameraUnavailable, CanvasUnavailable
from pipeline.models import RawImage
from utils.image_io import ensure_image_path, guess_media_type, read_image_bytes

FRAME_WIDTH = 1280
FRAME_HEIGHT = 720
FRAME_JPEG_QUALITY = 90
FRAME_FILENAME = "capture.jpg"


class CameraDevice:
	"""Owned handle on a video capture device.

	Only one acquisition may be active at a time; acquiring again before
	``release()`` raises :class:`CameraAlreadyActive`.
	"""

	def __init__(
		self,
		device: int | str = 0,
		width: int = FRAME_WIDTH,
		height: int = FRAME_HEIGHT,
		capture_factory: Callable[[int | str], Any] | None = None,
	) -> None:
		self.device = device
		self.width = width
		self.height = height
		self._factory = capture_factory or cv2.VideoCapture
		self._capture: Any = None
		self._logger = logging.getLogger(self.__class__.__name__)

	@property
	def active(self) -> bool:
		return self._capture is not None

	def acquire(self) -> "CameraDevice":
		if self._capture is not None:
			raise CameraAlreadyActive(f"camera {self.device!r} is already streaming")
		capture = self._factory(self.device)
		if not capture.isOpened():
			capture.release()
			raise CameraUnavailable(f"could not open camera {self.device!r}")
		capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
		capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
		self._capture = capture
		self._logger.info("Camera %r acquired", self.device)
		return self

	def release(self) -> None:
		if self._capture is None:
			return
		capture, self._capture = self._capture, None
		capture.release()
		self._logger.info("Camera %r released", self.device)

	async def capture_frame(self) -> RawImage:
		"""Grab a single frame and encode it as JPEG."""
		if self._capture is None:
			raise CameraUnavailable("camera is not active")
		ok, frame = await asyncio.to_thread(self._capture.read)
		if not ok or frame is None:
			raise CameraUnavailable(f"could not read a frame from camera {self.device!r}")
		ok, encoded = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, FRAME_JPEG_QUALITY])
		if not ok:
			raise CanvasUnavailable("could not encode camera frame")
		return RawImage(data=encoded.tobytes(), filename=FRAME_FILENAME, media_type="image/jpeg")

	def __enter__(self) -> "CameraDevice":
		return self.acquire()

	def __exit__(self, *exc_info: object) -> None:
		self.release()


def load_file(path: str | Path) -> RawImage:
	"""Read a user-selected file with its media type inferred from the name."""
	image_path = ensure_image_path(path)
	return RawImage(
		data=read_image_bytes(image_path),
		filename=image_path.name,
		media_type=guess_media_type(image_path.name),
	)

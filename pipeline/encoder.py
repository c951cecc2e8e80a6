"""Downscale and recompress page images under the upload ceiling."""


import io
import logging
import math
from collections.abc import Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from errors import CanvasUnavailable, FormatUnsupported
from pipeline.models import QUALITY_STEPS, UPLOAD_CEILING_BYTES, EncodedImage, NormalizationOptions


def target_size(width: int, height: int, max_side: int) -> tuple[int, int]:
	"""Scale ``(width, height)`` so the longer side fits ``max_side``; never upscales."""
	scale = min(1.0, max_side / max(width, height))
	return max(1, math.floor(width * scale + 0.5)), max(1, math.floor(height * scale + 0.5))


def apply_grayscale(image: Image.Image) -> Image.Image:
	"""Write ``Y = 0.299R + 0.587G + 0.114B`` into every colour channel, keeping alpha."""
	if image.mode == "RGBA":
		luma = image.convert("L")
		return Image.merge("RGBA", (luma, luma, luma, image.getchannel("A")))
	rgb = image if image.mode == "RGB" else image.convert("RGB")
	luma = rgb.convert("L")
	return Image.merge("RGB", (luma, luma, luma))


def encode_jpeg(image: Image.Image, quality: float) -> bytes:
	buffer = io.BytesIO()
	image.save(buffer, format="JPEG", quality=round(quality * 100))
	return buffer.getvalue()


def decode(data: bytes) -> Image.Image:
	"""Decode image bytes, honouring the EXIF orientation tag."""
	try:
		image = Image.open(io.BytesIO(data))
		image.load()
		image = ImageOps.exif_transpose(image)
	except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
		raise FormatUnsupported(f"could not decode image: {exc}") from exc
	if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
		return image.convert("RGBA")
	return image if image.mode == "RGB" else image.convert("RGB")


def compress(
	data: bytes,
	max_side: int,
	grayscale: bool = False,
	*,
	ceiling: int = UPLOAD_CEILING_BYTES,
	qualities: Sequence[float] = QUALITY_STEPS,
) -> EncodedImage:
	"""Render ``data`` at most ``max_side`` pixels on its longer side and encode it as JPEG.

	Qualities are tried in order and the first encoding no larger than
	``ceiling`` wins. When none fits, the last (lowest quality) encoding is
	returned. Dimensions are fixed before the quality search starts.

	Raises:
		FormatUnsupported: ``data`` is not a decodable image.
		CanvasUnavailable: the image could not be rendered or encoded.
	"""
	if not qualities:
		raise ValueError("at least one quality level is required")
	image = decode(data)
	width, height = target_size(image.width, image.height, max_side)
	try:
		if (width, height) != image.size:
			image = image.resize((width, height), Image.Resampling.LANCZOS)
		if grayscale:
			image = apply_grayscale(image)
		if image.mode == "RGBA":
			# JPEG has no alpha; flatten onto white paper
			background = Image.new("RGB", image.size, (255, 255, 255))
			background.paste(image, mask=image.getchannel("A"))
			image = background

		encoded = b""
		chosen = qualities[-1]
		for quality in qualities:
			encoded = encode_jpeg(image, quality)
			chosen = quality
			if len(encoded) <= ceiling:
				break
	except (OSError, ValueError) as exc:
		raise CanvasUnavailable(f"could not render image: {exc}") from exc

	if len(encoded) > ceiling:
		logging.warning("Encoded page is %d bytes, above the %d byte ceiling at lowest quality", len(encoded), ceiling)
	logging.debug("Encoded %dx%d page at quality %.1f (%d bytes)", width, height, chosen, len(encoded))
	return EncodedImage(data=encoded, width=width, height=height, quality=chosen)


def compress_with(data: bytes, options: NormalizationOptions, **kwargs) -> EncodedImage:
	"""Apply :func:`compress` with the settings held in ``options``."""
	return compress(data, options.max_dimension_px, options.grayscale, **kwargs)

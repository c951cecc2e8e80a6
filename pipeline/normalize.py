"""Format normalization ahead of the encoder.

Guarantees the bytes handed to the encoder are a raster format Pillow can
decode: HEIC/HEIF is converted to lossless PNG, anything that is not
image-like is refused.
"""


import io
import logging

import pillow_heif

from errors import FormatUnsupported, UnsupportedInput
from pipeline.models import RawImage
from utils.image_io import guess_media_type, is_heic, with_suffix


def normalize_format(raw: RawImage) -> RawImage:
	"""Return a standard-decodable image for ``raw``.

	Raises:
		FormatUnsupported: HEIC/HEIF input that could not be converted.
		UnsupportedInput: input that is neither image-like nor HEIC/HEIF.
	"""
	media_type = raw.media_type or guess_media_type(raw.filename)
	if is_heic(media_type, raw.filename):
		return convert_heic(raw)
	if not media_type or not media_type.lower().startswith("image/"):
		raise UnsupportedInput(f"{raw.filename}: unsupported input type {media_type or 'unknown'}")
	return RawImage(data=raw.data, filename=raw.filename, media_type=media_type)


def convert_heic(raw: RawImage) -> RawImage:
	"""Convert HEIC/HEIF bytes into a PNG raster.

	PNG keeps the intermediate lossless so the encoder's JPEG pass is the only
	lossy step.
	"""
	try:
		heif_file = pillow_heif.open_heif(io.BytesIO(raw.data))
		image = heif_file.to_pillow()
		if image.mode not in ("RGB", "RGBA", "L", "LA"):
			image = image.convert("RGBA")
		buffer = io.BytesIO()
		image.save(buffer, format="PNG")
	except Exception as exc:  # noqa: BLE001
		raise FormatUnsupported(f"{raw.filename}: HEIC conversion failed: {exc}") from exc
	converted = buffer.getvalue()
	logging.debug("Converted %s from HEIC (%d -> %d bytes)", raw.filename, len(raw.data), len(converted))
	return RawImage(data=converted, filename=with_suffix(raw.filename, ".png"), media_type="image/png")

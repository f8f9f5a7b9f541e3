"""
Decoder and encoder collaborators for the export pipeline.

``decode`` flattens a layered PSD document into a single RGBA buffer using
psd-tools. ``encode`` turns an RGBA buffer into PNG or JPEG bytes using
Pillow.
"""

import io
from dataclasses import dataclass

from PIL import Image
from psd_tools import PSDImage

from domains.export_pipeline.errors import DecodeError, EncodeError, ImageBufferError
from psd_export.models.schemas import OutputFormat

# JPEG has no alpha channel; transparent pixels are flattened onto this colour.
JPEG_BACKGROUND = (255, 255, 255, 255)


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """Composited document pixels, RGBA row-major."""

    width: int
    height: int
    pixels: bytes


def decode(data: bytes) -> DecodedImage:
    """
    Composite a PSD document into RGBA pixels.

    Args:
        data: Raw document bytes

    Returns:
        DecodedImage with the document's width, height and RGBA pixels

    Raises:
        DecodeError: If psd-tools cannot parse or composite the document
    """
    try:
        psd = PSDImage.open(io.BytesIO(data))
        composite = psd.composite()
    except Exception as e:
        raise DecodeError(f"Failed to parse PSD data: {e}") from e

    if composite is None:
        raise DecodeError("Document has no composite image")

    rgba = composite.convert("RGBA")
    return DecodedImage(width=rgba.width, height=rgba.height, pixels=rgba.tobytes())


def build_image(width: int, height: int, pixels: bytes) -> Image.Image:
    """Wrap a raw RGBA buffer in a Pillow image, validating its length."""

    expected = width * height * 4
    if width <= 0 or height <= 0 or len(pixels) != expected:
        raise ImageBufferError(
            f"Cannot build {width}x{height} RGBA image from {len(pixels)} bytes "
            f"(expected {expected})"
        )

    try:
        return Image.frombytes("RGBA", (width, height), pixels)
    except ValueError as e:
        raise ImageBufferError(f"Cannot build image buffer: {e}") from e


def encode(width: int, height: int, pixels: bytes, output_format: OutputFormat) -> bytes:
    """
    Encode an RGBA buffer to the requested raster format.

    Raises:
        ImageBufferError: If the buffer does not match the dimensions
        EncodeError: If Pillow fails to encode the image
    """
    image = build_image(width, height, pixels)

    if output_format is OutputFormat.JPG:
        background = Image.new("RGBA", image.size, JPEG_BACKGROUND)
        image = Image.alpha_composite(background, image).convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=output_format.encoder_id)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Failed to encode {output_format.encoder_id}: {e}") from e

    return buffer.getvalue()

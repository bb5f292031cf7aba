"""Image reference helpers.

Images travel through Content Canvas as PNG data URLs
(``data:image/png;base64,...``).  This keeps history entries JSON-serialisable
and lets the API accept and return images without a file store.  These helpers
convert between data URLs, raw bytes, and PIL images.
"""

import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

from .errors import ValidationError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"
PNG_MIME_TYPE = "image/png"


def split_data_url(image_ref: str) -> tuple[str, bytes]:
    """Split a data URL into its MIME type and decoded payload.

    Bare base64 strings (no ``data:`` header) are accepted and assumed to be PNG.

    Args:
        image_ref: Data URL or bare base64 string

    Returns:
        Tuple of (mime_type, raw bytes)

    Raises:
        ValidationError: If the reference is empty or not valid base64
    """
    if not image_ref or not image_ref.strip():
        raise ValidationError("Image data is missing.")

    mime_type = PNG_MIME_TYPE
    payload = image_ref.strip()
    if payload.startswith(DATA_URL_PREFIX):
        header, _, payload = payload.partition(",")
        mime_type = header[len(DATA_URL_PREFIX) :].split(";")[0] or PNG_MIME_TYPE

    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Image data is not valid base64.") from e


def bytes_to_data_url(data: bytes, mime_type: str = PNG_MIME_TYPE) -> str:
    """Wrap raw image bytes in a data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_image(image_ref: str) -> Image.Image:
    """Decode a data URL into a fully loaded PIL image.

    Raises:
        ValidationError: If the payload cannot be decoded as an image
    """
    _, data = split_data_url(image_ref)
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.debug(f"Could not decode image reference: {e}")
        raise ValidationError("The image could not be decoded.") from e
    return image


def encode_image(image: Image.Image) -> str:
    """Encode a PIL image as a PNG data URL."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return bytes_to_data_url(buffer.getvalue())


def crop_image(
    image_ref: str,
    x: int | None = None,
    y: int | None = None,
    width: int | None = None,
    height: int | None = None,
) -> str:
    """Crop an image to the given pixel rectangle.

    If no crop area is given the original reference is returned unchanged.
    The rectangle is clamped to the image bounds.

    Args:
        image_ref: Source image as a data URL
        x: Left edge in pixels
        y: Top edge in pixels
        width: Crop width in pixels
        height: Crop height in pixels

    Returns:
        Cropped image as a PNG data URL

    Raises:
        ValidationError: If the image cannot be decoded or the area is empty
    """
    if None in (x, y, width, height):
        return image_ref

    image = decode_image(image_ref)
    left = max(0, x)
    top = max(0, y)
    right = min(image.width, x + width)
    bottom = min(image.height, y + height)
    if right <= left or bottom <= top:
        raise ValidationError("The crop area does not overlap the image.")

    return encode_image(image.crop((left, top, right, bottom)))

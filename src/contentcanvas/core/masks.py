"""Edit-mask synthesis for in-painting and out-painting.

The generation capability repaints an image wherever a paired mask is "paint"
and preserves it wherever the mask is "keep".  This module turns the two kinds
of user gesture into that pair:

- **In-paint** — filled circular brush strokes accumulated on a transparent
  overlay the size of the base image.  Every overlay pixel with alpha above the
  configured threshold becomes "paint"; the brush's soft alpha is discarded so
  the mask is strictly binary.  The base image is returned unchanged.
- **Out-paint** — four padding values.  The base image is placed on a larger
  canvas filled with a neutral colour and the mask is "paint" everywhere except
  the rectangle that holds the original pixels.

Masks are single-channel ``L`` images holding only ``mask_paint_value`` and
``mask_keep_value``.

Usage Example
-------------
    >>> synthesizer = MaskSynthesizer(config)
    >>> base_ref, mask_ref = synthesizer.synthesize(
    ...     image_ref,
    ...     EditMode.OUTPAINT,
    ...     OutpaintParams(top=64, right=0, bottom=64, left=0),
    ... )
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from PIL import Image, ImageColor, ImageDraw

from .config import ContentCanvasConfig
from .errors import ValidationError
from .images import decode_image, encode_image

logger = logging.getLogger(__name__)

# Alpha the brush paints with on the overlay.  Anything non-zero works; the
# threshold step turns it into a hard mask.
BRUSH_ALPHA = 179

# Upper bound for each out-paint side, in pixels.
MAX_OUTPAINT_PADDING = 2048


class EditMode(str, Enum):
    """Mutually exclusive mask-based editing modes."""

    INPAINT = "inpaint"
    OUTPAINT = "outpaint"


@dataclass(frozen=True)
class Stroke:
    """One filled circular brush dab in base-image pixel coordinates."""

    x: float
    y: float
    radius: float

    def bounding_box(self) -> tuple[float, float, float, float]:
        return (self.x - self.radius, self.y - self.radius, self.x + self.radius, self.y + self.radius)


@dataclass
class InpaintParams:
    """In-paint gesture: brush strokes and/or an already rasterized overlay.

    ``overlay`` is an RGBA data URL as produced by a drawing canvas.  When both
    are given the strokes are drawn on top of the overlay.
    """

    strokes: list[Stroke] = field(default_factory=list)
    overlay: str | None = None


@dataclass(frozen=True)
class OutpaintParams:
    """Canvas expansion in pixels on each side."""

    top: int = 0
    right: int = 0
    bottom: int = 0
    left: int = 0

    def __post_init__(self):
        for side in ("top", "right", "bottom", "left"):
            value = getattr(self, side)
            if value < 0:
                raise ValidationError(f"Out-paint padding must be non-negative, got {side}={value}")
            if value > MAX_OUTPAINT_PADDING:
                raise ValidationError(
                    f"Out-paint padding must be at most {MAX_OUTPAINT_PADDING}, got {side}={value}"
                )

    @property
    def is_empty(self) -> bool:
        return not (self.top or self.right or self.bottom or self.left)


class MaskSynthesizer:
    """Build (base image, binary mask) pairs for mask-guided edits.

    Attributes
    ----------
    fill_color : tuple[int, int, int]
        RGB colour for newly added out-paint canvas
    alpha_threshold : int
        Overlay alpha strictly above this value becomes "paint"
    paint_value : int
        Mask value for pixels eligible for repainting
    keep_value : int
        Mask value for preserved pixels
    """

    def __init__(self, config: ContentCanvasConfig) -> None:
        self.fill_color = ImageColor.getrgb(config.outpaint_fill_color)[:3]
        self.alpha_threshold = config.inpaint_alpha_threshold
        self.paint_value = config.mask_paint_value
        self.keep_value = config.mask_keep_value

    def synthesize(
        self,
        image_ref: str,
        mode: EditMode,
        params: InpaintParams | OutpaintParams,
    ) -> tuple[str, str]:
        """Build the expanded base image and binary mask for an edit submission.

        Args:
            image_ref: Base image as a data URL
            mode: In-paint or out-paint
            params: Parameters matching ``mode``

        Returns:
            Tuple of (base image data URL, mask data URL)

        Raises:
            ValidationError: If the base image cannot be decoded or the
                parameters do not match the mode
        """
        base = decode_image(image_ref)

        if mode == EditMode.INPAINT:
            if not isinstance(params, InpaintParams):
                raise ValidationError("In-paint requires brush strokes or a mask overlay.")
            mask = self.inpaint_mask(base.size, params)
            return image_ref, encode_image(mask)

        if not isinstance(params, OutpaintParams):
            raise ValidationError("Out-paint requires padding values.")
        expanded, mask = self.outpaint(base, params)
        return encode_image(expanded), encode_image(mask)

    def inpaint_mask(self, size: tuple[int, int], params: InpaintParams) -> Image.Image:
        """Rasterize strokes onto an overlay and threshold it to a binary mask.

        An empty stroke list yields an all-"keep" mask rather than an error.

        Args:
            size: (width, height) of the base image
            params: Strokes and/or a pre-rendered overlay

        Returns:
            ``L`` mode mask the same size as the base image
        """
        overlay = self._overlay_alpha(size, params.overlay)

        draw = ImageDraw.Draw(overlay)
        for stroke in params.strokes:
            draw.ellipse(stroke.bounding_box(), fill=BRUSH_ALPHA)

        threshold = self.alpha_threshold
        paint, keep = self.paint_value, self.keep_value
        mask = overlay.point(lambda alpha: paint if alpha > threshold else keep)

        logger.debug(f"Built in-paint mask {size} from {len(params.strokes)} strokes")
        return mask

    def _overlay_alpha(self, size: tuple[int, int], overlay_ref: str | None) -> Image.Image:
        """Return the alpha channel of the drawing overlay, or a blank one."""
        if overlay_ref is None:
            return Image.new("L", size, 0)

        overlay = decode_image(overlay_ref).convert("RGBA")
        if overlay.size != size:
            logger.warning(f"Overlay size {overlay.size} differs from base {size}, resizing")
            overlay = overlay.resize(size, Image.Resampling.NEAREST)
        return overlay.getchannel("A")

    def outpaint(self, base: Image.Image, padding: OutpaintParams) -> tuple[Image.Image, Image.Image]:
        """Expand the canvas around ``base`` and mark the new border as paint.

        Args:
            base: Decoded base image
            padding: Pixels to add on each side

        Returns:
            Tuple of (expanded RGB image, ``L`` mode mask)
        """
        orig_w, orig_h = base.size
        new_size = (orig_w + padding.left + padding.right, orig_h + padding.top + padding.bottom)

        canvas = Image.new("RGB", new_size, self.fill_color)
        source = base.convert("RGBA")
        canvas.paste(source, (padding.left, padding.top), source)

        mask = Image.new("L", new_size, self.paint_value)
        mask.paste(
            self.keep_value,
            (padding.left, padding.top, padding.left + orig_w, padding.top + orig_h),
        )

        if padding.is_empty:
            logger.debug("Out-paint requested with zero padding, mask is all keep")
        logger.debug(f"Expanded canvas {base.size} -> {new_size}")
        return canvas, mask

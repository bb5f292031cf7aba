"""Pydantic request models for the Content Canvas API.

These models define the JSON schema for every endpoint that takes a body.
FastAPI uses them for request validation and OpenAPI documentation.

Images are always exchanged as data URLs (``data:image/png;base64,...``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from contentcanvas.core.capability import AspectRatio
from contentcanvas.core.masks import MAX_OUTPAINT_PADDING, InpaintParams, OutpaintParams, Stroke


class TemplateRequest(BaseModel):
    """Request body for ``POST /api/composition/template``."""

    prompt: str = Field(..., description="Background scene prompt.")
    negative_prompt: str = Field(default="", description="Terms to avoid.")
    aspect_ratio: AspectRatio = Field(default="16:9", description="Output aspect ratio.")


class FinalRequest(BaseModel):
    """Request body for ``POST /api/composition/final``.

    Attributes:
        subject_prompt: Description of the subject to compose onto the template.
        negative_prompt: Terms to avoid.
        aspect_ratio: Aspect ratio recorded with the history entry.
        style_reference: Optional image whose artistic style is copied.
    """

    subject_prompt: str = Field(..., description="Subject to add to the selected template.")
    negative_prompt: str = Field(default="")
    aspect_ratio: AspectRatio = Field(default="16:9")
    style_reference: str | None = Field(
        default=None,
        description="Optional style reference image as a data URL.",
    )


class DisplayedTemplateRequest(BaseModel):
    """Request body for ``PUT /api/composition/displayed``."""

    image: str = Field(..., description="Image to preview as the template.")


class CropRequest(BaseModel):
    """Request body for ``POST /api/composition/crop``.

    Omitting any coordinate leaves the template unchanged.
    """

    x: int | None = Field(default=None, ge=0)
    y: int | None = Field(default=None, ge=0)
    width: int | None = Field(default=None, ge=1)
    height: int | None = Field(default=None, ge=1)


class StockPromoteRequest(BaseModel):
    """Request body for ``POST /api/composition/stock``."""

    url: str = Field(..., description="Full-size URL of the chosen stock photo.")
    query: str = Field(default="", description="Search query that found the photo.")
    aspect_ratio: AspectRatio = Field(default="16:9")


class DirectRequest(BaseModel):
    """Request body for ``POST /api/direct/generate``."""

    prompt: str = Field(..., description="Image prompt.")
    negative_prompt: str = Field(default="")
    aspect_ratio: AspectRatio = Field(default="1:1")
    batch_size: int = Field(default=1, description="Number of images to generate.")


class EditRequest(BaseModel):
    """Request body for ``POST /api/edit``."""

    image: str | None = Field(default=None, description="Image to edit.")
    prompt: str = Field(..., description="Edit instruction.")
    negative_prompt: str = Field(default="")


class StrokeModel(BaseModel):
    x: float
    y: float
    radius: float = Field(..., gt=0)


class InpaintRequest(EditRequest):
    """Request body for ``POST /api/edit/inpaint``.

    Attributes:
        strokes: Circular brush dabs in image pixel coordinates.
        overlay: Optional RGBA drawing overlay; any non-transparent pixel is painted.
    """

    strokes: list[StrokeModel] = Field(default_factory=list)
    overlay: str | None = Field(default=None)

    def to_params(self) -> InpaintParams:
        return InpaintParams(
            strokes=[Stroke(s.x, s.y, s.radius) for s in self.strokes],
            overlay=self.overlay,
        )


class OutpaintRequest(EditRequest):
    """Request body for ``POST /api/edit/outpaint``."""

    top: int = Field(default=0, ge=0, le=MAX_OUTPAINT_PADDING)
    right: int = Field(default=0, ge=0, le=MAX_OUTPAINT_PADDING)
    bottom: int = Field(default=0, ge=0, le=MAX_OUTPAINT_PADDING)
    left: int = Field(default=0, ge=0, le=MAX_OUTPAINT_PADDING)

    def to_params(self) -> OutpaintParams:
        return OutpaintParams(top=self.top, right=self.right, bottom=self.bottom, left=self.left)


class VariationRequest(BaseModel):
    """Request body for ``POST /api/variations``."""

    image: str = Field(..., description="Image to vary.")
    negative_prompt: str = Field(default="")
    count: int | None = Field(default=None, description="Number of variations (default from config).")


class EnhanceRequest(BaseModel):
    """Request body for ``POST /api/prompt/enhance``."""

    prompt: str = Field(..., description="Prompt to enhance.")
    context: str | None = Field(
        default=None,
        description="Background scene prompt (used in subject mode).",
    )
    mode: Literal["template", "subject", "direct"] = Field(default="direct")


class NegativePromptRequest(BaseModel):
    """Request body for ``POST /api/prompt/negative``."""

    prompt: str = Field(..., description="Main prompt to analyse.")
    current: str = Field(default="", description="Negative prompt kept if suggestion fails.")


class StockSearchRequest(BaseModel):
    """Request body for ``POST /api/stock/search``."""

    query: str = Field(..., description="Search terms.")
    orientation: Literal["any", "landscape", "portrait", "square"] = Field(default="any")
    color: str = Field(default="any", description="Colour filter, or 'any'.")

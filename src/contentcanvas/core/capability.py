"""Base class for the external generation capability.

Prompt-to-pixels generation is an opaque external service.  Every workflow in
Content Canvas talks to it through :class:`GenerationCapability`, so the
concrete model (Gemini today) can be swapped or faked in tests.

Request Shapes
--------------
One ``generate`` call covers every image operation; the operation is implied
by which image inputs are attached:

=====================  ===================================================
Image inputs           Operation
=====================  ===================================================
none                   text-to-image (template stage, direct mode)
base                   instruction edit, variation
base + mask            in-paint / out-paint
base + style ref       final composition (style reference optional)
=====================  ===================================================

Two text-to-text helpers run against the same service: prompt enhancement and
negative-prompt suggestion.

Usage Example
-------------
    >>> class FakeCapability(GenerationCapability):
    ...     name = "Fake"
    ...     async def generate(self, request):
    ...         return ["data:image/png;base64,..."]
    ...     async def complete_text(self, instruction, contents, **kwargs):
    ...         return contents
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, get_args

logger = logging.getLogger(__name__)

AspectRatio = Literal["1:1", "16:9", "4:3", "3:4", "9:16"]
ASPECT_RATIOS: tuple[str, ...] = get_args(AspectRatio)

AVOID_CLAUSE = "AVOID THE FOLLOWING"

VARIATION_INSTRUCTION = (
    "Generate a slightly different variation of this image, "
    "keeping the same subject and overall style."
)


class ImageRole(str, Enum):
    """How an attached image should be interpreted by the model."""

    BASE = "base"
    MASK = "mask"
    STYLE_REFERENCE = "style_reference"


@dataclass(frozen=True)
class ImageInput:
    """An image attached to a generation request, as a data URL."""

    image: str
    role: ImageRole = ImageRole.BASE


@dataclass(frozen=True)
class GenerationRequest:
    """A single call to the generation capability.

    Attributes
    ----------
    prompt : str
        Fully composed prompt (negative clause already appended)
    aspect_ratio : str
        Requested aspect ratio for text-to-image calls
    image_inputs : tuple[ImageInput, ...]
        Attached images; their roles select the operation
    number_of_images : int
        How many images a text-to-image call should return
    """

    prompt: str
    aspect_ratio: str = "1:1"
    image_inputs: tuple[ImageInput, ...] = field(default_factory=tuple)
    number_of_images: int = 1

    @property
    def is_text_to_image(self) -> bool:
        return not self.image_inputs

    def image_for(self, role: ImageRole) -> str | None:
        """Return the first attached image with ``role``, if any."""
        return next((i.image for i in self.image_inputs if i.role == role), None)


def with_negative_prompt(prompt: str, negative_prompt: str | None) -> str:
    """Append the negative prompt as an explicit avoid clause.

    Args:
        prompt: Main prompt
        negative_prompt: Terms to avoid (empty or None leaves prompt unchanged)

    Returns:
        Prompt ready to send to the capability
    """
    if negative_prompt and negative_prompt.strip():
        return f"{prompt}. {AVOID_CLAUSE}: {negative_prompt.strip()}"
    return prompt


def composition_prompt(subject_prompt: str, has_style_reference: bool) -> str:
    """Build the stage-2 instruction for composing a subject onto a template."""
    if has_style_reference:
        return (
            "Using the first image as the base layout and the second image for "
            f"artistic style reference, {subject_prompt}"
        )
    return subject_prompt


def mask_edit_prompt(edit_prompt: str) -> str:
    """Build the instruction for a mask-guided (in-paint/out-paint) edit."""
    return (
        "Edit the first image only where the second image (the mask) is white; "
        f"keep every black-masked pixel unchanged. {edit_prompt}"
    )


class GenerationCapability(ABC):
    """Abstract base class for the external generation service.

    Implementations must be safe to call concurrently from several sessions;
    each call is independent.

    Attributes
    ----------
    name : str
        Human-readable name of the backing service
    """

    name: str = "Base Generation Capability"

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> list[str]:
        """Run one generation or edit call.

        Returns
        -------
        list[str]
            Generated images as PNG data URLs.  May be empty when the service
            answered without an image.

        Raises
        ------
        Exception
            Any upstream failure; callers classify it
        """

    @abstractmethod
    async def complete_text(
        self,
        instruction: str,
        contents: str,
        *,
        max_output_tokens: int = 250,
        temperature: float = 0.5,
    ) -> str:
        """Run a one-shot text-to-text call.

        Args:
            instruction: System instruction describing the task
            contents: User content
            max_output_tokens: Upper bound on the response length
            temperature: Sampling temperature

        Returns
        -------
        str
            Raw response text
        """

    @property
    def is_configured(self) -> bool:
        """Whether the capability has the credentials it needs."""
        return True

    def get_info(self) -> dict[str, Any]:
        return {"name": self.name, "is_configured": self.is_configured}

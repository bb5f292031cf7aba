"""Concurrent variation generation.

Variations are N independent, identically parameterised edit calls against one
base image.  All calls are dispatched together and joined with
``asyncio.gather(..., return_exceptions=True)``, so one failure never cancels
or hides the others.  The caller gets only the successful images; a partial
result is not an error.
"""

import asyncio
import logging

from .capability import (
    VARIATION_INSTRUCTION,
    GenerationCapability,
    GenerationRequest,
    ImageInput,
    ImageRole,
    with_negative_prompt,
)
from .config import ContentCanvasConfig
from .errors import EmptyResultError, ValidationError, to_canvas_error

logger = logging.getLogger(__name__)


class VariationEngine:
    """Produce alternatives of a single image.

    Attributes
    ----------
    capability : GenerationCapability
        External generation service
    default_count : int
        Variations requested when the caller does not specify a count
    """

    def __init__(self, capability: GenerationCapability, config: ContentCanvasConfig) -> None:
        self.capability = capability
        self.default_count = config.variation_count
        self.max_count = max(config.variation_count, config.max_batch_size)

    async def produce_variations(
        self,
        base_image: str,
        negative_prompt: str = "",
        count: int | None = None,
    ) -> list[str]:
        """Generate up to ``count`` variations of ``base_image``.

        Args:
            base_image: Image to vary, as a data URL
            negative_prompt: Terms to avoid
            count: Number of concurrent calls (defaults to ``variation_count``)

        Returns:
            Successful variations, in dispatch order

        Raises:
            ValidationError: If the base image is missing or the count is out of range
            ContentCanvasError: If no call produced an image
        """
        if not base_image:
            raise ValidationError("An image is required to generate variations.")
        count = self.default_count if count is None else count
        if not 1 <= count <= self.max_count:
            raise ValidationError(f"Variation count must be between 1 and {self.max_count}.")

        request = GenerationRequest(
            prompt=with_negative_prompt(VARIATION_INSTRUCTION, negative_prompt),
            image_inputs=(ImageInput(base_image, ImageRole.BASE),),
        )

        results = await asyncio.gather(
            *(self.capability.generate(request) for _ in range(count)),
            return_exceptions=True,
        )

        variations: list[str] = []
        errors: list[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                errors.append(result)
            elif result:
                variations.append(result[0])

        if errors:
            logger.warning(f"{len(errors)} of {count} variation calls failed")

        if variations:
            return variations
        if len(errors) == count:
            raise to_canvas_error(errors[0], source="variations")
        raise EmptyResultError("No variations were produced. Please try again.")

"""Google GenAI implementation of the generation capability.

Text-to-image requests (no attached images) go to the Imagen model through
``generate_images``; every request with image inputs goes to the multimodal
Gemini image model through ``generate_content`` with image and text response
modalities.  Prompt enhancement and negative-prompt suggestion use the text
model.

The client is created lazily so that importing this module, or building the
API app, never requires a key.  A missing key surfaces as an
``invalid_credentials`` failure on the first call.

Usage Example
-------------
    >>> from contentcanvas.core.config import config
    >>> capability = GeminiCapability(config)
    >>> images = await capability.generate(
    ...     GenerationRequest(prompt="a quiet harbour at dawn", aspect_ratio="16:9")
    ... )
"""

import logging

from google import genai
from google.genai import types

from contentcanvas.core.capability import (
    GenerationCapability,
    GenerationRequest,
    ImageRole,
)
from contentcanvas.core.config import ContentCanvasConfig
from contentcanvas.core.errors import ErrorCategory, GenerationError
from contentcanvas.core.images import PNG_MIME_TYPE, bytes_to_data_url, split_data_url

logger = logging.getLogger(__name__)

# Order in which attached images are sent; the prompts refer to "first" and
# "second" image by this order.
_ROLE_ORDER = (ImageRole.BASE, ImageRole.MASK, ImageRole.STYLE_REFERENCE)

# Candidate finish reasons that mean the output was withheld by safety filters.
_SAFETY_FINISH_REASONS = frozenset(
    [
        "SAFETY",
        "IMAGE_SAFETY",
        "PROHIBITED_CONTENT",
        "IMAGE_PROHIBITED_CONTENT",
        "BLOCKLIST",
        "SPII",
    ]
)


class GeminiCapability(GenerationCapability):
    """Generation capability backed by the Google GenAI SDK.

    Attributes
    ----------
    config : ContentCanvasConfig
        Supplies the API key, model names and timeout
    """

    name = "Gemini"

    def __init__(self, config: ContentCanvasConfig) -> None:
        self.config = config
        self._client: genai.Client | None = None
        logger.info(
            f"Configured Gemini capability (image={config.image_model}, "
            f"edit={config.edit_model}, text={config.text_model})"
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.config.gemini_api_key)

    @property
    def client(self) -> genai.Client:
        """Lazily constructed GenAI client.

        Raises:
            GenerationError: If no API key is configured
        """
        if not self.is_configured:
            raise GenerationError(category=ErrorCategory.INVALID_CREDENTIALS)
        if self._client is None:
            self._client = genai.Client(
                api_key=self.config.gemini_api_key,
                http_options=types.HttpOptions(
                    timeout=int(self.config.request_timeout_seconds * 1000)
                ),
            )
        return self._client

    async def generate(self, request: GenerationRequest) -> list[str]:
        if request.is_text_to_image:
            return await self._generate_from_text(request)
        return await self._generate_from_images(request)

    async def _generate_from_text(self, request: GenerationRequest) -> list[str]:
        logger.info(
            f"Imagen request: {request.number_of_images} image(s), aspect={request.aspect_ratio}"
        )
        response = await self.client.aio.models.generate_images(
            model=self.config.image_model,
            prompt=request.prompt,
            config=types.GenerateImagesConfig(
                number_of_images=request.number_of_images,
                output_mime_type=PNG_MIME_TYPE,
                aspect_ratio=request.aspect_ratio,
            ),
        )

        images: list[str] = []
        for generated in response.generated_images or []:
            if generated.image is not None and generated.image.image_bytes:
                images.append(bytes_to_data_url(generated.image.image_bytes, PNG_MIME_TYPE))
            elif generated.rai_filtered_reason:
                # Imagen reports safety filtering per image instead of raising.
                logger.warning(f"Image filtered: {generated.rai_filtered_reason}")

        if not images and response.generated_images:
            reasons = [g.rai_filtered_reason for g in response.generated_images if g.rai_filtered_reason]
            if reasons:
                raise GenerationError(category=ErrorCategory.SAFETY_BLOCKED)
        return images

    async def _generate_from_images(self, request: GenerationRequest) -> list[str]:
        parts: list[types.Part] = []
        for role in _ROLE_ORDER:
            image = request.image_for(role)
            if image is None:
                continue
            mime_type, data = split_data_url(image)
            parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        parts.append(types.Part.from_text(text=request.prompt))

        logger.info(f"Gemini image request with {len(parts) - 1} image input(s)")
        response = await self.client.aio.models.generate_content(
            model=self.config.edit_model,
            contents=parts,
            config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
        )

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            raise GenerationError(
                f"Request blocked: {feedback.block_reason}",
                category=ErrorCategory.SAFETY_BLOCKED,
            )

        images: list[str] = []
        safety_reasons: list[str] = []
        for candidate in response.candidates or []:
            reason = _finish_reason_name(getattr(candidate, "finish_reason", None))
            if reason in _SAFETY_FINISH_REASONS:
                safety_reasons.append(reason)
            if candidate.content is None:
                continue
            for part in candidate.content.parts or []:
                if part.inline_data is not None and part.inline_data.data:
                    mime_type = part.inline_data.mime_type or PNG_MIME_TYPE
                    images.append(bytes_to_data_url(part.inline_data.data, mime_type))
            if images:
                break

        if not images and safety_reasons:
            logger.warning(f"Image withheld: {', '.join(safety_reasons)}")
            raise GenerationError(category=ErrorCategory.SAFETY_BLOCKED)
        return images

    async def complete_text(
        self,
        instruction: str,
        contents: str,
        *,
        max_output_tokens: int = 250,
        temperature: float = 0.5,
    ) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.config.text_model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=instruction,
                max_output_tokens=max_output_tokens,
                temperature=temperature,
                thinking_config=types.ThinkingConfig(thinking_budget=0),
            ),
        )
        return response.text or ""


def _finish_reason_name(reason) -> str | None:
    """Normalise a finish reason given as an SDK enum or a plain string."""
    if reason is None:
        return None
    return str(getattr(reason, "value", reason)).upper()

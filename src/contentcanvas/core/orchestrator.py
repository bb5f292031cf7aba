"""Generation orchestration: composition, direct and edit workflows.

This module gates every call to the generation capability.  Each workflow owns
one :class:`GenerationSession` per mode and decides, before anything is sent,
whether the submission is valid.

Composition (two stages)
------------------------
1. **Template** — a text-to-image call.  A successful result becomes the
   *displayed* template.  It does not become the *selected* template; the
   user confirms that explicitly with :meth:`CompositionWorkflow.confirm_template`.
2. **Final** — composes a subject onto the *selected* template (optionally with
   a style reference image).  Submitting without a selected template fails
   with a validation error and no call is made.

The two template pointers are decoupled.  Re-running stage 1, cropping,
editing, picking a variation or promoting a stock image all replace the
displayed template only; the selected template changes only on confirm.

Direct
------
A single text-to-image stage producing a batch of 1..``max_batch_size`` images.

Edits
-----
Plain instruction edits (one image input) and mask-guided in-paint/out-paint
edits (base image plus binary mask from :class:`MaskSynthesizer`).  Edit
results are returned to the caller and never written to history.

Successful template, final and direct generations record history entries and
update the matching recent-prompt list through the shared
:class:`RecencyStore`, using the prompt that was actually submitted.
"""

import logging

from .capability import (
    GenerationCapability,
    GenerationRequest,
    ImageInput,
    ImageRole,
    composition_prompt,
    mask_edit_prompt,
    with_negative_prompt,
)
from .config import ContentCanvasConfig
from .errors import ValidationError
from .images import crop_image
from .masks import EditMode, InpaintParams, MaskSynthesizer, OutpaintParams
from .recency import HistoryKind, PromptCategory, RecencyStore
from .sessions import GenerationSession, SessionMode, SessionState, Submission, Succeeded
from .variations import VariationEngine

logger = logging.getLogger(__name__)

STOCK_PROMPT_PREFIX = "Stock image: "

ENHANCE_INSTRUCTIONS: dict[PromptCategory, str] = {
    PromptCategory.TEMPLATE: (
        "You are an expert AI image generation prompt engineer. Your task is to enhance a "
        "user's prompt for a background scene, layout, or environment. Expand on the original "
        "concept by adding descriptive keywords related to lighting, composition, mood, and "
        "artistic style. Do not add a specific subject. The output should be a single, refined "
        "prompt string. Do not output any conversational text."
    ),
    PromptCategory.SUBJECT: (
        "You are an expert AI image generation prompt engineer. A user wants to add a subject "
        "to an existing scene. Your task is to enhance the user's description of the *subject "
        "only*. Make it detailed and specific, describing its appearance, texture, and "
        "interaction with the environment's lighting. Do not mention the background scene "
        "itself in your output. The output should be a single, refined prompt string "
        "describing the subject. Do not output any conversational text."
    ),
    PromptCategory.DIRECT: (
        "You are an expert AI image generation prompt engineer. Your task is to enhance a "
        "user's prompt for clarity, detail, and creative potential, following best practices "
        "for diffusion models. Expand on the original concept by adding descriptive keywords "
        "related to subject, style, medium, lighting, composition, and quality. Do not change "
        "the core subject. The output should be a single, refined prompt string. Do not output "
        "any conversational text or explanations."
    ),
}

NEGATIVE_PROMPT_INSTRUCTION = (
    "You are an expert AI image generation assistant. Your task is to create a concise, "
    "effective negative prompt based on a user's main prompt. First, analyze the user's prompt "
    "to understand its intent (e.g., creating a logo, a photograph, a vector illustration, "
    "etc.). Then, generate a comma-separated list of terms to help the AI avoid common visual "
    "artifacts, poor quality, and undesirable elements for that specific intent, as well as "
    "general issues like text, watermarks, ugly or deformed features. The output must be 200 "
    "characters or less and contain only the comma-separated list."
)


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


class PromptAssistant:
    """One-shot text helpers: prompt enhancement and negative-prompt suggestion.

    Failures never propagate; the caller keeps its original text.
    """

    def __init__(self, capability: GenerationCapability, config: ContentCanvasConfig) -> None:
        self.capability = capability
        self.negative_prompt_max_length = config.negative_prompt_max_length

    async def enhance_prompt(
        self,
        prompt: str,
        context: str | None = None,
        mode: PromptCategory = PromptCategory.DIRECT,
    ) -> str:
        """Rewrite ``prompt`` with more descriptive detail.

        Args:
            prompt: The user's prompt
            context: Background scene prompt, used when enhancing a subject
            mode: Which prompt is being enhanced (template, subject or direct)

        Returns:
            The enhanced prompt, ``""`` for empty input, or ``prompt`` unchanged
            if the call fails
        """
        if not prompt or not prompt.strip():
            return ""

        mode = PromptCategory(mode)
        if mode == PromptCategory.TEMPLATE:
            contents = f'Enhance this scene prompt: "{prompt}"'
        elif mode == PromptCategory.SUBJECT:
            contents = (
                f'The background scene is: "{context or ""}". The subject to add is: '
                f'"{prompt}". Enhance the description of the subject.'
            )
        else:
            contents = f'Enhance this prompt: "{prompt}"'

        try:
            text = await self.capability.complete_text(
                ENHANCE_INSTRUCTIONS[mode], contents, max_output_tokens=250, temperature=0.5
            )
        except Exception as e:
            logger.warning(f"Prompt enhancement failed, keeping original: {e}")
            return prompt

        enhanced = _strip_quotes(text)
        return enhanced or prompt

    async def suggest_negative_prompt(self, prompt: str, current: str = "") -> str:
        """Suggest a comma-separated negative prompt for ``prompt``.

        Args:
            prompt: The main prompt to analyse
            current: Negative prompt already entered, kept if the call fails

        Returns:
            The suggestion (at most ``negative_prompt_max_length`` characters),
            ``""`` for empty input, or ``current`` on failure
        """
        if not prompt or not prompt.strip():
            return ""

        contents = f'Generate a negative prompt for the following main prompt: "{prompt}"'
        try:
            text = await self.capability.complete_text(
                NEGATIVE_PROMPT_INSTRUCTION, contents, max_output_tokens=60, temperature=0.3
            )
        except Exception as e:
            logger.warning(f"Negative prompt suggestion failed: {e}")
            return current

        text = _strip_quotes(text)
        lowered = text.lower()
        marker = "negative prompt: "
        if marker in lowered:
            index = lowered.index(marker)
            text = text[:index] + text[index + len(marker) :]
        return text.strip()[: self.negative_prompt_max_length]


class CompositionWorkflow:
    """Two-stage template → final generation.

    Attributes
    ----------
    template_session : GenerationSession
        Stage-1 (text-to-image) session
    final_session : GenerationSession
        Stage-2 (composition) session
    displayed_template : str | None
        Image currently previewed as the template
    selected_template : str | None
        Image consumed by stage 2; changes only on confirm
    """

    def __init__(
        self,
        capability: GenerationCapability,
        store: RecencyStore,
    ) -> None:
        self.store = store
        self.template_session = GenerationSession(
            SessionMode.TEMPLATE, capability, self._recorder(HistoryKind.TEMPLATE, PromptCategory.TEMPLATE)
        )
        self.final_session = GenerationSession(
            SessionMode.FINAL, capability, self._recorder(HistoryKind.FINAL, PromptCategory.SUBJECT)
        )
        self.displayed_template: str | None = None
        self.selected_template: str | None = None

    def _recorder(self, kind: HistoryKind, category: PromptCategory):
        def record(submission: Submission, images: tuple[str, ...]) -> None:
            self.store.record(
                kind,
                list(images),
                submission.prompt,
                submission.negative_prompt,
                submission.aspect_ratio,
            )
            self.store.add_recent_prompt(category, submission.prompt)

        return record

    async def generate_template(
        self,
        prompt: str,
        negative_prompt: str = "",
        aspect_ratio: str = "1:1",
    ) -> SessionState:
        """Stage 1: generate a template from text.

        On success the first image becomes the displayed template.  The
        selected template is left untouched.
        """
        submission = Submission(prompt, negative_prompt, aspect_ratio)
        state = await self.template_session.submit(
            submission,
            lambda: GenerationRequest(
                prompt=with_negative_prompt(prompt, negative_prompt),
                aspect_ratio=aspect_ratio,
            ),
        )
        if isinstance(state, Succeeded):
            self.displayed_template = state.images[0]
        return state

    def confirm_template(self) -> str:
        """Make the displayed template the one stage 2 will use.

        Raises:
            ValidationError: If no template is displayed
        """
        if self.displayed_template is None:
            raise ValidationError("There is no template to select.")
        self.selected_template = self.displayed_template
        logger.info("Template selection confirmed")
        return self.selected_template

    def set_displayed_template(self, image: str) -> None:
        """Replace the previewed template (upload, edit, variation pick).

        The selected template is not affected.
        """
        if not image:
            raise ValidationError("Image data is missing.")
        self.displayed_template = image

    def crop_displayed_template(
        self,
        x: int | None = None,
        y: int | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> str:
        """Crop the displayed template in place and return the new image."""
        if self.displayed_template is None:
            raise ValidationError("There is no template to crop.")
        self.displayed_template = crop_image(self.displayed_template, x, y, width, height)
        return self.displayed_template

    def promote_stock_image(self, image: str, query: str, aspect_ratio: str = "1:1") -> str:
        """Use a fetched stock photo as the displayed template.

        The photo is recorded in history as a template entry so it can be
        found again later.
        """
        self.set_displayed_template(image)
        self.store.record(
            HistoryKind.TEMPLATE,
            [image],
            f"{STOCK_PROMPT_PREFIX}{query}",
            "",
            aspect_ratio,
        )
        return image

    async def generate_final(
        self,
        subject_prompt: str,
        negative_prompt: str = "",
        aspect_ratio: str = "1:1",
        style_reference: str | None = None,
    ) -> SessionState:
        """Stage 2: compose the subject onto the selected template."""
        template = self.selected_template
        submission = Submission(subject_prompt, negative_prompt, aspect_ratio)

        def build_request() -> GenerationRequest:
            inputs = [ImageInput(template, ImageRole.BASE)]
            if style_reference:
                inputs.append(ImageInput(style_reference, ImageRole.STYLE_REFERENCE))
            prompt = composition_prompt(subject_prompt, bool(style_reference))
            return GenerationRequest(
                prompt=with_negative_prompt(prompt, negative_prompt),
                aspect_ratio=aspect_ratio,
                image_inputs=tuple(inputs),
            )

        return await self.final_session.submit(
            submission,
            build_request,
            checks=[(template is not None, "Select a template before generating the final image.")],
        )


class DirectWorkflow:
    """Single-stage text-to-image generation in batches."""

    def __init__(
        self,
        capability: GenerationCapability,
        store: RecencyStore,
        config: ContentCanvasConfig,
    ) -> None:
        self.store = store
        self.max_batch_size = config.max_batch_size
        self.session = GenerationSession(SessionMode.DIRECT, capability, self._record)

    def _record(self, submission: Submission, images: tuple[str, ...]) -> None:
        self.store.record(
            HistoryKind.DIRECT,
            list(images),
            submission.prompt,
            submission.negative_prompt,
            submission.aspect_ratio,
        )
        self.store.add_recent_prompt(PromptCategory.DIRECT, submission.prompt)

    async def generate(
        self,
        prompt: str,
        negative_prompt: str = "",
        aspect_ratio: str = "1:1",
        batch_size: int = 1,
    ) -> SessionState:
        submission = Submission(prompt, negative_prompt, aspect_ratio)
        return await self.session.submit(
            submission,
            lambda: GenerationRequest(
                prompt=with_negative_prompt(prompt, negative_prompt),
                aspect_ratio=aspect_ratio,
                number_of_images=batch_size,
            ),
            checks=[
                (
                    1 <= batch_size <= self.max_batch_size,
                    f"Batch size must be between 1 and {self.max_batch_size}.",
                )
            ],
        )


class EditWorkflow:
    """Instruction and mask-guided edits of a single image.

    Results stay in the session; nothing is written to history.
    """

    def __init__(self, capability: GenerationCapability, masks: MaskSynthesizer) -> None:
        self.masks = masks
        self.session = GenerationSession(SessionMode.EDIT, capability)

    async def edit(self, image: str | None, prompt: str, negative_prompt: str = "") -> SessionState:
        """Edit ``image`` following a text instruction."""
        submission = Submission(prompt, negative_prompt)
        return await self.session.submit(
            submission,
            lambda: GenerationRequest(
                prompt=with_negative_prompt(prompt, negative_prompt),
                image_inputs=(ImageInput(image, ImageRole.BASE),),
            ),
            checks=[(bool(image), "An image is required for editing.")],
        )

    async def mask_edit(
        self,
        image: str | None,
        mode: EditMode,
        params: InpaintParams | OutpaintParams,
        prompt: str,
        negative_prompt: str = "",
    ) -> SessionState:
        """In-paint or out-paint ``image`` within a synthesized mask."""
        submission = Submission(prompt, negative_prompt)

        def build_request() -> GenerationRequest:
            base, mask = self.masks.synthesize(image, mode, params)
            return GenerationRequest(
                prompt=with_negative_prompt(mask_edit_prompt(prompt), negative_prompt),
                image_inputs=(ImageInput(base, ImageRole.BASE), ImageInput(mask, ImageRole.MASK)),
            )

        return await self.session.submit(
            submission,
            build_request,
            checks=[(bool(image), "An image is required for editing.")],
        )


class GenerationOrchestrator:
    """Owns every workflow and the helpers they share.

    One orchestrator is built per application and stored on ``app.state``.

    Attributes
    ----------
    store : RecencyStore
        Shared history and recent-prompt lists
    composition : CompositionWorkflow
    direct : DirectWorkflow
    editor : EditWorkflow
    variations : VariationEngine
    assistant : PromptAssistant
    """

    def __init__(
        self,
        capability: GenerationCapability,
        store: RecencyStore,
        config: ContentCanvasConfig,
    ) -> None:
        self.capability = capability
        self.store = store
        self.masks = MaskSynthesizer(config)
        self.composition = CompositionWorkflow(capability, store)
        self.direct = DirectWorkflow(capability, store, config)
        self.editor = EditWorkflow(capability, self.masks)
        self.variations = VariationEngine(capability, config)
        self.assistant = PromptAssistant(capability, config)
        logger.info(f"Orchestrator ready with capability {capability.name}")

    def sessions(self) -> dict[str, GenerationSession]:
        return {
            SessionMode.TEMPLATE.value: self.composition.template_session,
            SessionMode.FINAL.value: self.composition.final_session,
            SessionMode.DIRECT.value: self.direct.session,
            SessionMode.EDIT.value: self.editor.session,
        }


__all__ = [
    "CompositionWorkflow",
    "DirectWorkflow",
    "EditWorkflow",
    "GenerationOrchestrator",
    "PromptAssistant",
]

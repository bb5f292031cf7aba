"""Content Canvas — FastAPI Application.

This module defines the FastAPI application, every REST route, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~contentcanvas.core.config.config`
  (``CONTENTCANVAS_*`` environment variables) and is served to the frontend
  via ``GET /api/config``.
- **Generation** runs through one
  :class:`~contentcanvas.core.orchestrator.GenerationOrchestrator` stored on
  ``app.state``.  Its sessions hold the live state of every mode.
- **Stock search** runs through a
  :class:`~contentcanvas.stock.aggregator.ProviderAggregator`.
- **History and recent prompts** live in a
  :class:`~contentcanvas.core.recency.RecencyStore` persisted as two JSON files
  in the data directory.

Generation endpoints always answer with the session snapshot.  A failed
generation is a normal response with ``status: "failed"`` and an error
category; HTTP errors are reserved for requests that could not be accepted
(a busy session, bad input outside a session, no stock provider).

Endpoints
---------
========  ================================  ==================================
Method    Path                              Purpose
========  ================================  ==================================
GET       ``/api/config``                   Presets, aspect ratios, limits
GET       ``/api/state``                    Every session and template pointer
POST      ``/api/composition/template``     Stage 1: generate a template
POST      ``/api/composition/confirm``      Select the displayed template
PUT       ``/api/composition/displayed``    Replace the displayed template
POST      ``/api/composition/crop``         Crop the displayed template
POST      ``/api/composition/stock``        Use a stock photo as template
POST      ``/api/composition/final``        Stage 2: compose the subject
POST      ``/api/direct/generate``          Direct batch generation
POST      ``/api/edit``                     Instruction edit
POST      ``/api/edit/inpaint``             Brush-masked edit
POST      ``/api/edit/outpaint``            Canvas expansion
POST      ``/api/variations``               Concurrent variations
POST      ``/api/prompt/enhance``           Enhance a prompt
POST      ``/api/prompt/negative``          Suggest a negative prompt
POST      ``/api/stock/search``             Search stock providers
GET       ``/api/history``                  History, newest first
GET       ``/api/history/{id}/reuse``       Settings to reuse an entry
DELETE    ``/api/history/{id}``             Delete one entry
DELETE    ``/api/history``                  Clear history
GET       ``/api/recent-prompts/{kind}``    Recent prompts of one category
========  ================================  ==================================

Usage
-----
CLI (installed entry point)::

    contentcanvas

Direct invocation::

    python -m contentcanvas.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from contentcanvas import __version__
from contentcanvas.api.models import (
    CropRequest,
    DirectRequest,
    DisplayedTemplateRequest,
    EditRequest,
    EnhanceRequest,
    FinalRequest,
    InpaintRequest,
    NegativePromptRequest,
    OutpaintRequest,
    StockPromoteRequest,
    StockSearchRequest,
    TemplateRequest,
    VariationRequest,
)
from contentcanvas.core.capability import ASPECT_RATIOS, GenerationCapability
from contentcanvas.core.config import ContentCanvasConfig, config
from contentcanvas.core.errors import (
    ContentCanvasError,
    ProvidersNotConfiguredError,
    SessionBusyError,
)
from contentcanvas.core.masks import EditMode
from contentcanvas.core.orchestrator import GenerationOrchestrator
from contentcanvas.core.presets import (
    DEFAULT_COMPOSITION_ASPECT_RATIO,
    DEFAULT_NEGATIVE_PROMPT,
    DEFAULT_SUBJECT_PROMPT,
    DEFAULT_TEMPLATE_PROMPT,
    PROMPT_TEMPLATES,
)
from contentcanvas.core.recency import PromptCategory, RecencyStore
from contentcanvas.core.sessions import GenerationSession
from contentcanvas.stock.aggregator import ProviderAggregator

logger = logging.getLogger(__name__)


def _http_error(error: ContentCanvasError) -> HTTPException:
    """Map a Content Canvas error onto an HTTP error response."""
    if isinstance(error, SessionBusyError):
        status = 409
    elif isinstance(error, ProvidersNotConfiguredError):
        status = 503
    else:
        status = error.category.http_status
    return HTTPException(
        status_code=status,
        detail={"category": error.category.value, "message": error.message},
    )


def create_app(
    settings: ContentCanvasConfig | None = None,
    capability: GenerationCapability | None = None,
    store: RecencyStore | None = None,
    aggregator: ProviderAggregator | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Collaborators left as ``None`` are built from ``settings`` at startup,
    which lets tests inject fakes.

    Args:
        settings: Configuration (defaults to the global ``config``)
        capability: Generation capability (defaults to the Gemini adapter)
        store: Recency store (defaults to a JSON-backed store in ``data_dir``)
        aggregator: Stock search aggregator

    Returns:
        The configured application
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the orchestrator and stock aggregator on startup."""
        gen = capability
        if gen is None:
            from contentcanvas.core.adapters import GeminiCapability

            gen = GeminiCapability(settings)
        if not gen.is_configured:
            logger.warning("No Gemini API key configured; generation calls will fail.")

        app.state.settings = settings
        app.state.store = store or RecencyStore.from_config(settings)
        app.state.orchestrator = GenerationOrchestrator(gen, app.state.store, settings)
        app.state.aggregator = aggregator or ProviderAggregator.from_config(settings)
        logger.info("Content Canvas services initialised.")

        yield

        logger.info("Content Canvas shutting down.")

    app = FastAPI(
        title="Content Canvas",
        description="Two-stage composite image generation with masked edits and variations.",
        version=__version__,
        lifespan=lifespan,
    )

    # Allow cross-origin requests so the frontend can be served from a
    # different port during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_routes(app)
    return app


def _orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def _composition_response(orchestrator: GenerationOrchestrator, session: GenerationSession) -> dict:
    composition = orchestrator.composition
    return {
        **session.snapshot(),
        "displayed_template": composition.displayed_template,
        "selected_template": composition.selected_template,
    }


def _register_routes(app: FastAPI) -> None:
    # ------------------------------------------------------------------
    # Configuration and state
    # ------------------------------------------------------------------

    @app.get("/api/config")
    async def get_config(request: Request) -> dict:
        """Return presets, defaults and limits for the frontend."""
        settings: ContentCanvasConfig = request.app.state.settings
        orchestrator = _orchestrator(request)
        return {
            "version": __version__,
            "aspect_ratios": list(ASPECT_RATIOS),
            "prompt_templates": PROMPT_TEMPLATES,
            "default_negative_prompt": DEFAULT_NEGATIVE_PROMPT,
            "defaults": {
                "template_prompt": DEFAULT_TEMPLATE_PROMPT,
                "subject_prompt": DEFAULT_SUBJECT_PROMPT,
                "composition_aspect_ratio": DEFAULT_COMPOSITION_ASPECT_RATIO,
            },
            "max_batch_size": settings.max_batch_size,
            "variation_count": settings.variation_count,
            "generation": orchestrator.capability.get_info(),
            "generation_configured": orchestrator.capability.is_configured,
            "stock_configured": request.app.state.aggregator.is_configured,
        }

    @app.get("/api/state")
    async def get_state(request: Request) -> dict:
        """Return every session snapshot and both template pointers."""
        orchestrator = _orchestrator(request)
        return {
            "sessions": {mode: s.snapshot() for mode, s in orchestrator.sessions().items()},
            "displayed_template": orchestrator.composition.displayed_template,
            "selected_template": orchestrator.composition.selected_template,
        }

    # ------------------------------------------------------------------
    # Composition mode
    # ------------------------------------------------------------------

    @app.post("/api/composition/template")
    async def generate_template(req: TemplateRequest, request: Request) -> dict:
        """Stage 1: generate a template; it is displayed, not selected."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.composition.generate_template(
                req.prompt, req.negative_prompt, req.aspect_ratio
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return _composition_response(orchestrator, orchestrator.composition.template_session)

    @app.post("/api/composition/confirm")
    async def confirm_template(request: Request) -> dict:
        """Select the displayed template for stage 2."""
        orchestrator = _orchestrator(request)
        try:
            orchestrator.composition.confirm_template()
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {
            "displayed_template": orchestrator.composition.displayed_template,
            "selected_template": orchestrator.composition.selected_template,
        }

    @app.put("/api/composition/displayed")
    async def set_displayed_template(req: DisplayedTemplateRequest, request: Request) -> dict:
        """Replace the displayed template (upload, edit result, variation pick)."""
        orchestrator = _orchestrator(request)
        try:
            orchestrator.composition.set_displayed_template(req.image)
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {
            "displayed_template": orchestrator.composition.displayed_template,
            "selected_template": orchestrator.composition.selected_template,
        }

    @app.post("/api/composition/crop")
    async def crop_template(req: CropRequest, request: Request) -> dict:
        """Crop the displayed template."""
        orchestrator = _orchestrator(request)
        try:
            orchestrator.composition.crop_displayed_template(req.x, req.y, req.width, req.height)
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {
            "displayed_template": orchestrator.composition.displayed_template,
            "selected_template": orchestrator.composition.selected_template,
        }

    @app.post("/api/composition/stock")
    async def promote_stock_image(req: StockPromoteRequest, request: Request) -> dict:
        """Download a stock photo and display it as the template."""
        orchestrator = _orchestrator(request)
        aggregator: ProviderAggregator = request.app.state.aggregator
        try:
            image = await aggregator.fetch_as_data_url(req.url)
            orchestrator.composition.promote_stock_image(image, req.query, req.aspect_ratio)
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {
            "displayed_template": orchestrator.composition.displayed_template,
            "selected_template": orchestrator.composition.selected_template,
        }

    @app.post("/api/composition/final")
    async def generate_final(req: FinalRequest, request: Request) -> dict:
        """Stage 2: compose the subject onto the selected template."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.composition.generate_final(
                req.subject_prompt,
                req.negative_prompt,
                req.aspect_ratio,
                style_reference=req.style_reference,
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return _composition_response(orchestrator, orchestrator.composition.final_session)

    # ------------------------------------------------------------------
    # Direct mode
    # ------------------------------------------------------------------

    @app.post("/api/direct/generate")
    async def generate_direct(req: DirectRequest, request: Request) -> dict:
        """Generate a batch of images from a single prompt."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.direct.generate(
                req.prompt, req.negative_prompt, req.aspect_ratio, req.batch_size
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return orchestrator.direct.session.snapshot()

    # ------------------------------------------------------------------
    # Editing and variations
    # ------------------------------------------------------------------

    @app.post("/api/edit")
    async def edit_image(req: EditRequest, request: Request) -> dict:
        """Edit an image following a text instruction."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.editor.edit(req.image, req.prompt, req.negative_prompt)
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return orchestrator.editor.session.snapshot()

    @app.post("/api/edit/inpaint")
    async def inpaint_image(req: InpaintRequest, request: Request) -> dict:
        """Repaint the brushed region of an image."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.editor.mask_edit(
                req.image, EditMode.INPAINT, req.to_params(), req.prompt, req.negative_prompt
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return orchestrator.editor.session.snapshot()

    @app.post("/api/edit/outpaint")
    async def outpaint_image(req: OutpaintRequest, request: Request) -> dict:
        """Expand the canvas and generate the new border."""
        orchestrator = _orchestrator(request)
        try:
            await orchestrator.editor.mask_edit(
                req.image, EditMode.OUTPAINT, req.to_params(), req.prompt, req.negative_prompt
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return orchestrator.editor.session.snapshot()

    @app.post("/api/variations")
    async def produce_variations(req: VariationRequest, request: Request) -> dict:
        """Generate variations; partial success is still a success."""
        orchestrator = _orchestrator(request)
        try:
            images = await orchestrator.variations.produce_variations(
                req.image, req.negative_prompt, req.count
            )
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {"images": images}

    # ------------------------------------------------------------------
    # Prompt assistance
    # ------------------------------------------------------------------

    @app.post("/api/prompt/enhance")
    async def enhance_prompt(req: EnhanceRequest, request: Request) -> dict:
        prompt = await _orchestrator(request).assistant.enhance_prompt(
            req.prompt, req.context, PromptCategory(req.mode)
        )
        return {"prompt": prompt}

    @app.post("/api/prompt/negative")
    async def suggest_negative_prompt(req: NegativePromptRequest, request: Request) -> dict:
        negative = await _orchestrator(request).assistant.suggest_negative_prompt(
            req.prompt, req.current
        )
        return {"negative_prompt": negative}

    # ------------------------------------------------------------------
    # Stock search
    # ------------------------------------------------------------------

    @app.post("/api/stock/search")
    async def search_stock(req: StockSearchRequest, request: Request) -> dict:
        """Search every configured stock provider at once."""
        aggregator: ProviderAggregator = request.app.state.aggregator
        try:
            results = await aggregator.search(req.query, req.orientation, req.color)
        except ContentCanvasError as e:
            raise _http_error(e) from e
        return {"results": [r.model_dump() for r in results]}

    # ------------------------------------------------------------------
    # History and recent prompts
    # ------------------------------------------------------------------

    @app.get("/api/history")
    async def get_history(request: Request) -> dict:
        entries = request.app.state.store.history
        return {"total": len(entries), "entries": [e.to_dict() for e in entries]}

    @app.get("/api/history/{entry_id}/reuse")
    async def reuse_history_entry(entry_id: int, request: Request) -> dict:
        """Return the mode and fields needed to reuse an entry's settings.

        Raises:
            HTTPException: 404 if the entry is not found.
        """
        entry = request.app.state.store.get_history_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="History entry not found")
        return entry.reuse_target()

    @app.delete("/api/history/{entry_id}")
    async def delete_history_entry(entry_id: int, request: Request) -> dict:
        if not request.app.state.store.delete_history_entry(entry_id):
            raise HTTPException(status_code=404, detail="History entry not found")
        return {"success": True, "deleted": entry_id}

    @app.delete("/api/history")
    async def clear_history(request: Request) -> dict:
        request.app.state.store.clear_history()
        return {"success": True}

    @app.get("/api/recent-prompts/{category}")
    async def get_recent_prompts(category: PromptCategory, request: Request) -> dict:
        return {
            "category": category.value,
            "prompts": request.app.state.store.recent_prompts(category),
        }


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~contentcanvas.core.config.config`
    (``CONTENTCANVAS_SERVER_HOST`` and ``CONTENTCANVAS_SERVER_PORT``).
    Registered as the ``contentcanvas`` console script in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "contentcanvas.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()

"""Core functionality for Content Canvas.

This package holds everything between the HTTP layer and the external
services:

- **Configuration** (config.py): environment-based settings using Pydantic
  Settings, all prefixed with CONTENTCANVAS_
- **Generation capability** (capability.py, adapters/): the abstract image
  service and its Google GenAI implementation
- **Mask synthesis** (masks.py): in-paint and out-paint masks
- **Sessions and workflows** (sessions.py, orchestrator.py): per-mode state
  machines and the two-stage composition flow
- **Variations** (variations.py): concurrent alternatives of one image
- **Recency** (recency.py): bounded history and recent-prompt lists

Usage Example
-------------
    from contentcanvas.core import GenerationOrchestrator, RecencyStore, config
    from contentcanvas.core.adapters import GeminiCapability

    orchestrator = GenerationOrchestrator(
        GeminiCapability(config), RecencyStore.from_config(config), config
    )
    state = await orchestrator.composition.generate_template("a quiet harbour at dawn")
"""

from contentcanvas.core.capability import GenerationCapability, GenerationRequest
from contentcanvas.core.config import ContentCanvasConfig, config
from contentcanvas.core.masks import MaskSynthesizer
from contentcanvas.core.orchestrator import GenerationOrchestrator
from contentcanvas.core.recency import RecencyStore
from contentcanvas.core.variations import VariationEngine

__all__ = [
    "ContentCanvasConfig",
    "config",
    "GenerationCapability",
    "GenerationRequest",
    "GenerationOrchestrator",
    "MaskSynthesizer",
    "RecencyStore",
    "VariationEngine",
]

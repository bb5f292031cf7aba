"""Content Canvas - two-stage composite image generation and editing."""

__version__ = "0.1.0"

from contentcanvas.core.config import ContentCanvasConfig, config

__all__ = [
    "ContentCanvasConfig",
    "config",
]

"""Concrete generation capability implementations."""

from contentcanvas.core.adapters.gemini import GeminiCapability

__all__ = ["GeminiCapability"]

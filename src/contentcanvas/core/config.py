"""Configuration management for Content Canvas.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the CONTENTCANVAS_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (CONTENTCANVAS_* prefix)
2. .env file in the project root
3. Default values defined in ContentCanvasConfig

Example .env file:
    CONTENTCANVAS_GEMINI_API_KEY=...
    CONTENTCANVAS_PEXELS_API_KEY=...
    CONTENTCANVAS_HISTORY_LIMIT=50
    CONTENTCANVAS_DATA_DIR=data

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
is the single source of truth for the API layer.  Core components never read
the global directly; they receive a config object so tests can pass their own.

Credentials
-----------
Every external credential is optional.  A missing Gemini key only fails the
generation calls that need it, and a missing stock-provider key simply removes
that provider from stock search.

Mask Constants
--------------
The out-paint fill colour, the in-paint alpha threshold, and the grey values
used for "paint" and "keep" pixels are exposed here rather than hard-coded in
the mask synthesizer.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContentCanvasConfig(BaseSettings):
    """Main configuration for Content Canvas.

    Values are loaded from environment variables with the CONTENTCANVAS_ prefix,
    with fallback to the defaults defined here.  ``data_dir`` is created on
    initialization if it does not exist.

    Attributes
    ----------
    Generation capability:
        gemini_api_key : str | None
            Google GenAI API key used by the Gemini adapter
        image_model : str
            Text-to-image model (template and direct generation)
        edit_model : str
            Multimodal model used for composition, edits and variations
        text_model : str
            Text model used for prompt enhancement and negative prompts

    Stock providers:
        pexels_api_key, unsplash_access_key, pixabay_api_key : str | None
            Per-provider credentials; unset providers are skipped
        stock_per_page : int
            Results requested from each provider
        request_timeout_seconds : float
            Timeout applied to outbound HTTP calls

    Recency store:
        history_limit : int
            Maximum number of history entries kept (newest first)
        recent_prompt_limit : int
            Maximum length of each recent-prompt list

    Editing:
        variation_count : int
            Default number of variations requested per call
        max_batch_size : int
            Upper bound for direct batch generation
        outpaint_fill_color : str
            Neutral colour used for newly added out-paint canvas
        inpaint_alpha_threshold : int
            Overlay alpha above which a pixel becomes "paint"
        mask_paint_value, mask_keep_value : int
            Grey values written into the binary mask

    Paths and server:
        data_dir : Path
            Directory holding history.json and recent_prompts.json
        server_host, server_port
            uvicorn bind address

    Examples
    --------
        >>> custom_config = ContentCanvasConfig(
        ...     history_limit=5,
        ...     data_dir="/tmp/canvas",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONTENTCANVAS_",
        case_sensitive=False,
    )

    # Generation capability
    gemini_api_key: str | None = Field(
        default=None,
        description="Google GenAI API key",
    )
    image_model: str = Field(
        default="imagen-4.0-generate-001",
        description="Text-to-image model for template and direct generation",
    )
    edit_model: str = Field(
        default="gemini-2.5-flash-image-preview",
        description="Image-input model for composition, edits and variations",
    )
    text_model: str = Field(
        default="gemini-2.5-flash",
        description="Text model for prompt enhancement and negative prompts",
    )

    # Stock providers
    pexels_api_key: str | None = Field(default=None, description="Pexels API key")
    unsplash_access_key: str | None = Field(default=None, description="Unsplash access key")
    pixabay_api_key: str | None = Field(default=None, description="Pixabay API key")
    stock_per_page: int = Field(default=12, ge=1, le=80)
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for outbound HTTP requests",
    )

    # Recency store
    history_limit: int = Field(default=50, ge=1, le=500)
    recent_prompt_limit: int = Field(default=10, ge=1, le=100)

    # Editing
    variation_count: int = Field(default=2, ge=1, le=8)
    max_batch_size: int = Field(default=4, ge=1, le=8)
    outpaint_fill_color: str = Field(
        default="#ffffff",
        description="Fill colour for newly added out-paint regions",
    )
    inpaint_alpha_threshold: int = Field(
        default=0,
        ge=0,
        le=254,
        description="Overlay alpha strictly above this value marks a pixel as paint",
    )
    mask_paint_value: int = Field(default=255, ge=0, le=255)
    mask_keep_value: int = Field(default=0, ge=0, le=255)
    negative_prompt_max_length: int = Field(default=200, ge=1)

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for persisted history and recent prompts",
    )

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(default=7860, ge=1024, le=65535)

    @model_validator(mode="after")
    def _check_mask_values(self) -> "ContentCanvasConfig":
        if self.mask_paint_value == self.mask_keep_value:
            raise ValueError("mask_paint_value and mask_keep_value must differ")
        return self

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def history_path(self) -> Path:
        """Location of the persisted history list."""
        return self.data_dir / "history.json"

    @property
    def recent_prompts_path(self) -> Path:
        """Location of the persisted recent-prompt lists."""
        return self.data_dir / "recent_prompts.json"


# Global configuration instance
# Loaded from environment variables (CONTENTCANVAS_* prefix) and .env file.
config = ContentCanvasConfig()

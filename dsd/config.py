"""
Pipeline configuration.

Settings come from the bundled pipeline.yaml (or DSD_CONFIG_PATH), then
environment variables override individual values. A .env file is loaded
first so local runs can keep keys and overrides out of the shell.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "pipeline.yaml"


class ModelSettings(BaseModel):
    """Model identifiers (OpenRouter names)."""

    analysis: str = Field(default="google/gemini-2.5-pro", description="Structured extraction model")
    analysis_fallback: Optional[str] = Field(
        default="anthropic/claude-sonnet-4.5",
        description="Extraction model tried once when the primary fails, except on rate limits",
    )
    classifier: str = Field(default="google/gemini-2.5-flash", description="Smile-line classifier model")
    lip_check: str = Field(
        default="google/gemini-2.5-flash",
        description="Model comparing lips between the photo and a simulation",
    )
    simulation: list[str] = Field(
        default_factory=lambda: [
            "google/gemini-2.5-flash-image",
            "google/gemini-2.5-flash-image-preview",
        ],
        min_length=1,
        description="Image models tried in order inside each simulation attempt",
    )


class TimeoutSettings(BaseModel):
    """Per-call time budgets in seconds."""

    analysis: float = Field(default=50.0, gt=0)
    classifier: float = Field(default=20.0, gt=0)
    lip_check: float = Field(default=15.0, gt=0)
    simulation: dict[str, float] = Field(
        default_factory=lambda: {"standard": 55.0, "intraoral": 35.0, "reconstruction": 55.0}
    )
    min_simulation_call: float = Field(default=15.0, gt=0)


class PipelineSettings(BaseModel):
    """Complete configuration of the DSD pipeline."""

    models: ModelSettings = Field(default_factory=ModelSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    variation_count: int = Field(default=3, ge=1, le=8)
    extraction_max_attempts: int = Field(default=3, ge=1, le=10)
    extraction_retry_min_wait: float = Field(default=2.0, ge=0)
    extraction_retry_max_wait: float = Field(default=10.0, ge=0)
    analysis_temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    analysis_max_tokens: int = Field(default=4000, gt=0)
    simulation_temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    simulation_bucket: str = Field(default="dsd-simulations")
    lip_validation: bool = Field(default=True, description="Flag simulations whose lips moved")
    allow_deciduous: bool = Field(default=True, description="Accept FDI quadrants 5-8")


def _apply_env_overrides(data: dict) -> dict:
    models = dict(data.get("models") or {})
    if os.getenv("DSD_ANALYSIS_MODEL"):
        models["analysis"] = os.environ["DSD_ANALYSIS_MODEL"]
    if os.getenv("DSD_ANALYSIS_FALLBACK_MODEL"):
        models["analysis_fallback"] = os.environ["DSD_ANALYSIS_FALLBACK_MODEL"]
    if os.getenv("DSD_CLASSIFIER_MODEL"):
        models["classifier"] = os.environ["DSD_CLASSIFIER_MODEL"]
    if os.getenv("DSD_LIP_CHECK_MODEL"):
        models["lip_check"] = os.environ["DSD_LIP_CHECK_MODEL"]
    if os.getenv("DSD_SIMULATION_MODELS"):
        models["simulation"] = [
            name.strip() for name in os.environ["DSD_SIMULATION_MODELS"].split(",") if name.strip()
        ]
    if models:
        data["models"] = models
    if os.getenv("DSD_VARIATION_COUNT"):
        data["variation_count"] = os.environ["DSD_VARIATION_COUNT"]
    return data


def load_settings(config_path: Optional[Union[str, Path]] = None) -> PipelineSettings:
    """
    Load pipeline settings.

    Args:
        config_path: YAML file to read. Defaults to DSD_CONFIG_PATH or the bundled dsd/pipeline.yaml.

    Returns:
        Validated PipelineSettings

    Raises:
        pydantic.ValidationError: If a value is out of range
    """
    load_dotenv()

    path = Path(config_path or os.getenv("DSD_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    data: dict = {}
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Config file not found at {path}; using defaults")

    return PipelineSettings.model_validate(_apply_env_overrides(data))

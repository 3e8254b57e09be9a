"""End-to-end DSD pipeline."""

from dsd.pipeline.coordinator import DSDPipeline

__all__ = ["DSDPipeline"]

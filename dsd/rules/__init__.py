"""Deterministic validation and repair of clinical assessments."""

from dsd.rules.fdi import get_contralateral_tooth, is_valid_fdi_code
from dsd.rules.safety_nets import apply_safety_nets

__all__ = ["apply_safety_nets", "get_contralateral_tooth", "is_valid_fdi_code"]

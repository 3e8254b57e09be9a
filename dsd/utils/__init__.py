"""Utility functions and helpers."""

from dsd.utils.concurrency import first_successful
from dsd.utils.parsing import (
    coerce_float,
    decode_data_url,
    extract_json_object,
    sanitize_analysis_text,
    sanitize_for_prompt,
    strip_code_fences,
)
from dsd.utils.protocols import (
    EvaluationStoreProtocol,
    LLMClientProtocol,
    ObjectStorageProtocol,
)

__all__ = [
    "first_successful",
    "coerce_float",
    "decode_data_url",
    "extract_json_object",
    "sanitize_analysis_text",
    "sanitize_for_prompt",
    "strip_code_fences",
    "EvaluationStoreProtocol",
    "LLMClientProtocol",
    "ObjectStorageProtocol",
]
